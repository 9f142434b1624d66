"""Profile Service - Handles volunteer and organizer profile rows"""

import logging
from typing import Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from volunteerverse.auth.errors import ProfileStoreError
from volunteerverse.auth.models import UserRole
from volunteerverse.models.profile import PROFILE_MODELS, Profile

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for reading and provisioning role profiles"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_profile(self, role: UserRole, user_id: str) -> Optional[Profile]:
        """
        Get the profile of the given role for an account

        Args:
            role: Which profile table to look in
            user_id: Identity provider account id

        Returns:
            Profile if found, None otherwise

        Raises:
            ProfileStoreError: If the lookup itself fails
        """
        model = PROFILE_MODELS[role]
        try:
            statement = select(model).where(model.user_id == user_id)
            return self.db.exec(statement).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error looking up {role.value} profile for {user_id}: {e}")
            raise ProfileStoreError(f"Failed to look up profile: {str(e)}") from e

    def create_profile_if_absent(
        self, role: UserRole, user_id: str, fields: Dict[str, str]
    ) -> Tuple[Profile, bool]:
        """
        Insert a profile unless the account already has one.

        The unique index on ``user_id`` decides concurrent inserts: the
        loser rolls back and returns the row that was committed first.

        Args:
            role: Which profile table to write
            user_id: Identity provider account id
            fields: Column values for the new row

        Returns:
            Tuple of the account's profile and whether this call created it

        Raises:
            ProfileStoreError: If the row could not be written or read back
        """
        existing = self.get_profile(role, user_id)
        if existing is not None:
            logger.info(f"{role.value} profile already exists for {user_id}")
            return existing, False

        model = PROFILE_MODELS[role]
        profile = model(user_id=user_id, **fields)
        try:
            self.db.add(profile)
            self.db.commit()
            self.db.refresh(profile)
        except IntegrityError:
            self.db.rollback()
            existing = self.get_profile(role, user_id)
            if existing is None:
                logger.error(
                    f"Insert of {role.value} profile for {user_id} violated a "
                    f"constraint and no existing row was found"
                )
                raise ProfileStoreError("Failed to create profile")
            logger.info(f"{role.value} profile for {user_id} was created concurrently")
            return existing, False
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating {role.value} profile for {user_id}: {e}")
            raise ProfileStoreError(f"Failed to create profile: {str(e)}") from e

        logger.info(f"Created {role.value} profile {profile.id} for {user_id}")
        return profile, True
