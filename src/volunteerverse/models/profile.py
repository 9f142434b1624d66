"""SQLModel profile models for volunteers and organizers"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Type, Union

from sqlmodel import Field, SQLModel

from volunteerverse.auth.models import UserRole


class ProfileBase(SQLModel):
    """Columns shared by both profile tables"""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # Identity provider account id; one profile per account
    user_id: str = Field(unique=True, index=True)
    first_name: str
    last_name: str
    sex: str = Field(default="")
    email: str
    country: str = Field(default="")
    phone: str = Field(default="")
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class Volunteer(ProfileBase, table=True):
    """Volunteer profile"""

    __tablename__ = "volunteers"


class Organizer(ProfileBase, table=True):
    """Organizer profile"""

    __tablename__ = "organizers"

    organization_name: str


Profile = Union[Volunteer, Organizer]

PROFILE_MODELS: dict[UserRole, Type[SQLModel]] = {
    UserRole.VOLUNTEER: Volunteer,
    UserRole.ORGANIZER: Organizer,
}
