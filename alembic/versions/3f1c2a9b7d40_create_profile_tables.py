"""Create volunteer and organizer profile tables

Revision ID: 3f1c2a9b7d40
Revises:
Create Date: 2026-10-19 18:40:12.418305

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9b7d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _profile_columns():
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.VARCHAR(), nullable=False),
        sa.Column("first_name", sa.VARCHAR(), nullable=False),
        sa.Column("last_name", sa.VARCHAR(), nullable=False),
        sa.Column("sex", sa.VARCHAR(), nullable=False),
        sa.Column("email", sa.VARCHAR(), nullable=False),
        sa.Column("country", sa.VARCHAR(), nullable=False),
        sa.Column("phone", sa.VARCHAR(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "volunteers",
        *_profile_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    # One profile per identity provider account
    op.create_index(
        op.f("ix_volunteers_user_id"), "volunteers", ["user_id"], unique=True
    )

    op.create_table(
        "organizers",
        *_profile_columns(),
        sa.Column("organization_name", sa.VARCHAR(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_organizers_user_id"), "organizers", ["user_id"], unique=True
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_organizers_user_id"), table_name="organizers")
    op.drop_table("organizers")
    op.drop_index(op.f("ix_volunteers_user_id"), table_name="volunteers")
    op.drop_table("volunteers")
