"""Database configuration"""

import os

from sqlalchemy import create_engine
from sqlmodel import Session

from volunteerverse.config import config

# Database URL from config
DATABASE_URL = config["database_url"]

if not DATABASE_URL:
    raise ValueError(
        "DATABASE_URL environment variable is not set. "
        "Point it at the Supabase Postgres database or set it in a local .env file."
    )

engine = create_engine(
    DATABASE_URL,
    echo=os.getenv("DEBUG", "false").lower() == "true",
    pool_pre_ping=True,
)


def get_db():
    """Get database session"""
    with Session(engine) as session:
        yield session
