"""Shared test configuration and fixtures for VolunteerVerse tests"""

import logging
import os

# Required configuration must be in place before the app modules are imported
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault(
    "SESSION_SECRET_KEY", "test-session-secret-key-0123456789abcdef"
)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import volunteerverse.models  # noqa: F401
from volunteerverse.auth.models import RegistrationForm
from volunteerverse.main import app
from volunteerverse.models.database import get_db
from volunteerverse.services.identity_service import get_identity_provider
from volunteerverse.services.profile_service import ProfileService
from tests.fakes import FakeIdentityProvider

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture
def db_engine():
    """In-memory SQLite database with the profile tables"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def _db_session(db_engine):
    """Private DB session for fixtures only.

    Tests should prefer the `profile_service` fixture over the raw session.
    """
    session = Session(db_engine)

    yield session

    session.close()


@pytest.fixture
def profile_service(_db_session):
    """Create a ProfileService instance for testing"""
    return ProfileService(_db_session)


@pytest.fixture
def identity_provider():
    """Fake identity provider that requires email confirmation"""
    return FakeIdentityProvider()


@pytest.fixture
def auto_confirm_provider():
    """Fake identity provider that issues a session on signup"""
    return FakeIdentityProvider(session_on_signup=True)


@pytest.fixture
def volunteer_form():
    """A complete, valid volunteer registration form"""

    def _create(**overrides):
        data = {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "sex": "Female",
            "email": "a@b.com",
            "password": "password1",
            "confirmPassword": "password1",
            "country": "Cambodia",
            "phone": "+855 12 345 678",
            "agreeToTerms": True,
        }
        data.update(overrides)
        return RegistrationForm(**data)

    return _create


@pytest.fixture
def organizer_form(volunteer_form):
    """A complete, valid organizer registration form"""

    def _create(**overrides):
        data = {
            "firstName": "Grace",
            "lastName": "Hopper",
            "email": "grace@helpinghands.org",
            "organizationName": "Helping Hands",
        }
        data.update(overrides)
        return volunteer_form(**data)

    return _create


@pytest.fixture
def client(identity_provider, _db_session):
    """Test client wired to the fake identity provider and the test database"""
    original_overrides = app.dependency_overrides.copy()

    def get_test_db():
        return _db_session

    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    # Session and CSRF cookies are HTTPS only
    test_client = TestClient(app, base_url="https://testserver")

    yield test_client

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)


@pytest.fixture
def csrf_headers(client):
    """Header carrying the CSRF token, priming the cookie if needed"""

    def _headers() -> dict:
        token = client.cookies.get("csrftoken")
        if not token:
            client.get("/health")
            token = client.cookies.get("csrftoken")
        assert token, "Expected csrftoken cookie"
        return {"X-CSRFToken": token}

    return _headers
