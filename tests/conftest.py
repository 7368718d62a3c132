"""
Test configuration and fixtures for Gutsy.

Implements the transaction rollback pattern:
- Session-scoped engine (in-memory SQLite unless TEST_DATABASE_URL is set)
- Function-scoped transactional session with automatic rollback
- TestClient with database dependency override
- Authenticated client fixtures
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models import User, Session as UserSession
from app.services.ai_service import get_claude_service
from tests.factories import create_user, create_session


# =============================================================================
# Database Fixtures
# =============================================================================


def get_test_database_url() -> str:
    """
    Get the test database URL.

    TEST_DATABASE_URL points the suite at a real PostgreSQL instance; the
    default is a private in-memory SQLite database.
    """
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session")
def test_engine():
    """
    Create test database engine once per session.

    Tables are created at the start and dropped at the end.
    """
    database_url = get_test_database_url()

    if database_url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(test_engine) -> Generator[Session, None, None]:
    """
    Provide a transactional database session that rolls back after each test.

    Commits made by application code stay inside the outer transaction, so
    nothing a test writes survives it.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    TestingSessionLocal = sessionmaker(bind=connection)
    session = TestingSessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# TestClient Fixtures
# =============================================================================


def _override_dependencies(db: Session, claude_service=None) -> None:
    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close - managed by db fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_claude_service] = lambda: claude_service


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    TestClient with database dependency override.

    AI features are disabled unless a test overrides get_claude_service itself.
    """
    _override_dependencies(db)

    with TestClient(app) as test_client:
        # Set default Referer so CSRF Origin middleware allows requests
        test_client.headers["referer"] = "http://testserver/"
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Authentication Fixtures
# =============================================================================


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user with password 'testpassword123'."""
    return create_user(db, email="testuser@example.com", password="testpassword123")


@pytest.fixture
def other_user(db: Session) -> User:
    """A second user, for ownership checks."""
    return create_user(db, email="other@example.com", password="otherpassword123")


@pytest.fixture
def admin_user(db: Session) -> User:
    """Create an admin test user."""
    return create_user(
        db, email="admin@example.com", password="adminpassword123", is_admin=True
    )


@pytest.fixture
def test_session(db: Session, test_user: User) -> UserSession:
    """Create a test session for the test user."""
    return create_session(db, test_user)


@pytest.fixture
def admin_session(db: Session, admin_user: User) -> UserSession:
    """Create a test session for the admin user."""
    return create_session(db, admin_user)


@pytest.fixture
def auth_client(
    db: Session, test_session: UserSession
) -> Generator[TestClient, None, None]:
    """
    Authenticated TestClient for regular user.

    Creates a separate TestClient instance to avoid cookie conflicts.
    """
    _override_dependencies(db)

    with TestClient(app) as test_client:
        test_client.cookies.set(settings.session_cookie_name, test_session.token)
        # Set default Referer so CSRF Origin middleware allows requests
        test_client.headers["referer"] = "http://testserver/"
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(
    db: Session, admin_session: UserSession
) -> Generator[TestClient, None, None]:
    """
    Authenticated TestClient for admin user.

    Creates a separate TestClient instance to avoid cookie conflicts.
    """
    _override_dependencies(db)

    with TestClient(app) as test_client:
        test_client.cookies.set(settings.session_cookie_name, admin_session.token)
        test_client.headers["referer"] = "http://testserver/"
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def expired_session(db: Session, test_user: User) -> UserSession:
    return create_session(
        db, test_user, expires_at=datetime.now(timezone.utc) - timedelta(hours=1)
    )


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_claude_service():
    """
    Mock Claude service for testing AI functionality.

    Installed as the get_claude_service dependency; configure it per test.
    """
    from tests.fixtures.mocks import MockClaudeService

    mock_service = MockClaudeService()
    app.dependency_overrides[get_claude_service] = lambda: mock_service
    return mock_service


@pytest.fixture
def ai_client(
    auth_client: TestClient, mock_claude_service
) -> TestClient:
    """Authenticated client whose AI dependency is the mock service."""
    app.dependency_overrides[get_claude_service] = lambda: mock_claude_service
    return auth_client
