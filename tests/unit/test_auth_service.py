"""
Unit tests for AuthService (LocalAuthProvider).

Tests authentication functionality including:
- Password hashing and verification
- Session creation, lookup and revocation
- Cookie and bearer token extraction
- User creation
"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from sqlalchemy.orm import Session

from app.config import settings
from app.services.auth.local_provider import LocalAuthProvider, get_session_token
from app.models import Session as UserSession
from tests.factories import create_user, create_session


def make_request(cookies=None, headers=None):
    """Minimal stand-in for a Starlette Request."""
    request = MagicMock()
    request.cookies = cookies or {}
    request.headers = headers or {}
    request.client.host = "127.0.0.1"
    return request


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_hash(self):
        """Test that password hashing returns a hash."""
        provider = LocalAuthProvider()

        hashed = provider._hash_password("test_password1")

        assert hashed != "test_password1"
        assert hashed.startswith("$2b$")  # bcrypt prefix

    def test_hash_password_is_unique(self):
        """Test that hashing same password twice gives different hashes."""
        provider = LocalAuthProvider()

        assert provider._hash_password("same_password1") != provider._hash_password(
            "same_password1"
        )

    def test_verify_password(self):
        provider = LocalAuthProvider()
        hashed = provider._hash_password("correct_password1")

        assert provider._verify_password("correct_password1", hashed) is True
        assert provider._verify_password("wrong_password1", hashed) is False
        assert provider._verify_password("", hashed) is False


class TestSessionTokenExtraction:
    """Tests for get_session_token."""

    def test_cookie(self):
        request = make_request(cookies={settings.session_cookie_name: "cookie-token"})
        assert get_session_token(request) == "cookie-token"

    def test_bearer_header(self):
        request = make_request(headers={"authorization": "Bearer header-token"})
        assert get_session_token(request) == "header-token"

    def test_cookie_wins_over_header(self):
        request = make_request(
            cookies={settings.session_cookie_name: "cookie-token"},
            headers={"authorization": "Bearer header-token"},
        )
        assert get_session_token(request) == "cookie-token"

    @pytest.mark.parametrize("header", ["", "Basic abc", "Bearer ", "Bearer"])
    def test_missing_or_other_scheme(self, header):
        request = make_request(headers={"authorization": header})
        assert get_session_token(request) is None


class TestAuthentication:
    """Tests for user authentication."""

    @pytest.mark.asyncio
    async def test_authenticate_success(self, db: Session):
        provider = LocalAuthProvider()
        user = create_user(db, email="test@example.com", password="secret123")

        result = await provider.authenticate(db, "test@example.com", "secret123")

        assert result is not None
        assert result.id == user.id

    @pytest.mark.asyncio
    async def test_authenticate_wrong_password(self, db: Session):
        provider = LocalAuthProvider()
        create_user(db, email="test@example.com", password="secret123")

        assert await provider.authenticate(db, "test@example.com", "wrongpassword1") is None

    @pytest.mark.asyncio
    async def test_authenticate_nonexistent_user(self, db: Session):
        provider = LocalAuthProvider()

        assert await provider.authenticate(db, "nobody@example.com", "password1") is None

    @pytest.mark.asyncio
    async def test_authenticate_case_insensitive_email(self, db: Session):
        """Test that email comparison is case insensitive."""
        provider = LocalAuthProvider()
        create_user(db, email="Test@Example.com", password="secret123")

        assert await provider.authenticate(db, "TEST@example.com", "secret123") is not None


class TestUserCreation:
    """Tests for user creation."""

    @pytest.mark.asyncio
    async def test_create_user_basic(self, db: Session):
        provider = LocalAuthProvider()

        user = await provider.create_user(db, "New@Example.com", "password123")

        assert user.id is not None
        assert user.email == "new@example.com"
        assert user.password_hash.startswith("$2b$")
        assert user.is_admin is False

    @pytest.mark.asyncio
    async def test_create_user_admin(self, db: Session):
        provider = LocalAuthProvider()

        user = await provider.create_user(db, "admin@example.com", "password123", is_admin=True)

        assert user.is_admin is True


class TestSessions:
    """Tests for session lifecycle."""

    @pytest.mark.asyncio
    async def test_create_session(self, db: Session):
        provider = LocalAuthProvider()
        user = create_user(db)
        request = make_request(headers={"user-agent": "pytest"})

        token = await provider.create_session(db, user, request)

        session = db.query(UserSession).filter(UserSession.token == token).one()
        assert session.user_id == user.id
        assert session.user_agent == "pytest"
        assert session.ip_address == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_user_from_valid_session(self, db: Session):
        provider = LocalAuthProvider()
        user = create_user(db)
        session = create_session(db, user)
        request = make_request(cookies={settings.session_cookie_name: session.token})

        assert (await provider.get_user_from_request(db, request)).id == user.id

    @pytest.mark.asyncio
    async def test_user_from_bearer_token(self, db: Session):
        provider = LocalAuthProvider()
        user = create_user(db)
        session = create_session(db, user)
        request = make_request(headers={"authorization": f"Bearer {session.token}"})

        assert (await provider.get_user_from_request(db, request)).id == user.id

    @pytest.mark.asyncio
    async def test_expired_session_rejected(self, db: Session):
        provider = LocalAuthProvider()
        user = create_user(db)
        session = create_session(
            db, user, expires_at=datetime.now(timezone.utc) - timedelta(minutes=5)
        )
        request = make_request(cookies={settings.session_cookie_name: session.token})

        assert await provider.get_user_from_request(db, request) is None

    @pytest.mark.asyncio
    async def test_unknown_token_rejected(self, db: Session):
        provider = LocalAuthProvider()
        request = make_request(cookies={settings.session_cookie_name: "not-a-token"})

        assert await provider.get_user_from_request(db, request) is None

    @pytest.mark.asyncio
    async def test_revoke_session(self, db: Session):
        provider = LocalAuthProvider()
        user = create_user(db)
        session = create_session(db, user)
        token = session.token

        assert await provider.revoke_session(db, token) is True
        assert await provider.revoke_session(db, token) is False
        assert db.query(UserSession).filter(UserSession.token == token).first() is None
