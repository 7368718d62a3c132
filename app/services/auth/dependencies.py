"""FastAPI dependencies for authentication."""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AuthorizationError, ForbiddenError
from app.models.user import User
from app.services.auth import get_auth_provider


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    """
    Get the currently authenticated user.

    Raises 401 (authorization_error) if not authenticated.
    """
    auth_provider = get_auth_provider()
    user = await auth_provider.get_user_from_request(db, request)

    if not user:
        raise AuthorizationError("Not authenticated")

    return user


async def get_optional_user(
    request: Request,
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Get the current user if authenticated, None otherwise."""
    auth_provider = get_auth_provider()
    return await auth_provider.get_user_from_request(db, request)


async def require_admin(
    user: User = Depends(get_current_user)
) -> User:
    """
    Require the current user to be an admin.

    Raises 403 (authorization_error) if user is not an admin.
    """
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
