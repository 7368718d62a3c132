"""Authentication routes: registration, login, logout and session status."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import AuthorizationError, BusinessLogicError
from app.models.user import User
from app.schemas import Credentials, RegisterRequest, UserResponse
from app.services.auth import get_auth_provider
from app.services.auth.dependencies import get_optional_user
from app.services.auth.local_provider import get_session_token


router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Create an account and start a session."""
    if db.query(User).filter(User.email == payload.email).first():
        raise BusinessLogicError("Email already registered", status_code=409)

    auth_provider = get_auth_provider()
    user = await auth_provider.create_user(db, payload.email, payload.password)
    token = await auth_provider.create_session(db, user, request)
    _set_session_cookie(response, token)
    return {"data": UserResponse.model_validate(user)}


@router.post("/login")
async def login(
    payload: Credentials,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Check credentials and set the session cookie. The token is also returned for API clients."""
    auth_provider = get_auth_provider()
    user = await auth_provider.authenticate(db, payload.email, payload.password)
    if not user:
        raise AuthorizationError("Invalid email or password")

    token = await auth_provider.create_session(db, user, request)
    _set_session_cookie(response, token)
    return {"data": UserResponse.model_validate(user), "token": token}


@router.post("/logout")
async def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Revoke the current session and clear the cookie."""
    token = get_session_token(request)
    if token:
        await get_auth_provider().revoke_session(db, token)
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Logged out"}


@router.get("/status")
async def auth_status(user: User = Depends(get_optional_user)):
    if not user:
        return {"authenticated": False, "user": None}
    return {"authenticated": True, "user": UserResponse.model_validate(user)}
