import logging
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.api import auth, chat, ingredients, logs, symptoms, triggers
from app.config import settings
from app.errors import (
    APIError,
    api_error_handler,
    error_body,
    http_exception_handler,
    request_validation_handler,
    sqlalchemy_error_handler,
    unhandled_exception_handler,
)
from app.logging_config import setup_logging

setup_logging()

logger = logging.getLogger(__name__)

app = FastAPI(title="Gutsy", version="0.1.0")


# =============================================================================
# CSRF Origin Validation Middleware
# =============================================================================


class CSRFOriginMiddleware(BaseHTTPMiddleware):
    """
    Validate Origin/Referer headers on state-changing requests to prevent CSRF.

    - POST, PUT, PATCH, DELETE must include a matching Origin or Referer header
    - GET, HEAD, OPTIONS are always allowed (safe methods)
    - Health check endpoints are exempt
    - Requests authenticated by bearer token alone carry no ambient
      credentials and are exempt
    """

    SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
    EXEMPT_PATHS = {"/health"}

    def _reject(self, reason: str, request: Request, value: str = "") -> JSONResponse:
        logger.warning(
            "CSRF %s: value=%s, method=%s, path=%s",
            reason,
            value,
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=403,
            content=error_body("authorization_error", "Origin validation failed"),
        )

    async def dispatch(self, request: Request, call_next):
        if request.method in self.SAFE_METHODS:
            return await call_next(request)

        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        has_cookie = settings.session_cookie_name in request.cookies
        if not has_cookie and request.headers.get("authorization", "").lower().startswith("bearer "):
            return await call_next(request)

        expected_host = request.headers.get("host", "")

        # Check Origin header first, fall back to Referer
        for header in ("origin", "referer"):
            value = request.headers.get(header)
            if value:
                if urlparse(value).netloc != expected_host:
                    return self._reject(f"{header} mismatch", request, value)
                return await call_next(request)

        return self._reject("missing origin/referer", request)


app.add_middleware(CSRFOriginMiddleware)

app.add_exception_handler(APIError, api_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# Include routers
app.include_router(auth.router)
app.include_router(logs.router)
app.include_router(triggers.router)
app.include_router(ingredients.router)
app.include_router(symptoms.router)
app.include_router(chat.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
