"""
Bearer token authentication.

Every non-public request must carry ``Authorization: Bearer <jwt>``. The
token subject is the user id; it is stored in the ASGI scope as ``user_id``
for route dependencies. Requests without a valid token are answered with 401
before they reach the application.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.security import TokenError, decode_access_token

logger = logging.getLogger(__name__)

PUBLIC_ENDPOINTS = frozenset({
    "/",
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
})

PUBLIC_PREFIXES = ("/health", "/docs", "/redoc", "/openapi")


class AuthenticationError(Exception):
    """Raised when the request carries no authenticated user."""
    pass


def is_public_path(path: str) -> bool:
    return path in PUBLIC_ENDPOINTS or path.startswith(PUBLIC_PREFIXES)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a ``Bearer`` authorization header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        return None
    return token.strip() or None


class AuthenticationMiddleware:
    """ASGI middleware validating bearer tokens."""

    def __init__(self, app: Callable):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        if is_public_path(request.url.path):
            await self.app(scope, receive, send)
            return

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            response = self._unauthorized("TOKEN_MISSING", "Authentication required.")
            await response(scope, receive, send)
            return

        try:
            scope["user_id"] = decode_access_token(token)
        except TokenError as e:
            logger.warning(f"Rejected token on {request.method} {request.url.path}: {e}")
            response = self._unauthorized("TOKEN_INVALID", "Invalid or expired authentication token.")
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

    @staticmethod
    def _unauthorized(code: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={
                "error": {
                    "code": code,
                    "message": message,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            },
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_user_id(request: Request) -> str:
    """
    Get the authenticated user id from the request scope.

    Raises:
        AuthenticationError: If no user was authenticated
    """
    user_id = request.scope.get("user_id")
    if not user_id:
        raise AuthenticationError("User not authenticated")
    return user_id
