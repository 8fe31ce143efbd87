"""
Authentication middleware for verifying bearer tokens.

The middleware reads the JWT from the Authorization header, checks its
signature, expiry and token type, and records either the verified payload
or the reason verification failed on the request state.

It never rejects a request itself. Routes decide whether identity is
required through the ``require_authenticated_user`` dependency, and public
listings still work for anonymous callers.
"""

import logging
from typing import Optional

import jwt
from fastapi import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from core.security import verify_jwt_token, JWTPayload

logger = logging.getLogger(__name__)

# Endpoints that never carry identity; tokens there are not decoded
PUBLIC_ENDPOINTS = [
    "/",
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
]

AUTH_ERROR_MESSAGES = {
    "AUTHENTICATION_REQUIRED": "Authentication required.",
    "TOKEN_EXPIRED": "Authentication token has expired. Please login again.",
    "TOKEN_INVALID": "Invalid authentication token.",
    "USER_NOT_FOUND": "User account not found or inactive.",
}


class AuthenticationError(Exception):
    """A bearer token was sent but could not be accepted."""
    code = "AUTHENTICATION_REQUIRED"


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""
    code = "TOKEN_EXPIRED"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""
    code = "TOKEN_INVALID"


def is_public_path(path: str) -> bool:
    return path in PUBLIC_ENDPOINTS or path.startswith(("/docs", "/redoc"))


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of a ``Bearer <token>`` header. Other schemes are ignored."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer":
        return None
    return token.strip() or None


class AuthenticationMiddleware:
    """
    Verify bearer tokens and record the outcome on the request state.

    ``state["jwt_payload"]`` holds the verified claims; when a token was
    sent but rejected, ``state["auth_failure"]`` holds the error code
    instead. The authenticated user ID is copied to ``state["user_id"]``
    for the request log.
    """

    def __init__(self, app: ASGIApp, jwt_secret: str, jwt_algorithm: str = "HS256"):
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            self._authenticate(scope)
        await self.app(scope, receive, send)

    def _authenticate(self, scope: Scope) -> None:
        state = scope.setdefault("state", {})
        state["jwt_payload"] = None
        state["auth_failure"] = None

        request = Request(scope)
        if is_public_path(request.url.path):
            return

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            return

        try:
            payload = self._verify(token)
        except AuthenticationError as e:
            logger.info(f"Rejected bearer token: {e}")
            state["auth_failure"] = e.code
            return

        state["jwt_payload"] = payload
        state["user_id"] = payload.get("user_id")

    def _verify(self, token: str) -> JWTPayload:
        """
        Raises:
            TokenExpiredError: If the token has expired
            TokenInvalidError: If the token is malformed, badly signed
                or not an access token
        """
        try:
            return verify_jwt_token(token, self.jwt_secret, self.jwt_algorithm)
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")


def get_token_payload(request: Request) -> Optional[JWTPayload]:
    """Verified token payload for this request, if any."""
    return getattr(request.state, "jwt_payload", None)


def get_auth_failure(request: Request) -> Optional[str]:
    """Error code for a rejected token on this request, if any."""
    return getattr(request.state, "auth_failure", None)
