"""
Security utilities.

Provides password hashing, JWT access tokens and audit logging for
job and application mutations.
"""

import logging
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Set, TypedDict
from enum import Enum

import bcrypt
import jwt

from core.config import settings

logger = logging.getLogger("security.audit")


class AuditAction(str, Enum):
    """Audit log action types."""
    # Write operations
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Application workflow
    APPLY = "APPLY"
    STATUS_CHANGE = "STATUS_CHANGE"
    WITHDRAW = "WITHDRAW"

    # Identity
    REGISTER = "REGISTER"
    LOGIN = "LOGIN"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    APPLICATION = "APPLICATION"
    JOB = "JOB"
    USER = "USER"


# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "name", "password", "resume_link", "cover_letter",
}


class JWTPayload(TypedDict, total=False):
    """Claims carried by access tokens."""
    sub: str
    user_id: int
    email: str
    user_type: str
    type: str
    iat: int
    exp: int


# ==================== Passwords ==================== #

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ==================== Tokens ==================== #

def create_access_token(
    user_id: int,
    email: str,
    user_type: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT access token.

    Args:
        user_id: User primary key
        email: User email
        user_type: Role of the user
        expires_delta: Token lifetime (defaults to configured expiry)

    Returns:
        Encoded JWT
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    issued_at = datetime.now(timezone.utc)
    payload: JWTPayload = {
        "sub": str(user_id),
        "user_id": user_id,
        "email": email,
        "user_type": user_type,
        "type": "access",
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_jwt_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> JWTPayload:
    """
    Decode and verify a JWT.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed or the signature is wrong
    """
    payload = jwt.decode(
        token,
        secret or settings.jwt_secret_key,
        algorithms=[algorithm or settings.jwt_algorithm],
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Not an access token")
    return payload


# ==================== Audit ==================== #

AUDIT_MAX_DEPTH = 10
AUDIT_MAX_LIST_ITEMS = 5


def _mask_value(value: Any) -> str:
    if isinstance(value, str) and value:
        return f"{value[0]}***[{len(value)}]"
    return "[MASKED]"


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Mask PII in audit details.

    Values under :data:`PII_FIELDS` keep their first character and length,
    e.g. ``j***[16]``; empty values become ``[MASKED]``. Lists are cut to
    their first few items.
    """
    if depth > AUDIT_MAX_DEPTH:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        return {
            key: _mask_value(value) if key.lower() in PII_FIELDS else mask_pii(value, depth + 1)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:AUDIT_MAX_LIST_ITEMS]]
    return data


def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[Any] = None,
    user_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an audit event for a mutation.

    Emits a structured JSON record on the ``security.audit`` logger.
    """
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "user_id": user_id,
        "details": mask_pii(details) if details else None,
    }

    logger.info(json.dumps(event, default=str))
