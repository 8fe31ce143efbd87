"""
User service functions for API endpoints.

Registration, credential checks and user lookup.
"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.auth import LoginRequest, RegisterRequest
from api.schemas.common import parse_payload
from core.config import settings
from core.exceptions import ConflictError, InvalidCredentialsError
from core.security import (
    AuditAction,
    ResourceType,
    create_access_token,
    hash_password,
    log_audit_event,
    verify_password,
)
from core.utils.datetime import now, to_iso
from core.utils.formatting import normalize_email
from database.models.users import User, UserType

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "User with this email already exists"


def user_to_dict(user: User) -> Dict[str, Any]:
    """Public representation of a user. Never includes the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "user_type": user.user_type.value,
        "is_active": user.is_active,
        "created_at": to_iso(user.created_at),
    }


def issue_token(user: User) -> Dict[str, Any]:
    """Build the token response for an authenticated user."""
    return {
        "access_token": create_access_token(user.id, user.email, user.user_type.value),
        "token_type": "bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
        "user": user_to_dict(user),
    }


async def get_user(session: AsyncSession, user_id: int) -> Optional[User]:
    """
    Get a user by ID.

    Args:
        session: Database session
        user_id: The user ID

    Returns:
        The user, or None when no such user exists
    """
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def register_user(
    session: AsyncSession, payload: RegisterRequest | Dict[str, Any]
) -> Dict[str, Any]:
    """
    Register a new account.

    Args:
        session: Database session
        payload: Name, email, password and optional user type

    Returns:
        Token response with the created user

    Raises:
        ValidationError: If the payload is invalid
        ConflictError: If the email is already registered
    """
    data = parse_payload(RegisterRequest, payload)
    email = normalize_email(data.email)

    if await get_user_by_email(session, email):
        raise ConflictError(EMAIL_TAKEN_MESSAGE)

    user = User(
        name=data.name,
        email=email,
        password_hash=hash_password(data.password),
        user_type=data.user_type,
        is_active=True,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(EMAIL_TAKEN_MESSAGE) from e
    await session.refresh(user)

    logger.info(f"Registered user {user.id} as {user.user_type.value}")
    log_audit_event(
        AuditAction.REGISTER,
        ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        details={"user_type": user.user_type.value},
    )
    return issue_token(user)


async def authenticate_user(
    session: AsyncSession,
    email: str,
    password: str,
    user_type: Optional[UserType] = None,
) -> Dict[str, Any]:
    """
    Check credentials and issue an access token.

    When ``user_type`` is given the account must have that role; a mismatch
    is reported exactly like a wrong password.

    Raises:
        InvalidCredentialsError: On unknown email, wrong password, role
            mismatch or a deactivated account
    """
    data = parse_payload(
        LoginRequest, {"email": email, "password": password, "user_type": user_type}
    )
    user = await get_user_by_email(session, data.email)

    if not user or not verify_password(data.password, user.password_hash):
        logger.info("Login failed: bad credentials")
        raise InvalidCredentialsError()

    if data.user_type is not None and user.user_type != data.user_type:
        logger.info(f"Login failed for user {user.id}: role mismatch")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.info(f"Login refused for inactive user {user.id}")
        raise InvalidCredentialsError("Account is deactivated")

    user.last_login_at = now()
    await session.commit()

    log_audit_event(AuditAction.LOGIN, ResourceType.USER, resource_id=user.id, user_id=user.id)
    return issue_token(user)
