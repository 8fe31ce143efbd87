"""FastAPI dependencies for dependency injection."""

from typing import Optional
from fastapi import Depends, HTTPException, Query, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from core.config import settings
from core.middleware.authentication import AUTH_ERROR_MESSAGES, get_auth_failure, get_token_payload
from database.engine import get_db
from database.models.users import User


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Load the user named by the request's verified token.
    Returns None if there is no valid token or the account is gone or inactive.
    """
    payload = get_token_payload(request)
    if not payload:
        return None

    user = await db.get(User, int(payload["sub"]))
    if not user or not user.is_active:
        return None

    request.state.user = user
    return user


async def require_authenticated_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Require user to be authenticated."""
    user = await get_current_user(request, db)

    if not user:
        code = get_auth_failure(request) or "AUTHENTICATION_REQUIRED"
        if get_token_payload(request):
            code = "USER_NOT_FOUND"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": code, "message": AUTH_ERROR_MESSAGES[code]},
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Get current user if authenticated, otherwise return None.
    Useful for endpoints that work both authenticated and unauthenticated.
    """
    return await get_current_user(request, db)


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(
        settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    ),
) -> PaginationParams:
    """
    Get pagination parameters.

    Args:
        page: Page number (1-indexed)
        limit: Items per page

    Returns:
        Validated pagination parameters
    """
    return PaginationParams(page=page, limit=limit)
