"""
Authentication endpoints.

Provides:
- Email/password registration
- Login with optional role check
- Current identity lookup
"""

import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_authenticated_user
from api.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from api.services import users as user_service
from database.engine import get_db
from database.models.users import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and receive an access token.",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a job seeker, recruiter or admin account."""
    return await user_service.register_user(db, payload)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login",
    description="Exchange email and password for an access token.",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email and password, optionally restricted to a role."""
    return await user_service.authenticate_user(
        db, payload.email, payload.password, payload.user_type
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current User",
    description="Return the identity behind the bearer token.",
)
async def me(current_user: User = Depends(require_authenticated_user)):
    """Return the authenticated user's profile."""
    return user_service.user_to_dict(current_user)
