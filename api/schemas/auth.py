"""Authentication API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from database.models.users import UserType

# bcrypt only hashes the first 72 bytes and refuses longer input
MAX_PASSWORD_BYTES = 72


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    user_type: UserType = Field(default=UserType.JOB_SEEKER)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip whitespace from the name."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
        return v

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    """Schema for login. ``user_type`` restricts the login to one role."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    user_type: Optional[UserType] = None


class UserResponse(BaseModel):
    """Public view of a user."""

    id: int
    name: str
    email: str
    user_type: UserType
    is_active: bool
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Access token plus the authenticated user."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse
