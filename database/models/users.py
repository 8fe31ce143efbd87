from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    func,
    Enum as SQLEnum,
)
from database.engine import Base, BigIntPK
from datetime import datetime
from enum import Enum as PyEnum


# ==================== User Type ===================== #
class UserType(str, PyEnum):
    JOB_SEEKER = "job_seeker"  # applies to jobs
    RECRUITER = "recruiter"  # posts jobs and reviews applications
    ADMIN = "admin"  # platform admin with full access


class User(Base):
    """
    Core user identity and authentication.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    user_type: Mapped[UserType] = mapped_column(
        SQLEnum(UserType, native_enum=False, length=50),
        nullable=False,
        default=UserType.JOB_SEEKER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} type={self.user_type}>"
