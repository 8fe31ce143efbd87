"""
Application Models

Job applications linking an applicant to a job, with review status
tracking. One application per (job, applicant) is enforced by the database.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    func,
    Text,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntPK
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from database.models.jobs import Job
    from database.models.users import User


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """Review status of an application."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    INTERVIEWED = "interviewed"
    HIRED = "hired"
    REJECTED = "rejected"


# Statuses after which the applicant can no longer withdraw. Reviewers may
# still move an application out of them.
TERMINAL_STATUSES = frozenset({ApplicationStatus.HIRED, ApplicationStatus.REJECTED})

COVER_LETTER_MAX_LENGTH = 2000
NOTES_MAX_LENGTH = 1000


# ==================== Application Model ===================== #
class Application(Base):
    """
    An applicant's application to a job.
    """

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    applicant_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    resume_link: Mapped[str] = mapped_column(String(2048), nullable=False)
    cover_letter: Mapped[str | None] = mapped_column(Text)

    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=50),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )

    # Review
    notes: Mapped[str | None] = mapped_column(Text)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    job: Mapped["Job"] = relationship("Job", back_populates="applications", lazy="raise")
    applicant: Mapped["User"] = relationship(
        "User", foreign_keys=[applicant_id], lazy="raise"
    )
    reviewer: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[reviewed_by], lazy="raise"
    )

    __table_args__ = (
        UniqueConstraint("job_id", "applicant_id", name="uq_application_job_applicant"),
        Index("idx_application_applicant_created", "applicant_id", "created_at"),
        Index("idx_application_job_status_created", "job_id", "status", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_reviewed(self, reviewer_id: int, status: ApplicationStatus, reviewed_at: datetime) -> None:
        """Apply a review decision.

        ``reviewed_at`` is stamped the first time the status leaves pending
        and is left alone on later reviews.
        """
        self.status = status
        self.reviewed_by = reviewer_id
        if self.reviewed_at is None and status != ApplicationStatus.PENDING:
            self.reviewed_at = reviewed_at

    def __repr__(self) -> str:
        return (
            f"<Application id={self.id} job_id={self.job_id} "
            f"applicant_id={self.applicant_id} status={self.status}>"
        )
