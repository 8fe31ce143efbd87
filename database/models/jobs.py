"""
Jobs Module

Job postings owned by a recruiter, with closed-enum classification,
salary range, normalized tags and denormalized view/application counters.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    BigInteger,
    DateTime,
    func,
    Text,
    JSON,
    Float,
    Enum as SQLEnum,
    Index,
    CheckConstraint,
    cast,
    event,
    literal_column,
)
from database.engine import Base, BigIntPK
from core.exceptions import ValidationError
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.applications import Application
    from database.models.users import User


ENGLISH_CONFIG = literal_column("'english'::regconfig")


# ==================== Job Enums ===================== #
class JobType(str, PyEnum):
    """Employment type."""

    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    REMOTE = "remote"


class JobCategory(str, PyEnum):
    """Job category."""

    TECHNOLOGY = "technology"
    MARKETING = "marketing"
    DESIGN = "design"
    SALES = "sales"
    FINANCE = "finance"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    ENGINEERING = "engineering"
    OPERATIONS = "operations"
    CUSTOMER_SERVICE = "customer-service"
    OTHER = "other"


class ExperienceLevel(str, PyEnum):
    """Seniority expected for the role."""

    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    EXECUTIVE = "executive"


class SalaryPeriod(str, PyEnum):
    """Period the salary figures refer to."""

    HOURLY = "hourly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# ==================== Job Model ===================== #
class Job(Base):
    """
    Job posting owned by exactly one user (the creator).
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )

    # Basic info
    title: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    company: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    logo: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    benefits: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Job classification
    job_type: Mapped[JobType] = mapped_column(
        SQLEnum(JobType, native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    category: Mapped[JobCategory] = mapped_column(
        SQLEnum(JobCategory, native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    experience_level: Mapped[ExperienceLevel] = mapped_column(
        SQLEnum(ExperienceLevel, native_enum=False, length=50),
        nullable=False,
        default=ExperienceLevel.MID,
    )

    # Compensation
    salary_min: Mapped[float | None] = mapped_column(Float)
    salary_max: Mapped[float | None] = mapped_column(Float)
    salary_currency: Mapped[str] = mapped_column(
        String(10), default="USD", nullable=False
    )
    salary_period: Mapped[SalaryPeriod] = mapped_column(
        SQLEnum(SalaryPeriod, native_enum=False, length=20),
        default=SalaryPeriod.YEARLY,
        nullable=False,
    )

    # Visibility
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True
    )
    featured: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    # Application tracking
    applications_count: Mapped[int] = mapped_column(
        BigInteger, default=0, nullable=False
    )
    views_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Ownership
    created_by: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=False, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", lazy="raise")
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    # Indexes
    __table_args__ = (
        Index("idx_job_active_created", "is_active", "created_at"),
        Index("idx_job_salary", "salary_min", "salary_max"),
        CheckConstraint(
            "salary_min IS NULL OR salary_max IS NULL OR salary_min <= salary_max",
            name="ck_job_salary_range",
        ),
    )

    def salary_errors(self) -> list[dict[str, str]]:
        """Return salary rule violations for the current field values."""
        errors = []
        if self.salary_min is not None and self.salary_min < 0:
            errors.append({"field": "salary.min", "message": "Minimum salary cannot be negative"})
        if self.salary_max is not None and self.salary_max < 0:
            errors.append({"field": "salary.max", "message": "Maximum salary cannot be negative"})
        if (
            self.salary_min is not None
            and self.salary_max is not None
            and self.salary_min > self.salary_max
        ):
            errors.append({
                "field": "salary",
                "message": "Minimum salary cannot be greater than maximum salary",
            })
        return errors

    def __repr__(self) -> str:
        return f"<Job id={self.id} title={self.title!r} active={self.is_active}>"


def job_search_document():
    """Full-text document over title, company, description and tags (PostgreSQL)."""
    return func.to_tsvector(
        ENGLISH_CONFIG,
        Job.title + " " + Job.company + " " + Job.description + " "
        + func.coalesce(cast(Job.tags, Text), ""),
    )


def job_search_query(keyword: str):
    """Parse a user keyword string into a tsquery (PostgreSQL)."""
    return func.websearch_to_tsquery(ENGLISH_CONFIG, keyword)


Index(
    "idx_job_fulltext",
    job_search_document(),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")


@event.listens_for(Job, "before_insert")
@event.listens_for(Job, "before_update")
def validate_salary_range(mapper, connection, target: Job):
    """Reject salary ranges with min above max before they reach the database."""
    errors = target.salary_errors()
    if errors:
        raise ValidationError(errors)
