"""Job posting API schemas."""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from core.utils.formatting import normalize_tags
from database.models.jobs import ExperienceLevel, JobCategory, JobType, SalaryPeriod

JobSortKey = Literal["created_at", "salary", "applications"]
SortOrder = Literal["asc", "desc"]
PostedStatus = Literal["all", "active", "inactive"]

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
Company = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=50, max_length=5000)]
Location = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
Requirements = Annotated[str, StringConstraints(strip_whitespace=True, max_length=3000)]


class SalaryRange(BaseModel):
    """Salary range. Either bound may be omitted."""

    model_config = ConfigDict(extra="ignore")

    min: Optional[float] = Field(None, ge=0, description="Minimum salary")
    max: Optional[float] = Field(None, ge=0, description="Maximum salary")
    currency: str = Field(default="USD", min_length=1, max_length=10)
    period: SalaryPeriod = SalaryPeriod.YEARLY

    @model_validator(mode="after")
    def check_order(self) -> "SalaryRange":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Minimum salary cannot be greater than maximum salary")
        return self


class JobBase(BaseModel):
    """Fields shared by create and update payloads."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("tags", "benefits", mode="before", check_fields=False)
    @classmethod
    def coerce_list(cls, v: Any) -> Any:
        """Accept a comma separated string as a list."""
        if isinstance(v, str):
            return [item for item in v.split(",")]
        return v

    @field_validator("tags", mode="after", check_fields=False)
    @classmethod
    def normalize(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return None
        return normalize_tags(v)

    @field_validator("benefits", mode="after", check_fields=False)
    @classmethod
    def strip_benefits(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return None
        return [b.strip() for b in v if b and b.strip()]


class JobCreate(JobBase):
    """Schema for creating a job posting."""

    title: Title
    company: Company
    description: Description
    requirements: Optional[Requirements] = None
    location: Location
    job_type: JobType = Field(..., alias="type")
    category: JobCategory
    experience_level: ExperienceLevel = ExperienceLevel.MID
    salary: Optional[SalaryRange] = None
    tags: list[str] = Field(default_factory=list)
    logo: str = Field(default="", max_length=500)
    benefits: list[str] = Field(default_factory=list)
    application_deadline: Optional[datetime] = None
    is_active: bool = True
    featured: bool = False


class JobUpdate(JobBase):
    """
    Schema for a partial job update.

    Only the fields listed here can change. Ownership and counters are never
    writable through an update.
    """

    title: Optional[Title] = None
    company: Optional[Company] = None
    description: Optional[Description] = None
    requirements: Optional[Requirements] = None
    location: Optional[Location] = None
    job_type: Optional[JobType] = Field(None, alias="type")
    category: Optional[JobCategory] = None
    experience_level: Optional[ExperienceLevel] = None
    salary: Optional[SalaryRange] = None
    tags: Optional[list[str]] = None
    logo: Optional[str] = Field(None, max_length=500)
    benefits: Optional[list[str]] = None
    application_deadline: Optional[datetime] = None
    is_active: Optional[bool] = None
    featured: Optional[bool] = None


class JobFilters(BaseModel):
    """Filters accepted by the public job listing."""

    model_config = ConfigDict(extra="ignore")

    keyword: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=100)
    job_type: Optional[list[JobType]] = None
    category: Optional[list[JobCategory]] = None
    experience_level: Optional[list[ExperienceLevel]] = None
    min_salary: Optional[float] = Field(None, ge=0)
    max_salary: Optional[float] = Field(None, ge=0)
    featured: Optional[bool] = None

    @field_validator("job_type", "category", "experience_level", mode="before")
    @classmethod
    def one_or_many(cls, v: Any) -> Any:
        """A single value means "exactly this", a list means "any of"."""
        if v is None or v == []:
            return None
        if isinstance(v, (str, JobType, JobCategory, ExperienceLevel)):
            return [v]
        return v

    @field_validator("keyword", "location", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v
