"""Job application API schemas."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from database.models.applications import (
    ApplicationStatus,
    COVER_LETTER_MAX_LENGTH,
    NOTES_MAX_LENGTH,
)


class ApplicationCreate(BaseModel):
    """Schema for applying to a job."""

    model_config = ConfigDict(extra="ignore")

    job_id: int = Field(..., ge=1, description="Job being applied to")
    resume_link: HttpUrl = Field(..., description="Link to the applicant's resume")
    cover_letter: Optional[str] = Field(None, max_length=COVER_LETTER_MAX_LENGTH)

    @field_validator("cover_letter", mode="before")
    @classmethod
    def strip_cover_letter(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            return v.strip() or None
        return v


class StatusUpdate(BaseModel):
    """Schema for a reviewer changing an application's status."""

    model_config = ConfigDict(extra="ignore")

    status: ApplicationStatus
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            return v.strip()
        return v
