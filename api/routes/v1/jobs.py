"""
Job posting endpoints.

Public listing and detail views, plus owner-side create, update and delete.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_optional_user, get_pagination_params, require_authenticated_user
from api.schemas.common import PaginationParams
from api.schemas.jobs import JobCreate, JobSortKey, JobUpdate, PostedStatus, SortOrder
from api.services import jobs as job_service
from core.middleware.authorization import Permission, require_permission
from database.engine import get_db
from database.models.users import User

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _split_values(values: Optional[list[str]]) -> Optional[list[str]]:
    """Accept both repeated parameters and comma separated values."""
    if not values:
        return None
    items = [item.strip() for value in values for item in value.split(",")]
    return [item for item in items if item] or None


@router.get(
    "",
    summary="List Jobs",
    description="List active job postings with filters, sorting and pagination.",
)
async def list_jobs(
    keyword: Optional[str] = Query(None, description="Full-text search over title, company, description and tags"),
    location: Optional[str] = Query(None, description="Case-insensitive location substring"),
    job_type: Optional[list[str]] = Query(None, alias="type", description="Employment type, one or many"),
    category: Optional[list[str]] = Query(None, description="Category, one or many"),
    experience_level: Optional[list[str]] = Query(None, description="Experience level, one or many"),
    min_salary: Optional[float] = Query(None, ge=0, description="Minimum salary lower bound"),
    max_salary: Optional[float] = Query(None, ge=0, description="Maximum salary upper bound"),
    featured: Optional[bool] = Query(None),
    sort_by: JobSortKey = Query("created_at"),
    sort_order: SortOrder = Query("desc"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve a page of active jobs, annotated with the caller's application status."""
    filters = {
        "keyword": keyword,
        "location": location,
        "job_type": _split_values(job_type),
        "category": _split_values(category),
        "experience_level": _split_values(experience_level),
        "min_salary": min_salary,
        "max_salary": max_salary,
        "featured": featured,
    }
    return await job_service.list_jobs(
        db,
        filters=filters,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by,
        sort_order=sort_order,
        requester=current_user,
    )


@router.get(
    "/my/posted",
    summary="List My Posted Jobs",
    description="List jobs posted by the current recruiter or admin.",
)
async def list_posted_jobs(
    status_filter: PostedStatus = Query("all", alias="status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve the caller's own postings, newest first."""
    return await job_service.list_posted_jobs(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        status=status_filter,
    )


@router.get(
    "/{job_id}",
    summary="Get Job Details",
    description="Get an active job posting. Each call counts as a view.",
)
async def get_job(
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve complete job posting details."""
    return await job_service.get_job(db, job_id, requester=current_user)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Job",
    description="Post a new job. Recruiters and admins only.",
)
async def create_job(
    payload: JobCreate,
    current_user: User = Depends(require_permission(Permission.JOB_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create a job posting owned by the caller."""
    job = await job_service.create_job(db, current_user, payload)
    return {"message": "Job created successfully", "job": job}


@router.put(
    "/{job_id}",
    summary="Update Job",
    description="Update a job posting. Owner or admin only.",
)
async def update_job(
    payload: JobUpdate,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_permission(Permission.JOB_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """Apply a partial update to a job posting."""
    job = await job_service.update_job(db, current_user, job_id, payload)
    return {"message": "Job updated successfully", "job": job}


@router.delete(
    "/{job_id}",
    summary="Delete Job",
    description="Delete a job posting and all of its applications. Owner or admin only.",
)
async def delete_job(
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_permission(Permission.JOB_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """Delete a job posting."""
    result = await job_service.delete_job(db, current_user, job_id)
    return {"message": "Job deleted successfully", **result}
