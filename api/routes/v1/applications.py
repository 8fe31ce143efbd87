"""
Job application endpoints.

Applying, listing, reviewing and withdrawing applications.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_pagination_params, require_authenticated_user
from api.schemas.applications import ApplicationCreate, StatusUpdate
from api.schemas.common import PaginationParams
from api.services import applications as application_service
from core.middleware.authorization import Permission, require_permission
from database.engine import get_db
from database.models.applications import ApplicationStatus
from database.models.users import User

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Apply to Job",
    description="Submit an application to an active job.",
)
async def apply_to_job(
    payload: ApplicationCreate,
    current_user: User = Depends(require_permission(Permission.APPLICATION_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create a pending application for the caller."""
    application = await application_service.apply_to_job(
        db,
        current_user,
        payload.job_id,
        str(payload.resume_link),
        payload.cover_letter,
    )
    return {"message": "Application submitted successfully", "application": application}


@router.get(
    "/my",
    summary="List My Applications",
    description="List the caller's applications, newest first.",
)
async def list_my_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve the caller's applications with job summaries."""
    return await application_service.list_my_applications(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        status=status_filter.value if status_filter else None,
    )


@router.get(
    "/job/{job_id}",
    summary="List Job Applications",
    description="List applications received by a job. Owner or admin only.",
)
async def list_job_applications(
    job_id: int = Path(..., ge=1, description="Job ID"),
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve a job's applications with applicant and reviewer summaries."""
    return await application_service.list_job_applications(
        db,
        current_user,
        job_id,
        page=pagination.page,
        limit=pagination.limit,
        status=status_filter.value if status_filter else None,
    )


@router.get(
    "/{application_id}",
    summary="Get Application Details",
    description="Visible to the applicant, the job owner and admins.",
)
async def get_application(
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve one application with job, applicant and reviewer."""
    return await application_service.get_application(db, current_user, application_id)


@router.put(
    "/{application_id}/status",
    summary="Update Application Status",
    description="Record a review decision. Job owner or admin only.",
)
async def update_application_status(
    payload: StatusUpdate,
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_permission(Permission.APPLICATION_REVIEW)),
    db: AsyncSession = Depends(get_db),
):
    """Move an application to any status, with optional reviewer notes."""
    application = await application_service.update_application_status(
        db, current_user, application_id, payload.status, payload.notes
    )
    return {"message": "Application status updated successfully", "application": application}


@router.delete(
    "/{application_id}",
    summary="Withdraw Application",
    description="Withdraw one of the caller's applications unless already hired or rejected.",
)
async def withdraw_application(
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_permission(Permission.APPLICATION_WITHDRAW)),
    db: AsyncSession = Depends(get_db),
):
    """Delete the application and release the job's counter."""
    result = await application_service.withdraw_application(db, current_user, application_id)
    return {"message": "Application withdrawn successfully", **result}
