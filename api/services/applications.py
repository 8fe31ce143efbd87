"""
Application service functions.

Applying to jobs, the review workflow and withdrawal. Every write that
changes the number of applications also moves the job's counter inside the
same transaction.
"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from api.schemas.applications import ApplicationCreate, StatusUpdate
from api.schemas.common import PaginationParams, build_pagination, parse_payload
from api.services.jobs import adjust_application_count, job_summary, load_job
from core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from core.middleware.authorization import (
    can_manage_job,
    can_view_application,
    ensure_can_manage_job,
)
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import is_past, now, to_iso
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import Job
from database.models.users import User

logger = logging.getLogger(__name__)

APPLICATION_NOT_FOUND = "Application not found"
ALREADY_APPLIED = "You have already applied to this job"

Applicant = aliased(User, name="applicant")
Reviewer = aliased(User, name="reviewer")


def user_summary(user: Optional[User], include_email: bool = True) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    data = {"id": user.id, "name": user.name}
    if include_email:
        data["email"] = user.email
    return data


def application_to_dict(
    application: Application,
    job: Optional[Job] = None,
    applicant: Optional[User] = None,
    reviewer: Optional[User] = None,
) -> Dict[str, Any]:
    """
    Serialize an application with whichever related summaries were loaded.

    Args:
        application: The application
        job: Job summary source
        applicant: Applicant summary source (name, email)
        reviewer: Reviewer summary source (name only)
    """
    data = {
        "id": application.id,
        "job_id": application.job_id,
        "applicant_id": application.applicant_id,
        "resume_link": application.resume_link,
        "cover_letter": application.cover_letter,
        "status": application.status.value,
        "notes": application.notes,
        "reviewed_at": to_iso(application.reviewed_at),
        "reviewed_by": application.reviewed_by,
        "created_at": to_iso(application.created_at),
        "updated_at": to_iso(application.updated_at),
    }
    if job is not None:
        data["job"] = job_summary(job)
    if applicant is not None:
        data["applicant"] = user_summary(applicant)
    if application.reviewed_by is not None:
        data["reviewer"] = user_summary(reviewer, include_email=False)
    return data


def _joined_query():
    """Application with its job, applicant and (optional) reviewer."""
    return (
        select(Application, Job, Applicant, Reviewer)
        .join(Job, Application.job_id == Job.id)
        .join(Applicant, Application.applicant_id == Applicant.id)
        .outerjoin(Reviewer, Application.reviewed_by == Reviewer.id)
        .execution_options(populate_existing=True)
    )


async def _load_joined(session: AsyncSession, application_id: int):
    result = await session.execute(
        _joined_query().where(Application.id == application_id)
    )
    row = result.first()
    if not row:
        raise NotFoundError(APPLICATION_NOT_FOUND)
    return row


async def _load_application(session: AsyncSession, application_id: int) -> Application:
    application = await session.get(Application, application_id, populate_existing=True)
    if not application:
        raise NotFoundError(APPLICATION_NOT_FOUND)
    return application


async def _has_applied(session: AsyncSession, job_id: int, applicant_id: int) -> bool:
    result = await session.execute(
        select(Application.id).where(
            Application.job_id == job_id,
            Application.applicant_id == applicant_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def apply_to_job(
    session: AsyncSession,
    applicant: User,
    job_id: int,
    resume_link: str,
    cover_letter: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Submit an application.

    The application insert and the job counter increment commit together.

    Raises:
        ValidationError: If the resume link or cover letter is invalid
        NotFoundError: If the job does not exist
        InvalidOperationError: If the applicant owns the job, or the job is
            inactive or past its deadline
        ConflictError: If the applicant already applied to this job
    """
    data = parse_payload(
        ApplicationCreate,
        {"job_id": job_id, "resume_link": resume_link, "cover_letter": cover_letter},
    )
    job = await load_job(session, data.job_id)

    if job.created_by == applicant.id:
        raise InvalidOperationError("You cannot apply to your own job posting")
    if not job.is_active:
        raise InvalidOperationError("This job is no longer accepting applications")
    if job.application_deadline is not None and is_past(job.application_deadline):
        raise InvalidOperationError("Application deadline has passed")

    if await _has_applied(session, job.id, applicant.id):
        raise ConflictError(ALREADY_APPLIED)

    application = Application(
        job_id=job.id,
        applicant_id=applicant.id,
        resume_link=str(data.resume_link),
        cover_letter=data.cover_letter,
        status=ApplicationStatus.PENDING,
    )
    session.add(application)
    try:
        await session.flush()
        await adjust_application_count(session, job.id, 1)
        await session.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent apply for the same pair
        await session.rollback()
        raise ConflictError(ALREADY_APPLIED) from e

    logger.info(f"User {applicant.id} applied to job {job.id}")
    log_audit_event(
        AuditAction.APPLY,
        ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=applicant.id,
        details={"job_id": job.id},
    )

    application, job, applicant_row, reviewer = await _load_joined(session, application.id)
    return application_to_dict(application, job, applicant_row, reviewer)


def _status_filter(status: Optional[str]) -> Optional[ApplicationStatus]:
    if status is None or status == "":
        return None
    try:
        return ApplicationStatus(status)
    except ValueError:
        raise ValidationError.single(
            "status",
            f"Status must be one of: {', '.join(s.value for s in ApplicationStatus)}",
        ) from None


async def list_my_applications(
    session: AsyncSession,
    applicant: User,
    page: int = 1,
    limit: Optional[int] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    List the applicant's own applications, newest first.

    Returns:
        Dictionary with applications (each with a job summary) and
        pagination metadata
    """
    params = {"page": page} if limit is None else {"page": page, "limit": limit}
    pagination = parse_payload(PaginationParams, params)
    status_value = _status_filter(status)

    conditions = [Application.applicant_id == applicant.id]
    if status_value is not None:
        conditions.append(Application.status == status_value)

    count_result = await session.execute(
        select(func.count()).select_from(Application).where(*conditions)
    )
    total = count_result.scalar() or 0

    result = await session.execute(
        select(Application, Job)
        .join(Job, Application.job_id == Job.id)
        .where(*conditions)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .limit(pagination.limit)
        .offset(pagination.offset)
        .execution_options(populate_existing=True)
    )

    applications = []
    for application, job in result.all():
        item = application_to_dict(application, job)
        item["job"]["salary"] = {
            "min": job.salary_min,
            "max": job.salary_max,
            "currency": job.salary_currency,
            "period": job.salary_period.value,
        }
        item["job"]["logo"] = job.logo
        item.pop("reviewer", None)
        applications.append(item)

    return {
        "applications": applications,
        "pagination": build_pagination(total, pagination, "total_applications"),
    }


async def list_job_applications(
    session: AsyncSession,
    requester: User,
    job_id: int,
    page: int = 1,
    limit: Optional[int] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    List applications received by a job, newest first.

    Raises:
        NotFoundError: If the job does not exist
        ForbiddenError: Unless the requester owns the job or is an admin
    """
    job = await load_job(session, job_id)
    ensure_can_manage_job(
        requester,
        job,
        "Access denied. You can only view applications for your own jobs.",
    )

    params = {"page": page} if limit is None else {"page": page, "limit": limit}
    pagination = parse_payload(PaginationParams, params)
    status_value = _status_filter(status)

    conditions = [Application.job_id == job_id]
    if status_value is not None:
        conditions.append(Application.status == status_value)

    count_result = await session.execute(
        select(func.count()).select_from(Application).where(*conditions)
    )
    total = count_result.scalar() or 0

    result = await session.execute(
        _joined_query()
        .where(*conditions)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .limit(pagination.limit)
        .offset(pagination.offset)
    )

    applications = []
    for application, _, applicant, reviewer in result.all():
        applications.append(application_to_dict(application, None, applicant, reviewer))

    return {
        "job": job_summary(job),
        "applications": applications,
        "pagination": build_pagination(total, pagination, "total_applications"),
    }


async def get_application(
    session: AsyncSession, requester: User, application_id: int
) -> Dict[str, Any]:
    """
    Get one application with its job, applicant and reviewer.

    Raises:
        NotFoundError: If the application does not exist
        ForbiddenError: Unless the requester is the applicant, the job owner
            or an admin
    """
    application, job, applicant, reviewer = await _load_joined(session, application_id)
    if not can_view_application(requester, application, job):
        logger.warning(f"User {requester.id} denied access to application {application_id}")
        raise ForbiddenError("Access denied")
    return application_to_dict(application, job, applicant, reviewer)


async def update_application_status(
    session: AsyncSession,
    requester: User,
    application_id: int,
    status: ApplicationStatus | str,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record a review decision.

    Any status may follow any other. ``reviewed_at`` is stamped once, the
    first time the status leaves pending.

    Raises:
        ValidationError: If the status or notes are invalid
        NotFoundError: If the application does not exist
        ForbiddenError: Unless the requester owns the job or is an admin
    """
    data = parse_payload(StatusUpdate, {"status": status, "notes": notes})
    application = await _load_application(session, application_id)
    job = await load_job(session, application.job_id)

    if not can_manage_job(requester, job):
        logger.warning(
            f"User {requester.id} denied status change on application {application_id}"
        )
        raise ForbiddenError("Access denied. You can only update applications for your own jobs.")

    previous = application.status
    application.mark_reviewed(requester.id, data.status, now())
    if data.notes is not None:
        application.notes = data.notes
    await session.commit()

    logger.info(
        f"Application {application_id} moved from {previous.value} to {data.status.value} "
        f"by user {requester.id}"
    )
    log_audit_event(
        AuditAction.STATUS_CHANGE,
        ResourceType.APPLICATION,
        resource_id=application_id,
        user_id=requester.id,
        details={"from": previous.value, "to": data.status.value},
    )

    application, job, applicant, reviewer = await _load_joined(session, application_id)
    return application_to_dict(application, job, applicant, reviewer)


async def withdraw_application(
    session: AsyncSession, applicant: User, application_id: int
) -> Dict[str, Any]:
    """
    Withdraw (delete) an application and decrement the job's counter.

    Raises:
        NotFoundError: If the application does not exist
        ForbiddenError: Unless the requester is the original applicant
        InvalidOperationError: If the application is hired or rejected
    """
    application = await _load_application(session, application_id)

    if application.applicant_id != applicant.id:
        raise ForbiddenError("You can only withdraw your own applications")
    if application.is_terminal:
        raise InvalidOperationError(
            "Cannot withdraw application that has already been processed"
        )

    job_id = application.job_id
    await session.delete(application)
    await session.flush()
    await adjust_application_count(session, job_id, -1)
    await session.commit()

    logger.info(f"User {applicant.id} withdrew application {application_id}")
    log_audit_event(
        AuditAction.WITHDRAW,
        ResourceType.APPLICATION,
        resource_id=application_id,
        user_id=applicant.id,
        details={"job_id": job_id},
    )
    return {"id": application_id, "job_id": job_id}
