"""
Job service functions.

Listing, retrieval and owner-side management of job postings, plus the
application counter that the application service keeps in step.
"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy import Text, case, cast, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams, build_pagination, parse_payload
from api.schemas.jobs import JobCreate, JobFilters, JobUpdate, PostedStatus
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.middleware.authorization import ensure_can_manage_job, is_employer_or_admin
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import to_iso
from core.utils.formatting import escape_like, normalize_tags
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import Job, job_search_document, job_search_query
from database.models.users import User

logger = logging.getLogger(__name__)

JOB_NOT_FOUND = "Job not found"

SORT_COLUMNS = {
    "created_at": Job.created_at,
    "salary": Job.salary_min,
    "applications": Job.applications_count,
}

# Columns an update may leave empty; every other field ignores explicit nulls
NULLABLE_UPDATE_FIELDS = {"requirements", "application_deadline"}


def job_to_dict(job: Job, owner: Optional[User] = None) -> Dict[str, Any]:
    """Serialize a job. ``owner`` adds the poster's summary."""
    data = {
        "id": job.id,
        "title": job.title,
        "company": job.company,
        "description": job.description,
        "requirements": job.requirements,
        "location": job.location,
        "type": job.job_type.value,
        "category": job.category.value,
        "experience_level": job.experience_level.value,
        "salary": {
            "min": job.salary_min,
            "max": job.salary_max,
            "currency": job.salary_currency,
            "period": job.salary_period.value,
        },
        "tags": list(job.tags or []),
        "logo": job.logo,
        "benefits": list(job.benefits or []),
        "application_deadline": to_iso(job.application_deadline),
        "is_active": job.is_active,
        "featured": job.featured,
        "applications_count": job.applications_count,
        "views_count": job.views_count,
        "created_by": job.created_by,
        "created_at": to_iso(job.created_at),
        "updated_at": to_iso(job.updated_at),
    }
    if owner is not None:
        data["owner"] = {"id": owner.id, "name": owner.name}
    return data


def job_summary(job: Job) -> Dict[str, Any]:
    """Short form of a job embedded in application responses."""
    return {
        "id": job.id,
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "type": job.job_type.value,
        "is_active": job.is_active,
    }


async def load_job(session: AsyncSession, job_id: int) -> Job:
    """Fetch a job by ID regardless of its active flag."""
    job = await session.get(Job, job_id, populate_existing=True)
    if not job:
        raise NotFoundError(JOB_NOT_FOUND)
    return job


def _dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def _apply_filters(query, filters: JobFilters, dialect: str):
    """
    Add listing filters to a job query.

    Returns the query and, for PostgreSQL keyword searches, the rank
    expression to order by.
    """
    rank = None

    if filters.keyword:
        if dialect == "postgresql":
            document = job_search_document()
            tsquery = job_search_query(filters.keyword)
            query = query.where(document.bool_op("@@")(tsquery))
            rank = func.ts_rank(document, tsquery)
        else:
            pattern = f"%{escape_like(filters.keyword)}%"
            query = query.where(
                or_(
                    Job.title.ilike(pattern, escape="\\"),
                    Job.company.ilike(pattern, escape="\\"),
                    Job.description.ilike(pattern, escape="\\"),
                    cast(Job.tags, Text).ilike(pattern, escape="\\"),
                )
            )

    if filters.location:
        query = query.where(
            Job.location.ilike(f"%{escape_like(filters.location)}%", escape="\\")
        )
    if filters.job_type:
        query = query.where(Job.job_type.in_(filters.job_type))
    if filters.category:
        query = query.where(Job.category.in_(filters.category))
    if filters.experience_level:
        query = query.where(Job.experience_level.in_(filters.experience_level))
    if filters.min_salary is not None:
        query = query.where(Job.salary_min >= filters.min_salary)
    if filters.max_salary is not None:
        query = query.where(Job.salary_max <= filters.max_salary)
    # Only an explicit true narrows the list
    if filters.featured:
        query = query.where(Job.featured.is_(True))

    return query, rank


async def _application_statuses(
    session: AsyncSession, applicant_id: int, job_ids: list[int]
) -> Dict[int, ApplicationStatus]:
    """One query for the applicant's status on each of the given jobs."""
    if not job_ids:
        return {}
    result = await session.execute(
        select(Application.job_id, Application.status).where(
            Application.applicant_id == applicant_id,
            Application.job_id.in_(job_ids),
        )
    )
    return {job_id: status for job_id, status in result.all()}


async def list_jobs(
    session: AsyncSession,
    filters: Optional[JobFilters | Dict[str, Any]] = None,
    page: int = 1,
    limit: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    requester: Optional[User] = None,
) -> Dict[str, Any]:
    """
    List active jobs.

    Args:
        session: Database session
        filters: Keyword, location, type, category, experience level,
            salary bounds and featured flag
        page: Page number (1-indexed)
        limit: Page size, defaults to the configured page size
        sort_by: created_at, salary or applications
        sort_order: asc or desc
        requester: Authenticated user, if any. Each job is annotated with
            their application status.

    Returns:
        Dictionary with jobs and pagination metadata
    """
    filters = parse_payload(JobFilters, filters or {})
    params = {"page": page} if limit is None else {"page": page, "limit": limit}
    pagination = parse_payload(PaginationParams, params)

    if sort_by not in SORT_COLUMNS:
        raise ValidationError.single(
            "sort_by", f"Sort key must be one of: {', '.join(SORT_COLUMNS)}"
        )
    if sort_order not in ("asc", "desc"):
        raise ValidationError.single("sort_order", "Sort order must be asc or desc")

    query = select(Job).where(Job.is_active.is_(True))
    query, rank = _apply_filters(query, filters, _dialect_name(session))

    count_result = await session.execute(
        select(func.count()).select_from(query.subquery())
    )
    total = count_result.scalar() or 0

    sort_column = SORT_COLUMNS[sort_by]
    ordering = [sort_column.asc() if sort_order == "asc" else sort_column.desc()]
    if rank is not None:
        ordering.insert(0, rank.desc())
    ordering.append(Job.id.desc())

    result = await session.execute(
        query.add_columns(User)
        .join(Job.owner)
        .order_by(*ordering)
        .limit(pagination.limit)
        .offset(pagination.offset)
        .execution_options(populate_existing=True)
    )
    rows = result.all()

    statuses: Dict[int, ApplicationStatus] = {}
    if requester is not None:
        statuses = await _application_statuses(
            session, requester.id, [job.id for job, _ in rows]
        )

    job_list = []
    for job, owner in rows:
        item = job_to_dict(job, owner)
        if requester is not None:
            status = statuses.get(job.id)
            item["user_application_status"] = status.value if status else None
        job_list.append(item)

    return {
        "jobs": job_list,
        "pagination": build_pagination(total, pagination, "total_jobs"),
    }


async def get_job(
    session: AsyncSession,
    job_id: int,
    requester: Optional[User] = None,
) -> Dict[str, Any]:
    """
    Get an active job and count the view.

    The view counter is best effort: a failed increment is logged and the
    job is still returned.

    Raises:
        NotFoundError: If the job does not exist or is inactive
    """
    result = await session.execute(
        select(Job, User).join(Job.owner).where(Job.id == job_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if not row or not row[0].is_active:
        raise NotFoundError(JOB_NOT_FOUND)

    job, owner = row
    data = job_to_dict(job, owner)

    if requester is not None:
        status_result = await session.execute(
            select(Application.status).where(
                Application.job_id == job_id,
                Application.applicant_id == requester.id,
            )
        )
        status = status_result.scalar_one_or_none()
        data["user_application_status"] = status.value if status else None

    try:
        await session.execute(
            update(Job)
            .where(Job.id == job_id)
            .values(views_count=Job.views_count + 1, updated_at=Job.updated_at)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        data["views_count"] += 1
    except SQLAlchemyError as e:
        logger.warning(f"Failed to record view for job {job_id}: {e}")
        await session.rollback()

    return data


async def create_job(
    session: AsyncSession,
    owner: User,
    payload: JobCreate | Dict[str, Any],
) -> Dict[str, Any]:
    """
    Create a job posting owned by ``owner``.

    Raises:
        ForbiddenError: If the owner is not a recruiter or admin
        ValidationError: Listing every invalid field
    """
    if not is_employer_or_admin(owner):
        raise ForbiddenError("Only recruiters and admins can post jobs")

    data = parse_payload(JobCreate, payload)
    fields = data.model_dump(exclude={"salary"})
    if data.salary is not None:
        fields.update(
            salary_min=data.salary.min,
            salary_max=data.salary.max,
            salary_currency=data.salary.currency,
            salary_period=data.salary.period,
        )

    job = Job(**fields, created_by=owner.id, applications_count=0, views_count=0)
    session.add(job)
    try:
        await session.commit()
    except ValidationError:
        await session.rollback()
        raise
    await session.refresh(job)

    logger.info(f"Job {job.id} created by user {owner.id}")
    log_audit_event(
        AuditAction.CREATE,
        ResourceType.JOB,
        resource_id=job.id,
        user_id=owner.id,
        details={"title": job.title, "company": job.company},
    )
    return job_to_dict(job, owner)


def _merge_salary(job: Job, data: JobUpdate) -> None:
    """Apply only the salary keys present in the update."""
    if data.salary is None:
        job.salary_min = None
        job.salary_max = None
        return

    provided = data.salary.model_fields_set
    if "min" in provided:
        job.salary_min = data.salary.min
    if "max" in provided:
        job.salary_max = data.salary.max
    if "currency" in provided:
        job.salary_currency = data.salary.currency
    if "period" in provided:
        job.salary_period = data.salary.period


async def update_job(
    session: AsyncSession,
    requester: User,
    job_id: int,
    payload: JobUpdate | Dict[str, Any],
) -> Dict[str, Any]:
    """
    Update a job's editable fields.

    Ownership and the counters are not part of the update schema and can
    never change here. The merged salary range is checked again on flush.

    Raises:
        NotFoundError: If the job does not exist
        ForbiddenError: Unless the requester owns the job or is an admin
        ValidationError: If the update is invalid
    """
    job = await load_job(session, job_id)
    ensure_can_manage_job(requester, job, "You can only update your own jobs")

    data = parse_payload(JobUpdate, payload)
    changes = data.model_dump(exclude_unset=True, exclude={"salary"})

    changed_fields = []
    for field, value in changes.items():
        if value is None and field not in NULLABLE_UPDATE_FIELDS:
            continue
        if field == "tags":
            value = normalize_tags(value)
        setattr(job, field, value)
        changed_fields.append(field)

    if "salary" in data.model_fields_set:
        _merge_salary(job, data)
        changed_fields.append("salary")

    try:
        await session.commit()
    except ValidationError:
        await session.rollback()
        raise
    await session.refresh(job)
    owner = await session.get(User, job.created_by)

    log_audit_event(
        AuditAction.UPDATE,
        ResourceType.JOB,
        resource_id=job.id,
        user_id=requester.id,
        details={"fields": changed_fields},
    )
    return job_to_dict(job, owner)


async def delete_job(session: AsyncSession, requester: User, job_id: int) -> Dict[str, Any]:
    """
    Delete a job together with all of its applications.

    Both deletes commit in one transaction.

    Raises:
        NotFoundError: If the job does not exist
        ForbiddenError: Unless the requester owns the job or is an admin
    """
    job = await load_job(session, job_id)
    ensure_can_manage_job(requester, job, "You can only delete your own jobs")

    result = await session.execute(
        delete(Application)
        .where(Application.job_id == job_id)
    )
    deleted_applications = result.rowcount or 0
    await session.delete(job)
    await session.commit()

    logger.info(
        f"Job {job_id} deleted by user {requester.id} "
        f"with {deleted_applications} applications"
    )
    log_audit_event(
        AuditAction.DELETE,
        ResourceType.JOB,
        resource_id=job_id,
        user_id=requester.id,
        details={"deleted_applications": deleted_applications},
    )
    return {"id": job_id, "deleted_applications": deleted_applications}


async def adjust_application_count(session: AsyncSession, job_id: int, delta: int) -> None:
    """
    Move a job's application counter by ``delta`` in a single UPDATE.

    Decrements stop at zero. The caller owns the transaction.
    """
    new_count = Job.applications_count + delta
    if delta < 0:
        new_count = case((new_count > 0, new_count), else_=0)

    await session.execute(
        update(Job)
        .where(Job.id == job_id)
        .values(applications_count=new_count, updated_at=Job.updated_at)
        .execution_options(synchronize_session=False)
    )


async def list_posted_jobs(
    session: AsyncSession,
    owner: User,
    page: int = 1,
    limit: Optional[int] = None,
    status: PostedStatus = "all",
) -> Dict[str, Any]:
    """
    List jobs posted by ``owner``, newest first.

    Args:
        status: all, active or inactive

    Raises:
        ForbiddenError: If the owner is not a recruiter or admin
    """
    if not is_employer_or_admin(owner):
        raise ForbiddenError("Only recruiters and admins have posted jobs")
    if status not in ("all", "active", "inactive"):
        raise ValidationError.single("status", "Status must be all, active or inactive")

    params = {"page": page} if limit is None else {"page": page, "limit": limit}
    pagination = parse_payload(PaginationParams, params)

    query = select(Job).where(Job.created_by == owner.id)
    if status == "active":
        query = query.where(Job.is_active.is_(True))
    elif status == "inactive":
        query = query.where(Job.is_active.is_(False))

    count_result = await session.execute(
        select(func.count()).select_from(query.subquery())
    )
    total = count_result.scalar() or 0

    result = await session.execute(
        query.order_by(Job.created_at.desc(), Job.id.desc())
        .limit(pagination.limit)
        .offset(pagination.offset)
    )
    jobs = result.scalars().all()

    return {
        "jobs": [job_to_dict(job, owner) for job in jobs],
        "pagination": build_pagination(total, pagination, "total_jobs"),
    }
