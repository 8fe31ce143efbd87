"""
Authorization rules for jobs and applications.

Two layers of checks:
1. Role permissions: what a user type may do at all (post jobs, apply)
2. Ownership: whether a user may act on a specific job or application

Role checks run as route dependencies; ownership checks run inside the
services once the entity has been loaded.
"""

import logging
from typing import Callable, Set
from enum import Enum

from fastapi import Depends

from core.exceptions import ForbiddenError
from database.models.users import User, UserType
from database.models.jobs import Job
from database.models.applications import Application

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """System-wide permissions."""

    # Job Management
    JOB_CREATE = "job:create"
    JOB_UPDATE = "job:update"
    JOB_DELETE = "job:delete"

    # Application Management
    APPLICATION_CREATE = "application:create"
    APPLICATION_REVIEW = "application:review"
    APPLICATION_WITHDRAW = "application:withdraw"


# Role to permission mapping
ROLE_PERMISSIONS: dict[UserType, Set[Permission]] = {
    UserType.ADMIN: set(Permission),
    UserType.RECRUITER: {
        Permission.JOB_CREATE, Permission.JOB_UPDATE, Permission.JOB_DELETE,
        # Recruiters can apply to other people's postings too
        Permission.APPLICATION_CREATE, Permission.APPLICATION_REVIEW,
        Permission.APPLICATION_WITHDRAW,
    },
    UserType.JOB_SEEKER: {
        Permission.APPLICATION_CREATE, Permission.APPLICATION_WITHDRAW,
    },
}


class InsufficientPermissions(ForbiddenError):
    """Raised when a user's role lacks a required permission."""


def has_permission(user: User, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(user.user_type, set())


def check_permission(user: User, required_permission: Permission) -> None:
    """
    Check that a user's role grants a permission.

    Raises:
        InsufficientPermissions: If the role lacks the permission
    """
    if has_permission(user, required_permission):
        return

    logger.warning(
        f"User {user.id} with role {user.user_type.value} lacks permission "
        f"{required_permission.value}"
    )
    raise InsufficientPermissions(
        f"User does not have permission: {required_permission.value}"
    )


def is_employer_or_admin(user: User) -> bool:
    """True for users allowed to post and manage jobs."""
    return user.user_type in (UserType.RECRUITER, UserType.ADMIN)


def can_manage_job(user: User, job: Job) -> bool:
    """Owners and admins may edit, delete and review applications for a job."""
    return user.is_admin or job.created_by == user.id


def ensure_can_manage_job(user: User, job: Job, message: str | None = None) -> None:
    if not can_manage_job(user, job):
        logger.warning(f"User {user.id} denied management of job {job.id}")
        raise ForbiddenError(message)


def can_view_application(user: User, application: Application, job: Job) -> bool:
    """The applicant, the job owner and admins may view an application."""
    return (
        user.is_admin
        or application.applicant_id == user.id
        or job.created_by == user.id
    )


def require_permission(*required_permissions: Permission) -> Callable:
    """
    Dependency to require specific role permissions.

    Args:
        required_permissions: Required permissions

    Returns:
        FastAPI dependency yielding the authenticated user
    """
    from api.dependencies import require_authenticated_user

    async def dependency(user: User = Depends(require_authenticated_user)) -> User:
        for permission in required_permissions:
            check_permission(user, permission)
        return user

    return dependency
