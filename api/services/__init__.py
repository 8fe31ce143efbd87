"""
API Services Layer.

Direct database operations for API endpoints. Routes import the
modules by name, e.g. ``from api.services import jobs as job_service``.
"""

from api.services import applications, jobs, users

__all__ = [
    "applications",
    "jobs",
    "users",
]
