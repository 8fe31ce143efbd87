from database.models.users import User, UserType
from database.models.jobs import Job, JobType, JobCategory, ExperienceLevel, SalaryPeriod
from database.models.applications import Application, ApplicationStatus, TERMINAL_STATUSES

__all__ = [
    "User",
    "UserType",
    "Job",
    "JobType",
    "JobCategory",
    "ExperienceLevel",
    "SalaryPeriod",
    "Application",
    "ApplicationStatus",
    "TERMINAL_STATUSES",
]
