"""
Core middleware package.

This package provides the middleware components of the API:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Bearer token authentication
- Role and ownership based authorization
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
    get_logger,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    AuthenticationError,
    get_token_payload,
    get_auth_failure,
)

from core.middleware.authorization import (
    Permission,
    ROLE_PERMISSIONS,
    InsufficientPermissions,
    can_manage_job,
    can_view_application,
    check_permission,
    ensure_can_manage_job,
    has_permission,
    is_employer_or_admin,
    require_permission,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    "get_logger",
    # Authentication
    "AuthenticationMiddleware",
    "AuthenticationError",
    "get_token_payload",
    "get_auth_failure",
    # Authorization
    "Permission",
    "ROLE_PERMISSIONS",
    "InsufficientPermissions",
    "can_manage_job",
    "can_view_application",
    "check_permission",
    "ensure_can_manage_job",
    "has_permission",
    "is_employer_or_admin",
    "require_permission",
]
