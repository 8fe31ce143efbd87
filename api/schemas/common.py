"""Common Pydantic schemas shared across the API."""

from typing import Any, Type, TypeVar
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from core.config import settings
from core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class PaginationParams(BaseModel):
    """Pagination query parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    )

    @property
    def offset(self) -> int:
        """Calculate offset from page and limit."""
        return (self.page - 1) * self.limit


def build_pagination(
    total: int, pagination: PaginationParams, total_key: str
) -> dict[str, Any]:
    """
    Build the pagination block for a list response.

    Args:
        total: Total number of matching rows across all pages
        pagination: Requested page and limit
        total_key: Name of the total field (``total_jobs`` or ``total_applications``)

    Returns:
        Pagination metadata dict
    """
    total_pages = (total + pagination.limit - 1) // pagination.limit
    return {
        "current_page": pagination.page,
        "total_pages": total_pages,
        total_key: total,
        "limit": pagination.limit,
        "has_next": pagination.page < total_pages,
        "has_prev": pagination.page > 1,
    }


def error_location(loc: tuple) -> str:
    """Render a pydantic error location as a dotted field name."""
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into ``{field, message}`` entries."""
    flattened = []
    for error in errors:
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        flattened.append({"field": error_location(tuple(error.get("loc", ()))), "message": message})
    return flattened


def parse_payload(model: Type[ModelT], data: ModelT | dict[str, Any]) -> ModelT:
    """
    Validate raw input against a DTO.

    Every violated field is reported at once in a ``ValidationError``.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(validation_errors(e.errors())) from e
