"""Text normalization utilities."""

from typing import Iterable, Optional


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """
    Normalize job tags.

    Lower-cases and trims each tag, drops empties and removes duplicates
    while keeping first-seen order.

    Args:
        tags: Raw tags

    Returns:
        Normalized tag list
    """
    if not tags:
        return []

    seen: set[str] = set()
    normalized = []
    for tag in tags:
        value = str(tag).strip().lower()
        if value and value not in seen:
            seen.add(value)
            normalized.append(value)
    return normalized


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address for lookups."""
    return email.strip().lower()


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
