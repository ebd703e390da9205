"""Shared utility functions."""

from datetime import UTC, datetime


def escape_like(value: str) -> str:
    """Escape SQL ILIKE/LIKE wildcard characters.

    Prevents user-controlled input from being interpreted as wildcard patterns
    when used in ILIKE queries.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    """Build an escaped ``%value%`` pattern for case-insensitive contains matching."""
    return f"%{escape_like(value)}%"


def ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare against aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def utcnow() -> datetime:
    return datetime.now(UTC)
