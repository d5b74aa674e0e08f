"""Time helpers shared by models and services."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes read from storage as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
