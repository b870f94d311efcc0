"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import UTC, datetime

__all__ = [
    "serialize_datetime",
    "utc_now",
]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC value."""
    return datetime.now(tz=UTC)


def serialize_datetime(value: datetime) -> str:
    """Serialise ``value`` to ISO 8601 in UTC with a ``Z`` suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
