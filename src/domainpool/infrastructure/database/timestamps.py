"""Timestamp encoding for TEXT columns.

All timestamps are stored as fixed-width UTC ISO-8601 strings
(``2026-01-31T12:00:00.000000+00:00``) so that SQL string comparison
orders them chronologically on every backend.
"""

from __future__ import annotations

from datetime import UTC, datetime


def to_db(value: datetime) -> str:
    if value.tzinfo is None:
        msg = f"Refusing to store naive datetime {value!r}"
        raise ValueError(msg)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
