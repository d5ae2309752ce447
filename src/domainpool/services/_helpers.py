"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime


def now_compact() -> str:
    """Current UTC time as compact ISO (YYYYMMDDTHHmmssffffff, for backup filenames)."""
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%S%f")


def parse_when(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime from user input as UTC.

    Naive values are taken to be UTC; a bare date means midnight.

    Examples:
        >>> parse_when("2027-01-01").isoformat()
        '2027-01-01T00:00:00+00:00'
        >>> parse_when("2027-01-01T12:30:00+02:00").isoformat()
        '2027-01-01T10:30:00+00:00'
    """
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
