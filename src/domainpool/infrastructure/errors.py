"""Storage-level exceptions raised out of :meth:`Pool.transaction`.

Services catch these at their boundary and convert them to
``CONFLICT`` / ``STORAGE_UNAVAILABLE`` results. ``WriteConflict`` is the
only retryable kind.
"""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError

# SQLite lock contention and server-side serialization/deadlock failures.
_CONFLICT_MARKERS = (
    "database is locked",
    "database table is locked",
    "database is busy",
    "could not serialize access",
    "deadlock detected",
)
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


class StorageError(Exception):
    """Base class for persistence failures."""


class WriteConflict(StorageError):
    """A concurrent writer won; the transaction was rolled back and may be retried."""


class StorageUnavailable(StorageError):
    """The database could not be reached or failed mid-transaction."""


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for attr in ("pgcode", "sqlstate"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    return None


def translate_db_error(exc: DBAPIError) -> StorageError:
    """Map a driver error onto :class:`WriteConflict` or :class:`StorageUnavailable`."""
    if _sqlstate(exc) in _CONFLICT_SQLSTATES:
        return WriteConflict(str(exc.orig))
    message = str(exc.orig).lower()
    if any(marker in message for marker in _CONFLICT_MARKERS):
        return WriteConflict(str(exc.orig))
    return StorageUnavailable(str(exc.orig))
