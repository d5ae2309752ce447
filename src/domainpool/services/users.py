"""UserService — manage the local ``users`` table.

Only meaningful when the pool uses :class:`TableUserDirectory`; an
embedding application with its own account system injects a different
directory and never calls this service.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.exc import DBAPIError

from domainpool.domain.eligibility import ErrorCode
from domainpool.infrastructure.errors import StorageError
from domainpool.infrastructure.users import UserRecord, fetch_user, upsert_user
from domainpool.services.base import BaseService
from domainpool.services.result import ServiceResult
from domainpool.services.telemetry import traced


def _user_payload(record: UserRecord, now: datetime) -> dict[str, Any]:
    return {
        "uid": record.uid,
        "premium": record.premium,
        "premium_until": record.premium_until.isoformat() if record.premium_until else None,
        "premium_active": record.premium_active(now),
        "admin": record.admin,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


class UserService(BaseService):
    """Set and read premium/admin flags for a uid."""

    @traced
    def set_user(
        self,
        uid: int,
        *,
        premium: bool | None = None,
        premium_until: datetime | None = None,
        clear_premium_until: bool = False,
        admin: bool | None = None,
    ) -> ServiceResult:
        """Create or update *uid*. Unspecified flags keep their stored value."""
        op = "set_user"
        if premium_until is not None and premium_until.tzinfo is None:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, "premium_until must be timezone-aware"
            )
        try:
            with self._pool.transaction() as txn:
                record = upsert_user(
                    txn.conn,
                    uid,
                    txn.now,
                    premium=premium,
                    premium_until=premium_until,
                    clear_premium_until=clear_premium_until,
                    admin=admin,
                )
                now = txn.now
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        return ServiceResult(ok=True, op=op, data=_user_payload(record, now))

    @traced
    def get_user(self, uid: int) -> ServiceResult:
        op = "get_user"
        try:
            with self._pool.snapshot() as snap:
                record = fetch_user(snap.conn, uid)
                now = snap.now
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        if record is None:
            return ServiceResult.failure(
                op, ErrorCode.NOT_FOUND, f"No user record for uid {uid}", {"uid": uid}
            )
        return ServiceResult(ok=True, op=op, data=_user_payload(record, now))
