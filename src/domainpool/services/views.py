"""ViewService — read-side projections for a user.

Every method reads from one snapshot, so a listing never mixes state
from before and after a concurrent write. Nothing here writes.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.exc import DBAPIError

from domainpool.domain.eligibility import (
    MESSAGES,
    ErrorCode,
    QuotaPolicy,
    is_available,
    is_expired,
    is_expiring,
)
from domainpool.domain.ids import normalize_name
from domainpool.domain.models import HeldDomain
from domainpool.infrastructure.errors import StorageError
from domainpool.services.base import BaseService
from domainpool.services.contracts import (
    AvailableDomainsData,
    UserDomainsData,
    dump_validated,
)
from domainpool.services.result import ServiceResult
from domainpool.services.telemetry import traced


class ViewService(BaseService):
    """Builds the "available" and "held" lists and answers authorization checks."""

    def _expiring_window(self) -> timedelta:
        return timedelta(days=self._pool.settings.expiry.expiring_window_days)

    @traced
    def list_available(self, uid: int) -> ServiceResult:
        """Domains *uid* could claim right now, ordered by name.

        Unexpired, not full, premium-only ones only for premium users.
        Domains the user already holds are left out.
        """
        op = "available_domains"
        try:
            has_premium = self._pool.users.has_premium(uid)
            with self._pool.snapshot() as snap:
                candidates = snap.catalog.list_open(snap.now, include_premium=has_premium)
                held = {a.domain_id for a in snap.ledger.for_user(uid)}
                now = snap.now
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        items = [
            d.to_payload()
            for d in candidates
            if d.id not in held and is_available(d, has_premium=has_premium, now=now)
        ]
        data = dump_validated(
            AvailableDomainsData,
            {"uid": uid, "premium": has_premium, "count": len(items), "items": items},
        )
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def list_assigned(self, uid: int) -> ServiceResult:
        """The user's assignments joined with their domains, oldest claim first."""
        op = "user_domains"
        window = self._expiring_window()
        alloc = self._pool.settings.allocation
        policy = QuotaPolicy(standard=alloc.standard_quota, premium=alloc.premium_quota)
        try:
            has_premium = self._pool.users.has_premium(uid)
            with self._pool.snapshot() as snap:
                assignments = snap.ledger.for_user(uid)
                by_id = snap.catalog.get_many(a.domain_id for a in assignments)
                now = snap.now
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        rows = [
            HeldDomain(
                assignment=a,
                domain=by_id[a.domain_id],
                is_expiring=is_expiring(by_id[a.domain_id], now, window),
                is_expired=is_expired(by_id[a.domain_id], now),
            )
            for a in assignments
            if a.domain_id in by_id
        ]
        items = [row.to_payload() for row in rows]
        data = dump_validated(
            UserDomainsData,
            {
                "uid": uid,
                "count": len(items),
                "quota": policy.quota_for(has_premium),
                "items": items,
            },
        )
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def authorize(self, domain_name: str, uid: int) -> ServiceResult:
        """Whether *uid* may publish on the domain called *domain_name* right now."""
        op = "authorize_domain"
        name = normalize_name(domain_name)
        try:
            with self._pool.snapshot() as snap:
                domain = snap.catalog.get_by_name(name)
                assignment = (
                    snap.ledger.get(uid, domain.id) if domain is not None else None
                )
                now = snap.now
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        if domain is None:
            return ServiceResult.failure(
                op, ErrorCode.NOT_FOUND, MESSAGES[ErrorCode.NOT_FOUND], {"name": name}
            )
        if is_expired(domain, now):
            return ServiceResult.failure(
                op,
                ErrorCode.EXPIRED,
                MESSAGES[ErrorCode.EXPIRED],
                {"name": name, "expires_at": domain.expires_at.isoformat()},
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "uid": uid,
                "domain_id": domain.id,
                "name": domain.name,
                "authorized": assignment is not None,
            },
        )
