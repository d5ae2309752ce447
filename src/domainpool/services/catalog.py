"""CatalogService — administrative domain lifecycle.

Writes here are privileged: the acting uid must be an admin according to
the pool's user directory, otherwise the result is ``FORBIDDEN``. Admin
writes bypass eligibility but never the capacity invariant; ``max_usage``
cannot be lowered beneath the live ``current_usage``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import DBAPIError, IntegrityError

from domainpool.domain.eligibility import MESSAGES, ErrorCode
from domainpool.domain.ids import (
    is_valid_domain_id,
    is_valid_name,
    normalize_domain_id,
    normalize_name,
)
from domainpool.domain.models import Domain
from domainpool.infrastructure.errors import StorageError
from domainpool.services.base import BaseService
from domainpool.services.contracts import DomainItem, dump_validated
from domainpool.services.result import ServiceResult
from domainpool.services.telemetry import traced

logger = logging.getLogger(__name__)


class _Rejected(Exception):
    """Abort the surrounding transaction and report *code*."""

    def __init__(self, code: ErrorCode, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail or {}


def _not_found(domain_id: str) -> _Rejected:
    return _Rejected(ErrorCode.NOT_FOUND, MESSAGES[ErrorCode.NOT_FOUND], {"id": domain_id})


class CatalogService(BaseService):
    """Create, inspect, change, renew, and delete domains."""

    def _forbidden(self, op: str, actor: int) -> ServiceResult | None:
        try:
            allowed = self._pool.users.is_admin(actor)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        if allowed:
            return None
        logger.info("%s refused for non-admin uid=%s", op, actor)
        return ServiceResult.failure(
            op, ErrorCode.FORBIDDEN, "Admin privileges required", {"uid": actor}
        )

    def _fail(self, op: str, exc: _Rejected) -> ServiceResult:
        return ServiceResult.failure(op, exc.code, exc.message, exc.detail)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @traced
    def create_domain(
        self,
        actor: int,
        domain_id: str,
        name: str,
        *,
        only_premium: bool = False,
        max_usage: int = 0,
        expires_at: datetime | None = None,
    ) -> ServiceResult:
        """Add a domain to the pool with ``current_usage = 0``.

        The id is normalized (``haze.bio`` -> ``haze-bio``). Without
        *expires_at* the domain lives for ``[expiry] default_lifetime_days``.
        """
        op = "add_domain"
        if (denied := self._forbidden(op, actor)) is not None:
            return denied

        domain_id = normalize_domain_id(domain_id)
        name = normalize_name(name)
        if not domain_id or not name:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, "Domain ID and name cannot be empty"
            )
        if not is_valid_domain_id(domain_id):
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, f"Invalid domain ID: {domain_id}", {"id": domain_id}
            )
        if not is_valid_name(name):
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, f"Invalid domain name: {name}", {"name": name}
            )
        if max_usage < 0:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, "max_usage must be >= 0", {"max_usage": max_usage}
            )
        if expires_at is not None and expires_at.tzinfo is None:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, "expires_at must be timezone-aware"
            )

        lifetime = timedelta(days=self._pool.settings.expiry.default_lifetime_days)
        try:
            with self._pool.transaction() as txn:
                existing = txn.catalog.conflicting(domain_id, name)
                if existing is not None:
                    raise _Rejected(
                        ErrorCode.DUPLICATE,
                        "Domain already exists",
                        {"id": existing.id, "name": existing.name},
                    )
                domain = Domain(
                    id=domain_id,
                    name=name,
                    only_premium=only_premium,
                    max_usage=max_usage,
                    current_usage=0,
                    expires_at=expires_at or txn.now + lifetime,
                    created_at=txn.now,
                    updated_at=txn.now,
                )
                txn.catalog.insert(domain)
        except _Rejected as exc:
            return self._fail(op, exc)
        except IntegrityError:
            return ServiceResult.failure(
                op, ErrorCode.DUPLICATE, "Domain already exists", {"id": domain_id, "name": name}
            )
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        logger.info("domain added id=%s name=%s by uid=%s", domain.id, domain.name, actor)
        warnings: list[str] = []
        payload = dump_validated(DomainItem, domain.to_payload())
        self._dispatch_event("post_domain_create", {"domain": payload}, warnings)
        return ServiceResult(ok=True, op=op, data=payload, warnings=warnings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @traced
    def get_domain(self, domain_id: str) -> ServiceResult:
        op = "get_domain"
        domain_id = normalize_domain_id(domain_id)
        try:
            with self._pool.snapshot() as snap:
                domain = snap.catalog.get(domain_id)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        if domain is None:
            return self._fail(op, _not_found(domain_id))
        return ServiceResult(ok=True, op=op, data=dump_validated(DomainItem, domain.to_payload()))

    @traced
    def list_domains(self) -> ServiceResult:
        """Every domain in the catalog regardless of state, ordered by name."""
        op = "list_domains"
        try:
            with self._pool.snapshot() as snap:
                rows = snap.catalog.list_all()
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        items = [dump_validated(DomainItem, d.to_payload()) for d in rows]
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})

    @traced
    def domain_assignments(self, domain_id: str) -> ServiceResult:
        """A domain together with every assignment that references it."""
        op = "domain_assignments"
        domain_id = normalize_domain_id(domain_id)
        try:
            with self._pool.snapshot() as snap:
                domain = snap.catalog.get(domain_id)
                assignments = snap.ledger.for_domain(domain_id) if domain else []
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)
        if domain is None:
            return self._fail(op, _not_found(domain_id))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "domain": dump_validated(DomainItem, domain.to_payload()),
                "count": len(assignments),
                "assignments": [a.to_payload() for a in assignments],
            },
        )

    # ------------------------------------------------------------------
    # Update / renew / delete
    # ------------------------------------------------------------------

    @traced
    def update_domain(
        self,
        actor: int,
        domain_id: str,
        *,
        name: str | None = None,
        only_premium: bool | None = None,
        max_usage: int | None = None,
        expires_at: datetime | None = None,
    ) -> ServiceResult:
        """Change any of name, premium flag, capacity, or expiry. The id never changes."""
        op = "update_domain"
        if (denied := self._forbidden(op, actor)) is not None:
            return denied
        domain_id = normalize_domain_id(domain_id)

        changes: dict[str, Any] = {}
        if name is not None:
            name = normalize_name(name)
            if not is_valid_name(name):
                return ServiceResult.failure(
                    op, ErrorCode.INVALID_INPUT, f"Invalid domain name: {name}", {"name": name}
                )
            changes["name"] = name
        if only_premium is not None:
            changes["only_premium"] = only_premium
        if max_usage is not None:
            if max_usage < 0:
                return ServiceResult.failure(
                    op, ErrorCode.INVALID_INPUT, "max_usage must be >= 0", {"max_usage": max_usage}
                )
            changes["max_usage"] = max_usage
        if expires_at is not None:
            if expires_at.tzinfo is None:
                return ServiceResult.failure(
                    op, ErrorCode.INVALID_INPUT, "expires_at must be timezone-aware"
                )
            changes["expires_at"] = expires_at
        if not changes:
            return ServiceResult.failure(op, ErrorCode.INVALID_INPUT, "No changes given")

        try:
            with self._pool.transaction() as txn:
                current = txn.catalog.get(domain_id, for_update=True)
                if current is None:
                    raise _not_found(domain_id)
                new_max = changes.get("max_usage")
                if new_max is not None and new_max != 0 and new_max < current.current_usage:
                    raise _Rejected(
                        ErrorCode.INVALID_INPUT,
                        "max_usage cannot be lower than current usage",
                        {"max_usage": new_max, "current_usage": current.current_usage},
                    )
                if "name" in changes and changes["name"] != current.name:
                    clash = txn.catalog.get_by_name(changes["name"])
                    if clash is not None:
                        raise _Rejected(
                            ErrorCode.DUPLICATE,
                            "Domain name already in use",
                            {"id": clash.id, "name": clash.name},
                        )
                txn.catalog.update_fields(domain_id, changes, txn.now)
                updated = txn.catalog.get(domain_id)
        except _Rejected as exc:
            return self._fail(op, exc)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        assert updated is not None
        logger.info("domain updated id=%s fields=%s", domain_id, sorted(changes))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **dump_validated(DomainItem, updated.to_payload()),
                "fields_changed": sorted(changes),
            },
        )

    @traced
    def renew_domain(self, actor: int, domain_id: str, days: int) -> ServiceResult:
        """Extend a domain's life by *days*.

        An already-expired domain is renewed from now; a live one from its
        current ``expires_at``.
        """
        op = "renew_domain"
        if (denied := self._forbidden(op, actor)) is not None:
            return denied
        if days <= 0:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, "days must be positive", {"days": days}
            )
        domain_id = normalize_domain_id(domain_id)
        try:
            with self._pool.transaction() as txn:
                current = txn.catalog.get(domain_id, for_update=True)
                if current is None:
                    raise _not_found(domain_id)
                base = txn.now if current.expires_at <= txn.now else current.expires_at
                txn.catalog.update_fields(
                    domain_id, {"expires_at": base + timedelta(days=days)}, txn.now
                )
                updated = txn.catalog.get(domain_id)
        except _Rejected as exc:
            return self._fail(op, exc)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        assert updated is not None
        logger.info("domain renewed id=%s until=%s", domain_id, updated.expires_at.isoformat())
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **dump_validated(DomainItem, updated.to_payload()),
                "previous_expires_at": current.to_payload()["expires_at"],
            },
        )

    @traced
    def delete_domain(self, actor: int, domain_id: str) -> ServiceResult:
        """Remove a domain and every assignment on it in one transaction."""
        op = "delete_domain"
        if (denied := self._forbidden(op, actor)) is not None:
            return denied
        domain_id = normalize_domain_id(domain_id)
        try:
            with self._pool.transaction() as txn:
                if txn.catalog.get(domain_id, for_update=True) is None:
                    raise _not_found(domain_id)
                removed = txn.ledger.delete_for_domain(domain_id)
                txn.catalog.delete(domain_id)
        except _Rejected as exc:
            return self._fail(op, exc)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        logger.info("domain deleted id=%s assignments_removed=%s", domain_id, removed)
        warnings: list[str] = []
        self._dispatch_event(
            "post_domain_delete",
            {"domain_id": domain_id, "assignments_removed": removed},
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": domain_id, "assignments_removed": removed},
            warnings=warnings,
        )
