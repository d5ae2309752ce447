"""ExpiryService — find expired domains and optionally reclaim their slots.

With ``[expiry] reclaim = false`` (the default) the sweep only reports:
assignments on expired domains are left in place so the holders can see
them flagged in their held list until an admin renews the domain.

With ``reclaim = true`` each expired domain is handled in its own short
transaction: its assignments are deleted and ``current_usage`` reset to
zero. A crash part-way through leaves every processed domain consistent.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from sqlalchemy.exc import DBAPIError

from domainpool.infrastructure.errors import StorageError
from domainpool.services.base import BaseService
from domainpool.services.contracts import SweepData, dump_validated
from domainpool.services.result import ServiceResult
from domainpool.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class ExpiryService(BaseService):
    """Runs the expiry sweep once or on a fixed interval."""

    @traced
    def sweep(self, *, reclaim: bool | None = None) -> ServiceResult:
        """Scan for domains with ``expires_at <= now``.

        *reclaim* overrides ``[expiry] reclaim`` for this run.
        """
        op = "expiry_sweep"
        if reclaim is None:
            reclaim = self._pool.settings.expiry.reclaim

        try:
            with trace_span("scan"):
                with self._pool.snapshot() as snap:
                    expired = snap.catalog.list_expired(snap.now)
                    counts = snap.ledger.count_by_domain()
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        items: list[dict[str, Any]] = [
            {
                "domain_id": d.id,
                "name": d.name,
                "expires_at": d.to_payload()["expires_at"],
                "assignments": counts.get(d.id, 0),
            }
            for d in expired
        ]

        warnings: list[str] = []
        reclaimed = 0
        if reclaim:
            with trace_span("reclaim"):
                for item in items:
                    try:
                        removed = self._reclaim_one(item["domain_id"])
                    except (StorageError, DBAPIError) as exc:
                        logger.warning("reclaim failed for %s: %s", item["domain_id"], exc)
                        warnings.append(f"Could not reclaim {item['domain_id']}: {exc}")
                        continue
                    item["reclaimed"] = removed
                    reclaimed += removed

        logger.info(
            "expiry sweep: %d expired, %d assignments reclaimed", len(items), reclaimed
        )
        self._dispatch_event(
            "post_sweep",
            {"expired": [i["domain_id"] for i in items], "reclaimed": reclaimed},
            warnings,
        )
        data = dump_validated(
            SweepData,
            {"reclaim": reclaim, "count": len(items), "reclaimed": reclaimed, "items": items},
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def _reclaim_one(self, domain_id: str) -> int:
        with self._pool.transaction() as txn:
            domain = txn.catalog.get(domain_id, for_update=True)
            # Renewed between the scan and this transaction.
            if domain is None or domain.expires_at > txn.now:
                return 0
            removed = txn.ledger.delete_for_domain(domain_id)
            txn.catalog.set_usage(domain_id, 0, txn.now)
        return removed

    def run_periodic(
        self,
        interval: float | None = None,
        *,
        iterations: int | None = None,
        reclaim: bool | None = None,
        on_result: Callable[[ServiceResult], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Sweep every *interval* seconds; stop after *iterations* runs if given.

        Returns the number of sweeps performed.
        """
        if interval is None:
            interval = float(self._pool.settings.expiry.sweep_interval_seconds)
        runs = 0
        while iterations is None or runs < iterations:
            result = self.sweep(reclaim=reclaim)
            runs += 1
            if on_result is not None:
                on_result(result)
            if iterations is not None and runs >= iterations:
                break
            sleep(interval)
        return runs
