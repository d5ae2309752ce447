"""EventService — inspect and redeliver the lifecycle event log.

Plugin failures never fail an allocation; they leave ``event_wal`` rows
behind instead. ``backlog`` shows those rows (and which plugins would
receive them), ``replay`` delivers them again.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import DBAPIError

from domainpool.domain.ids import normalize_domain_id
from domainpool.infrastructure.errors import StorageError
from domainpool.plugins.event_bus import COMPLETED, read_backlog
from domainpool.services.base import BaseService
from domainpool.services.contracts import EventBacklogData, dump_validated
from domainpool.services.result import ServiceResult
from domainpool.services.telemetry import traced

logger = logging.getLogger(__name__)

NO_EVENT_BUS = "NO_EVENT_BUS"


class EventService(BaseService):
    """Reads and replays the event WAL."""

    @traced
    def backlog(self, domain_id: str | None = None) -> ServiceResult:
        """Undelivered events, optionally only those about *domain_id*."""
        op = "event_backlog"
        if domain_id is not None:
            domain_id = normalize_domain_id(domain_id)
        try:
            with self._pool.snapshot() as snap:
                items = read_backlog(snap.conn, domain_id=domain_id)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        bus = self._pool.event_bus
        plugins = bus.plugin_manager.describe() if bus is not None else []
        data = dump_validated(
            EventBacklogData, {"count": len(items), "items": items, "plugins": plugins}
        )
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def replay(
        self, domain_id: str | None = None, *, include_dead: bool = False
    ) -> ServiceResult:
        """Deliver pending and failed events again.

        With *include_dead*, dead-lettered events get a fresh retry budget
        first. Events that fail again are reported as warnings.
        """
        op = "event_replay"
        bus = self._pool.event_bus
        if bus is None:
            return ServiceResult.failure(op, NO_EVENT_BUS, "Plugins are not loaded for this pool")
        if domain_id is not None:
            domain_id = normalize_domain_id(domain_id)

        try:
            requeued = bus.requeue_dead(domain_id=domain_id) if include_dead else 0
            results = bus.drain(domain_id=domain_id)
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        delivered = sum(1 for r in results if r["status"] == COMPLETED)
        warnings = [
            f"{r['hook_name']} event {r['id']} is {r['status']}"
            for r in results
            if r["status"] != COMPLETED
        ]
        logger.info("replayed %d events, %d delivered", len(results), delivered)
        data: dict[str, Any] = {
            "count": len(results),
            "delivered": delivered,
            "requeued": requeued,
            "items": results,
        }
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)
