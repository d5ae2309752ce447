"""Lifecycle event delivery through a write-ahead log.

Every committed allocation change is validated into a
:class:`~domainpool.plugins.events.LifecycleEvent`, written to ``event_wal``
tagged with its subject domain and user, and only then handed to the
plugin hooks (inline with ``--sync``, otherwise on a small worker pool).

Row status moves ``pending -> completed``, or ``pending -> failed`` on a
hook error. :meth:`EventBus.drain` replays ``pending`` and ``failed`` rows,
optionally for a single domain. After ``max_retries`` failures a row is
parked as ``dead_letter`` until :meth:`EventBus.requeue_dead` returns it.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, insert, select, update

from domainpool.infrastructure.clock import SystemClock
from domainpool.infrastructure.database.schema import event_wal
from domainpool.infrastructure.database.timestamps import to_db
from domainpool.plugins.events import LifecycleEvent, build_event

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

    from domainpool.infrastructure.clock import Clock
    from domainpool.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
DEAD_LETTER = "dead_letter"

REPLAYABLE = (PENDING, FAILED)


def read_backlog(
    conn: Connection,
    *,
    domain_id: str | None = None,
    statuses: tuple[str, ...] = (PENDING, FAILED, DEAD_LETTER),
) -> list[dict[str, Any]]:
    """Undelivered events, oldest first, optionally for one domain."""
    stmt = (
        select(
            event_wal.c.id,
            event_wal.c.hook_name,
            event_wal.c.domain_id,
            event_wal.c.uid,
            event_wal.c.status,
            event_wal.c.retries,
            event_wal.c.error,
            event_wal.c.created,
        )
        .where(event_wal.c.status.in_(statuses))
        .order_by(event_wal.c.id)
    )
    if domain_id is not None:
        stmt = stmt.where(event_wal.c.domain_id == domain_id)
    return [dict(row._mapping) for row in conn.execute(stmt)]


class EventBus:
    """WAL-backed dispatch of lifecycle hooks.

    Parameters:
        engine: SQLAlchemy engine with the ``event_wal`` table.
        plugin_manager: Loaded PluginManager for hook dispatch.
        clock: Source of WAL timestamps; the pool's clock in production.
        sync: Dispatch inline instead of on the worker pool (``--sync``, tests).
        max_retries: Failed deliveries before a row becomes ``dead_letter``.
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        clock: Clock | None = None,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._clock: Clock = clock or SystemClock()
        self._max_retries = max_retries
        self._executor: ThreadPoolExecutor | None = (
            None if sync else ThreadPoolExecutor(max_workers=max_workers)
        )
        self._futures: list[Future[None]] = []

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        """Validate *payload* for *hook_name*, log it, then deliver it.

        Raises :class:`~domainpool.plugins.events.UnknownHookError` or a
        pydantic ``ValidationError`` before anything is written.
        """
        return self.publish(build_event(hook_name, payload))

    def publish(self, event: LifecycleEvent) -> int:
        """Write *event* to the WAL and deliver it. Returns the WAL row id."""
        event_id = self._write_wal(event)
        if self._executor is None:
            self._deliver(event_id, event)
        else:
            self._futures.append(self._executor.submit(self._deliver, event_id, event))
        return event_id

    def drain(self, *, domain_id: str | None = None) -> list[dict[str, Any]]:
        """Replay pending and failed events synchronously.

        Returns ``{id, hook_name, domain_id, uid, status}`` per replayed row.
        """
        self._wait_futures()
        with self._engine.connect() as conn:
            rows = read_backlog(conn, domain_id=domain_id, statuses=REPLAYABLE)
            payloads = dict(
                conn.execute(
                    select(event_wal.c.id, event_wal.c.payload).where(
                        event_wal.c.id.in_([r["id"] for r in rows])
                    )
                ).tuples()
            )

        results: list[dict[str, Any]] = []
        for row in rows:
            event = build_event(row["hook_name"], json.loads(payloads[row["id"]]))
            status = self._deliver(row["id"], event)
            results.append(
                {
                    "id": row["id"],
                    "hook_name": row["hook_name"],
                    "domain_id": row["domain_id"],
                    "uid": row["uid"],
                    "status": status,
                }
            )
        return results

    def requeue_dead(self, *, domain_id: str | None = None) -> int:
        """Return dead-lettered rows to ``failed`` with a fresh retry budget."""
        stmt = (
            update(event_wal)
            .where(event_wal.c.status == DEAD_LETTER)
            .values(status=FAILED, retries=0, completed=None)
        )
        if domain_id is not None:
            stmt = stmt.where(event_wal.c.domain_id == domain_id)
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def shutdown(self) -> None:
        """Shutdown the worker pool, waiting for in-flight hooks."""
        self._wait_futures()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _stamp(self) -> str:
        return to_db(self._clock.now())

    def _write_wal(self, event: LifecycleEvent) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(event_wal).values(
                    hook_name=event.hook,
                    domain_id=event.subject_domain,
                    uid=event.subject_uid,
                    payload=event.model_dump_json(),
                    status=PENDING,
                    retries=0,
                    created=self._stamp(),
                )
            )
            return int(result.inserted_primary_key[0])

    def _deliver(self, event_id: int, event: LifecycleEvent) -> str:
        """Call every hook implementation and record the outcome."""
        try:
            getattr(self._pm.hook, event.hook)(**event.model_dump())
        except Exception as exc:
            logger.warning(
                "%s failed for domain=%s uid=%s: %s",
                event.hook,
                event.subject_domain,
                event.subject_uid,
                exc,
            )
            return self._mark_failed(event_id, str(exc))
        self._mark_completed(event_id)
        return COMPLETED

    def _mark_completed(self, event_id: int) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(status=COMPLETED, error=None, completed=self._stamp())
            )

    def _mark_failed(self, event_id: int, error: str) -> str:
        """Count the failure; the row is parked once it reaches ``max_retries``."""
        retries = event_wal.c.retries + 1
        exhausted = retries >= self._max_retries
        with self._engine.begin() as conn:
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(
                    retries=retries,
                    error=error,
                    status=case((exhausted, DEAD_LETTER), else_=FAILED),
                    completed=case((exhausted, self._stamp()), else_=None),
                )
            )
            return conn.execute(
                select(event_wal.c.status).where(event_wal.c.id == event_id)
            ).scalar_one()

    def _wait_futures(self) -> None:
        for future in self._futures:
            try:
                future.result(timeout=30)
            except Exception:
                logger.debug("Event future raised", exc_info=True)
        self._futures.clear()
