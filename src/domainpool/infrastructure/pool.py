"""Pool — repository with transaction coordination.

The Pool is the single dependency injected into every service. It owns
the database engine and the two external collaborators (clock and user
directory). All shared state is reached through its transactions; there
is no in-process usage registry, so invariants hold across processes.

- :meth:`transaction` is a serialised write unit: ``BEGIN IMMEDIATE`` on
  SQLite, SERIALIZABLE elsewhere. Commit on normal exit, rollback on any
  exception. Driver errors surface as :class:`WriteConflict` (retryable)
  or :class:`StorageUnavailable`.
- :meth:`snapshot` is a consistent read-only view. WAL readers never
  block the writer.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import DBAPIError, IntegrityError

from domainpool.infrastructure.clock import SystemClock
from domainpool.infrastructure.database.catalog import Catalog
from domainpool.infrastructure.database.engine import IMMEDIATE_OPTION, init_database
from domainpool.infrastructure.database.ledger import Ledger
from domainpool.infrastructure.errors import translate_db_error
from domainpool.infrastructure.users import TableUserDirectory

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from domainpool.config.settings import DomainPoolSettings
    from domainpool.infrastructure.clock import Clock
    from domainpool.infrastructure.users import UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class PoolTransaction:
    """Active unit of work: one connection plus the time it started.

    ``now`` is read after the write lock is held, so every eligibility
    decision in the unit sees the same instant.
    """

    conn: Connection
    now: datetime
    catalog: Catalog = field(init=False, repr=False)
    ledger: Ledger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.catalog = Catalog(self.conn)
        self.ledger = Ledger(self.conn)


class Pool:
    """Repository encapsulating storage and collaborator access.

    Constructed once per process (CLI startup, MCP server, or an embedding
    application) from :class:`DomainPoolSettings`.
    """

    def __init__(
        self,
        settings: DomainPoolSettings,
        *,
        clock: Clock | None = None,
        users: UserDirectory | None = None,
    ) -> None:
        self._settings = settings
        self._engine: Engine = init_database(
            settings.db_url, busy_timeout=settings.pool.busy_timeout
        )
        self._clock: Clock = clock or SystemClock()
        self._users: UserDirectory = users or TableUserDirectory(self._engine, self._clock)
        self._event_bus: Any | None = None

    @property
    def root(self) -> Path:
        return self._settings.root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> DomainPoolSettings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def users(self) -> UserDirectory:
        return self._users

    @property
    def event_bus(self) -> Any | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    def init_event_bus(self, *, sync: bool = False) -> None:
        """Discover plugins and wire up the WAL-backed EventBus."""
        from domainpool.plugins.event_bus import EventBus
        from domainpool.plugins.manager import PluginManager

        pm = PluginManager.from_config(self._settings.plugins, self.root)
        self._event_bus = EventBus(self._engine, pm, clock=self._clock, sync=sync)

    def close(self) -> None:
        """Flush pending events and release pooled connections."""
        if self._event_bus is not None:
            self._event_bus.shutdown()
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[PoolTransaction]:
        """Serialised write transaction over catalog and ledger.

        Usage::

            with pool.transaction() as txn:
                if txn.catalog.claim_slot(domain_id, txn.now):
                    txn.ledger.insert(uid, domain_id, txn.now)
                # Both commit on success, both roll back on failure.
        """
        try:
            with self._engine.connect() as conn:
                conn.execution_options(**{IMMEDIATE_OPTION: True})
                with conn.begin():
                    yield PoolTransaction(conn=conn, now=self._clock.now())
        except IntegrityError:
            raise
        except DBAPIError as exc:
            translated = translate_db_error(exc)
            logger.debug("Transaction aborted: %s", translated.__class__.__name__)
            raise translated from exc

    @contextmanager
    def snapshot(self) -> Iterator[PoolTransaction]:
        """Read-only transaction; the view is consistent for its duration."""
        try:
            with self._engine.connect() as conn:
                with conn.begin():
                    yield PoolTransaction(conn=conn, now=self._clock.now())
        except DBAPIError as exc:
            raise translate_db_error(exc) from exc
