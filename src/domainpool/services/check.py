"""CheckService — integrity checks and counter reconciliation.

``current_usage`` is a cached count of ledger rows. The engine keeps it
exact by writing both in one transaction, but rows edited by hand or a
restored backup can drift. ``check`` reports; ``fix`` recomputes every
counter from the ledger and drops assignments whose domain is gone.
Plugin events that exhausted their retries are reported as warnings.
"""

from __future__ import annotations

import logging
import shutil
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError

from domainpool.infrastructure.database.engine import is_sqlite
from domainpool.infrastructure.errors import StorageError
from domainpool.plugins.event_bus import DEAD_LETTER, read_backlog
from domainpool.services._helpers import now_compact
from domainpool.services.base import BaseService
from domainpool.services.contracts import CheckIssue, dump_validated
from domainpool.services.result import ServiceResult
from domainpool.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_COUNTER = "counter_drift"
CAT_CAPACITY = "over_capacity"
CAT_ORPHAN = "orphan_assignment"
CAT_EXPIRED = "expired_with_assignments"
CAT_EVENT = "dead_letter_event"

BACKUP_PREFIX = "domainpool-"


class CheckService(BaseService):
    """Finds and repairs catalog/ledger inconsistencies."""

    @traced
    def check(self) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        op = "check"
        try:
            with self._pool.snapshot() as snap:
                domains = snap.catalog.list_all()
                counts = snap.ledger.count_by_domain()
                orphans = snap.ledger.orphans()
                dead_events = read_backlog(snap.conn, statuses=(DEAD_LETTER,))
                now = snap.now
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        issues: list[dict[str, Any]] = []
        with trace_span("counters"):
            for d in domains:
                actual = counts.get(d.id, 0)
                if d.current_usage != actual:
                    issues.append(
                        {
                            "category": CAT_COUNTER,
                            "severity": SEVERITY_ERROR,
                            "domain_id": d.id,
                            "message": (
                                f"current_usage is {d.current_usage} but "
                                f"{actual} assignments exist"
                            ),
                            "fix_action": "recount",
                            "recorded": d.current_usage,
                            "actual": actual,
                        }
                    )
                if d.max_usage and actual > d.max_usage:
                    issues.append(
                        {
                            "category": CAT_CAPACITY,
                            "severity": SEVERITY_ERROR,
                            "domain_id": d.id,
                            "message": f"{actual} assignments exceed max_usage {d.max_usage}",
                        }
                    )
                if actual and d.expires_at <= now:
                    issues.append(
                        {
                            "category": CAT_EXPIRED,
                            "severity": SEVERITY_WARNING,
                            "domain_id": d.id,
                            "message": f"expired domain still has {actual} assignments",
                        }
                    )
        with trace_span("orphans"):
            for a in orphans:
                issues.append(
                    {
                        "category": CAT_ORPHAN,
                        "severity": SEVERITY_ERROR,
                        "domain_id": a.domain_id,
                        "message": f"assignment {a.id} (uid {a.uid}) references a missing domain",
                        "fix_action": "delete",
                        "assignment_id": a.id,
                    }
                )

        with trace_span("events"):
            for e in dead_events:
                issues.append(
                    {
                        "category": CAT_EVENT,
                        "severity": SEVERITY_WARNING,
                        "domain_id": e["domain_id"],
                        "message": (
                            f"{e['hook_name']} event {e['id']} gave up after "
                            f"{e['retries']} attempts: {e['error']}"
                        ),
                        "event_id": e["id"],
                    }
                )

        validated = [dump_validated(CheckIssue, i) for i in issues]
        return ServiceResult(ok=True, op=op, data={"issues": validated, "count": len(validated)})

    @traced
    def fix(self) -> ServiceResult:
        """Back up, then recompute counters and delete orphans in one transaction."""
        op = "fix"
        warnings: list[str] = []
        backup = self._backup_db()
        if backup is None:
            warnings.append("Backup skipped: only file-backed SQLite pools are backed up")

        fixes: list[str] = []
        try:
            with self._pool.transaction() as txn:
                for a in txn.ledger.orphans():
                    txn.ledger.delete(a.id)
                    fixes.append(f"Deleted orphan assignment {a.id} ({a.domain_id})")
                counts = txn.ledger.count_by_domain()
                for d in txn.catalog.list_all():
                    actual = counts.get(d.id, 0)
                    if d.current_usage != actual:
                        txn.catalog.set_usage(d.id, actual, txn.now)
                        fixes.append(f"Recounted {d.id}: {d.current_usage} -> {actual}")
        except (StorageError, DBAPIError) as exc:
            return self._storage_failure(op, exc)

        logger.info("fix applied %d changes", len(fixes))
        data: dict[str, Any] = {"fixes": fixes, "count": len(fixes)}
        if backup is not None:
            data["backup_path"] = str(backup)
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # Backup helpers
    # ------------------------------------------------------------------

    def _db_file(self) -> Path | None:
        engine = self._pool.engine
        if not is_sqlite(engine):
            return None
        database = make_url(self._pool.settings.db_url).database
        if not database or database == ":memory:":
            return None
        return Path(database)

    def _backup_db(self) -> Path | None:
        """Create a timestamped copy of the SQLite file. None for other backends."""
        db_path = self._db_file()
        if db_path is None or not db_path.exists():
            return None
        backup_dir = db_path.parent / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)

        # Fold the WAL into the main file so the copy is complete.
        raw = self._pool.engine.raw_connection()
        try:
            cursor = raw.cursor()
            cursor.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            cursor.close()
        finally:
            raw.close()

        backup_path = backup_dir / f"{BACKUP_PREFIX}{now_compact()}.db"
        shutil.copy2(str(db_path), str(backup_path))
        logger.debug("backup written to %s", backup_path)

        self._prune_backups(backup_dir)
        return backup_path

    def _prune_backups(self, backup_dir: Path) -> None:
        """Remove backups older than the retention window or beyond the max count."""
        config = self._pool.settings.check
        backups = sorted(backup_dir.glob(f"{BACKUP_PREFIX}*.db"))

        cutoff = datetime.now(UTC) - timedelta(days=config.backup_retention_days)
        for old in backups[:-1]:
            if datetime.fromtimestamp(old.stat().st_mtime, UTC) < cutoff:
                old.unlink(missing_ok=True)
        backups = [b for b in backups if b.exists()]

        if len(backups) > config.backup_max_count:
            for old in backups[: len(backups) - config.backup_max_count]:
                old.unlink(missing_ok=True)
