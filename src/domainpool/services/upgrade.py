"""UpgradeService — database migration with Alembic.

Pipeline: BACKUP -> MIGRATE -> VALIDATE -> REPORT
"""

from __future__ import annotations

import logging
from typing import Any

from alembic import command
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect

from domainpool.infrastructure.database.migrations import build_config
from domainpool.services.base import BaseService
from domainpool.services.check import CheckService
from domainpool.services.result import ServiceResult

logger = logging.getLogger(__name__)


class UpgradeService(BaseService):
    """Handles database schema migrations via Alembic."""

    def _tables_exist(self) -> bool:
        """Detect a database created by ``create_all`` but never stamped."""
        return "domains" in inspect(self._pool.engine).get_table_names()

    def check_pending(self) -> ServiceResult:
        """List pending migrations without applying."""
        op = "upgrade"
        try:
            cfg = build_config(self._pool.settings.db_url)
            script = ScriptDirectory.from_config(cfg)
            head = script.get_current_head()

            with self._pool.engine.connect() as conn:
                current = MigrationContext.configure(conn).get_current_revision()

            pending: list[dict[str, Any]] = []
            if current != head and head is not None:
                rev = script.get_revision(head)
                while rev is not None and rev.revision != current:
                    pending.append({"revision": rev.revision, "description": rev.doc or ""})
                    down = rev.down_revision
                    rev = script.get_revision(str(down)) if down is not None else None
        except Exception as exc:
            logger.debug("migration check failed", exc_info=True)
            return ServiceResult.failure(
                op, "CHECK_FAILED", f"Failed to check migrations: {exc}"
            )

        pending.reverse()
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "pending_count": len(pending),
                "pending": pending,
                "current": current,
                "head": head,
            },
        )

    def apply(self) -> ServiceResult:
        """BACKUP -> MIGRATE -> VALIDATE -> REPORT."""
        op = "upgrade"
        warnings: list[str] = []

        check_result = self.check_pending()
        if not check_result.ok:
            return check_result

        pending_count = check_result.data["pending_count"]
        if pending_count == 0:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "applied_count": 0,
                    "current": check_result.data["head"],
                    "message": "Database is already up to date",
                },
            )

        checker = CheckService(self._pool)
        try:
            backup_path = checker._backup_db()
        except OSError as exc:
            return ServiceResult.failure(op, "BACKUP_FAILED", f"Backup failed: {exc}")
        if backup_path is None:
            warnings.append("Backup skipped: only file-backed SQLite pools are backed up")

        try:
            cfg = build_config(self._pool.settings.db_url)
            if check_result.data.get("current") is None and self._tables_exist():
                # Tables were created without version tracking; adopt them at head.
                command.stamp(cfg, "head")
            else:
                command.upgrade(cfg, "head")
        except Exception as exc:
            logger.debug("migration failed", exc_info=True)
            return ServiceResult.failure(
                op,
                "MIGRATION_FAILED",
                f"Migration failed: {exc}. Backup at: {backup_path}",
                {"backup_path": str(backup_path) if backup_path else None},
            )

        integrity = checker.check()
        if integrity.ok:
            issues = integrity.data.get("issues", [])
            error_count = sum(1 for i in issues if i.get("severity") == "error")
            if error_count > 0:
                warnings.append(f"Post-migration integrity check found {error_count} errors")
        else:
            warnings.append("Post-migration integrity check could not run")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "applied_count": pending_count,
                "current": check_result.data["head"],
                "backup_path": str(backup_path) if backup_path else None,
            },
            warnings=warnings,
        )

    def stamp_current(self) -> ServiceResult:
        """Stamp the database as at head (for freshly created pools)."""
        op = "upgrade"
        try:
            cfg = build_config(self._pool.settings.db_url)
            command.stamp(cfg, "head")
            head = ScriptDirectory.from_config(cfg).get_current_head()
        except Exception as exc:
            logger.debug("stamp failed", exc_info=True)
            return ServiceResult.failure(op, "STAMP_FAILED", f"Failed to stamp database: {exc}")
        return ServiceResult(ok=True, op=op, data={"stamped": True, "current": head})
