"""Tests for UpgradeService — Alembic migration status and application."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from sqlalchemy import create_engine, inspect

from domainpool.infrastructure.database.migrations import build_config
from domainpool.infrastructure.pool import Pool
from domainpool.services.upgrade import UpgradeService
from tests.conftest import add_domain

HEAD = "003_event_subjects"


class TestCheckPending:
    def test_unstamped_pool_lists_every_revision(self, pool: Pool) -> None:
        result = UpgradeService(pool).check_pending()
        assert result.ok
        assert result.op == "upgrade"
        assert result.data["current"] is None
        assert result.data["head"] == HEAD
        revisions = [p["revision"] for p in result.data["pending"]]
        assert revisions == ["001_baseline", "002_users", HEAD]
        assert result.data["pending_count"] == 3

    def test_stamped_pool_is_current(self, pool: Pool) -> None:
        svc = UpgradeService(pool)
        stamped = svc.stamp_current()
        assert stamped.ok
        assert stamped.data == {"stamped": True, "current": HEAD}

        result = svc.check_pending()
        assert result.data["pending_count"] == 0
        assert result.data["current"] == HEAD


class TestApply:
    def test_adopts_unversioned_tables(self, pool: Pool, tmp_path: Path) -> None:
        add_domain(pool, "a")
        result = UpgradeService(pool).apply()
        assert result.ok
        assert result.data["applied_count"] == 3
        assert result.data["current"] == HEAD
        assert Path(result.data["backup_path"]).parent == tmp_path / ".domainpool" / "backups"
        assert result.warnings == []
        assert UpgradeService(pool).check_pending().data["pending_count"] == 0

    def test_up_to_date_is_noop(self, pool: Pool) -> None:
        svc = UpgradeService(pool)
        svc.stamp_current()
        result = svc.apply()
        assert result.ok
        assert result.data["applied_count"] == 0
        assert result.data["message"] == "Database is already up to date"

    def test_data_survives(self, pool: Pool) -> None:
        add_domain(pool, "a")
        UpgradeService(pool).apply()
        with pool.snapshot() as snap:
            assert snap.catalog.get("a") is not None


class TestRevisions:
    def test_event_subjects_added_to_existing_wal(self, tmp_path: Path) -> None:
        db_url = f"sqlite:///{tmp_path / 'old.db'}"
        cfg = build_config(db_url)
        command.upgrade(cfg, "002_users")
        engine = create_engine(db_url)
        try:
            before = {c["name"] for c in inspect(engine).get_columns("event_wal")}
            assert "domain_id" not in before

            command.upgrade(cfg, "head")
            inspector = inspect(engine)
            after = {c["name"] for c in inspector.get_columns("event_wal")}
            assert {"domain_id", "uid"} <= after
            indexes = {i["name"] for i in inspector.get_indexes("event_wal")}
            assert "ix_event_wal_domain_id" in indexes

            command.downgrade(cfg, "002_users")
            reverted = {c["name"] for c in inspect(engine).get_columns("event_wal")}
            assert reverted == before
        finally:
            engine.dispose()
