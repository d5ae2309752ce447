"""Tests for the assignment Ledger storage adapter."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from domainpool.infrastructure.pool import Pool
from tests.conftest import add_domain


class TestLedger:
    def test_insert_and_get(self, pool: Pool) -> None:
        add_domain(pool, "haze-bio")
        with pool.transaction() as txn:
            created = txn.ledger.insert(42, "haze-bio", txn.now)
        with pool.snapshot() as snap:
            got = snap.ledger.get(42, "haze-bio")
        assert got is not None
        assert got.id == created.id
        assert got.assigned_at == pool.clock.now()

    def test_unique_pair(self, pool: Pool) -> None:
        add_domain(pool, "haze-bio")
        with pool.transaction() as txn:
            txn.ledger.insert(42, "haze-bio", txn.now)
        with pytest.raises(IntegrityError):
            with pool.transaction() as txn:
                txn.ledger.insert(42, "haze-bio", txn.now)

    def test_foreign_key_enforced(self, pool: Pool) -> None:
        with pytest.raises(IntegrityError):
            with pool.transaction() as txn:
                txn.ledger.insert(42, "missing", txn.now)

    def test_for_user_and_counts(self, pool: Pool) -> None:
        add_domain(pool, "a")
        add_domain(pool, "b")
        with pool.transaction() as txn:
            txn.ledger.insert(1, "a", txn.now)
            txn.ledger.insert(2, "a", txn.now)
            txn.ledger.insert(2, "b", txn.now)
        with pool.snapshot() as snap:
            assert [a.domain_id for a in snap.ledger.for_user(2)] == ["a", "b"]
            assert snap.ledger.count_for_user(2) == 2
            assert snap.ledger.count_for_user(99) == 0
            assert snap.ledger.count_by_domain() == {"a": 2, "b": 1}
            assert [a.uid for a in snap.ledger.for_domain("a")] == [1, 2]

    def test_delete_for_domain(self, pool: Pool) -> None:
        add_domain(pool, "a")
        with pool.transaction() as txn:
            txn.ledger.insert(1, "a", txn.now)
            txn.ledger.insert(2, "a", txn.now)
            assert txn.ledger.delete_for_domain("a") == 2
            assert txn.ledger.for_domain("a") == []

    def test_orphans(self, pool: Pool, tmp_path: Path) -> None:
        add_domain(pool, "a")
        with pool.transaction() as txn:
            txn.ledger.insert(7, "a", txn.now)
        # Bypass the engine's foreign_keys pragma to simulate a hand edit.
        raw = sqlite3.connect(tmp_path / ".domainpool" / "domainpool.db")
        raw.execute("DELETE FROM domains WHERE id = 'a'")
        raw.commit()
        raw.close()

        with pool.snapshot() as snap:
            orphans = snap.ledger.orphans()
        assert [(o.uid, o.domain_id) for o in orphans] == [(7, "a")]
