"""Tests for the user directories."""

from __future__ import annotations

from datetime import timedelta

from domainpool.infrastructure.clock import FixedClock
from domainpool.infrastructure.pool import Pool
from domainpool.infrastructure.users import (
    StaticUserDirectory,
    TableUserDirectory,
    fetch_user,
    upsert_user,
)


class TestUpsertUser:
    def test_create_defaults(self, pool: Pool) -> None:
        with pool.transaction() as txn:
            record = upsert_user(txn.conn, 42, txn.now)
        assert record.uid == 42
        assert not record.premium
        assert not record.admin
        assert record.premium_until is None

    def test_update_keeps_unspecified_fields(self, pool: Pool) -> None:
        with pool.transaction() as txn:
            upsert_user(txn.conn, 42, txn.now, premium=True, admin=True)
        with pool.transaction() as txn:
            record = upsert_user(txn.conn, 42, txn.now, admin=False)
        assert record.premium
        assert not record.admin

    def test_clear_premium_until(self, pool: Pool) -> None:
        with pool.transaction() as txn:
            upsert_user(
                txn.conn, 42, txn.now, premium=True, premium_until=txn.now + timedelta(days=1)
            )
            record = upsert_user(txn.conn, 42, txn.now, clear_premium_until=True)
        assert record.premium_until is None

    def test_fetch_missing(self, pool: Pool) -> None:
        with pool.snapshot() as snap:
            assert fetch_user(snap.conn, 404) is None


class TestTableUserDirectory:
    def test_unknown_user_is_standard(self, pool: Pool, clock: FixedClock) -> None:
        directory = TableUserDirectory(pool.engine, clock)
        assert not directory.has_premium(9)
        assert not directory.is_admin(9)

    def test_premium_lapses(self, pool: Pool, clock: FixedClock) -> None:
        with pool.transaction() as txn:
            upsert_user(
                txn.conn, 42, txn.now, premium=True, premium_until=txn.now + timedelta(days=7)
            )
        directory = TableUserDirectory(pool.engine, clock)
        assert directory.has_premium(42)
        clock.advance(timedelta(days=7))
        assert not directory.has_premium(42)

    def test_admin_flag(self, pool: Pool, clock: FixedClock) -> None:
        with pool.transaction() as txn:
            upsert_user(txn.conn, 1, txn.now, admin=True)
        assert TableUserDirectory(pool.engine, clock).is_admin(1)


class TestStaticUserDirectory:
    def test_grant_and_revoke(self) -> None:
        directory = StaticUserDirectory()
        assert not directory.has_premium(5)
        directory.grant_premium(5)
        assert directory.has_premium(5)
        directory.revoke_premium(5)
        assert not directory.has_premium(5)

    def test_admins(self) -> None:
        assert StaticUserDirectory(admins={1}).is_admin(1)
        assert not StaticUserDirectory(admins={1}).is_admin(2)
