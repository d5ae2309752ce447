"""Tests for the WAL-backed EventBus."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pluggy
import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.engine import Engine

from domainpool.infrastructure.clock import FixedClock
from domainpool.infrastructure.database.engine import default_db_path, init_database
from domainpool.infrastructure.database.schema import event_wal
from domainpool.plugins.event_bus import EventBus, read_backlog
from domainpool.plugins.events import UnknownHookError
from domainpool.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("domainpool")

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class Recorder:
    def __init__(self) -> None:
        self.assigned: list[dict[str, Any]] = []

    @hookimpl
    def post_assign(self, uid: int, domain_id: str, domain_name: str, assignment_id: int) -> None:
        self.assigned.append({"uid": uid, "domain_id": domain_id})


class Flaky:
    """Fails a fixed number of times, then succeeds."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    @hookimpl
    def post_remove(self, uid: int, domain_id: str, domain_name: str) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("dns api down")


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    e = init_database(f"sqlite:///{default_db_path(tmp_path)}")
    try:
        yield e
    finally:
        e.dispose()


def _bus(engine: Engine, *plugins: object, **kwargs: Any) -> EventBus:
    pm = PluginManager()
    for plugin in plugins:
        pm.register_plugin(plugin)
    kwargs.setdefault("sync", True)
    return EventBus(engine, pm, clock=FixedClock(NOW), **kwargs)


def _rows(engine: Engine) -> list[dict[str, Any]]:
    with engine.connect() as conn:
        return [
            dict(r._mapping) for r in conn.execute(select(event_wal).order_by(event_wal.c.id))
        ]


def _statuses(engine: Engine) -> list[str]:
    return [row["status"] for row in _rows(engine)]


def _remove(domain_id: str = "a", uid: int = 5) -> dict[str, Any]:
    return {"uid": uid, "domain_id": domain_id, "domain_name": f"{domain_id}.example"}


ASSIGN_PAYLOAD = {"uid": 5, "domain_id": "a", "domain_name": "a.example", "assignment_id": 1}


class TestSyncDispatch:
    def test_dispatch_calls_hook_and_completes(self, engine: Engine) -> None:
        recorder = Recorder()
        bus = _bus(engine, recorder)

        event_id = bus.dispatch("post_assign", ASSIGN_PAYLOAD)
        assert event_id > 0
        assert recorder.assigned == [{"uid": 5, "domain_id": "a"}]
        assert _statuses(engine) == ["completed"]

    def test_wal_row_carries_subject_and_clock_time(self, engine: Engine) -> None:
        _bus(engine, Recorder()).dispatch("post_assign", ASSIGN_PAYLOAD)
        [row] = _rows(engine)
        assert row["hook_name"] == "post_assign"
        assert (row["domain_id"], row["uid"]) == ("a", 5)
        assert row["created"] == "2026-03-01T12:00:00.000000+00:00"
        assert row["completed"] == row["created"]

    def test_domain_create_subject_comes_from_domain(self, engine: Engine) -> None:
        _bus(engine).dispatch("post_domain_create", {"domain": {"id": "vip", "name": "vip.gg"}})
        [row] = _rows(engine)
        assert (row["domain_id"], row["uid"]) == ("vip", None)

    def test_sweep_has_no_subject(self, engine: Engine) -> None:
        _bus(engine).dispatch("post_sweep", {"expired": ["a", "b"], "reclaimed": 3})
        [row] = _rows(engine)
        assert (row["domain_id"], row["uid"]) == (None, None)

    def test_failure_recorded_not_raised(self, engine: Engine) -> None:
        bus = _bus(engine, Flaky(failures=1))
        bus.dispatch("post_remove", _remove())
        [row] = _rows(engine)
        assert row["status"] == "failed"
        assert row["retries"] == 1
        assert row["error"] == "dns api down"
        assert row["completed"] is None


class TestValidation:
    def test_unknown_hook_rejected_before_wal(self, engine: Engine) -> None:
        with pytest.raises(UnknownHookError):
            _bus(engine).dispatch("post_nothing", {})
        assert _rows(engine) == []

    def test_payload_must_match_hook(self, engine: Engine) -> None:
        with pytest.raises(ValidationError):
            _bus(engine).dispatch("post_remove", {"uid": 5, "domain_id": "a"})
        assert _rows(engine) == []

    def test_extra_fields_rejected(self, engine: Engine) -> None:
        with pytest.raises(ValidationError):
            _bus(engine).dispatch("post_remove", {**_remove(), "reason": "expired"})


class TestDrain:
    def test_drain_retries_failed(self, engine: Engine) -> None:
        flaky = Flaky(failures=1)
        bus = _bus(engine, flaky)
        bus.dispatch("post_remove", _remove())

        results = bus.drain()
        assert results == [
            {"id": 1, "hook_name": "post_remove", "domain_id": "a", "uid": 5, "status": "completed"}
        ]
        assert flaky.calls == 2
        assert _rows(engine)[0]["error"] is None

    def test_drain_one_domain(self, engine: Engine) -> None:
        flaky = Flaky(failures=2)
        bus = _bus(engine, flaky)
        bus.dispatch("post_remove", _remove("a"))
        bus.dispatch("post_remove", _remove("b"))

        results = bus.drain(domain_id="b")
        assert [(r["domain_id"], r["status"]) for r in results] == [("b", "completed")]
        assert _statuses(engine) == ["failed", "completed"]

    def test_dead_letter_after_max_retries(self, engine: Engine) -> None:
        bus = _bus(engine, Flaky(failures=10), max_retries=2)
        bus.dispatch("post_remove", _remove())
        assert [r["status"] for r in bus.drain()] == ["dead_letter"]
        assert _statuses(engine) == ["dead_letter"]
        assert _rows(engine)[0]["completed"] is not None
        assert bus.drain() == []


class TestBacklog:
    def test_backlog_lists_undelivered_only(self, engine: Engine) -> None:
        bus = _bus(engine, Recorder(), Flaky(failures=10))
        bus.dispatch("post_assign", ASSIGN_PAYLOAD)
        bus.dispatch("post_remove", _remove("a", uid=7))

        with engine.connect() as conn:
            backlog = read_backlog(conn)
        assert [(e["hook_name"], e["uid"], e["status"]) for e in backlog] == [
            ("post_remove", 7, "failed")
        ]

    def test_backlog_filters_by_domain(self, engine: Engine) -> None:
        bus = _bus(engine, Flaky(failures=10))
        bus.dispatch("post_remove", _remove("a"))
        bus.dispatch("post_remove", _remove("b"))

        with engine.connect() as conn:
            assert [e["domain_id"] for e in read_backlog(conn, domain_id="a")] == ["a"]
            assert read_backlog(conn, domain_id="c") == []


class TestAsyncDispatch:
    def test_shutdown_waits_for_workers(self, engine: Engine) -> None:
        recorder = Recorder()
        bus = _bus(engine, recorder, sync=False)
        for _ in range(5):
            bus.dispatch("post_assign", ASSIGN_PAYLOAD)
        bus.shutdown()
        assert len(recorder.assigned) == 5
        assert _statuses(engine) == ["completed"] * 5
