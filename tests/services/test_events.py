"""Tests for EventService — event backlog and replay."""

from __future__ import annotations

import pluggy
import pytest

from domainpool.infrastructure.pool import Pool
from domainpool.plugins.event_bus import EventBus
from domainpool.plugins.manager import PluginManager
from domainpool.services.allocation import AllocationService
from domainpool.services.events import EventService
from tests.conftest import add_domain

hookimpl = pluggy.HookimplMarker("domainpool")


class CertIssuer:
    """Fails until ``healthy`` is set."""

    def __init__(self) -> None:
        self.healthy = False
        self.issued: list[str] = []

    @hookimpl
    def post_assign(self, uid: int, domain_id: str, domain_name: str, assignment_id: int) -> None:
        if not self.healthy:
            raise RuntimeError("acme rate limited")
        self.issued.append(domain_name)


@pytest.fixture
def issuer(pool: Pool) -> CertIssuer:
    plugin = CertIssuer()
    pm = PluginManager()
    pm.register_plugin(plugin, name="certs")
    pool._event_bus = EventBus(pool.engine, pm, clock=pool.clock, sync=True, max_retries=2)
    return plugin


class TestBacklog:
    def test_empty(self, pool: Pool) -> None:
        result = EventService(pool).backlog()
        assert result.ok
        assert result.op == "event_backlog"
        assert result.data == {"count": 0, "items": [], "plugins": []}

    def test_failed_delivery_listed_with_subject(self, pool: Pool, issuer: CertIssuer) -> None:
        add_domain(pool, "a", "a.example")
        assert AllocationService(pool).assign(5, "a").ok

        result = EventService(pool).backlog()
        (item,) = result.data["items"]
        assert item["hook_name"] == "post_assign"
        assert (item["domain_id"], item["uid"]) == ("a", 5)
        assert item["status"] == "failed"
        assert item["error"] == "acme rate limited"
        assert result.data["plugins"] == [{"name": "certs", "hooks": ["post_assign"]}]

    def test_filter_by_domain_normalizes_id(self, pool: Pool, issuer: CertIssuer) -> None:
        add_domain(pool, "a-example", "a.example")
        add_domain(pool, "b")
        AllocationService(pool).assign(5, "a-example")
        AllocationService(pool).assign(6, "b")

        items = EventService(pool).backlog("A.Example").data["items"]
        assert [i["uid"] for i in items] == [5]


class TestReplay:
    def test_requires_event_bus(self, pool: Pool) -> None:
        result = EventService(pool).replay()
        assert result.error is not None
        assert result.error.code == "NO_EVENT_BUS"

    def test_replay_delivers_after_recovery(self, pool: Pool, issuer: CertIssuer) -> None:
        add_domain(pool, "a", "a.example")
        AllocationService(pool).assign(5, "a")
        issuer.healthy = True

        result = EventService(pool).replay()
        assert result.ok
        assert result.data["delivered"] == 1
        assert result.warnings == []
        assert issuer.issued == ["a.example"]
        assert EventService(pool).backlog().data["count"] == 0

    def test_still_failing_is_warning(self, pool: Pool, issuer: CertIssuer) -> None:
        add_domain(pool, "a")
        AllocationService(pool).assign(5, "a")

        result = EventService(pool).replay()
        assert result.ok
        assert result.data["delivered"] == 0
        assert result.warnings == ["post_assign event 2 is dead_letter"]

    def test_dead_letters_need_include_dead(self, pool: Pool, issuer: CertIssuer) -> None:
        add_domain(pool, "a", "a.example")
        AllocationService(pool).assign(5, "a")
        EventService(pool).replay()
        issuer.healthy = True

        assert EventService(pool).replay().data["count"] == 0

        result = EventService(pool).replay("a", include_dead=True)
        assert result.data["requeued"] == 1
        assert result.data["delivered"] == 1
        assert issuer.issued == ["a.example"]
