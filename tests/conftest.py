"""Shared pytest fixtures and test helpers for domainpool tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pluggy
import pytest
from click.testing import CliRunner

from domainpool.config.settings import DomainPoolSettings
from domainpool.infrastructure.clock import FixedClock
from domainpool.infrastructure.pool import Pool
from domainpool.infrastructure.users import StaticUserDirectory
from domainpool.plugins.event_bus import EventBus
from domainpool.plugins.manager import PluginManager

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
ADMIN = 1

hookimpl = pluggy.HookimplMarker("domainpool")


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def directory() -> StaticUserDirectory:
    """In-memory user directory where uid 1 is an admin and nobody is premium."""
    return StaticUserDirectory(admins={ADMIN})


@pytest.fixture
def settings(tmp_path: Path) -> DomainPoolSettings:
    return DomainPoolSettings.from_cli(root=tmp_path)


@pytest.fixture
def pool(
    settings: DomainPoolSettings, clock: FixedClock, directory: StaticUserDirectory
) -> Iterator[Pool]:
    """File-backed SQLite pool on a temp directory with a pinned clock.

    In-memory SQLite gives each connection its own database, so every
    test pool lives on disk under ``tmp_path``.
    """
    p = Pool(settings, clock=clock, users=directory)
    try:
        yield p
    finally:
        p.close()


@pytest.fixture
def _isolated_pool(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated pool.

    Use via ``@pytest.mark.usefixtures("_isolated_pool")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DOMAINPOOL_CONFIG", raising=False)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def add_domain(
    pool: Pool,
    domain_id: str,
    name: str | None = None,
    *,
    only_premium: bool = False,
    max_usage: int = 0,
    expires_in: timedelta = timedelta(days=365),
    expires_at: datetime | None = None,
) -> dict[str, Any]:
    """Create a domain via CatalogService as the admin, asserting success."""
    from domainpool.services.catalog import CatalogService

    result = CatalogService(pool).create_domain(
        ADMIN,
        domain_id,
        name or f"{domain_id}.example",
        only_premium=only_premium,
        max_usage=max_usage,
        expires_at=expires_at or pool.clock.now() + expires_in,
    )
    assert result.ok, result.error
    return result.data


def assign(pool: Pool, uid: int, domain_id: str) -> dict[str, Any]:
    """Assign via AllocationService, asserting success."""
    from domainpool.services.allocation import AllocationService

    result = AllocationService(pool).assign(uid, domain_id)
    assert result.ok, result.error
    return result.data


class RecordingPlugin:
    """Plugin that records every lifecycle hook call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @hookimpl
    def post_assign(self, uid: int, domain_id: str, domain_name: str, assignment_id: int) -> None:
        self.calls.append(
            (
                "post_assign",
                {
                    "uid": uid,
                    "domain_id": domain_id,
                    "domain_name": domain_name,
                    "assignment_id": assignment_id,
                },
            )
        )

    @hookimpl
    def post_remove(self, uid: int, domain_id: str, domain_name: str) -> None:
        self.calls.append(
            ("post_remove", {"uid": uid, "domain_id": domain_id, "domain_name": domain_name})
        )

    @hookimpl
    def post_domain_create(self, domain: dict[str, Any]) -> None:
        self.calls.append(("post_domain_create", {"domain": domain}))

    @hookimpl
    def post_domain_delete(self, domain_id: str, assignments_removed: int) -> None:
        self.calls.append(
            (
                "post_domain_delete",
                {"domain_id": domain_id, "assignments_removed": assignments_removed},
            )
        )

    @hookimpl
    def post_sweep(self, expired: list[str], reclaimed: int) -> None:
        self.calls.append(("post_sweep", {"expired": expired, "reclaimed": reclaimed}))

    def hooks(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def recorder(pool: Pool) -> RecordingPlugin:
    """Attach a sync event bus with a RecordingPlugin to the pool."""
    plugin = RecordingPlugin()
    pm = PluginManager()
    pm.register_plugin(plugin, name="recorder")
    pool._event_bus = EventBus(pool.engine, pm, clock=pool.clock, sync=True)
    return plugin
