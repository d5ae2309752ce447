"""Pluggy hook specifications for domainpool lifecycle events.

Events fire after the owning transaction commits. This is where
infrastructure outside the engine (DNS records, certificates, cache
purges) reacts to allocation changes.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("domainpool")
hookimpl = pluggy.HookimplMarker("domainpool")


class DomainPoolHookSpec:
    """Hook specifications for the domainpool plugin system."""

    @hookspec
    def post_assign(self, uid: int, domain_id: str, domain_name: str, assignment_id: int) -> None:
        """Called after a user claims a domain."""

    @hookspec
    def post_remove(self, uid: int, domain_id: str, domain_name: str) -> None:
        """Called after a user releases a domain."""

    @hookspec
    def post_domain_create(self, domain: dict[str, Any]) -> None:
        """Called after an administrator adds a domain."""

    @hookspec
    def post_domain_delete(self, domain_id: str, assignments_removed: int) -> None:
        """Called after an administrator deletes a domain."""

    @hookspec
    def post_sweep(self, expired: list[str], reclaimed: int) -> None:
        """Called after an expiry sweep pass."""
