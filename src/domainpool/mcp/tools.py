"""MCP tool definitions.

Each tool has a ``<name>_impl`` function testable without the mcp
package; ``register_tools()`` wraps them with FastMCP decorators.
"""

from __future__ import annotations

from typing import Any

from domainpool.services._helpers import parse_when
from domainpool.services.allocation import AllocationService
from domainpool.services.catalog import CatalogService
from domainpool.services.result import ServiceResult
from domainpool.services.views import ViewService


def _to_mcp_response(result: ServiceResult) -> dict[str, Any]:
    """Convert a ServiceResult to an MCP-friendly dict."""
    response: dict[str, Any] = {
        "ok": result.ok,
        "op": result.op,
        "data": result.data,
    }
    if result.warnings:
        response["warnings"] = result.warnings
    if result.error is not None:
        response["error"] = {
            "code": result.error.code,
            "message": result.error.message,
        }
    return response


def available_domains_impl(pool: Any, uid: int) -> dict[str, Any]:
    return _to_mcp_response(ViewService(pool).list_available(uid))


def user_domains_impl(pool: Any, uid: int) -> dict[str, Any]:
    return _to_mcp_response(ViewService(pool).list_assigned(uid))


def assign_domain_impl(pool: Any, uid: int, domain_id: str) -> dict[str, Any]:
    return _to_mcp_response(AllocationService(pool).assign(uid, domain_id))


def remove_domain_impl(pool: Any, uid: int, domain_id: str) -> dict[str, Any]:
    return _to_mcp_response(AllocationService(pool).remove(uid, domain_id))


def add_domain_impl(
    pool: Any,
    actor: int,
    domain_id: str,
    name: str,
    *,
    only_premium: bool = False,
    max_usage: int = 0,
    expires_at: str | None = None,
) -> dict[str, Any]:
    """Admin-only domain creation; *expires_at* is ISO-8601 text."""
    if expires_at is not None:
        try:
            when = parse_when(expires_at)
        except ValueError:
            return _to_mcp_response(
                ServiceResult.failure(
                    "add_domain",
                    "INVALID_INPUT",
                    f"expires_at is not ISO-8601: {expires_at}",
                )
            )
    else:
        when = None
    result = CatalogService(pool).create_domain(
        actor,
        domain_id,
        name,
        only_premium=only_premium,
        max_usage=max_usage,
        expires_at=when,
    )
    return _to_mcp_response(result)


def register_tools(server: Any, pool: Any) -> None:
    """Register the allocation tools on the FastMCP server."""

    @server.tool()  # type: ignore[untyped-decorator]
    def available_domains(uid: int) -> dict[str, Any]:
        """List domains the user can claim right now."""
        return available_domains_impl(pool, uid)

    @server.tool()  # type: ignore[untyped-decorator]
    def user_domains(uid: int) -> dict[str, Any]:
        """List the user's domains with expiring/expired flags."""
        return user_domains_impl(pool, uid)

    @server.tool()  # type: ignore[untyped-decorator]
    def assign_domain(uid: int, domain_id: str) -> dict[str, Any]:
        """Claim a domain for the user."""
        return assign_domain_impl(pool, uid, domain_id)

    @server.tool()  # type: ignore[untyped-decorator]
    def remove_domain(uid: int, domain_id: str) -> dict[str, Any]:
        """Release the user's claim on a domain."""
        return remove_domain_impl(pool, uid, domain_id)

    @server.tool()  # type: ignore[untyped-decorator]
    def add_domain(
        actor: int,
        domain_id: str,
        name: str,
        only_premium: bool = False,
        max_usage: int = 0,
        expires_at: str | None = None,
    ) -> dict[str, Any]:
        """Add a domain to the pool (admin only)."""
        return add_domain_impl(
            pool,
            actor,
            domain_id,
            name,
            only_premium=only_premium,
            max_usage=max_usage,
            expires_at=expires_at,
        )
