"""FastMCP server setup.

Optional extra: the ``mcp`` import is guarded so the core package works
without it. Transport: stdio by default, streamable HTTP or SSE optional.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from domainpool.config.settings import DomainPoolSettings

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

__all__ = ["create_server", "mcp_available"]


def create_server(
    *,
    settings: DomainPoolSettings | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Create the MCP server with every allocation tool registered.

    Without *settings* the pool is discovered from the working directory.
    Raises RuntimeError if the mcp extra is not installed.
    """
    if not mcp_available or _FastMCP is None:
        msg = "MCP extra not installed. Install with: pip install domainpool[mcp]"
        raise RuntimeError(msg)

    from domainpool.config.settings import DomainPoolSettings
    from domainpool.infrastructure.pool import Pool
    from domainpool.mcp.tools import register_tools

    settings = settings or DomainPoolSettings.from_cli()
    pool = Pool(settings)
    pool.init_event_bus(sync=settings.sync)

    server = _FastMCP(settings.pool.name, host=host, port=port)
    register_tools(server, pool)
    return server
