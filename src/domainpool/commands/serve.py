"""serve — start the MCP server (requires domainpool[mcp] extra)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  # Start the MCP server (stdio transport, default)
  domainpool serve

  # Streamable HTTP on custom host/port
  domainpool serve --transport streamable-http --host 0.0.0.0 --port 9000""",
)
@click.option(
    "--transport",
    default="stdio",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol.",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.pass_obj
def serve(app: AppContext, transport: str, host: str, port: int) -> None:
    """Start the MCP server (requires domainpool[mcp] extra)."""
    from domainpool.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install domainpool[mcp]", err=True)
        raise SystemExit(1)

    server = create_server(settings=app.settings, host=host, port=port)
    server.run(transport=transport)
