"""Command: expiry sweep, once or on an interval."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool sweep
  domainpool sweep --reclaim
  domainpool sweep --every 3600
  domainpool sweep --every 60 --iterations 5""",
)
@click.option(
    "--reclaim/--no-reclaim",
    default=None,
    help="Delete assignments on expired domains (overrides [expiry] reclaim).",
)
@click.option(
    "--every",
    "interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Repeat every N seconds instead of running once.",
)
@click.option(
    "--iterations", type=click.IntRange(min=1), default=None, help="Stop after N sweeps."
)
@click.pass_obj
def sweep(
    app: AppContext, reclaim: bool | None, interval: float | None, iterations: int | None
) -> None:
    """Find expired domains and optionally reclaim their slots."""
    from domainpool.services.expiry import ExpiryService

    svc = ExpiryService(app.pool)
    if interval is None and iterations is None:
        app.emit(svc.sweep(reclaim=reclaim))
        return

    svc.run_periodic(interval, iterations=iterations, reclaim=reclaim, on_result=app.emit)
