"""Command: lifecycle event backlog and replay."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool events
  domainpool events --domain haze-bio
  domainpool events --replay
  domainpool events --replay --dead""",
)
@click.option("--domain", "domain_id", default=None, help="Only events about this domain.")
@click.option("--replay", is_flag=True, help="Deliver pending and failed events again.")
@click.option(
    "--dead", "include_dead", is_flag=True, help="With --replay, retry dead-lettered events too."
)
@click.pass_obj
def events(app: AppContext, domain_id: str | None, replay: bool, include_dead: bool) -> None:
    """Show undelivered plugin events, or replay them."""
    from domainpool.services.events import EventService

    if include_dead and not replay:
        raise click.UsageError("--dead requires --replay")
    svc = EventService(app.pool)
    if replay:
        app.emit(svc.replay(domain_id, include_dead=include_dead))
    else:
        app.emit(svc.backlog(domain_id))
