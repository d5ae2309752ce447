"""Command: release a user's domain."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand, uid_option

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool remove haze-bio --uid 42
  domainpool -q remove haze-bio --uid 42""",
)
@click.argument("domain_id")
@uid_option
@click.pass_obj
def remove(app: AppContext, domain_id: str, uid: int) -> None:
    """Remove a user's assignment to DOMAIN_ID."""
    from domainpool.services.allocation import AllocationService

    app.emit(AllocationService(app.pool).remove(uid, domain_id))
