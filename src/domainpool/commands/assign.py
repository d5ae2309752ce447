"""Command: claim a domain for a user."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand, uid_option

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool assign haze-bio --uid 42
  domainpool assign haze.bio --uid 42
  domainpool --json assign cute-domain --uid 7""",
)
@click.argument("domain_id")
@uid_option
@click.pass_obj
def assign(app: AppContext, domain_id: str, uid: int) -> None:
    """Assign DOMAIN_ID to a user."""
    from domainpool.services.allocation import AllocationService

    app.emit(AllocationService(app.pool).assign(uid, domain_id))
