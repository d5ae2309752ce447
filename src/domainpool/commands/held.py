"""Command: list a user's domains with expiry flags."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand, uid_option

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool held --uid 42
  domainpool --json held --uid 42""",
)
@uid_option
@click.pass_obj
def held(app: AppContext, uid: int) -> None:
    """List the domains assigned to a user."""
    from domainpool.services.views import ViewService

    app.emit(ViewService(app.pool).list_assigned(uid))
