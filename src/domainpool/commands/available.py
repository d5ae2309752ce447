"""Command: list domains a user can claim now."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand, uid_option

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool available --uid 42
  domainpool -q available --uid 42
  domainpool --json available --uid 42""",
)
@uid_option
@click.pass_obj
def available(app: AppContext, uid: int) -> None:
    """List unexpired, non-full domains the user may claim."""
    from domainpool.services.views import ViewService

    app.emit(ViewService(app.pool).list_available(uid))
