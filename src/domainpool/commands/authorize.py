"""Command: check whether a user may publish on a domain."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand, uid_option

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool authorize haze.bio --uid 42
  domainpool --json authorize haze.bio --uid 42""",
)
@click.argument("name")
@uid_option
@click.option(
    "--strict",
    is_flag=True,
    help="Exit with code 1 when the user holds no assignment on the domain.",
)
@click.pass_obj
def authorize(app: AppContext, name: str, uid: int, strict: bool) -> None:
    """Report whether a user holds the domain called NAME."""
    from domainpool.services.views import ViewService

    result = ViewService(app.pool).authorize(name, uid)
    app.emit(result)
    if strict and not result.data.get("authorized"):
        raise SystemExit(1)
