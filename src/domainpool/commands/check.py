"""Command: integrity checking and counter repair."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool check
  domainpool check --fix
  domainpool -v check --fix""",
)
@click.option("--fix", is_flag=True, help="Recount usage and drop orphan assignments.")
@click.pass_obj
def check(app: AppContext, fix: bool) -> None:
    """Check catalog/ledger consistency and optionally repair it."""
    from domainpool.services.check import CheckService

    svc = CheckService(app.pool)
    app.emit(svc.fix() if fix else svc.check())
