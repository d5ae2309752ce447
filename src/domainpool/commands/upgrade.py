"""Command: database schema migration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext


@click.command(
    cls=PoolCommand,
    examples="""\
  domainpool upgrade
  domainpool upgrade --check
  domainpool --json upgrade --check""",
)
@click.option(
    "--check", "check_only", is_flag=True, help="Show pending migrations without applying."
)
@click.pass_obj
def upgrade(app: AppContext, check_only: bool) -> None:
    """Run pending database migrations."""
    from domainpool.services.upgrade import UpgradeService

    svc = UpgradeService(app.pool)
    app.emit(svc.check_pending() if check_only else svc.apply())
