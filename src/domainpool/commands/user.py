"""Command group: local user directory."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolGroup
from domainpool.commands.domain import WHEN
from domainpool.services.users import UserService

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext

_USER_EXAMPLES = """\
  domainpool user set 1 --admin
  domainpool user set 42 --premium --premium-until 2027-01-01
  domainpool user set 42 --no-premium
  domainpool user show 42"""


@click.group(cls=PoolGroup, examples=_USER_EXAMPLES)
@click.pass_obj
def user(app: AppContext) -> None:
    """Manage premium and admin flags in the local users table."""


@user.command("set", examples="  domainpool user set 42 --premium")
@click.argument("uid", type=click.IntRange(min=0))
@click.option("--premium/--no-premium", default=None, help="Premium subscription flag.")
@click.option("--premium-until", type=WHEN, default=None, help="Premium lapses at (ISO-8601).")
@click.option("--clear-premium-until", is_flag=True, help="Make premium open-ended.")
@click.option("--admin/--no-admin", default=None, help="Catalog administrator flag.")
@click.pass_obj
def set_cmd(
    app: AppContext,
    uid: int,
    premium: bool | None,
    premium_until: datetime | None,
    clear_premium_until: bool,
    admin: bool | None,
) -> None:
    """Create or update UID."""
    app.emit(
        UserService(app.pool).set_user(
            uid,
            premium=premium,
            premium_until=premium_until,
            clear_premium_until=clear_premium_until,
            admin=admin,
        )
    )


@user.command("show", examples="  domainpool user show 42")
@click.argument("uid", type=click.IntRange(min=0))
@click.pass_obj
def show(app: AppContext, uid: int) -> None:
    """Show the stored flags for UID."""
    app.emit(UserService(app.pool).get_user(uid))
