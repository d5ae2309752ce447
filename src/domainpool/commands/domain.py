"""Command group: catalog administration."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolGroup, actor_option
from domainpool.services._helpers import parse_when
from domainpool.services.catalog import CatalogService

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext

_DOMAIN_EXAMPLES = """\
  domainpool domain add haze.bio haze.bio --as 1 --max-usage 50
  domainpool domain add vip.gg vip.gg --as 1 --premium --expires 2027-06-01
  domainpool domain list
  domainpool domain show haze-bio
  domainpool domain update haze-bio --as 1 --max-usage 100
  domainpool domain renew haze-bio --as 1 --days 365
  domainpool domain assignments haze-bio
  domainpool domain delete haze-bio --as 1 --yes"""


class _When(click.ParamType):
    """ISO-8601 date or datetime, naive values taken as UTC."""

    name = "datetime"

    def convert(
        self, value: object, param: click.Parameter | None, ctx: click.Context | None
    ) -> datetime:
        if isinstance(value, datetime):
            return value
        try:
            return parse_when(str(value))
        except ValueError:
            self.fail(f"{value!r} is not an ISO-8601 date or datetime", param, ctx)


WHEN = _When()


@click.group(cls=PoolGroup, examples=_DOMAIN_EXAMPLES)
@click.pass_obj
def domain(app: AppContext) -> None:
    """Create, inspect, and administer domains."""


@domain.command(
    "add",
    examples="""\
  domainpool domain add haze.bio haze.bio --as 1
  domainpool domain add cute cute.lol --as 1 --max-usage 10 --premium""",
)
@click.argument("domain_id")
@click.argument("name")
@actor_option
@click.option("--premium", "only_premium", is_flag=True, help="Premium users only.")
@click.option(
    "--max-usage", type=click.IntRange(min=0), default=0, help="Capacity; 0 means unlimited."
)
@click.option("--expires", "expires_at", type=WHEN, default=None, help="Expiry (ISO-8601).")
@click.pass_obj
def add(
    app: AppContext,
    domain_id: str,
    name: str,
    actor: int,
    only_premium: bool,
    max_usage: int,
    expires_at: datetime | None,
) -> None:
    """Add DOMAIN_ID (served as NAME) to the pool."""
    svc = CatalogService(app.pool)
    app.emit(
        svc.create_domain(
            actor,
            domain_id,
            name,
            only_premium=only_premium,
            max_usage=max_usage,
            expires_at=expires_at,
        )
    )


@domain.command("show", examples="  domainpool domain show haze-bio")
@click.argument("domain_id")
@click.pass_obj
def show(app: AppContext, domain_id: str) -> None:
    """Show one domain."""
    app.emit(CatalogService(app.pool).get_domain(domain_id))


@domain.command("list", examples="  domainpool domain list\n  domainpool -q domain list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every domain, including expired and full ones."""
    app.emit(CatalogService(app.pool).list_domains())


@domain.command("assignments", examples="  domainpool domain assignments haze-bio")
@click.argument("domain_id")
@click.pass_obj
def assignments(app: AppContext, domain_id: str) -> None:
    """Show a domain with every user holding it."""
    app.emit(CatalogService(app.pool).domain_assignments(domain_id))


@domain.command(
    "update",
    examples="""\
  domainpool domain update haze-bio --as 1 --max-usage 100
  domainpool domain update haze-bio --as 1 --no-premium --expires 2028-01-01""",
)
@click.argument("domain_id")
@actor_option
@click.option("--name", default=None, help="New DNS name.")
@click.option("--premium/--no-premium", "only_premium", default=None, help="Premium-only flag.")
@click.option("--max-usage", type=click.IntRange(min=0), default=None, help="New capacity.")
@click.option("--expires", "expires_at", type=WHEN, default=None, help="New expiry (ISO-8601).")
@click.pass_obj
def update(
    app: AppContext,
    domain_id: str,
    actor: int,
    name: str | None,
    only_premium: bool | None,
    max_usage: int | None,
    expires_at: datetime | None,
) -> None:
    """Change a domain's name, premium flag, capacity, or expiry."""
    svc = CatalogService(app.pool)
    app.emit(
        svc.update_domain(
            actor,
            domain_id,
            name=name,
            only_premium=only_premium,
            max_usage=max_usage,
            expires_at=expires_at,
        )
    )


@domain.command("renew", examples="  domainpool domain renew haze-bio --as 1 --days 365")
@click.argument("domain_id")
@actor_option
@click.option("--days", type=click.IntRange(min=1), default=365, show_default=True)
@click.pass_obj
def renew(app: AppContext, domain_id: str, actor: int, days: int) -> None:
    """Extend a domain's expiry."""
    app.emit(CatalogService(app.pool).renew_domain(actor, domain_id, days))


@domain.command("delete", examples="  domainpool domain delete haze-bio --as 1 --yes")
@click.argument("domain_id")
@actor_option
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_obj
def delete(app: AppContext, domain_id: str, actor: int, yes: bool) -> None:
    """Delete a domain and all of its assignments."""
    if not yes:
        click.confirm(
            f"Delete {domain_id} and every assignment on it?", abort=True, err=True
        )
    app.emit(CatalogService(app.pool).delete_domain(actor, domain_id))
