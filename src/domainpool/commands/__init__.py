"""Subcommand modules for domainpool.

Provides register_commands(), which imports command modules on demand to
keep ``domainpool --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from domainpool.commands.domain import domain
    from domainpool.commands.user import user

    cli.add_command(domain)
    cli.add_command(user)

    # --- Standalone commands ---
    from domainpool.commands.assign import assign
    from domainpool.commands.authorize import authorize
    from domainpool.commands.available import available
    from domainpool.commands.check import check
    from domainpool.commands.events import events
    from domainpool.commands.held import held
    from domainpool.commands.init_cmd import init_cmd
    from domainpool.commands.remove import remove
    from domainpool.commands.serve import serve
    from domainpool.commands.sweep import sweep
    from domainpool.commands.upgrade import upgrade

    cli.add_command(available)
    cli.add_command(held)
    cli.add_command(assign)
    cli.add_command(remove)
    cli.add_command(authorize)
    cli.add_command(sweep)
    cli.add_command(check)
    cli.add_command(events)
    cli.add_command(init_cmd)
    cli.add_command(upgrade)
    cli.add_command(serve)
