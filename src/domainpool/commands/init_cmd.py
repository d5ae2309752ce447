"""Command: pool initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from domainpool.commands._base import PoolCommand
from domainpool.config.discovery import CONFIG_FILENAME

if TYPE_CHECKING:
    from domainpool.commands._context import AppContext

_INIT_EXAMPLES = """\
  domainpool init
  domainpool init /srv/pool --name profiles
  domainpool init . --reclaim"""

_TOML_TEMPLATE = """\
# domainpool configuration. Only overrides belong here; see the
# section models in domainpool.config.models for every default.

[pool]
name = "{name}"

[expiry]
reclaim = {reclaim}
"""


@click.command("init", cls=PoolCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--name", default=None, help="Pool name (defaults to the directory name).")
@click.option("--reclaim", is_flag=True, help="Let the expiry sweep reclaim expired slots.")
@click.pass_obj
def init_cmd(app: AppContext, path: str, name: str | None, reclaim: bool) -> None:
    """Create a pool: config file, database, and migration stamp."""
    from domainpool.config.settings import DomainPoolSettings
    from domainpool.infrastructure.pool import Pool
    from domainpool.services.result import ServiceResult
    from domainpool.services.upgrade import UpgradeService

    root = Path(path).resolve()
    root.mkdir(parents=True, exist_ok=True)
    config_file = root / CONFIG_FILENAME
    created: list[str] = []
    if not config_file.exists():
        config_file.write_text(
            _TOML_TEMPLATE.format(
                name=name or root.name, reclaim="true" if reclaim else "false"
            ),
            encoding="utf-8",
        )
        created.append(CONFIG_FILENAME)

    settings = DomainPoolSettings.from_cli(
        config_path=str(config_file),
        root=root,
        json_output=app.settings.json_output,
        quiet=app.settings.quiet,
        verbose=app.settings.verbose,
    )
    pool = Pool(settings)
    try:
        stamped = UpgradeService(pool).stamp_current()
    finally:
        pool.close()
    if not stamped.ok:
        app.emit(stamped)
        return

    app.emit(
        ServiceResult(
            ok=True,
            op="init_pool",
            data={
                "root": str(root),
                "name": settings.pool.name,
                "db_url": settings.db_url,
                "revision": stamped.data.get("current"),
                "files_created": created,
            },
        )
    )
