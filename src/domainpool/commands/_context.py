"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. The pool is opened lazily so ``--help`` and
``--version`` never touch the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from domainpool.config.logging import configure_logging
from domainpool.output.formatters import format_result
from domainpool.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from domainpool.config.settings import DomainPoolSettings
    from domainpool.infrastructure.pool import Pool
    from domainpool.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: DomainPoolSettings) -> None:
        self.settings = settings
        self._pool: Pool | None = None

        configure_logging(
            verbose=settings.verbose,
            quiet=settings.quiet,
            log_json=settings.log_json,
            pool_name=settings.pool.name,
        )
        if settings.verbose:
            enable_telemetry()

    @property
    def pool(self) -> Pool:
        """The pool instance (created lazily on first access)."""
        if self._pool is None:
            from domainpool.infrastructure.pool import Pool

            self._pool = Pool(self.settings)
            self._pool.init_event_bus(sync=self.settings.sync)
        return self._pool

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr unless in JSON mode.
        * Failure: stderr and exit code 1.
        """
        output = format_result(
            result,
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            self.close()
            raise SystemExit(1)
