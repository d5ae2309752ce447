"""Rich/JSON output helpers.

The CLI renders a ServiceResult for humans (Rich tables and colors) or
for machines (``--json``). This module picks the mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from domainpool.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from domainpool.services.result import ServiceResult


def format_result(
    result: ServiceResult,
    *,
    json_output: bool = False,
    quiet: bool = False,
    verbose: bool = False,
) -> str:
    """Format a ServiceResult for display.

    JSON wins over quiet; quiet wins over the full Rich rendering.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    if quiet:
        return render_quiet(result)
    return render_result(result, verbose=verbose)
