"""Rich Console factory and theme for domainpool output.

Consoles render to a StringIO buffer so renderers stay pure
``ServiceResult -> str`` functions. In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

POOL_THEME = Theme(
    {
        "pool.ok": "bold green",
        "pool.error": "bold red",
        "pool.warning": "bold yellow",
        "pool.op": "bold cyan",
        "pool.key": "dim",
        "pool.id": "bold blue",
        "pool.name": "bold",
        "pool.premium": "magenta",
        "pool.expiring": "yellow",
        "pool.expired": "red",
        "pool.full": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=POOL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def usage_style(current: int, max_usage: int) -> str:
    """Style for a usage cell: red once a capped domain is full."""
    if max_usage and current >= max_usage:
        return "pool.full"
    return ""
