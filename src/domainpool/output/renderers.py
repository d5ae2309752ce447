"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from domainpool.output.console import create_console, get_output, usage_style

if TYPE_CHECKING:
    from rich.console import Console

    from domainpool.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: domain ids for lists, else a status word."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(i for i in (_extract_id(item) for item in items) if i)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    if "domain" in item and isinstance(item["domain"], dict):
        return str(item["domain"].get("id", ""))
    for key in ("id", "domain_id"):
        if item.get(key) is not None:
            return str(item[key])
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="pool.ok"), Text(f"  {result.op}", style="pool.op"), end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="pool.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="pool.id")
    elif key == "name":
        v = Text(str(value), style="pool.name")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _usage(domain: dict[str, Any]) -> Text:
    current = int(domain.get("current_usage", 0))
    max_usage = int(domain.get("max_usage", 0))
    label = f"{current}/{max_usage}" if max_usage else f"{current}/∞"
    return Text(label, style=usage_style(current, max_usage))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including the telemetry span tree (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {span_data.get('name', '?')}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _domain_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="pool.id", no_wrap=True)
    table.add_column("Name", style="pool.name")
    table.add_column("Usage", justify="right")
    table.add_column("Premium")
    table.add_column("Expires")
    if verbose:
        table.add_column("Updated", style="dim")

    for d in items:
        row: list[Any] = [
            str(d.get("id", "")),
            str(d.get("name", "")),
            _usage(d),
            Text("premium", style="pool.premium") if d.get("only_premium") else "",
            str(d.get("expires_at", "")),
        ]
        if verbose:
            row.append(str(d.get("updated_at", "")))
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="pool.error"), Text(f"  {result.op}{code}", style="pool.op"), " — ", msg
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Allocation renderers ──────────────────────────────────────────────


def _render_assign(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    assignment = result.data.get("assignment", {})
    domain = result.data.get("domain", {})
    _field(console, "domain_id", domain.get("id", ""))
    _field(console, "name", domain.get("name", ""))
    _field(console, "uid", assignment.get("uid", ""))
    _field(console, "assignment_id", assignment.get("id", ""))
    console.print(Text("  usage: ", style="pool.key"), _usage(domain), end="")
    console.print()
    if verbose:
        _field(console, "expires_at", domain.get("expires_at", ""))
        _render_meta(console, result)


def _render_remove(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    domain = result.data.get("domain", {})
    _field(console, "domain_id", result.data.get("domain_id", ""))
    _field(console, "uid", result.data.get("uid", ""))
    console.print(Text("  usage: ", style="pool.key"), _usage(domain), end="")
    console.print()
    if verbose:
        _render_meta(console, result)


# ── View renderers ────────────────────────────────────────────────────


def _render_domain_list(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    items = result.data.get("items", [])
    if items:
        console.print(_domain_table(items, verbose=verbose))
    console.print(f"\n{result.data.get('count', len(items))} domains")
    if verbose:
        _render_meta(console, result)


def _render_held(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    if items:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("ID", style="pool.id", no_wrap=True)
        table.add_column("Name", style="pool.name")
        table.add_column("Assigned")
        table.add_column("Expires")
        table.add_column("State")
        for item in items:
            domain = item["domain"]
            if item.get("is_expired"):
                state = Text("expired", style="pool.expired")
            elif item.get("is_expiring"):
                state = Text("expiring soon", style="pool.expiring")
            else:
                state = Text("active", style="pool.ok")
            table.add_row(
                str(domain.get("id", "")),
                str(domain.get("name", "")),
                str(item["assignment"].get("assigned_at", "")),
                str(domain.get("expires_at", "")),
                state,
            )
        console.print(table)
    count = result.data.get("count", len(items))
    quota = result.data.get("quota")
    console.print(f"\n{count} of {quota} domains held" if quota is not None else f"\n{count} held")
    if verbose:
        _render_meta(console, result)


def _render_authorize(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("domain_id", "name", "uid"):
        _field(console, key, d.get(key, ""))
    style = "pool.ok" if d.get("authorized") else "pool.error"
    console.print(
        Text("  authorized: ", style="pool.key"), Text(str(d.get("authorized")), style=style), end=""
    )
    console.print()


# ── Catalog renderers ─────────────────────────────────────────────────


def _render_domain(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("id", "name", "only_premium", "max_usage", "current_usage", "expires_at"):
        if key in d:
            _field(console, key, d[key])
    for key in ("previous_expires_at", "fields_changed", "assignments_removed"):
        if key in d:
            _field(console, key, d[key])
    if verbose:
        for key in ("created_at", "updated_at"):
            if key in d:
                _field(console, key, d[key])
        _render_meta(console, result)


def _render_domain_assignments(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    domain = result.data.get("domain", {})
    console.print(_domain_table([domain], verbose=verbose))
    assignments = result.data.get("assignments", [])
    if assignments:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Assignment", style="pool.id", justify="right")
        table.add_column("UID", justify="right")
        table.add_column("Assigned")
        for a in assignments:
            table.add_row(str(a.get("id", "")), str(a.get("uid", "")), str(a.get("assigned_at", "")))
        console.print(table)
    console.print(f"\n{result.data.get('count', len(assignments))} assignments")


# ── Maintenance renderers ─────────────────────────────────────────────


def _render_sweep(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "expired", d.get("count", 0))
    _field(console, "reclaim", d.get("reclaim", False))
    _field(console, "reclaimed", d.get("reclaimed", 0))
    items = d.get("items", [])
    if items:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("ID", style="pool.id", no_wrap=True)
        table.add_column("Name", style="pool.name")
        table.add_column("Expired At", style="pool.expired")
        table.add_column("Assignments", justify="right")
        for item in items:
            table.add_row(
                str(item.get("domain_id", "")),
                str(item.get("name", "")),
                str(item.get("expires_at", "")),
                str(item.get("assignments", 0)),
            )
        console.print(table)
    if verbose:
        _render_meta(console, result)


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    count = result.data.get("count", len(issues))

    if count == 0:
        console.print("[pool.ok]OK[/pool.ok]  No issues found.")
        return

    severity_styles = {"error": "pool.error", "warning": "pool.warning"}
    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(str(issue.get("category", "unknown")), []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            style = severity_styles.get(sev, "")
            prefix = f"[{style}]{sev}[/{style}]" if style else sev
            domain_id = issue.get("domain_id")
            did = f" \\[{domain_id}]" if domain_id else ""
            console.print(f"  {prefix}{did}: {issue.get('message', '')}")
            if verbose and issue.get("fix_action"):
                console.print(f"    fix: {issue['fix_action']}")

    errors = sum(1 for i in issues if i.get("severity") == "error")
    console.print(f"\n{errors} errors, {count - errors} warnings")


def _render_fix(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    fixes = result.data.get("fixes", [])
    _field(console, "fixes_applied", result.data.get("count", len(fixes)))
    if "backup_path" in result.data:
        _field(console, "backup_path", result.data["backup_path"])
    if verbose:
        for fix in fixes:
            console.print(f"  - {fix}")


def _render_upgrade(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("applied_count", "pending_count", "current", "head", "backup_path", "message"):
        if key in d:
            _field(console, key, d[key])
    if verbose and d.get("pending"):
        console.print()
        for p in d["pending"]:
            console.print(f"  {p['revision']}: {p['description']}")


_EVENT_STATUS_STYLES = {
    "pending": "pool.key",
    "completed": "pool.ok",
    "failed": "pool.warning",
    "dead_letter": "pool.error",
}


def _event_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", justify="right", no_wrap=True)
    table.add_column("Hook", style="pool.op")
    table.add_column("Domain", style="pool.id")
    table.add_column("UID", justify="right")
    table.add_column("Status")
    if verbose:
        table.add_column("Retries", justify="right")
        table.add_column("Error")
    for item in items:
        status = str(item.get("status", ""))
        row = [
            str(item.get("id", "")),
            str(item.get("hook_name", "")),
            str(item.get("domain_id") or "-"),
            str(item.get("uid") or "-"),
            Text(status, style=_EVENT_STATUS_STYLES.get(status, "")),
        ]
        if verbose:
            row += [str(item.get("retries", 0)), str(item.get("error") or "")]
        table.add_row(*row)
    return table


def _render_event_backlog(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _status_line(console, result)
    items = result.data.get("items", [])
    plugins = result.data.get("plugins", [])
    _field(console, "plugins", ", ".join(p["name"] for p in plugins) or "none")
    if items:
        console.print(_event_table(items, verbose=verbose))
    console.print(f"\n{result.data.get('count', len(items))} undelivered events")
    if verbose:
        _render_meta(console, result)


def _render_event_replay(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("count", "delivered", "requeued"):
        _field(console, key, d.get(key, 0))
    if d.get("items"):
        console.print(_event_table(d["items"]))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "assign_domain": _render_assign,
    "remove_domain": _render_remove,
    "available_domains": _render_domain_list,
    "list_domains": _render_domain_list,
    "user_domains": _render_held,
    "authorize_domain": _render_authorize,
    "add_domain": _render_domain,
    "get_domain": _render_domain,
    "update_domain": _render_domain,
    "renew_domain": _render_domain,
    "delete_domain": _render_domain,
    "domain_assignments": _render_domain_assignments,
    "expiry_sweep": _render_sweep,
    "check": _render_check,
    "fix": _render_fix,
    "event_backlog": _render_event_backlog,
    "event_replay": _render_event_replay,
    "upgrade": _render_upgrade,
}
