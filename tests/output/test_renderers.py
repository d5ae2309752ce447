"""Tests for Rich renderers and the output mode switch."""

from __future__ import annotations

import json
from typing import Any

from domainpool.output.formatters import format_result
from domainpool.output.renderers import render_quiet, render_result
from domainpool.services.result import ServiceResult


def _domain(**overrides: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "id": "haze-bio",
        "name": "haze.bio",
        "only_premium": False,
        "max_usage": 2,
        "current_usage": 1,
        "expires_at": "2027-01-01T00:00:00Z",
        "created_at": "2026-01-01T00:00:00Z",
        "updated_at": "2026-01-01T00:00:00Z",
    }
    base.update(overrides)
    return base


ASSIGNED = ServiceResult(
    ok=True,
    op="assign_domain",
    data={
        "assignment": {"id": 7, "uid": 42, "domain_id": "haze-bio"},
        "domain": _domain(current_usage=2),
    },
    meta={"telemetry": {"name": "AllocationService.assign", "duration_ms": 3.2, "children": []}},
)

DENIED = ServiceResult.failure(
    "assign_domain", "AT_CAPACITY", "At capacity", {"domain_id": "haze-bio"}
)


class TestRenderResult:
    def test_assign(self) -> None:
        out = render_result(ASSIGNED)
        assert out.splitlines()[0].split() == ["OK", "assign_domain"]
        assert "haze-bio" in out
        assert "2/2" in out
        assert "AllocationService.assign" not in out

    def test_verbose_shows_span_tree(self) -> None:
        out = render_result(ASSIGNED, verbose=True)
        assert "AllocationService.assign" in out
        assert "expires_at" in out

    def test_unlimited_usage(self) -> None:
        result = ServiceResult(
            ok=True, op="list_domains", data={"count": 1, "items": [_domain(max_usage=0)]}
        )
        out = render_result(result)
        assert "1/∞" in out
        assert "1 domains" in out

    def test_error(self) -> None:
        out = render_result(DENIED)
        assert "ERROR" in out
        assert "[AT_CAPACITY]" in out
        assert "At capacity" in out
        assert "detail" not in out
        assert "detail" in render_result(DENIED, verbose=True)

    def test_held_states(self) -> None:
        result = ServiceResult(
            ok=True,
            op="user_domains",
            data={
                "uid": 42,
                "count": 2,
                "quota": 2,
                "items": [
                    {
                        "assignment": {"assigned_at": "2026-01-01T00:00:00Z"},
                        "domain": _domain(),
                        "is_expiring": True,
                        "is_expired": False,
                    },
                    {
                        "assignment": {"assigned_at": "2026-01-02T00:00:00Z"},
                        "domain": _domain(id="cute-lol", name="cute.lol"),
                        "is_expiring": False,
                        "is_expired": True,
                    },
                ],
            },
        )
        out = render_result(result)
        assert "expiring soon" in out
        assert "expired" in out
        assert "2 of 2 domains held" in out

    def test_check_groups_by_category(self) -> None:
        result = ServiceResult(
            ok=True,
            op="check",
            data={
                "count": 2,
                "issues": [
                    {"category": "counters", "severity": "error", "domain_id": "a",
                     "message": "usage drift"},
                    {"category": "expiry", "severity": "warning", "domain_id": "b",
                     "message": "expired domain still has 1 assignments"},
                ],
            },
        )
        out = render_result(result)
        assert "counters" in out
        assert "[a]: usage drift" in out
        assert "1 errors, 1 warnings" in out

    def test_clean_check(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"count": 0, "issues": []})
        assert "No issues found." in render_result(result)

    def test_generic_fallback(self) -> None:
        result = ServiceResult(ok=True, op="set_user", data={"uid": 42, "tags": ["a"]})
        out = render_result(result)
        assert out.splitlines()[0].split() == ["OK", "set_user"]
        assert "tags:" in out
        assert '["a"]' in out


class TestRenderQuiet:
    def test_ids_for_lists(self) -> None:
        result = ServiceResult(
            ok=True,
            op="available_domains",
            data={"items": [_domain(), _domain(id="cute-lol")]},
        )
        assert render_quiet(result) == "haze-bio\ncute-lol"

    def test_nested_domain_ids(self) -> None:
        result = ServiceResult(
            ok=True, op="user_domains", data={"items": [{"domain": _domain()}]}
        )
        assert render_quiet(result) == "haze-bio"

    def test_status_word(self) -> None:
        assert render_quiet(ASSIGNED) == "OK: assign_domain"
        assert render_quiet(DENIED) == "ERROR: assign_domain — At capacity"


class TestFormatResult:
    def test_json_wins(self) -> None:
        out = format_result(DENIED, json_output=True, quiet=True)
        data = json.loads(out)
        assert data["ok"] is False
        assert data["error"]["code"] == "AT_CAPACITY"
        assert data["error"]["detail"] == {"domain_id": "haze-bio"}

    def test_quiet_over_rich(self) -> None:
        assert format_result(ASSIGNED, quiet=True) == "OK: assign_domain"
