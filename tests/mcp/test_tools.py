"""Tests for the MCP tool implementations (no mcp package needed)."""

from __future__ import annotations

import pytest

from domainpool.infrastructure.pool import Pool
from domainpool.mcp.server import create_server, mcp_available
from domainpool.mcp.tools import (
    add_domain_impl,
    assign_domain_impl,
    available_domains_impl,
    remove_domain_impl,
    user_domains_impl,
)
from tests.conftest import ADMIN, add_domain


class TestAllocationTools:
    def test_assign_and_list(self, pool: Pool) -> None:
        add_domain(pool, "haze-bio", "haze.bio", max_usage=1)

        assert [d["id"] for d in available_domains_impl(pool, 42)["data"]["items"]] == [
            "haze-bio"
        ]

        response = assign_domain_impl(pool, 42, "haze.bio")
        assert response["ok"] is True
        assert response["op"] == "assign_domain"
        assert "error" not in response

        held = user_domains_impl(pool, 42)["data"]
        assert held["count"] == 1
        assert held["items"][0]["domain"]["id"] == "haze-bio"
        assert available_domains_impl(pool, 43)["data"]["items"] == []

    def test_denial_shape(self, pool: Pool) -> None:
        add_domain(pool, "haze-bio", max_usage=1)
        assign_domain_impl(pool, 42, "haze-bio")
        response = assign_domain_impl(pool, 43, "haze-bio")
        assert response["ok"] is False
        assert response["error"] == {"code": "AT_CAPACITY", "message": "At capacity"}

    def test_remove(self, pool: Pool) -> None:
        add_domain(pool, "haze-bio")
        assign_domain_impl(pool, 42, "haze-bio")
        assert remove_domain_impl(pool, 42, "haze-bio")["ok"] is True
        again = remove_domain_impl(pool, 42, "haze-bio")
        assert again["error"]["code"] == "NOT_FOUND"


class TestAddDomainTool:
    def test_admin_adds(self, pool: Pool) -> None:
        response = add_domain_impl(
            pool, ADMIN, "vip.gg", "vip.gg", only_premium=True, expires_at="2099-01-01"
        )
        assert response["ok"] is True
        assert response["data"]["id"] == "vip-gg"
        assert response["data"]["only_premium"] is True

    def test_bad_date(self, pool: Pool) -> None:
        response = add_domain_impl(pool, ADMIN, "vip.gg", "vip.gg", expires_at="next week")
        assert response["ok"] is False
        assert response["error"]["code"] == "INVALID_INPUT"

    def test_non_admin(self, pool: Pool) -> None:
        response = add_domain_impl(pool, 999, "vip.gg", "vip.gg")
        assert response["error"]["code"] == "FORBIDDEN"


class TestServer:
    @pytest.mark.skipif(mcp_available, reason="mcp extra installed")
    def test_create_server_without_extra(self) -> None:
        with pytest.raises(RuntimeError, match="MCP extra not installed"):
            create_server()
