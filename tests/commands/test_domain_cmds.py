"""Tests for the domain and user command groups."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from domainpool.cli import cli


def _admin(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["user", "set", "1", "--admin"])
    assert result.exit_code == 0, result.output


@pytest.mark.usefixtures("_isolated_pool")
class TestDomainAdd:
    def test_add_normalizes_id(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        result = cli_runner.invoke(
            cli,
            ["--json", "domain", "add", "Haze.Bio", "haze.bio", "--as", "1", "--max-usage", "5"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["id"] == "haze-bio"
        assert data["max_usage"] == 5
        assert data["current_usage"] == 0

    def test_non_admin_forbidden(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["domain", "add", "cute.lol", "cute.lol", "--as", "9"])
        assert result.exit_code == 1
        assert "FORBIDDEN" in result.output

    def test_duplicate_rejected(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(cli, ["domain", "add", "cute.lol", "cute.lol", "--as", "1"])
        result = cli_runner.invoke(cli, ["domain", "add", "cute.lol", "cute.lol", "--as", "1"])
        assert result.exit_code == 1
        assert "DUPLICATE" in result.output

    def test_bad_expiry_is_usage_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["domain", "add", "cute.lol", "cute.lol", "--as", "1", "--expires", "soon"]
        )
        assert result.exit_code == 2
        assert "ISO-8601" in result.output

    def test_explicit_expiry(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        result = cli_runner.invoke(
            cli,
            ["--json", "domain", "add", "vip.gg", "vip.gg", "--as", "1", "--premium",
             "--expires", "2099-06-01"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["only_premium"] is True
        assert data["expires_at"].startswith("2099-06-01T00:00:00")


@pytest.mark.usefixtures("_isolated_pool")
class TestDomainAdmin:
    def test_list_and_show(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(cli, ["domain", "add", "cute.lol", "cute.lol", "--as", "1"])
        cli_runner.invoke(cli, ["domain", "add", "haze.bio", "haze.bio", "--as", "1"])

        listed = cli_runner.invoke(cli, ["-q", "domain", "list"])
        assert listed.exit_code == 0
        assert listed.output.split() == ["cute-lol", "haze-bio"]

        shown = cli_runner.invoke(cli, ["domain", "show", "haze.bio"])
        assert shown.exit_code == 0
        assert "haze-bio" in shown.output

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["domain", "show", "nope"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_assignments(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(cli, ["domain", "add", "haze.bio", "haze.bio", "--as", "1"])
        cli_runner.invoke(cli, ["assign", "haze-bio", "--uid", "42"])
        result = cli_runner.invoke(cli, ["domain", "assignments", "haze-bio"])
        assert result.exit_code == 0
        assert "1 assignments" in result.output

    def test_update_and_renew(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(
            cli, ["domain", "add", "haze.bio", "haze.bio", "--as", "1", "--expires", "2099-01-01"]
        )
        updated = cli_runner.invoke(
            cli, ["--json", "domain", "update", "haze-bio", "--as", "1", "--max-usage", "10"]
        )
        assert updated.exit_code == 0
        assert json.loads(updated.output)["data"]["max_usage"] == 10

        renewed = cli_runner.invoke(
            cli, ["--json", "domain", "renew", "haze-bio", "--as", "1", "--days", "30"]
        )
        assert renewed.exit_code == 0
        data = json.loads(renewed.output)["data"]
        assert data["expires_at"].startswith("2099-01-31")
        assert data["previous_expires_at"].startswith("2099-01-01")

    def test_update_without_changes(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(cli, ["domain", "add", "haze.bio", "haze.bio", "--as", "1"])
        result = cli_runner.invoke(cli, ["domain", "update", "haze-bio", "--as", "1"])
        assert result.exit_code == 1
        assert "INVALID_INPUT" in result.output

    def test_delete_confirms(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(cli, ["domain", "add", "haze.bio", "haze.bio", "--as", "1"])
        cli_runner.invoke(cli, ["assign", "haze-bio", "--uid", "42"])

        aborted = cli_runner.invoke(
            cli, ["domain", "delete", "haze-bio", "--as", "1"], input="n\n"
        )
        assert aborted.exit_code == 1
        assert cli_runner.invoke(cli, ["domain", "show", "haze-bio"]).exit_code == 0

        deleted = cli_runner.invoke(
            cli, ["--json", "domain", "delete", "haze-bio", "--as", "1"], input="y\n"
        )
        assert deleted.exit_code == 0
        assert '"assignments_removed": 1' in deleted.output
        assert cli_runner.invoke(cli, ["domain", "show", "haze-bio"]).exit_code == 1

    def test_delete_yes_skips_prompt(self, cli_runner: CliRunner) -> None:
        _admin(cli_runner)
        cli_runner.invoke(cli, ["domain", "add", "haze.bio", "haze.bio", "--as", "1"])
        result = cli_runner.invoke(cli, ["domain", "delete", "haze-bio", "--as", "1", "--yes"])
        assert result.exit_code == 0
        assert "delete_domain" in result.output


@pytest.mark.usefixtures("_isolated_pool")
class TestUserCommands:
    def test_set_and_show(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "user", "set", "42", "--premium", "--premium-until", "2099-01-01"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["premium"] is True
        assert data["premium_active"] is True
        assert data["admin"] is False

        cleared = cli_runner.invoke(
            cli, ["--json", "user", "set", "42", "--clear-premium-until"]
        )
        assert json.loads(cleared.output)["data"]["premium_until"] is None

        shown = cli_runner.invoke(cli, ["user", "show", "42"])
        assert shown.exit_code == 0
        assert "42" in shown.output

    def test_lapsed_premium(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "user", "set", "42", "--premium", "--premium-until", "2020-01-01"]
        )
        assert json.loads(result.output)["data"]["premium_active"] is False

    def test_show_unknown(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["user", "show", "77"])
        assert result.exit_code == 1
        assert "No user record for uid 77" in result.output
