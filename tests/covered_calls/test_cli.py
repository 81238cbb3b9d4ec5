"""Tests for the covered call CLI."""

import json
import os
import tempfile
from datetime import date, timedelta
from decimal import Decimal

import pytest
from click.testing import CliRunner

from covered_calls.cli import cli


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the user's config file and environment out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("COVERED_CALLS_DB_PATH", "COVERED_CALLS_USER", "COVERED_CALLS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_db() -> str:
    """Create a temporary database file."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


def days_from_today(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def add_args(**overrides) -> list[str]:
    """Arguments for an AAPL call opened 15 days ago with 15 days left."""
    options = {
        "--account": "IRA",
        "--strike": "460",
        "--stock-price": "450",
        "--expiration": days_from_today(15),
        "--premium": "2.50",
        "--quantity": "2",
        "--open-date": days_from_today(-15),
        "--fees": "2",
        "--option-price": "1.50",
    }
    options.update(overrides)
    args = ["add", "AAPL"]
    for key, value in options.items():
        args.extend([key, value])
    return args


def roll_args(position_id: int = 1) -> list[str]:
    return [
        "roll",
        str(position_id),
        "--expiration",
        days_from_today(45),
        "--strike",
        "465",
        "--close-cost",
        "1.50",
        "--premium",
        "3.20",
    ]


@pytest.fixture
def seeded_db(runner: CliRunner, temp_db: str) -> str:
    """Database holding one open AAPL position (#1) for alice."""
    result = runner.invoke(cli, ["--db", temp_db, "--user", "alice"] + add_args())
    assert result.exit_code == 0, result.output
    return temp_db


class TestPositionCommands:
    """Tests for add, list, show, update, mark, close and delete."""

    def test_add_and_list(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "list"])

        assert result.exit_code == 0
        assert "AAPL" in result.output
        assert "Open" in result.output

    def test_list_empty(self, runner: CliRunner, temp_db: str) -> None:
        result = runner.invoke(cli, ["--db", temp_db, "list"])

        assert result.exit_code == 0
        assert "No positions" in result.output

    def test_add_invalid_dates(self, runner: CliRunner, temp_db: str) -> None:
        args = add_args(**{"--expiration": days_from_today(-20)})
        result = runner.invoke(cli, ["--db", temp_db] + args)

        assert result.exit_code == 1
        assert "Expiration date must be after open date" in result.output

    def test_add_generates_symbol(self, runner: CliRunner, temp_db: str) -> None:
        args = add_args(**{"--expiration": "2099-02-20", "--strike": "150"})
        result = runner.invoke(cli, ["--db", temp_db, "--json"] + args + ["--generate-symbol"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["option_ticker"] == "AAPL990220C00150000"

    def test_show_json(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "--json", "show", "1"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["dte"] == 15
        assert Decimal(data["net_premium"]) == Decimal("498")
        assert Decimal(data["pnl"]) == Decimal("198")
        assert data["status"] == "Open"

    def test_show_text(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "show", "1"])

        assert result.exit_code == 0
        assert "=== #1 AAPL $460.00 call ===" in result.output
        assert "(15 DTE)" in result.output
        assert "Net Premium: $498.00" in result.output

    def test_other_user_cannot_see_position(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "bob", "show", "1"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_update(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        result = runner.invoke(cli, base + ["update", "1", "--fees", "1.30"])
        assert result.exit_code == 0
        assert "Updated #1 AAPL" in result.output

        shown = json.loads(runner.invoke(cli, base + ["--json", "show", "1"]).output)
        assert Decimal(shown["fees"]) == Decimal("1.30")

    def test_update_without_fields(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "update", "1"])

        assert result.exit_code == 1
        assert "Nothing to update" in result.output

    def test_mark(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(
            cli,
            ["--db", seeded_db, "--user", "alice", "--json", "mark", "1",
             "--stock-price", "470", "--option-price", "10.30"],
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert Decimal(data["extrinsic_buffer"]) == Decimal("0.30")
        assert data["buffer_risk"] == "high"

    def test_close(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        result = runner.invoke(cli, base + ["close", "1", "--price", "0.40"])

        assert result.exit_code == 0
        assert "Closed #1 AAPL" in result.output
        assert "+418.00" in result.output

        again = runner.invoke(cli, base + ["close", "1"])
        assert again.exit_code == 1

    def test_correct_closed_position(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        runner.invoke(cli, base + ["close", "1", "--price", "0.40"])

        result = runner.invoke(cli, base + ["update", "1", "--close-price", "0.10"])
        assert result.exit_code == 0, result.output

        shown = json.loads(runner.invoke(cli, base + ["--json", "show", "1"]).output)
        assert shown["status"] == "Closed"
        assert Decimal(shown["pnl"]) == Decimal("478")

    def test_close_price_on_open_position(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        result = runner.invoke(cli, base + ["update", "1", "--close-price", "0.10"])

        assert result.exit_code == 1
        assert "close_price" in result.output

    def test_delete(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        result = runner.invoke(cli, base + ["delete", "1", "--yes"])
        assert result.exit_code == 0
        assert "Deleted #1" in result.output

        assert "No positions" in runner.invoke(cli, base + ["list"]).output

    def test_delete_declined(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        result = runner.invoke(cli, base + ["delete", "1"], input="n\n")

        assert result.exit_code == 1
        assert "AAPL" in runner.invoke(cli, base + ["list"]).output


class TestTickerCommand:
    """Tests for option symbol generation."""

    def test_call_symbol(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ticker", "AAPL", "2025-02-21", "150"])

        assert result.exit_code == 0
        assert result.output.strip() == "AAPL250221C00150000"

    def test_put_symbol(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ticker", "spy", "2025-03-21", "512.5", "--put"])

        assert result.output.strip() == "SPY250321P00512500"

    def test_bad_date(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ticker", "AAPL", "Feb 21", "150"])

        assert result.exit_code == 1


class TestRollCommand:
    """Tests for roll analysis and execution."""

    def test_analysis(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice"] + roll_args())

        assert result.exit_code == 0, result.output
        assert "Recommendation: ROLL (score 55)" in result.output
        assert "Net Credit:  $338.00" in result.output

    def test_analysis_json(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "--json"] + roll_args())

        data = json.loads(result.output)
        assert data["position_id"] == 1
        assert data["new_dte"] == 45
        assert data["recommendation"]["action"] == "ROLL"

    def test_execute(self, runner: CliRunner, seeded_db: str) -> None:
        base = ["--db", seeded_db, "--user", "alice"]
        result = runner.invoke(cli, base + roll_args() + ["--execute"])

        assert result.exit_code == 0, result.output
        assert "Rolled #1 -> #2" in result.output

        rows = json.loads(runner.invoke(cli, base + ["--json", "list"]).output)
        assert {row["id"]: row["status"] for row in rows} == {1: "Closed", 2: "Open"}

    def test_invalid_proposal(self, runner: CliRunner, seeded_db: str) -> None:
        args = roll_args()
        args[args.index("--expiration") + 1] = days_from_today(5)

        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice"] + args)

        assert result.exit_code == 1
        assert "new_expiration_date" in result.output


class TestPortfolioCommands:
    """Tests for summary, export, import and info."""

    def test_summary(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "summary"])

        assert result.exit_code == 0
        assert "Portfolio Summary" in result.output
        assert "$90,000" in result.output

    def test_summary_json(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "--json", "summary"])

        data = json.loads(result.output)
        assert data["total_positions"] == "1"
        assert data["total_premium_collected"] == "$498"

    def test_info(self, runner: CliRunner, seeded_db: str) -> None:
        result = runner.invoke(cli, ["--db", seeded_db, "--user", "alice", "info"])

        assert result.exit_code == 0
        assert "Schema Version:  1" in result.output
        assert "Open Positions:  1" in result.output

    @pytest.mark.parametrize("suffix", [".json", ".csv"])
    def test_export_then_import(
        self, runner: CliRunner, seeded_db: str, tmp_path, suffix: str
    ) -> None:
        backup = tmp_path / f"backup{suffix}"

        exported = runner.invoke(
            cli,
            ["--db", seeded_db, "--user", "alice", "export",
             "--format", suffix.lstrip("."), "-o", str(backup)],
        )
        assert exported.exit_code == 0
        assert backup.exists()

        imported = runner.invoke(cli, ["--db", seeded_db, "--user", "bob", "import", str(backup)])
        assert imported.exit_code == 0, imported.output
        assert "Imported 1 of 1 positions" in imported.output

        listing = runner.invoke(cli, ["--db", seeded_db, "--user", "bob", "list"])
        assert "AAPL" in listing.output

    def test_import_malformed(self, runner: CliRunner, temp_db: str, tmp_path) -> None:
        backup = tmp_path / "broken.json"
        backup.write_text("{not json")

        result = runner.invoke(cli, ["--db", temp_db, "import", str(backup)])

        assert result.exit_code == 1


class TestConfigFile:
    """The CLI reads defaults from a YAML config file."""

    def test_default_user_from_config(
        self, runner: CliRunner, seeded_db: str, tmp_path
    ) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"database:\n  path: {seeded_db}\ndefaults:\n  user: alice\n")

        result = runner.invoke(cli, ["--config-file", str(config_file), "list"])

        assert result.exit_code == 0
        assert "AAPL" in result.output

    def test_invalid_config(self, runner: CliRunner, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("cli:\n  log_level: loud\n")

        result = runner.invoke(cli, ["--config-file", str(config_file), "list"])

        assert result.exit_code == 1
        assert "configuration" in result.output
