"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
The persistence service is replaced by the in-memory FakeStore.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
"""

import pytest
from typer.testing import CliRunner

from study_tracker.cli import main as cli
from study_tracker.remote.client import SupabaseStore
from tests.fakes import FakeStore, make_rounds

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

runner = CliRunner()


@pytest.fixture
def fake(monkeypatch):
    """Seeded store returned wherever the CLI builds a SupabaseStore."""
    store = FakeStore(
        [{"id": "s1", "key": "chemistry", "label": "Chemistry", "icon": "⚗️", "sort_order": 0}],
        [
            {"id": "c1", "subject_id": "s1", "name": "2015", "rounds": make_rounds((True, False)), "sort_order": 0},
            {"id": "c2", "subject_id": "s1", "name": "2016", "rounds": make_rounds(), "sort_order": 1},
        ],
    )
    monkeypatch.setattr(SupabaseStore, "from_settings", classmethod(lambda cls, settings: store))
    return store


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        result = runner.invoke(cli.app, ["--help"])

        assert result.exit_code == 0
        assert "status" in result.output
        assert "toggle" in result.output

    @pytest.mark.parametrize("command", ["status", "show", "toggle", "import", "add-subject", "seed"])
    def test_command_help(self, command):
        result = runner.invoke(cli.app, [command, "--help"])
        assert result.exit_code == 0, result.output


class TestCLIRead:
    """Test read-only commands."""

    def test_status(self, fake):
        result = runner.invoke(cli.app, ["status"])

        assert result.exit_code == 0, result.output
        assert "Chemistry" in result.output
        assert "1/32" in result.output
        assert "Overall" in result.output

    def test_show(self, fake):
        result = runner.invoke(cli.app, ["show", "chemistry"])

        assert result.exit_code == 0, result.output
        assert "2015" in result.output
        assert "R8" in result.output

    def test_show_unknown_subject(self, fake):
        result = runner.invoke(cli.app, ["show", "biology"])
        assert result.exit_code == 1

    def test_load_failure_exits(self, fake):
        fake.fail.add("list_rows")

        result = runner.invoke(cli.app, ["status"])
        assert result.exit_code == 1
        assert "Failed to load" in result.output


class TestCLIWrite:
    """Test mutating commands."""

    def test_toggle_by_row_name(self, fake):
        result = runner.invoke(cli.app, ["toggle", "chemistry", "2016", "1", "essay"])

        assert result.exit_code == 0, result.output
        assert fake.row("c2")["rounds"][0] == {"mcq": False, "essay": True}

    def test_toggle_bad_field(self, fake):
        result = runner.invoke(cli.app, ["toggle", "chemistry", "2016", "1", "theory"])
        assert result.exit_code == 1

    @pytest.mark.parametrize("round_number", ["0", "9"])
    def test_toggle_round_out_of_range(self, fake, round_number):
        result = runner.invoke(cli.app, ["toggle", "chemistry", "2015", round_number, "mcq"])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "round must be between 1 and 8" in result.output
        assert fake.count("update_row") == 0

    def test_toggle_write_failure_exits_nonzero(self, fake):
        fake.fail.add("update_row")

        result = runner.invoke(cli.app, ["toggle", "chemistry", "c1", "2", "mcq"])
        assert result.exit_code == 1
        assert "Failed to save progress" in result.output

    def test_add_row(self, fake):
        result = runner.invoke(cli.app, ["add-row", "chemistry", "2017"])

        assert result.exit_code == 0, result.output
        assert [r["name"] for r in fake.rows] == ["2015", "2016", "2017"]

    def test_import(self, fake, tmp_path):
        source = tmp_path / "years.txt"
        source.write_text("2018\n2019\n", encoding="utf-8")

        result = runner.invoke(cli.app, ["import", "chemistry", str(source)])

        assert result.exit_code == 0, result.output
        assert "2 rows added" in result.output
        assert fake.count("insert_rows") == 1

    def test_import_empty_file(self, fake, tmp_path):
        source = tmp_path / "empty.txt"
        source.write_text("", encoding="utf-8")

        result = runner.invoke(cli.app, ["import", "chemistry", str(source)])
        assert result.exit_code == 1
        assert fake.count("insert_rows") == 0

    def test_rename_and_delete_row(self, fake):
        assert runner.invoke(cli.app, ["rename-row", "chemistry", "2015", "2015 P1"]).exit_code == 0
        assert fake.row("c1")["name"] == "2015 P1"

        assert runner.invoke(cli.app, ["delete-row", "chemistry", "2015 P1", "--yes"]).exit_code == 0
        assert fake.row("c1") is None

    def test_subject_lifecycle(self, fake):
        result = runner.invoke(cli.app, ["add-subject", "Combined Maths!!", "--icon", "📐"])
        assert result.exit_code == 0, result.output
        assert "combined-maths" in result.output

        result = runner.invoke(cli.app, ["edit-subject", "combined-maths", "Maths"])
        assert result.exit_code == 0, result.output
        record = next(s for s in fake.subjects if s["key"] == "combined-maths")
        assert record["label"] == "Maths"
        assert record["icon"] == "📐"

        result = runner.invoke(cli.app, ["delete-subject", "combined-maths", "--yes"])
        assert result.exit_code == 0, result.output
        assert all(s["key"] != "combined-maths" for s in fake.subjects)

    def test_seed_refused_when_not_empty(self, fake):
        result = runner.invoke(cli.app, ["seed"])
        assert result.exit_code == 1
