"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from retireplan.cli import app

runner = CliRunner()

SHORT = ["--set", "end_year=2027", "--set", 'return_mode="ACCOUNT"']


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def legacy_profile(tmp_path: Path) -> Path:
    path = tmp_path / "legacy.json"
    path.write_text(
        json.dumps(
            {
                "name": "Legacy Plan",
                "params": {"startYear": 2025, "endYear": 2027, "annualExpenses": 90000},
            }
        )
    )
    return path


class TestHelp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Roth conversion" in result.output

    @pytest.mark.parametrize(
        "command", ["project", "optimize", "explain", "export", "tables", "profile"]
    )
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestProject:
    def test_default_projection(self):
        result = runner.invoke(app, ["project", *SHORT])
        assert result.exit_code == 0, result.output
        assert "Projection 2025-2027" in result.output
        assert "Ending portfolio:" in result.output

    def test_year_window(self):
        result = runner.invoke(app, ["project", *SHORT, "--start", "2026", "--end", "2026"])
        assert result.exit_code == 0, result.output
        assert "Projection 2026-2026" in result.output

    def test_report_output(self):
        result = runner.invoke(app, ["project", *SHORT, "--report", "--present-value"])
        assert result.exit_code == 0, result.output
        assert "RETIREMENT PROJECTION 2025-2027" in result.output
        assert "discounted at" in result.output

    def test_invalid_range(self):
        result = runner.invoke(app, ["project", *SHORT, "--start", "2027", "--end", "2026"])
        assert result.exit_code == 1
        assert "Invalid year range" in result.output

    def test_range_past_plan_end(self):
        result = runner.invoke(app, ["project", *SHORT, "--end", "2060"])
        assert result.exit_code == 1
        assert "plan covers 2025-2027" in result.output

    def test_unknown_override(self):
        result = runner.invoke(app, ["project", "--set", "favorite_color=blue"])
        assert result.exit_code == 1
        assert "favorite_color" in result.output

    def test_malformed_override(self):
        result = runner.invoke(app, ["project", "--set", "end_year"])
        assert result.exit_code == 1
        assert "key=value" in result.output

    def test_invalid_precision(self):
        result = runner.invoke(app, ["project", *SHORT, "--precision", "sig9"])
        assert result.exit_code == 1
        assert "Invalid precision" in result.output

    def test_profile_file(self, legacy_profile: Path):
        result = runner.invoke(app, ["project", "--file", str(legacy_profile)])
        assert result.exit_code == 0, result.output
        assert "Migrated from pre-versioned format" in result.output
        assert "Projection 2025-2027" in result.output

    def test_missing_profile_file(self, tmp_path: Path):
        result = runner.invoke(app, ["project", "--file", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestOptimize:
    def test_optimize(self):
        result = runner.invoke(
            app,
            ["optimize", *SHORT, "--years", "2026", "--amounts", "100000,200000", "--top", "3"],
        )
        assert result.exit_code == 0, result.output
        assert "ROTH CONVERSION OPTIMIZATION" in result.output
        assert "Best:" in result.output

    def test_invalid_objective(self):
        result = runner.invoke(app, ["optimize", *SHORT, "--objective", "FAME"])
        assert result.exit_code == 1
        assert "Invalid objective" in result.output

    def test_invalid_years(self):
        result = runner.invoke(app, ["optimize", *SHORT, "--years", "soon"])
        assert result.exit_code == 1


class TestExplain:
    def test_explain(self):
        result = runner.invoke(app, ["explain", "total_tax", "2026", *SHORT])
        assert result.exit_code == 0, result.output
        assert "total_tax (2026)" in result.output
        assert "federal_tax" in result.output

    def test_unknown_field(self):
        result = runner.invoke(app, ["explain", "bogus", "2026", *SHORT])
        assert result.exit_code == 1
        assert "Unknown projection field" in result.output


class TestExport:
    def test_export_csv(self, tmp_path: Path):
        out = tmp_path / "projection.csv"
        result = runner.invoke(app, ["export", "--output", str(out), "--fields", "year,total_eoy", *SHORT])
        assert result.exit_code == 0, result.output
        lines = out.read_text().splitlines()
        assert lines[0] == "Year,Total EOY"
        assert len(lines) == 4

    def test_export_summary(self, tmp_path: Path):
        out = tmp_path / "summary.csv"
        result = runner.invoke(app, ["export", "--output", str(out), "--summary", *SHORT])
        assert result.exit_code == 0, result.output
        assert out.read_text().startswith("Metric,Value")


class TestTables:
    def test_tables(self):
        result = runner.invoke(app, ["tables", "2025", "--base-year", "2025", "--inflation", "0"])
        assert result.exit_code == 0, result.output
        assert "Standard deduction: $30,000" in result.output

    def test_invalid_filing_status(self):
        result = runner.invoke(app, ["tables", "2025", "--filing-status", "HOH"])
        assert result.exit_code == 1
        assert "Invalid filing status" in result.output


class TestProfiles:
    def test_save_list_load_delete(self, legacy_profile: Path, db_path: Path):
        result = runner.invoke(app, ["profile", "save", str(legacy_profile), "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "Saved profile 'Legacy Plan'" in result.output

        result = runner.invoke(app, ["profile", "list", "--db", str(db_path)])
        assert "Legacy Plan" in result.output

        result = runner.invoke(app, ["profile", "load", "Legacy Plan", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["schema_version"] == 2
        assert payload["parameters"]["annual_expenses"] == "90000"

        result = runner.invoke(app, ["profile", "delete", "Legacy Plan", "--db", str(db_path)])
        assert result.exit_code == 0
        result = runner.invoke(app, ["profile", "load", "Legacy Plan", "--db", str(db_path)])
        assert result.exit_code == 1

    def test_project_saved_profile_and_record_run(self, legacy_profile: Path, db_path: Path):
        runner.invoke(app, ["profile", "save", str(legacy_profile), "--name", "Mine", "--db", str(db_path)])
        result = runner.invoke(
            app, ["project", "--profile", "Mine", "--db", str(db_path), "--save-run", "baseline"]
        )
        assert result.exit_code == 0, result.output
        assert "Saved run 'baseline'" in result.output

        result = runner.invoke(app, ["profile", "runs", "Mine", "--db", str(db_path)])
        assert "baseline" in result.output
        assert "2025-2027" in result.output

    def test_unknown_profile(self, db_path: Path, legacy_profile: Path):
        runner.invoke(app, ["profile", "save", str(legacy_profile), "--db", str(db_path)])
        result = runner.invoke(app, ["project", "--profile", "Other", "--db", str(db_path)])
        assert result.exit_code == 1
        assert "No profile named 'Other'" in result.output

    def test_upgrade_file(self, legacy_profile: Path, tmp_path: Path):
        out = tmp_path / "upgraded.json"
        result = runner.invoke(app, ["profile", "upgrade", str(legacy_profile), "--output", str(out)])
        assert result.exit_code == 0, result.output
        upgraded = json.loads(out.read_text())
        assert upgraded["schema_version"] == 2
        assert upgraded["parameters"]["end_year"] == 2027

        result = runner.invoke(app, ["profile", "upgrade", str(out)])
        assert "already current" in result.output

    def test_newer_profile_rejected(self, tmp_path: Path):
        path = tmp_path / "future.json"
        path.write_text(json.dumps({"schema_version": 9, "parameters": {}}))
        result = runner.invoke(app, ["profile", "upgrade", str(path)])
        assert result.exit_code == 1
        assert "newer" in result.output
