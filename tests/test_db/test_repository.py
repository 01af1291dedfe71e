"""Tests for the profile repository."""

from decimal import Decimal
from pathlib import Path

import pytest

from retireplan.db import PROFILE_VERSION, ProfileRepository, create_schema
from retireplan.db.schema import SCHEMA_VERSION
from retireplan.engines.sequencer import project
from retireplan.models.params import Heir, Parameters


@pytest.fixture
def repo(tmp_path: Path):
    conn = create_schema(tmp_path / "test.db")
    yield ProfileRepository(conn)
    conn.close()


class TestProfiles:
    def test_save_and_load(self, repo):
        params = Parameters(annual_expenses=Decimal("95000"), heirs=[Heir(name="Alex")])
        repo.save_profile("Plan A", params)
        loaded = repo.load_parameters("Plan A")
        assert loaded == params

    def test_get_profile_record(self, repo):
        profile_id = repo.save_profile("Plan A", Parameters(), [{"name": "Frugal", "overrides": {}}])
        record = repo.get_profile("Plan A")
        assert record["id"] == profile_id
        assert record["profile_version"] == PROFILE_VERSION
        assert record["scenarios"] == [{"name": "Frugal", "overrides": {}}]
        assert record["parameters"]["start_year"] == 2025

    def test_save_same_name_updates(self, repo):
        first = repo.save_profile("Plan A", Parameters())
        second = repo.save_profile("Plan A", Parameters(end_year=2060))
        assert first == second
        assert repo.load_parameters("Plan A").end_year == 2060
        assert len(repo.list_profiles()) == 1

    def test_missing_profile(self, repo):
        assert repo.get_profile("nope") is None
        assert repo.load_parameters("nope") is None

    def test_list_sorted_by_name(self, repo):
        repo.save_profile("Zeta", Parameters())
        repo.save_profile("Alpha", Parameters())
        assert [p["name"] for p in repo.list_profiles()] == ["Alpha", "Zeta"]

    def test_delete(self, repo):
        repo.save_profile("Plan A", Parameters())
        assert repo.delete_profile("Plan A") is True
        assert repo.delete_profile("Plan A") is False
        assert repo.list_profiles() == []

    def test_save_legacy_payload(self, repo):
        profile_id, messages = repo.save_payload(
            {"name": "Old Plan", "params": {"annualExpenses": 70000}}
        )
        assert profile_id
        assert "Migrated from pre-versioned format" in messages
        assert repo.load_parameters("Old Plan").annual_expenses == Decimal("70000")


class TestScenarioRuns:
    def test_save_and_read_runs(self, repo, short_params):
        profile_id = repo.save_profile("Plan A", short_params)
        result = project(short_params)
        repo.save_scenario_run(profile_id, "baseline", result.summary, result.warnings)
        runs = repo.get_scenario_runs(profile_id)
        assert len(runs) == 1
        assert runs[0]["label"] == "baseline"
        assert runs[0]["summary"] == result.summary
        assert runs[0]["end_year"] == 2029

    def test_runs_deleted_with_profile(self, repo, short_params):
        profile_id = repo.save_profile("Plan A", short_params)
        repo.save_scenario_run(profile_id, "baseline", project(short_params).summary)
        repo.delete_profile("Plan A")
        assert repo.get_scenario_runs(profile_id) == []


class TestSchema:
    def test_version_recorded_once(self, tmp_path: Path):
        path = tmp_path / "test.db"
        create_schema(path).close()
        conn = create_schema(path)
        rows = conn.execute("SELECT version FROM schema_version").fetchall()
        conn.close()
        assert rows == [(SCHEMA_VERSION,)]
