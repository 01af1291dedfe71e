"""Data access layer for saved plan profiles and scenario runs."""

import json
import sqlite3
from uuid import uuid4

from retireplan.db.migrations import PROFILE_VERSION, migrate_profile
from retireplan.models.params import Parameters
from retireplan.models.records import ScenarioSummary


class ProfileRepository:
    """CRUD operations for profiles and scenario run history."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # --- Profiles ---

    def save_profile(
        self,
        name: str,
        params: Parameters,
        scenarios: list[dict] | None = None,
    ) -> str:
        """Insert or replace a profile by name. Returns the profile ID."""
        existing = self.get_profile(name)
        parameters = params.model_dump_json()
        scenario_json = json.dumps(scenarios or [])
        if existing:
            self.conn.execute(
                """UPDATE profiles
                   SET profile_version = ?, parameters = ?, scenarios = ?,
                       updated_at = datetime('now')
                   WHERE id = ?""",
                (PROFILE_VERSION, parameters, scenario_json, existing["id"]),
            )
            self.conn.commit()
            return existing["id"]

        profile_id = str(uuid4())
        self.conn.execute(
            """INSERT INTO profiles (id, name, profile_version, parameters, scenarios)
               VALUES (?, ?, ?, ?, ?)""",
            (profile_id, name, PROFILE_VERSION, parameters, scenario_json),
        )
        self.conn.commit()
        return profile_id

    def save_payload(self, payload: dict) -> tuple[str, list[str]]:
        """Migrate a profile payload (any version) and store it. Returns (id, messages)."""
        migrated, messages = migrate_profile(payload)
        params = Parameters.model_validate(migrated.get("parameters") or {})
        profile_id = self.save_profile(
            migrated.get("name", "Untitled Profile"), params, migrated.get("scenarios")
        )
        return profile_id, messages

    def get_profile(self, name: str) -> dict | None:
        cursor = self.conn.execute("SELECT * FROM profiles WHERE name = ?", (name,))
        columns = [desc[0] for desc in cursor.description]
        row = cursor.fetchone()
        if row is None:
            return None
        record = dict(zip(columns, row))
        record["parameters"] = json.loads(record["parameters"])
        record["scenarios"] = json.loads(record["scenarios"] or "[]")
        return record

    def load_parameters(self, name: str) -> Parameters | None:
        record = self.get_profile(name)
        if record is None:
            return None
        return Parameters.model_validate(record["parameters"])

    def list_profiles(self) -> list[dict]:
        cursor = self.conn.execute(
            "SELECT id, name, profile_version, created_at, updated_at FROM profiles ORDER BY name"
        )
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def delete_profile(self, name: str) -> bool:
        cursor = self.conn.execute("DELETE FROM profiles WHERE name = ?", (name,))
        self.conn.commit()
        return cursor.rowcount > 0

    # --- Scenario runs ---

    def save_scenario_run(
        self,
        profile_id: str,
        label: str,
        summary: ScenarioSummary,
        warnings: list[str] | None = None,
    ) -> str:
        """Record a projection run's summary. Returns the run ID."""
        run_id = str(uuid4())
        self.conn.execute(
            """INSERT INTO scenario_runs
               (id, profile_id, label, start_year, end_year,
                ending_portfolio, ending_heir_value, total_tax, summary, warnings)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                run_id,
                profile_id,
                label,
                summary.start_year,
                summary.end_year,
                str(summary.ending_portfolio),
                str(summary.ending_heir_value),
                str(summary.total_tax),
                summary.model_dump_json(),
                json.dumps(warnings or []),
            ),
        )
        self.conn.commit()
        return run_id

    def get_scenario_runs(self, profile_id: str) -> list[dict]:
        cursor = self.conn.execute(
            "SELECT * FROM scenario_runs WHERE profile_id = ? ORDER BY created_at, rowid",
            (profile_id,),
        )
        columns = [desc[0] for desc in cursor.description]
        rows = []
        for row in cursor.fetchall():
            record = dict(zip(columns, row))
            record["summary"] = ScenarioSummary.model_validate_json(record["summary"])
            if record.get("warnings"):
                record["warnings"] = json.loads(record["warnings"])
            rows.append(record)
        return rows
