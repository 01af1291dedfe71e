"""Profile payload migrations.

Saved profiles carry a ``schema_version``. Older payloads are upgraded one
step at a time and every step records a human-readable message:

  v0  pre-versioned camelCase export (params/settings/options blocks)
  v1  adds the scenarios list
  v2  snake_case ``parameters`` matching the Parameters model
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from retireplan.exceptions import ProfileMigrationError
from retireplan.models.params import Parameters

logger = logging.getLogger(__name__)

PROFILE_VERSION = 2


# ---------------------------------------------------------------------------
# Profile payloads
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE: dict[str, str] = {
    "startYear": "start_year",
    "endYear": "end_year",
    "birthYear": "birth_year",
    "afterTaxStart": "after_tax_start",
    "iraStart": "ira_start",
    "rothStart": "roth_start",
    "afterTaxCostBasis": "after_tax_cost_basis",
    "costBasis": "after_tax_cost_basis",
    "returnMode": "return_mode",
    "atReturn": "after_tax_return",
    "iraReturn": "ira_return",
    "rothReturn": "roth_return",
    "lowRiskTarget": "low_risk_target",
    "modRiskTarget": "mod_risk_target",
    "lowRiskReturn": "low_risk_return",
    "modRiskReturn": "mod_risk_return",
    "highRiskReturn": "high_risk_return",
    "socialSecurityMonthly": "social_security_monthly",
    "ssMonthly": "social_security_monthly",
    "ssCOLA": "ss_cola",
    "annualExpenses": "annual_expenses",
    "expenseInflation": "expense_inflation",
    "stateTaxRate": "state_tax_rate",
    "bracketInflation": "bracket_inflation",
    "exemptSSFromTax": "exempt_ss_from_tax",
    "rothConversions": "roth_conversions",
    "expenseOverrides": "expense_overrides",
    "atHarvestOverrides": "capital_gains_harvest",
    "heirFedRate": "heir_federal_rate",
    "heirStateRate": "heir_state_rate",
    "heirDistributionStrategy": "heir_distribution_strategy",
    "heirNormalizationYears": "heir_normalization_years",
    "iterativeTax": "iterative_tax",
    "maxIterations": "max_iterations",
    "discountRate": "discount_rate",
}

_HEIR_KEYS: dict[str, str] = {
    "name": "name",
    "state": "state",
    "agi": "agi",
    "splitPercent": "split_percent",
    "birthYear": "birth_year",
    "taxableRoR": "expected_return",
    "distributionStrategy": "distribution_strategy",
}

_LEGACY_STRATEGIES = {"even": "rmd_based", "year10": "rmd_based", "lump_sum": "lump_sum_year0"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _v0_to_v1(payload: dict[str, Any], messages: list[str]) -> dict[str, Any]:
    migrated = dict(payload)
    if "params" not in migrated:
        # Bare parameter export
        migrated = {"name": payload.get("name", "Untitled Profile"), "params": dict(payload)}
        migrated["params"].pop("name", None)
    migrated.setdefault("scenarios", [])
    migrated["schema_version"] = 1
    messages.append("Migrated from pre-versioned format")
    messages.append("Added scenario support")
    return migrated


def _convert_heir(heir: dict[str, Any]) -> dict[str, Any]:
    converted = {}
    for key, value in heir.items():
        target = _HEIR_KEYS.get(key, key)
        if target == "distribution_strategy" and value in _LEGACY_STRATEGIES:
            value = _LEGACY_STRATEGIES[value]
        converted[target] = value
    return converted


def _v1_to_v2(payload: dict[str, Any], messages: list[str]) -> dict[str, Any]:
    params = dict(payload.get("params") or {})
    settings = payload.get("settings") or {}
    options = payload.get("options") or {}

    converted: dict[str, Any] = {}
    dropped: list[str] = []
    for key, value in params.items():
        if key in Parameters.model_fields:
            converted[key] = value
        elif key in _CAMEL_TO_SNAKE:
            converted[_CAMEL_TO_SNAKE[key]] = value
        elif key in ("heirs", "survivorDeathYear", "survivorSSPercent", "survivorExpensePercent"):
            continue
        elif key.startswith("magi") and key[4:].isdigit():
            continue
        else:
            dropped.append(key)

    if "primaryBirthYear" in settings and "birth_year" not in converted:
        converted["birth_year"] = settings["primaryBirthYear"]
    for key in ("iterativeTax", "maxIterations"):
        if key in options:
            converted[_CAMEL_TO_SNAKE[key]] = options[key]

    if isinstance(converted.get("return_mode"), str):
        converted["return_mode"] = converted["return_mode"].upper()
    strategy = converted.get("heir_distribution_strategy")
    if strategy in _LEGACY_STRATEGIES:
        converted["heir_distribution_strategy"] = _LEGACY_STRATEGIES[strategy]

    if params.get("heirs"):
        converted["heirs"] = [_convert_heir(h) for h in params["heirs"]]

    if params.get("survivorDeathYear"):
        survivor = {"death_year": params["survivorDeathYear"]}
        if "survivorSSPercent" in params:
            survivor["ss_percent"] = params["survivorSSPercent"]
        if "survivorExpensePercent" in params:
            survivor["expense_percent"] = params["survivorExpensePercent"]
        converted["survivor"] = survivor
        messages.append("Moved survivor settings into a survivor event")

    start_year = converted.get("start_year", Parameters.model_fields["start_year"].default)
    if f"magi{start_year - 2}" in params:
        converted["magi_two_years_prior"] = params[f"magi{start_year - 2}"]
    if f"magi{start_year - 1}" in params:
        converted["magi_prior_year"] = params[f"magi{start_year - 1}"]

    if dropped:
        messages.append("Dropped unsupported parameters: " + ", ".join(sorted(dropped)))
    messages.append("Converted parameters to current field names")

    scenarios = []
    for scenario in payload.get("scenarios") or []:
        if isinstance(scenario, dict):
            overrides = scenario.get("overrides") or scenario.get("params") or {}
            scenarios.append({
                "name": scenario.get("name", "Scenario"),
                "overrides": {_CAMEL_TO_SNAKE.get(k, k): v for k, v in overrides.items()},
            })

    return {
        "schema_version": 2,
        "name": payload.get("name", "Untitled Profile"),
        "created_at": payload.get("created_at") or payload.get("createdAt") or _now(),
        "parameters": converted,
        "scenarios": scenarios,
    }


_STEPS = {0: _v0_to_v1, 1: _v1_to_v2}


def migrate_profile(payload: Any) -> tuple[dict[str, Any], list[str]]:
    """Upgrade a saved profile to the current version.

    Returns the upgraded payload and the messages describing each step; an
    already-current payload comes back unchanged with no messages.
    """
    if not isinstance(payload, dict):
        raise ProfileMigrationError("profile must be a JSON object")

    version = payload.get("schema_version", payload.get("schemaVersion", 0))
    if not isinstance(version, int) or version < 0:
        raise ProfileMigrationError(f"invalid schema version {version!r}")
    if version > PROFILE_VERSION:
        raise ProfileMigrationError(
            f"profile version {version} is newer than supported version {PROFILE_VERSION}"
        )

    messages: list[str] = []
    migrated = dict(payload)
    migrated.pop("schemaVersion", None)
    while version < PROFILE_VERSION:
        migrated = _STEPS[version](migrated, messages)
        version = migrated["schema_version"]

    if messages:
        migrated["updated_at"] = _now()
        logger.info("Profile '%s' migrated: %s", migrated.get("name"), "; ".join(messages))
    return migrated, messages


def load_parameters(payload: Any) -> tuple[Parameters, list[str]]:
    """Migrate a profile payload and validate its parameters."""
    migrated, messages = migrate_profile(payload)
    try:
        params = Parameters.model_validate(migrated.get("parameters") or {})
    except ValidationError as e:
        raise ProfileMigrationError(f"invalid parameters: {e.errors()[0]['msg']}") from e
    return params, messages
