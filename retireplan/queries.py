"""Read-only query layer over projections.

These functions back an assistant's tool calls (and the CLI): they run
projections for a parameter set plus overrides and return JSON-ready dicts.
TOOL_DEFINITIONS describes them as JSON-schema tools; dispatch_tool routes a
tool call by name.
"""

import logging
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from retireplan.dependencies import FIELD_FORMULAS, dependencies_for, dependency_sign
from retireplan.engines.optimizer import ScenarioOptimizer
from retireplan.engines.sequencer import ProjectionSequencer
from retireplan.exceptions import (
    InvalidYearRangeError,
    ParameterValidationError,
    UnknownFieldError,
    UnknownToolError,
)
from retireplan.models.enums import Objective, ReturnMode
from retireplan.models.params import Parameters
from retireplan.models.records import ScenarioResult, ScenarioSummary, YearRecord

logger = logging.getLogger(__name__)

DEFAULT_METRICS = ["ending_portfolio", "ending_heir_value", "total_tax"]

DEFAULT_RISK_SCENARIOS: list[dict[str, Any]] = [
    {"name": "Worst Case (2%)", "return_rate": Decimal("0.02")},
    {"name": "Average Case (5%)", "return_rate": Decimal("0.05")},
    {"name": "Best Case (8%)", "return_rate": Decimal("0.08")},
]


def _to_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def apply_overrides(params: Parameters, overrides: dict[str, Any] | None) -> Parameters:
    """New Parameters with ``overrides`` applied and validated."""
    if not overrides:
        return params
    unknown = [k for k in overrides if k not in Parameters.model_fields]
    if unknown:
        raise ParameterValidationError(unknown[0], "unknown parameter")
    data = params.model_dump()
    data.update(overrides)
    try:
        return Parameters.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "parameters"
        raise ParameterValidationError(field, first["msg"]) from e


def _metric_values(summary: ScenarioSummary, metrics: list[str]) -> dict[str, Any]:
    values = {}
    for metric in metrics:
        if metric not in ScenarioSummary.model_fields:
            raise UnknownFieldError(metric)
        values[metric] = getattr(summary, metric)
    return values


def get_current_state(
    params: Parameters,
    include: list[str] | None = None,
    start_year: int | None = None,
    end_year: int | None = None,
) -> dict[str, Any]:
    include = include or ["parameters", "summary"]
    result = ProjectionSequencer().project(params)
    state: dict[str, Any] = {}
    if "parameters" in include:
        state["parameters"] = params.model_dump(mode="json")
    if "summary" in include:
        state["summary"] = result.summary.model_dump(mode="json")
    if "records" in include:
        first = start_year if start_year is not None else params.start_year
        last = end_year if end_year is not None else params.end_year
        if last < first:
            raise InvalidYearRangeError(first, last)
        state["records"] = [
            r.model_dump(mode="json") for r in result.records if first <= r.year <= last
        ]
    if "warnings" in include:
        state["warnings"] = list(result.warnings)
    return state


def compare_scenarios(
    params: Parameters,
    scenarios: dict[str, dict[str, Any]],
    metrics: list[str] | None = None,
    include_base: bool = True,
) -> dict[str, Any]:
    """Project each named override set and line up summary metrics."""
    metrics = metrics or DEFAULT_METRICS
    rows = []
    runs = [("Base Case", {})] if include_base else []
    runs.extend(scenarios.items())
    for name, overrides in runs:
        summary = ProjectionSequencer().project(apply_overrides(params, overrides)).summary
        row = {"name": name}
        row.update(_metric_values(summary, metrics))
        rows.append(row)
    return {"metrics": metrics, "scenarios": rows}


def find_optimal(
    params: Parameters,
    objective: Objective = Objective.MAX_HEIR_VALUE,
    years: list[int] | None = None,
    amounts: list[Decimal] | None = None,
    target_roth: Decimal | None = None,
    top: int = 5,
    workers: int = 1,
) -> dict[str, Any]:
    optimizer = ScenarioOptimizer(workers=workers)
    result = optimizer.optimize(
        params, objective, years=years, amounts=amounts, target_roth=target_roth
    )

    def brief(candidate):
        if candidate is None:
            return None
        return {
            "label": candidate.actual_label,
            "rank": candidate.rank,
            "score": candidate.score,
            "conversions": candidate.candidate.conversions,
            "is_fully_feasible": candidate.is_fully_feasible,
            "feasibility_percent": candidate.feasibility_percent,
            "first_capped_year": candidate.first_capped_year,
            "total_requested": candidate.total_requested,
            "total_actual": candidate.total_actual,
        }

    return {
        "objective": str(objective),
        "evaluated": result.evaluated,
        "best": brief(result.best),
        "best_feasible": brief(result.best_feasible),
        "top": [brief(c) for c in result.candidates[:top]],
        "warnings": optimizer.warnings,
    }


def run_risk_scenarios(
    params: Parameters,
    scenarios: list[dict[str, Any]] | None = None,
    metrics: list[str] | None = None,
) -> dict[str, Any]:
    """Re-run the plan with a flat return on every account per scenario."""
    scenarios = scenarios or DEFAULT_RISK_SCENARIOS
    metrics = metrics or DEFAULT_METRICS
    rows = []
    for scenario in scenarios:
        rate = _to_decimal(scenario["return_rate"])
        scenario_params = params.model_copy(
            update={
                "return_mode": ReturnMode.ACCOUNT,
                "after_tax_return": rate,
                "ira_return": rate,
                "roth_return": rate,
            }
        )
        result = ProjectionSequencer().project(scenario_params)
        depleted = next((r.year for r in result.records if r.total_eoy <= 0), None)
        row = {"name": scenario.get("name", f"{rate * 100:.1f}%"), "return_rate": rate}
        row.update(_metric_values(result.summary, metrics))
        row["depletion_year"] = depleted
        rows.append(row)
    return {"metrics": metrics, "scenarios": rows}


def _record_value(record: YearRecord, field: str) -> Any:
    return getattr(record, field)


def explain_calculation(result: ScenarioResult, field: str, year: int) -> dict[str, Any]:
    """Value of ``field`` in ``year`` with its formula and input values."""
    if field not in YearRecord.model_fields:
        raise UnknownFieldError(field)
    by_year = {r.year: r for r in result.records}
    if year not in by_year:
        raise InvalidYearRangeError(year, year, "year not in projection")

    inputs = []
    for dep_year, dep_field in dependencies_for(field, year, set(by_year)):
        inputs.append(
            {
                "year": dep_year,
                "field": dep_field,
                "value": _record_value(by_year[dep_year], dep_field),
                "sign": dependency_sign(dep_field, field),
            }
        )
    return {
        "field": field,
        "year": year,
        "value": _record_value(by_year[year], field),
        "formula": FIELD_FORMULAS.get(field),
        "inputs": inputs,
    }


TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "get_current_state",
        "description": "Get the current plan parameters, summary, and optionally year records",
        "parameters": {
            "type": "object",
            "properties": {
                "include": {
                    "type": "array",
                    "items": {"type": "string", "enum": ["parameters", "summary", "records", "warnings"]},
                },
                "start_year": {"type": "integer"},
                "end_year": {"type": "integer"},
            },
        },
    },
    {
        "name": "compare_scenarios",
        "description": "Compare the base plan against named parameter override sets",
        "parameters": {
            "type": "object",
            "properties": {
                "scenarios": {
                    "type": "object",
                    "description": "Map of scenario name to parameter overrides",
                },
                "metrics": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["scenarios"],
        },
    },
    {
        "name": "find_optimal",
        "description": "Search Roth conversion schedules and rank them by objective",
        "parameters": {
            "type": "object",
            "properties": {
                "objective": {"type": "string", "enum": [o.value for o in Objective]},
                "years": {"type": "array", "items": {"type": "integer"}},
                "amounts": {"type": "array", "items": {"type": "number"}},
                "target_roth": {"type": "number"},
            },
        },
    },
    {
        "name": "run_risk_scenarios",
        "description": "Re-run the plan under alternative flat return assumptions",
        "parameters": {
            "type": "object",
            "properties": {
                "scenarios": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "return_rate": {"type": "number"},
                        },
                        "required": ["return_rate"],
                    },
                },
                "metrics": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
    {
        "name": "explain_calculation",
        "description": "Explain how a projection field was computed for a year",
        "parameters": {
            "type": "object",
            "properties": {
                "field": {"type": "string"},
                "year": {"type": "integer"},
            },
            "required": ["field", "year"],
        },
    },
]


def dispatch_tool(
    name: str,
    arguments: dict[str, Any],
    params: Parameters,
    result: ScenarioResult | None = None,
) -> dict[str, Any]:
    """Route a tool call to its query function."""
    logger.debug("Tool call %s(%s)", name, arguments)
    if name == "get_current_state":
        return get_current_state(
            params,
            include=arguments.get("include"),
            start_year=arguments.get("start_year"),
            end_year=arguments.get("end_year"),
        )
    if name == "compare_scenarios":
        return compare_scenarios(params, arguments.get("scenarios", {}), arguments.get("metrics"))
    if name == "find_optimal":
        amounts = arguments.get("amounts")
        target = arguments.get("target_roth")
        return find_optimal(
            params,
            Objective(arguments.get("objective", Objective.MAX_HEIR_VALUE)),
            years=arguments.get("years"),
            amounts=[_to_decimal(a) for a in amounts] if amounts else None,
            target_roth=_to_decimal(target) if target is not None else None,
        )
    if name == "run_risk_scenarios":
        return run_risk_scenarios(params, arguments.get("scenarios"), arguments.get("metrics"))
    if name == "explain_calculation":
        if result is None:
            result = ProjectionSequencer().project(params)
        return explain_calculation(result, arguments["field"], int(arguments["year"]))
    raise UnknownToolError(name)
