"""Roth conversion strategy search.

Generates candidate conversion schedules, runs each one through the full
projection as a "what-if" scenario, and ranks the outcomes by objective.

Candidate families:
  - No conversions (baseline)
  - Single year: one test amount in one year
  - Multi-year even: the same amount in every candidate year
  - Front-loaded: a total spread over the years, weighted toward early years
"""

import logging
import multiprocessing as mp
import threading
from decimal import Decimal

from pydantic import BaseModel, Field

from retireplan.engines.sequencer import ProjectionSequencer
from retireplan.models.enums import CandidateKind, Objective
from retireplan.models.params import Parameters
from retireplan.models.records import ScenarioSummary

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

DEFAULT_TEST_AMOUNTS: list[Decimal] = [
    Decimal(v) for v in ("200000", "400000", "600000", "800000", "1000000", "1200000")
]
DEFAULT_TOTAL_AMOUNTS: list[Decimal] = [
    Decimal(v) for v in ("1500000", "2000000", "2500000", "3000000")
]
FRONT_LOAD_STEP = Decimal("0.2")


class ConversionCandidate(BaseModel):
    label: str
    kind: CandidateKind
    conversions: dict[int, Decimal] = Field(default_factory=dict)


class CandidateResult(BaseModel):
    candidate: ConversionCandidate
    summary: ScenarioSummary
    score: Decimal
    rank: int = 0
    actual_label: str
    is_fully_feasible: bool
    feasibility_percent: Decimal
    first_capped_year: int | None
    total_requested: Decimal
    total_actual: Decimal


class OptimizationResult(BaseModel):
    objective: Objective
    target_roth_percent: Decimal | None = None
    candidates: list[CandidateResult] = Field(default_factory=list)
    best: CandidateResult | None = None
    best_feasible: CandidateResult | None = None
    worst: CandidateResult | None = None
    evaluated: int = 0
    total_candidates: int = 0
    cancelled: bool = False


def _thousands(amount: Decimal) -> str:
    return f"${amount / 1000:,.0f}K"


def generate_candidates(
    years: list[int],
    amounts: list[Decimal] | None = None,
    total_amounts: list[Decimal] | None = None,
) -> list[ConversionCandidate]:
    amounts = [a for a in (amounts or DEFAULT_TEST_AMOUNTS) if a > ZERO]
    total_amounts = total_amounts if total_amounts is not None else DEFAULT_TOTAL_AMOUNTS
    years = sorted(set(years))

    candidates = [ConversionCandidate(label="No Conversions", kind=CandidateKind.NONE)]
    if not years:
        return candidates

    for year in years:
        for amount in amounts:
            candidates.append(
                ConversionCandidate(
                    label=f"{year}: {_thousands(amount)}",
                    kind=CandidateKind.SINGLE_YEAR,
                    conversions={year: amount},
                )
            )

    for amount in amounts:
        candidates.append(
            ConversionCandidate(
                label=f"All Years: {_thousands(amount)}/yr",
                kind=CandidateKind.MULTI_YEAR_EVEN,
                conversions={year: amount for year in years},
            )
        )

    n = len(years)
    for total in total_amounts:
        per_year = total / n
        conversions = {
            year: (per_year * (1 + (n - idx - 1) * FRONT_LOAD_STEP)).quantize(Decimal("1"))
            for idx, year in enumerate(years)
        }
        candidates.append(
            ConversionCandidate(
                label=f"Front-loaded: ${total / 1000000:.1f}M total",
                kind=CandidateKind.FRONT_LOADED,
                conversions=conversions,
            )
        )

    return candidates


def objective_score(summary: ScenarioSummary, objective: Objective) -> Decimal:
    if objective == Objective.MAX_HEIR_VALUE:
        return summary.ending_heir_value
    if objective == Objective.MIN_LIFETIME_TAX:
        return summary.total_tax
    if objective == Objective.MAX_PORTFOLIO:
        return summary.ending_portfolio
    return summary.final_roth_percent


def _sort_key(objective: Objective, target_roth: Decimal | None):
    if objective in (Objective.MAX_HEIR_VALUE, Objective.MAX_PORTFOLIO):
        return lambda r: -r.score
    if objective == Objective.MIN_LIFETIME_TAX:
        return lambda r: r.score
    target = target_roth if target_roth is not None else Decimal("0.5")
    return lambda r: abs(r.score - target)


def evaluate_candidate(
    params: Parameters,
    candidate: ConversionCandidate,
    objective: Objective,
) -> CandidateResult:
    scenario = params.model_copy(update={"roth_conversions": dict(candidate.conversions)})
    summary = ProjectionSequencer().project(scenario).summary
    if summary.is_fully_feasible:
        actual_label = candidate.label
    else:
        actual_label = f"{candidate.label} -> Actual: ${summary.total_conversion_actual:,.0f}"
    return CandidateResult(
        candidate=candidate,
        summary=summary,
        score=objective_score(summary, objective),
        actual_label=actual_label,
        is_fully_feasible=summary.is_fully_feasible,
        feasibility_percent=summary.conversion_feasibility_percent,
        first_capped_year=summary.first_conversion_capped_year,
        total_requested=summary.total_conversion_requested,
        total_actual=summary.total_conversion_actual,
    )


def _evaluate_job(job: tuple) -> CandidateResult:
    return evaluate_candidate(*job)


class ScenarioOptimizer:
    """Ranks Roth conversion candidates by projecting each one."""

    def __init__(self, workers: int = 1) -> None:
        self.workers = max(workers, 1)
        self.warnings: list[str] = []

    def optimize(
        self,
        params: Parameters,
        objective: Objective = Objective.MAX_HEIR_VALUE,
        years: list[int] | None = None,
        amounts: list[Decimal] | None = None,
        total_amounts: list[Decimal] | None = None,
        target_roth: Decimal | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OptimizationResult:
        if years is None:
            years = list(range(params.start_year + 1, min(params.start_year + 6, params.end_year + 1)))
        outside = [y for y in years if y < params.start_year or y > params.end_year]
        if outside:
            self.warnings.append(
                "Conversion years outside the plan are ignored by the projection: "
                + ", ".join(str(y) for y in outside)
            )
        if objective == Objective.TARGET_ROTH_PERCENT and target_roth is None:
            target_roth = Decimal("0.5")

        candidates = generate_candidates(years, amounts, total_amounts)
        jobs = [(params, c, objective) for c in candidates]
        logger.info("Evaluating %d conversion candidates (%s)", len(jobs), objective)

        results: list[CandidateResult] = []
        cancelled = False
        if self.workers > 1 and len(jobs) > 1:
            with mp.Pool(self.workers) as pool:
                for result in pool.imap_unordered(_evaluate_job, jobs):
                    results.append(result)
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        break
        else:
            for job in jobs:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                results.append(_evaluate_job(job))

        if cancelled:
            logger.info("Optimization cancelled after %d of %d candidates", len(results), len(jobs))

        return self.rank(results, objective, target_roth, len(jobs), cancelled)

    def rank(
        self,
        results: list[CandidateResult],
        objective: Objective,
        target_roth: Decimal | None = None,
        total_candidates: int | None = None,
        cancelled: bool = False,
    ) -> OptimizationResult:
        # Stable on label so parallel and serial runs order ties identically
        ordered = sorted(results, key=lambda r: r.candidate.label)
        ordered.sort(key=_sort_key(objective, target_roth))
        ranked = [r.model_copy(update={"rank": i + 1}) for i, r in enumerate(ordered)]
        feasible = [r for r in ranked if r.is_fully_feasible]
        return OptimizationResult(
            objective=objective,
            target_roth_percent=target_roth,
            candidates=ranked,
            best=ranked[0] if ranked else None,
            best_feasible=feasible[0] if feasible else None,
            worst=ranked[-1] if ranked else None,
            evaluated=len(ranked),
            total_candidates=total_candidates if total_candidates is not None else len(ranked),
            cancelled=cancelled,
        )
