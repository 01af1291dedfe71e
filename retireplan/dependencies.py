"""Static field dependency table for explaining projection values.

Each YearRecord field maps to the (year offset, field) pairs its value is
computed from. Offset 0 is the same year, -1 the prior year, and so on.
References to years outside the projection are dropped at lookup time.
"""

from retireplan.exceptions import UnknownFieldError
from retireplan.models.records import YearRecord

FIELD_DEPENDENCIES: dict[str, tuple[tuple[int, str], ...]] = {
    # Beginning of year = prior end of year
    "after_tax_boy": ((-1, "after_tax_eoy"),),
    "ira_boy": ((-1, "ira_eoy"),),
    "roth_boy": ((-1, "roth_eoy"),),
    "cost_basis_boy": ((-1, "cost_basis_eoy"),),
    "total_boy": ((0, "after_tax_boy"), (0, "ira_boy"), (0, "roth_boy")),
    # End of year = (BOY - outflows +/- conversion) * (1 + return)
    "after_tax_eoy": (
        (0, "after_tax_boy"),
        (0, "after_tax_withdrawal"),
        (0, "rmd_surplus"),
        (0, "after_tax_return"),
    ),
    "ira_eoy": (
        (0, "ira_boy"),
        (0, "ira_withdrawal"),
        (0, "roth_conversion"),
        (0, "ira_return"),
    ),
    "roth_eoy": (
        (0, "roth_boy"),
        (0, "roth_withdrawal"),
        (0, "roth_conversion"),
        (0, "roth_return"),
    ),
    "total_eoy": ((0, "after_tax_eoy"), (0, "ira_eoy"), (0, "roth_eoy")),
    "cost_basis_eoy": (
        (0, "cost_basis_boy"),
        (0, "after_tax_withdrawal"),
        (0, "harvest_gains"),
        (0, "rmd_surplus"),
    ),
    "total_withdrawal": (
        (0, "after_tax_withdrawal"),
        (0, "ira_withdrawal"),
        (0, "roth_withdrawal"),
    ),
    "ira_withdrawal": ((0, "rmd_required"), (0, "expenses"), (0, "total_tax"), (0, "irmaa_total")),
    "after_tax_withdrawal": ((0, "expenses"), (0, "total_tax"), (0, "social_security")),
    # Tax
    "total_tax": ((0, "federal_tax"), (0, "ltcg_tax"), (0, "niit"), (0, "state_tax")),
    "federal_tax": ((0, "taxable_ordinary_income"),),
    "ltcg_tax": ((0, "capital_gains"), (0, "taxable_ordinary_income")),
    "niit": ((0, "capital_gains"), (0, "magi")),
    "state_tax": ((0, "capital_gains"),),
    "taxable_social_security": (
        (0, "social_security"),
        (0, "ira_withdrawal"),
        (0, "roth_conversion"),
        (0, "capital_gains"),
    ),
    "ordinary_income": (
        (0, "ira_withdrawal"),
        (0, "roth_conversion"),
        (0, "taxable_social_security"),
    ),
    "taxable_ordinary_income": ((0, "ordinary_income"), (0, "standard_deduction")),
    "magi": ((0, "ordinary_income"), (0, "capital_gains")),
    "capital_gains": (
        (0, "after_tax_withdrawal"),
        (0, "cost_basis_boy"),
        (0, "after_tax_boy"),
        (0, "harvest_gains"),
    ),
    # IRMAA uses MAGI from two years prior
    "irmaa_total": ((0, "irmaa_part_b"), (0, "irmaa_part_d")),
    "irmaa_part_b": ((-2, "magi"),),
    "irmaa_part_d": ((-2, "magi"),),
    "irmaa_lookback_magi": ((-2, "magi"),),
    # RMD
    "rmd_required": ((0, "ira_boy"), (0, "rmd_factor")),
    # Heirs
    "heir_value": ((0, "after_tax_eoy"), (0, "ira_eoy"), (0, "roth_eoy")),
    "roth_percent": ((0, "roth_eoy"), (0, "total_eoy")),
    # Cumulative trackers
    "cumulative_tax": ((0, "total_tax"), (-1, "cumulative_tax")),
    "cumulative_irmaa": ((0, "irmaa_total"), (-1, "cumulative_irmaa")),
    "cumulative_capital_gains": ((0, "capital_gains"), (-1, "cumulative_capital_gains")),
    "cumulative_expenses": ((0, "expenses"), (-1, "cumulative_expenses")),
}

FIELD_FORMULAS: dict[str, str] = {
    "total_boy": "after_tax_boy + ira_boy + roth_boy",
    "after_tax_eoy": "(after_tax_boy - after_tax_withdrawal + rmd_surplus) * (1 + after_tax_return)",
    "ira_eoy": "(ira_boy - ira_withdrawal - roth_conversion) * (1 + ira_return)",
    "roth_eoy": "(roth_boy - roth_withdrawal + roth_conversion) * (1 + roth_return)",
    "total_eoy": "after_tax_eoy + ira_eoy + roth_eoy",
    "total_withdrawal": "after_tax_withdrawal + ira_withdrawal + roth_withdrawal",
    "total_tax": "federal_tax + ltcg_tax + niit + state_tax",
    "federal_tax": "progressive brackets applied to taxable_ordinary_income",
    "ltcg_tax": "capital_gains stacked on taxable_ordinary_income through 0/15/20% tiers",
    "niit": "3.8% * min(capital_gains, magi - threshold)",
    "state_tax": "capital_gains * state_tax_rate",
    "ordinary_income": "ira_withdrawal + roth_conversion + taxable_social_security",
    "taxable_ordinary_income": "max(ordinary_income + capital_gains - standard_deduction, 0) - preferential gains",
    "magi": "ordinary_income + capital_gains",
    "capital_gains": "after_tax_withdrawal * (1 - cost_basis_boy / after_tax_boy) + harvest_gains",
    "irmaa_total": "irmaa_part_b + irmaa_part_d",
    "rmd_required": "ira_boy / rmd_factor",
    "heir_value": "after_tax_eoy + roth_eoy + ira_eoy * (1 - heir combined rate)",
    "roth_percent": "roth_eoy / total_eoy",
    "cumulative_tax": "prior cumulative_tax + total_tax",
    "cumulative_irmaa": "prior cumulative_irmaa + irmaa_total",
    "cumulative_capital_gains": "prior cumulative_capital_gains + capital_gains",
    "cumulative_expenses": "prior cumulative_expenses + expenses",
}

_NEGATIVE = {"after_tax_withdrawal", "ira_withdrawal", "roth_withdrawal", "rmd_factor"}


def dependencies_for(field: str, year: int, available_years: set[int]) -> list[tuple[int, str]]:
    """(year, field) inputs of ``field`` in ``year`` that exist in the projection."""
    if field not in YearRecord.model_fields:
        raise UnknownFieldError(field)
    return [
        (year + offset, name)
        for offset, name in FIELD_DEPENDENCIES.get(field, ())
        if year + offset in available_years
    ]


def dependency_sign(field: str, parent: str) -> str:
    """'+' or '-' contribution of ``field`` to ``parent``."""
    if field == "roth_conversion":
        return "-" if parent == "ira_eoy" else "+"
    if field == "standard_deduction" and parent == "taxable_ordinary_income":
        return "-"
    if field == "cost_basis_boy" and parent == "capital_gains":
        return "-"
    return "-" if field in _NEGATIVE else "+"
