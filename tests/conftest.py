"""Shared test fixtures for retireplan."""

from decimal import Decimal

import pytest

from retireplan.engines.brackets import build_year_tables
from retireplan.models.enums import FilingStatus, ReturnMode
from retireplan.models.params import Heir, Parameters
from retireplan.models.records import AccountBalances


@pytest.fixture
def base_params() -> Parameters:
    """Default plan: couple born 1960, $6.5M across three accounts, 30 years."""
    return Parameters()


@pytest.fixture
def short_params() -> Parameters:
    """Five-year plan with fixed per-account returns (fast, easy to reason about)."""
    return Parameters(
        start_year=2025,
        end_year=2029,
        return_mode=ReturnMode.ACCOUNT,
    )


@pytest.fixture
def rmd_params() -> Parameters:
    """Owner turns 73 in the first year with $1M IRA and no other accounts."""
    return Parameters(
        start_year=2025,
        end_year=2025,
        birth_year=1952,
        after_tax_start=Decimal("0"),
        after_tax_cost_basis=Decimal("0"),
        ira_start=Decimal("1000000"),
        roth_start=Decimal("0"),
        social_security_monthly=Decimal("0"),
        annual_expenses=Decimal("0"),
        return_mode=ReturnMode.ACCOUNT,
    )


@pytest.fixture
def two_heirs() -> list[Heir]:
    return [
        Heir(name="Alex", state="IL", agi=Decimal("150000"), split_percent=Decimal("50")),
        Heir(name="Sam", state="IL", agi=Decimal("150000"), split_percent=Decimal("50")),
    ]


@pytest.fixture
def mfj_tables_2025():
    return build_year_tables(2025, FilingStatus.MFJ, base_year=2025, inflation=Decimal("0"))


@pytest.fixture
def balances() -> AccountBalances:
    return AccountBalances(
        after_tax=Decimal("100000"),
        ira=Decimal("500000"),
        roth=Decimal("200000"),
        cost_basis=Decimal("60000"),
    )
