"""Tests for the withdrawal waterfall."""

from decimal import Decimal

import pytest

from retireplan.engines.waterfall import WithdrawalWaterfall, gain_ratio
from retireplan.models.records import AccountBalances


@pytest.fixture
def waterfall():
    return WithdrawalWaterfall()


def _conserved(balances: AccountBalances, result) -> bool:
    remaining = result.after_tax_remaining + result.ira_remaining + result.roth_remaining
    return remaining == balances.total - result.total_withdrawal + result.rmd_surplus


class TestGainRatio:
    def test_basic(self):
        assert gain_ratio(Decimal("100000"), Decimal("60000")) == Decimal("0.4")

    def test_empty_account(self):
        assert gain_ratio(Decimal("0"), Decimal("60000")) == Decimal("0")

    def test_basis_above_balance(self):
        assert gain_ratio(Decimal("50000"), Decimal("60000")) == Decimal("0")


class TestOrdering:
    def test_after_tax_first(self, waterfall, balances):
        result = waterfall.allocate(Decimal("100000"), balances)
        assert result.after_tax_withdrawal == Decimal("100000")
        assert result.ira_withdrawal == Decimal("0")
        assert result.capital_gains == Decimal("40000")
        assert result.cost_basis_used == Decimal("60000")
        assert result.after_tax_remaining == Decimal("0")
        assert _conserved(balances, result)

    def test_ira_after_brokerage_exhausted(self, waterfall, balances):
        result = waterfall.allocate(Decimal("150000"), balances)
        assert result.after_tax_withdrawal == Decimal("100000")
        assert result.ira_withdrawal == Decimal("50000")
        assert result.roth_withdrawal == Decimal("0")

    def test_roth_last(self, waterfall, balances):
        result = waterfall.allocate(Decimal("700000"), balances)
        assert result.ira_withdrawal == Decimal("500000")
        assert result.roth_withdrawal == Decimal("100000")
        assert result.shortfall == Decimal("0")
        assert _conserved(balances, result)

    def test_shortfall_when_all_accounts_empty(self, waterfall, balances):
        result = waterfall.allocate(Decimal("900000"), balances)
        assert result.total_withdrawal == Decimal("800000")
        assert result.shortfall == Decimal("100000")
        assert result.after_tax_remaining == Decimal("0")
        assert result.ira_remaining == Decimal("0")
        assert result.roth_remaining == Decimal("0")

    def test_zero_need(self, waterfall, balances):
        result = waterfall.allocate(Decimal("0"), balances)
        assert result.total_withdrawal == Decimal("0")
        assert result.after_tax_remaining == Decimal("100000")


class TestRMD:
    def test_rmd_taken_regardless_of_need(self, waterfall, balances):
        result = waterfall.allocate(Decimal("20000"), balances, rmd_required=Decimal("50000"))
        assert result.ira_withdrawal == Decimal("50000")
        assert result.after_tax_withdrawal == Decimal("0")
        assert result.rmd_surplus == Decimal("30000")

    def test_surplus_reinvested_as_basis(self, waterfall, balances):
        result = waterfall.allocate(Decimal("20000"), balances, rmd_required=Decimal("50000"))
        assert result.after_tax_remaining == Decimal("130000")
        assert result.cost_basis_remaining == Decimal("90000")
        assert _conserved(balances, result)

    def test_rmd_covers_part_of_need(self, waterfall, balances):
        result = waterfall.allocate(Decimal("80000"), balances, rmd_required=Decimal("50000"))
        assert result.rmd_surplus == Decimal("0")
        assert result.after_tax_withdrawal == Decimal("30000")
        assert result.ira_withdrawal == Decimal("50000")


class TestConversion:
    def test_conversion_moves_ira_to_roth(self, waterfall, balances):
        result = waterfall.allocate(
            Decimal("0"), balances, conversion_requested=Decimal("100000")
        )
        assert result.conversion_actual == Decimal("100000")
        assert result.conversion_capped is False
        assert result.ira_remaining == Decimal("400000")
        assert result.roth_remaining == Decimal("300000")

    def test_conversion_capped_by_remaining_ira(self, waterfall, balances):
        result = waterfall.allocate(
            Decimal("150000"), balances, conversion_requested=Decimal("600000")
        )
        assert result.conversion_requested == Decimal("600000")
        assert result.conversion_actual == Decimal("450000")
        assert result.conversion_capped is True
        assert result.ira_remaining == Decimal("0")
        assert result.roth_remaining == Decimal("650000")
        assert _conserved(balances, result)


class TestHarvest:
    def test_harvest_steps_up_basis(self, waterfall, balances):
        result = waterfall.allocate(
            Decimal("0"), balances, harvest_requested=Decimal("50000")
        )
        assert result.harvest_amount == Decimal("50000")
        assert result.harvest_gains == Decimal("20000")
        assert result.cost_basis_remaining == Decimal("80000")
        assert result.after_tax_remaining == Decimal("100000")

    def test_harvest_limited_to_remaining_brokerage(self, waterfall, balances):
        result = waterfall.allocate(
            Decimal("80000"), balances, harvest_requested=Decimal("50000")
        )
        assert result.harvest_amount == Decimal("20000")
