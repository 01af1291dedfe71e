"""Tests for projection input and output models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from retireplan.engines.sequencer import project
from retireplan.models.enums import FilingStatus, HeirDistributionStrategy, ReturnMode
from retireplan.models.params import Heir, Parameters, SurvivorEvent
from retireplan.models.records import AccountBalances


class TestParameters:
    def test_defaults(self):
        params = Parameters()
        assert params.filing_status == FilingStatus.MFJ
        assert params.return_mode == ReturnMode.BLENDED
        assert params.heir_distribution_strategy == HeirDistributionStrategy.RMD_BASED
        assert params.roth_conversions == {}

    def test_frozen(self):
        params = Parameters()
        with pytest.raises(ValidationError):
            params.start_year = 2030

    def test_model_copy_leaves_original(self):
        params = Parameters()
        changed = params.model_copy(update={"annual_expenses": Decimal("90000")})
        assert changed.annual_expenses == Decimal("90000")
        assert params.annual_expenses == Decimal("120000")

    def test_schedule_keys_coerced_from_json(self):
        params = Parameters.model_validate({"roth_conversions": {"2026": "100000"}})
        assert params.roth_conversions == {2026: Decimal("100000")}

    def test_invalid_enum_rejected(self):
        with pytest.raises(ValidationError):
            Parameters(return_mode="SOMETIMES")

    def test_json_round_trip(self):
        params = Parameters(
            heirs=[Heir(name="Alex", split_percent=Decimal("100"))],
            survivor=SurvivorEvent(death_year=2040),
        )
        assert Parameters.model_validate_json(params.model_dump_json()) == params

    def test_age_in(self):
        assert Parameters(birth_year=1960).age_in(2033) == 73

    def test_survivor_years(self):
        params = Parameters(survivor=SurvivorEvent(death_year=2030))
        assert params.is_survivor_year(2029) is False
        assert params.is_survivor_year(2030) is True
        assert Parameters().is_survivor_year(2030) is False


class TestRecords:
    def test_account_total(self, balances):
        assert balances.total == Decimal("800000")

    def test_balances_frozen(self, balances):
        with pytest.raises(ValidationError):
            balances.ira = Decimal("0")

    def test_record_for(self, short_params):
        result = project(short_params)
        assert result.record_for(2027).year == 2027
        assert result.record_for(1999) is None

    def test_year_record_frozen(self, short_params):
        record = project(short_params).records[0]
        with pytest.raises(ValidationError):
            record.total_tax = Decimal("0")

    def test_negative_balances_allowed_in_model(self):
        # Clamping happens in the engine, not on construction
        balances = AccountBalances(
            after_tax=Decimal("-1"), ira=Decimal("0"), roth=Decimal("0"), cost_basis=Decimal("0")
        )
        assert balances.total == Decimal("-1")
