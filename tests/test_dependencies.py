"""Tests for the field dependency table."""

import pytest

from retireplan.dependencies import (
    FIELD_DEPENDENCIES,
    FIELD_FORMULAS,
    dependencies_for,
    dependency_sign,
)
from retireplan.exceptions import UnknownFieldError
from retireplan.models.records import YearRecord

YEARS = set(range(2025, 2035))


class TestDependencyTable:
    def test_all_names_are_record_fields(self):
        for field, deps in FIELD_DEPENDENCIES.items():
            assert field in YearRecord.model_fields, field
            for _, name in deps:
                assert name in YearRecord.model_fields, f"{field} -> {name}"

    def test_offsets_never_look_forward(self):
        for deps in FIELD_DEPENDENCIES.values():
            for offset, _ in deps:
                assert offset <= 0

    def test_formulas_cover_known_fields(self):
        for field in FIELD_FORMULAS:
            assert field in YearRecord.model_fields


class TestDependenciesFor:
    def test_same_year(self):
        deps = dependencies_for("total_tax", 2030, YEARS)
        assert (2030, "federal_tax") in deps
        assert len(deps) == 4

    def test_prior_year(self):
        assert dependencies_for("ira_boy", 2030, YEARS) == [(2029, "ira_eoy")]

    def test_irmaa_lookback(self):
        assert dependencies_for("irmaa_part_b", 2030, YEARS) == [(2028, "magi")]

    def test_references_before_projection_dropped(self):
        assert dependencies_for("ira_boy", 2025, YEARS) == []
        assert dependencies_for("cumulative_tax", 2025, YEARS) == [(2025, "total_tax")]

    def test_field_without_inputs(self):
        assert dependencies_for("expenses", 2030, YEARS) == []

    def test_unknown_field(self):
        with pytest.raises(UnknownFieldError):
            dependencies_for("bogus", 2030, YEARS)


class TestDependencySign:
    def test_conversion_reduces_ira(self):
        assert dependency_sign("roth_conversion", "ira_eoy") == "-"
        assert dependency_sign("roth_conversion", "roth_eoy") == "+"

    def test_withdrawals_reduce_balances(self):
        assert dependency_sign("ira_withdrawal", "ira_eoy") == "-"

    def test_deduction_reduces_taxable_income(self):
        assert dependency_sign("standard_deduction", "taxable_ordinary_income") == "-"

    def test_default_positive(self):
        assert dependency_sign("federal_tax", "total_tax") == "+"
