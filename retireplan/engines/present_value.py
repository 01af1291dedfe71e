"""Present/future value conversion of nominal projection values."""

from decimal import Decimal

from retireplan.exceptions import UnknownFieldError
from retireplan.models.records import YearRecord

ONE = Decimal("1")


def _check(years: int, rate: Decimal) -> None:
    if years < 0:
        raise ValueError(f"years must be non-negative, got {years}")
    if rate < 0:
        raise ValueError(f"discount rate must be non-negative, got {rate}")


def present_value(value: Decimal, years: int, rate: Decimal) -> Decimal:
    """value / (1 + rate) ** years"""
    _check(years, rate)
    return value / (ONE + rate) ** years


def future_value(value: Decimal, years: int, rate: Decimal) -> Decimal:
    """value * (1 + rate) ** years"""
    _check(years, rate)
    return value * (ONE + rate) ** years


def present_value_record(
    record: YearRecord,
    fields: list[str],
    start_year: int,
    rate: Decimal,
) -> dict[str, Decimal]:
    """Discount the named monetary fields of a record back to ``start_year``."""
    years = record.year - start_year
    values: dict[str, Decimal] = {}
    for name in fields:
        if name not in YearRecord.model_fields:
            raise UnknownFieldError(name)
        value = getattr(record, name)
        if not isinstance(value, Decimal):
            raise ValueError(f"Field {name} is not a monetary value")
        values[name] = present_value(value, years, rate)
    return values
