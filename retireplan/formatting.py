"""Display formatting for currency and percentages.

Precision is passed explicitly through FormatConfig; the engine never rounds.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Precision(StrEnum):
    SIG2 = "sig2"
    SIG3 = "sig3"
    SIG4 = "sig4"
    DOLLARS = "dollars"
    CENTS = "cents"


_SIG_FIGS = {Precision.SIG2: 2, Precision.SIG3: 3, Precision.SIG4: 4}

_SUFFIXES = (
    (Decimal("1e9"), "B"),
    (Decimal("1e6"), "M"),
    (Decimal("1e3"), "K"),
)


class FormatConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    precision: Precision = Precision.SIG3
    abbreviate: bool = True
    show_sign: bool = False
    prefix: str = "$"
    percent_decimals: int = 1


DEFAULT_FORMAT = FormatConfig()


def to_sig_figs(value: Decimal, sig_figs: int) -> Decimal:
    if value == 0:
        return Decimal("0")
    exponent = value.adjusted() - sig_figs + 1
    return value.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_HALF_UP)


def _grouped_dollars(value: Decimal) -> str:
    return f"{value.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,}"


def format_currency(value: Decimal | None, config: FormatConfig = DEFAULT_FORMAT) -> str:
    if value is None:
        return f"{config.prefix}0"
    value = Decimal(value)
    magnitude = abs(value)
    if value < 0:
        sign = "-"
    elif config.show_sign and value > 0:
        sign = "+"
    else:
        sign = ""

    if config.precision == Precision.CENTS:
        cents = magnitude.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return f"{sign}{config.prefix}{cents:,.2f}"
    if config.precision == Precision.DOLLARS:
        return f"{sign}{config.prefix}{_grouped_dollars(magnitude)}"

    sig_figs = _SIG_FIGS[config.precision]
    if config.abbreviate and magnitude >= 1000:
        rounded = to_sig_figs(magnitude, sig_figs)
        for scale, suffix in _SUFFIXES:
            if rounded >= scale:
                num = rounded / scale
                decimals = max(0, sig_figs - num.adjusted() - 1)
                return f"{sign}{config.prefix}{num:.{decimals}f}{suffix}"

    return f"{sign}{config.prefix}{_grouped_dollars(magnitude)}"


def format_percent(value: Decimal | None, config: FormatConfig = DEFAULT_FORMAT) -> str:
    """0.05 -> '5.0%'"""
    if value is None:
        return "0%"
    percent = Decimal(value) * 100
    return f"{percent:.{config.percent_decimals}f}%"


def format_value(field: str, value, config: FormatConfig = DEFAULT_FORMAT) -> str:
    """Format a YearRecord value by field name."""
    if value is None:
        return ""
    if isinstance(value, bool) or isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if field.endswith(("_rate", "_percent", "_return")):
            return format_percent(value, config)
        if field == "rmd_factor":
            return f"{value:.1f}"
        return format_currency(value, config)
    return str(value)
