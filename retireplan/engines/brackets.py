"""Tax bracket configuration.

Federal brackets, standard deductions, LTCG tiers, NIIT, IRMAA tiers, RMD
divisor tables and heir state rates. Keyed by base year and filing status;
projection years are derived by inflating the base-year thresholds. Never
hardcode brackets in computation functions.

Sources:
  - 2024: IRS Rev. Proc. 2023-34
  - 2025: IRS Rev. Proc. 2024-40
  - IRMAA 2026: CMS premium notice (2024 MAGI)
  - RMD: Treas. Reg. 1.401(a)(9)-9 Uniform Lifetime and Single Life tables
"""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict

from retireplan.exceptions import TableLookupError
from retireplan.models.enums import FilingStatus

Brackets = list[tuple[Decimal | None, Decimal]]

# ---------------------------------------------------------------------------
# Federal ordinary income brackets: {year: {filing_status: [(upper_bound, rate), ...]}}
# Upper bound is Decimal or None for the top bracket.
# ---------------------------------------------------------------------------
FEDERAL_BRACKETS: dict[int, dict[FilingStatus, Brackets]] = {
    2024: {
        FilingStatus.SINGLE: [
            (Decimal("11600"), Decimal("0.10")),
            (Decimal("47150"), Decimal("0.12")),
            (Decimal("100525"), Decimal("0.22")),
            (Decimal("191950"), Decimal("0.24")),
            (Decimal("243725"), Decimal("0.32")),
            (Decimal("609350"), Decimal("0.35")),
            (None, Decimal("0.37")),
        ],
        FilingStatus.MFJ: [
            (Decimal("23200"), Decimal("0.10")),
            (Decimal("94300"), Decimal("0.12")),
            (Decimal("201050"), Decimal("0.22")),
            (Decimal("383900"), Decimal("0.24")),
            (Decimal("487450"), Decimal("0.32")),
            (Decimal("731200"), Decimal("0.35")),
            (None, Decimal("0.37")),
        ],
    },
    2025: {
        FilingStatus.SINGLE: [
            (Decimal("11925"), Decimal("0.10")),
            (Decimal("48475"), Decimal("0.12")),
            (Decimal("103350"), Decimal("0.22")),
            (Decimal("197300"), Decimal("0.24")),
            (Decimal("250525"), Decimal("0.32")),
            (Decimal("626350"), Decimal("0.35")),
            (None, Decimal("0.37")),
        ],
        FilingStatus.MFJ: [
            (Decimal("23850"), Decimal("0.10")),
            (Decimal("96950"), Decimal("0.12")),
            (Decimal("206700"), Decimal("0.22")),
            (Decimal("394600"), Decimal("0.24")),
            (Decimal("501050"), Decimal("0.32")),
            (Decimal("751600"), Decimal("0.35")),
            (None, Decimal("0.37")),
        ],
    },
}

# ---------------------------------------------------------------------------
# Federal standard deduction, plus the additional amount for filers 65+
# ---------------------------------------------------------------------------
FEDERAL_STANDARD_DEDUCTION: dict[int, dict[FilingStatus, Decimal]] = {
    2024: {
        FilingStatus.SINGLE: Decimal("14600"),
        FilingStatus.MFJ: Decimal("29200"),
    },
    2025: {
        FilingStatus.SINGLE: Decimal("15000"),
        FilingStatus.MFJ: Decimal("30000"),
    },
}

SENIOR_DEDUCTION_BONUS: dict[int, dict[FilingStatus, Decimal]] = {
    2024: {
        FilingStatus.SINGLE: Decimal("1950"),
        FilingStatus.MFJ: Decimal("3100"),  # both spouses
    },
    2025: {
        FilingStatus.SINGLE: Decimal("2000"),
        FilingStatus.MFJ: Decimal("3200"),
    },
}
SENIOR_DEDUCTION_AGE = 65

# ---------------------------------------------------------------------------
# Federal LTCG rate brackets: (upper_bound, rate)
# Taxable-income thresholds for the 0%/15%/20% rates, IRC Section 1(h).
# ---------------------------------------------------------------------------
FEDERAL_LTCG_BRACKETS: dict[int, dict[FilingStatus, Brackets]] = {
    2024: {
        FilingStatus.SINGLE: [
            (Decimal("47025"), Decimal("0.00")),
            (Decimal("518900"), Decimal("0.15")),
            (None, Decimal("0.20")),
        ],
        FilingStatus.MFJ: [
            (Decimal("94050"), Decimal("0.00")),
            (Decimal("583750"), Decimal("0.15")),
            (None, Decimal("0.20")),
        ],
    },
    2025: {
        FilingStatus.SINGLE: [
            (Decimal("48475"), Decimal("0.00")),
            (Decimal("533400"), Decimal("0.15")),
            (None, Decimal("0.20")),
        ],
        FilingStatus.MFJ: [
            (Decimal("96950"), Decimal("0.00")),
            (Decimal("600050"), Decimal("0.15")),
            (None, Decimal("0.20")),
        ],
    },
}

# ---------------------------------------------------------------------------
# NIIT thresholds (IRC Section 1411)
# Thresholds are NOT inflation-adjusted (statutory amounts).
# ---------------------------------------------------------------------------
NIIT_RATE = Decimal("0.038")
NIIT_THRESHOLD: dict[FilingStatus, Decimal] = {
    FilingStatus.SINGLE: Decimal("200000"),
    FilingStatus.MFJ: Decimal("250000"),
}

# ---------------------------------------------------------------------------
# Social Security provisional-income thresholds (IRC Section 86)
# (50% threshold, 85% threshold). Not inflation-adjusted.
# ---------------------------------------------------------------------------
SS_TAXABILITY_THRESHOLDS: dict[FilingStatus, tuple[Decimal, Decimal]] = {
    FilingStatus.SINGLE: (Decimal("25000"), Decimal("34000")),
    FilingStatus.MFJ: (Decimal("32000"), Decimal("44000")),
}

# ---------------------------------------------------------------------------
# Medicare IRMAA tiers: (MAGI lower threshold, Part B monthly, Part D monthly)
# A tier applies when MAGI exceeds its threshold. Premiums are per person and
# include the standard Part B premium. Thresholds inflate from IRMAA_BASE_YEAR;
# premiums do not.
# ---------------------------------------------------------------------------
IRMAA_BASE_YEAR = 2026
IRMAA_TIERS: dict[FilingStatus, list[tuple[Decimal, Decimal, Decimal]]] = {
    FilingStatus.MFJ: [
        (Decimal("0"), Decimal("202.90"), Decimal("0")),
        (Decimal("218000"), Decimal("284.10"), Decimal("14.50")),
        (Decimal("274000"), Decimal("405.80"), Decimal("37.40")),
        (Decimal("342000"), Decimal("527.50"), Decimal("60.30")),
        (Decimal("410000"), Decimal("649.20"), Decimal("83.20")),
        (Decimal("750000"), Decimal("689.90"), Decimal("91.00")),
    ],
    FilingStatus.SINGLE: [
        (Decimal("0"), Decimal("202.90"), Decimal("0")),
        (Decimal("109000"), Decimal("284.10"), Decimal("14.50")),
        (Decimal("137000"), Decimal("405.80"), Decimal("37.40")),
        (Decimal("171000"), Decimal("527.50"), Decimal("60.30")),
        (Decimal("205000"), Decimal("649.20"), Decimal("83.20")),
        (Decimal("500000"), Decimal("689.90"), Decimal("91.00")),
    ],
}

# ---------------------------------------------------------------------------
# Required minimum distributions (SECURE 2.0)
# ---------------------------------------------------------------------------
RMD_START_AGE = 73

UNIFORM_LIFETIME_TABLE: dict[int, Decimal] = {
    age: Decimal(factor)
    for age, factor in {
        72: "27.4", 73: "26.5", 74: "25.5", 75: "24.6", 76: "23.7",
        77: "22.9", 78: "22.0", 79: "21.1", 80: "20.2", 81: "19.4",
        82: "18.5", 83: "17.7", 84: "16.8", 85: "16.0", 86: "15.2",
        87: "14.4", 88: "13.7", 89: "12.9", 90: "12.2", 91: "11.5",
        92: "10.8", 93: "10.1", 94: "9.5", 95: "8.9", 96: "8.4",
        97: "7.8", 98: "7.3", 99: "6.8", 100: "6.4", 101: "6.0",
        102: "5.6", 103: "5.2", 104: "4.9", 105: "4.6", 106: "4.3",
        107: "4.1", 108: "3.9", 109: "3.7", 110: "3.5", 111: "3.4",
        112: "3.3", 113: "3.1", 114: "3.0", 115: "2.9", 116: "2.8",
        117: "2.7", 118: "2.5", 119: "2.3", 120: "2.0",
    }.items()
}

# Beneficiary Single Life Expectancy table (inherited IRAs)
SINGLE_LIFE_TABLE: dict[int, Decimal] = {
    age: Decimal(factor)
    for age, factor in {
        20: "63.0", 21: "62.1", 22: "61.1", 23: "60.1", 24: "59.2",
        25: "58.2", 26: "57.2", 27: "56.3", 28: "55.3", 29: "54.3",
        30: "53.3", 31: "52.4", 32: "51.4", 33: "50.4", 34: "49.4",
        35: "48.5", 36: "47.5", 37: "46.5", 38: "45.6", 39: "44.6",
        40: "43.6", 41: "42.7", 42: "41.7", 43: "40.7", 44: "39.8",
        45: "38.8", 46: "37.9", 47: "36.9", 48: "35.9", 49: "35.0",
        50: "34.0", 51: "33.1", 52: "32.1", 53: "31.2", 54: "30.2",
        55: "29.3", 56: "28.3", 57: "27.4", 58: "26.5", 59: "25.5",
        60: "24.6", 61: "23.7", 62: "22.8", 63: "21.8", 64: "20.9",
        65: "20.0", 66: "19.1", 67: "18.2", 68: "17.4", 69: "16.5",
        70: "15.6", 71: "14.8", 72: "13.9", 73: "13.1", 74: "12.3",
        75: "11.5", 76: "10.7", 77: "9.9", 78: "9.2", 79: "8.4",
        80: "7.7", 81: "7.0", 82: "6.3", 83: "5.7", 84: "5.1",
        85: "4.5", 86: "4.0", 87: "3.5", 88: "3.0", 89: "2.6",
        90: "2.2",
    }.items()
}

INHERITED_IRA_WINDOW_YEARS = 10

# ---------------------------------------------------------------------------
# Heir state income tax: top marginal rate by state (flat approximation)
# ---------------------------------------------------------------------------
HEIR_BRACKET_YEAR = 2024

STATE_TAX_RATES: dict[str, Decimal] = {
    # No income tax
    "AK": Decimal("0"), "FL": Decimal("0"), "NV": Decimal("0"),
    "NH": Decimal("0"), "SD": Decimal("0"), "TN": Decimal("0"),
    "TX": Decimal("0"), "WA": Decimal("0"), "WY": Decimal("0"),
    # Flat tax
    "IL": Decimal("0.0495"), "CO": Decimal("0.044"), "IN": Decimal("0.0305"),
    "KY": Decimal("0.04"), "MA": Decimal("0.09"), "MI": Decimal("0.0425"),
    "NC": Decimal("0.0475"), "PA": Decimal("0.0307"), "UT": Decimal("0.0465"),
    # Progressive, top rate
    "CA": Decimal("0.133"), "NY": Decimal("0.109"), "NJ": Decimal("0.1075"),
    "OR": Decimal("0.099"), "MN": Decimal("0.0985"), "VT": Decimal("0.0875"),
    "WI": Decimal("0.0765"), "HI": Decimal("0.11"), "SC": Decimal("0.07"),
    "MT": Decimal("0.0675"), "AZ": Decimal("0.045"), "GA": Decimal("0.055"),
    "VA": Decimal("0.0575"), "OH": Decimal("0.04"), "MD": Decimal("0.0575"),
    "DC": Decimal("0.105"),
}


class YearTaxTables(BaseModel):
    """Brackets and thresholds for one projection year, already inflated."""

    model_config = ConfigDict(frozen=True)

    year: int
    filing_status: FilingStatus
    federal_brackets: Brackets
    ltcg_brackets: Brackets
    standard_deduction: Decimal
    irmaa_tiers: list[tuple[Decimal, Decimal, Decimal]]
    niit_threshold: Decimal
    ss_thresholds: tuple[Decimal, Decimal]


def inflation_factor(rate: Decimal, years: int) -> Decimal:
    if years <= 0:
        return Decimal("1")
    return (Decimal("1") + rate) ** years


def _round_dollar(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _inflate_brackets(brackets: Brackets, factor: Decimal) -> Brackets:
    return [
        (None if upper is None else _round_dollar(upper * factor), rate)
        for upper, rate in brackets
    ]


def _base_table(table: dict, base_year: int, filing_status: FilingStatus, name: str):
    try:
        return table[base_year][filing_status]
    except KeyError:
        raise TableLookupError(name, (base_year, str(filing_status))) from None


def build_year_tables(
    year: int,
    filing_status: FilingStatus,
    base_year: int = 2024,
    inflation: Decimal = Decimal("0.03"),
    age: int | None = None,
) -> YearTaxTables:
    """Inflate base-year brackets and thresholds to ``year``.

    The senior deduction bonus is added when ``age`` is 65 or older.
    NIIT and Social Security thresholds are statutory and stay fixed.
    """
    factor = inflation_factor(inflation, year - base_year)
    federal = _base_table(FEDERAL_BRACKETS, base_year, filing_status, "FEDERAL_BRACKETS")
    ltcg = _base_table(FEDERAL_LTCG_BRACKETS, base_year, filing_status, "FEDERAL_LTCG_BRACKETS")
    deduction = _base_table(
        FEDERAL_STANDARD_DEDUCTION, base_year, filing_status, "FEDERAL_STANDARD_DEDUCTION"
    )
    if age is not None and age >= SENIOR_DEDUCTION_AGE:
        deduction += _base_table(
            SENIOR_DEDUCTION_BONUS, base_year, filing_status, "SENIOR_DEDUCTION_BONUS"
        )

    irmaa_factor = inflation_factor(inflation, year - IRMAA_BASE_YEAR)
    irmaa = [
        (_round_dollar(threshold * irmaa_factor), part_b, part_d)
        for threshold, part_b, part_d in IRMAA_TIERS[filing_status]
    ]

    return YearTaxTables(
        year=year,
        filing_status=filing_status,
        federal_brackets=_inflate_brackets(federal, factor),
        ltcg_brackets=_inflate_brackets(ltcg, factor),
        standard_deduction=_round_dollar(deduction * factor),
        irmaa_tiers=irmaa,
        niit_threshold=NIIT_THRESHOLD[filing_status],
        ss_thresholds=SS_TAXABILITY_THRESHOLDS[filing_status],
    )


def uniform_lifetime_factor(age: int) -> Decimal:
    if age not in UNIFORM_LIFETIME_TABLE:
        raise TableLookupError("UNIFORM_LIFETIME_TABLE", age)
    return UNIFORM_LIFETIME_TABLE[age]


def single_life_factor(age: int) -> Decimal:
    if age not in SINGLE_LIFE_TABLE:
        raise TableLookupError("SINGLE_LIFE_TABLE", age)
    return SINGLE_LIFE_TABLE[age]
