"""Risk-band allocation for blended returns.

The whole portfolio is split into low/moderate/high risk bands (low filled to
its target first, then moderate, remainder high). Bands are then assigned to
accounts in order: after-tax, IRA, Roth. Each account's return is the
weighted average of the bands it holds, so the safest money sits in the most
accessible account and Roth carries the growth assets.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from retireplan.models.enums import ReturnMode
from retireplan.models.params import Parameters
from retireplan.models.records import AccountBalances

ZERO = Decimal("0")


class BandAllocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    low: Decimal = ZERO
    mod: Decimal = ZERO
    high: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.low + self.mod + self.high


class RiskAllocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    portfolio: BandAllocation
    after_tax: BandAllocation
    ira: BandAllocation
    roth: BandAllocation


def allocate_risk_bands(
    balances: AccountBalances, low_target: Decimal, mod_target: Decimal
) -> RiskAllocation:
    total = max(balances.total, ZERO)
    portfolio = BandAllocation(
        low=min(total, low_target),
        mod=min(max(total - low_target, ZERO), mod_target),
        high=max(total - low_target - mod_target, ZERO),
    )

    remaining_low = portfolio.low
    remaining_mod = portfolio.mod
    accounts = []
    for balance in (balances.after_tax, balances.ira, balances.roth):
        balance = max(balance, ZERO)
        low = min(balance, remaining_low)
        remaining_low -= low
        mod = min(balance - low, remaining_mod)
        remaining_mod -= mod
        accounts.append(BandAllocation(low=low, mod=mod, high=balance - low - mod))

    return RiskAllocation(
        portfolio=portfolio, after_tax=accounts[0], ira=accounts[1], roth=accounts[2]
    )


def blended_return(
    allocation: BandAllocation,
    low_return: Decimal,
    mod_return: Decimal,
    high_return: Decimal,
) -> Decimal:
    total = allocation.total
    if total <= ZERO:
        return ZERO
    weighted = (
        allocation.low * low_return
        + allocation.mod * mod_return
        + allocation.high * high_return
    )
    return weighted / total


def effective_returns(
    params: Parameters, balances: AccountBalances
) -> tuple[Decimal, Decimal, Decimal]:
    """(after-tax, IRA, Roth) growth rates for the year under the plan's return mode."""
    if params.return_mode == ReturnMode.ACCOUNT:
        return params.after_tax_return, params.ira_return, params.roth_return

    allocation = allocate_risk_bands(balances, params.low_risk_target, params.mod_risk_target)
    rates = (params.low_risk_return, params.mod_risk_return, params.high_risk_return)
    return (
        blended_return(allocation.after_tax, *rates),
        blended_return(allocation.ira, *rates),
        blended_return(allocation.roth, *rates),
    )
