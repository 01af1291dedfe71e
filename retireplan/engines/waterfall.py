"""Withdrawal waterfall.

Covers a year's cash need from the three accounts in a fixed order:
  1. IRA required minimum distribution (taken regardless of need)
  2. After-tax brokerage, up to its balance
  3. Additional IRA
  4. Roth last

Brokerage withdrawals realize gains pro rata to unrealized appreciation.
The Roth conversion is funded from whatever IRA balance the withdrawals
leave behind.
"""

import logging
from decimal import Decimal

from retireplan.models.records import AccountBalances, WaterfallResult

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def gain_ratio(after_tax_balance: Decimal, cost_basis: Decimal) -> Decimal:
    """Unrealized-gain share of the brokerage balance, clamped to [0, 1]."""
    if after_tax_balance <= ZERO:
        return ZERO
    ratio = Decimal("1") - cost_basis / after_tax_balance
    return min(max(ratio, ZERO), Decimal("1"))


class WithdrawalWaterfall:
    def allocate(
        self,
        cash_need: Decimal,
        balances: AccountBalances,
        rmd_required: Decimal = ZERO,
        conversion_requested: Decimal = ZERO,
        harvest_requested: Decimal = ZERO,
    ) -> WaterfallResult:
        need = max(cash_need, ZERO)
        after_tax = max(balances.after_tax, ZERO)
        ira = max(balances.ira, ZERO)
        roth = max(balances.roth, ZERO)
        basis = max(balances.cost_basis, ZERO)

        # 1. RMD
        rmd_withdrawal = min(ira, max(rmd_required, ZERO))
        rmd_surplus = max(rmd_withdrawal - need, ZERO)
        remaining = max(need - rmd_withdrawal, ZERO)

        # 2. After-tax
        at_withdrawal = min(after_tax, remaining)
        remaining -= at_withdrawal

        # 3. Additional IRA
        extra_ira = min(ira - rmd_withdrawal, remaining)
        remaining -= extra_ira
        ira_withdrawal = rmd_withdrawal + extra_ira

        # 4. Roth
        roth_withdrawal = min(roth, remaining)
        remaining -= roth_withdrawal

        ratio = gain_ratio(after_tax, basis)
        capital_gains = at_withdrawal * ratio
        basis_used = basis * at_withdrawal / after_tax if after_tax > ZERO else ZERO
        at_remaining = after_tax - at_withdrawal
        basis_remaining = basis - basis_used

        # Sell-and-rebuy: realize gains, step basis up by the same amount
        harvest_amount = min(max(harvest_requested, ZERO), at_remaining)
        harvest_gains = harvest_amount * ratio
        basis_remaining += harvest_gains

        # Surplus RMD cash is reinvested in the brokerage account as basis
        at_remaining += rmd_surplus
        basis_remaining += rmd_surplus

        conversion_requested = max(conversion_requested, ZERO)
        conversion_actual = min(conversion_requested, ira - ira_withdrawal)
        capped = conversion_actual < conversion_requested
        if capped:
            logger.debug(
                "Conversion capped: requested %s, IRA allows %s",
                conversion_requested, conversion_actual,
            )

        return WaterfallResult(
            cash_need=need,
            rmd_required=max(rmd_required, ZERO),
            after_tax_withdrawal=at_withdrawal,
            ira_withdrawal=ira_withdrawal,
            roth_withdrawal=roth_withdrawal,
            total_withdrawal=at_withdrawal + ira_withdrawal + roth_withdrawal,
            rmd_surplus=rmd_surplus,
            shortfall=max(remaining, ZERO),
            capital_gains=capital_gains,
            cost_basis_used=basis_used,
            harvest_amount=harvest_amount,
            harvest_gains=harvest_gains,
            conversion_requested=conversion_requested,
            conversion_actual=conversion_actual,
            conversion_capped=capped,
            after_tax_remaining=max(at_remaining, ZERO),
            ira_remaining=max(ira - ira_withdrawal - conversion_actual, ZERO),
            roth_remaining=max(roth - roth_withdrawal + conversion_actual, ZERO),
            cost_basis_remaining=max(basis_remaining, ZERO),
        )
