"""Withdrawal-ordering strategies.

Every strategy takes the account roster, the total amount needed (cents) and
optionally the RMD owed by each account, and returns one withdrawal per
account in cents.  Without RMDs the withdrawals always sum to
``min(need, total balance)`` and no withdrawal exceeds its account's
balance.  A mandatory RMD larger than the need is still taken in full, so
under the tax-efficient strategies RMDs can push the sum above the need.

* ``proportional``: each account gives its share of the total balance.
* ``tax-efficient``: RMDs first, then taxable, tax-deferred, Roth and HSA
  accounts in that order, smaller balances first within a tier.
* ``tax-aware``: currently identical to ``tax-efficient``.  Bracket-aware
  sequencing is not implemented.

Example
-------

>>> from .models import Account
>>> accts = [Account("a", "Taxable", 30000), Account("b", "IRA", 70000)]
>>> proportional_withdrawals(accts, 10000)
[3000, 7000]
>>> tax_efficient_withdrawals(accts, 10000)
[10000, 0]
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence

from .models import Account, round_half_up

logger = logging.getLogger(__name__)


class WithdrawalStrategy(str, Enum):
    PROPORTIONAL = "proportional"
    TAX_EFFICIENT = "tax-efficient"
    TAX_AWARE = "tax-aware"

    @classmethod
    def parse(cls, value) -> "WithdrawalStrategy":
        """Unrecognised names fall back to ``proportional`` with a warning."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower().replace("_", "-"))
        except ValueError:
            logger.warning("Unknown withdrawal strategy %r; using proportional", value)
            return cls.PROPORTIONAL


def _available(accounts: Sequence[Account]) -> List[int]:
    return [max(0, acct.balance) for acct in accounts]


def proportional_withdrawals(
    accounts: Sequence[Account],
    total_needed: int,
    rmd_by_account: Optional[Sequence[float]] = None,
) -> List[int]:
    """Withdraw from every account in proportion to its balance.

    RMDs are ignored.  Rounding drift is settled starting from the last
    account, within each account's remaining headroom.
    """
    balances = _available(accounts)
    withdrawals = [0] * len(balances)
    total_balance = sum(balances)
    if total_balance == 0 or total_needed <= 0:
        return withdrawals

    if total_needed >= total_balance:
        return list(balances)

    for i, balance in enumerate(balances):
        withdrawals[i] = min(balance, round_half_up(total_needed * balance / total_balance))

    diff = total_needed - sum(withdrawals)
    for i in range(len(withdrawals) - 1, -1, -1):
        if diff == 0:
            break
        if diff > 0:
            step = min(diff, balances[i] - withdrawals[i])
        else:
            step = -min(-diff, withdrawals[i])
        withdrawals[i] += step
        diff -= step
    return withdrawals


def tax_efficient_withdrawals(
    accounts: Sequence[Account],
    total_needed: int,
    rmd_by_account: Optional[Sequence[float]] = None,
) -> List[int]:
    """Take RMDs, then draw the rest in tax-priority order.

    Parameters
    ----------
    accounts : sequence of Account
        Account roster; negative balances count as empty.
    total_needed : int
        Cents required for the year, including any RMD amounts.
    rmd_by_account : sequence of float, optional
        RMD owed by each account in cents (``0`` where none is due).

    Returns
    -------
    list of int
        Withdrawal per account in cents.
    """
    balances = _available(accounts)
    withdrawals = [0] * len(balances)
    rmds = list(rmd_by_account or [])

    for i, balance in enumerate(balances):
        rmd = rmds[i] if i < len(rmds) else 0
        if rmd > 0:
            withdrawals[i] = min(balance, round_half_up(rmd))

    remaining = total_needed - sum(withdrawals)
    if remaining <= 0:
        return withdrawals

    order = sorted(
        (i for i in range(len(balances)) if balances[i] > withdrawals[i]),
        key=lambda i: (accounts[i].type.withdrawal_priority, balances[i]),
    )
    for i in order:
        if remaining <= 0:
            break
        take = min(balances[i] - withdrawals[i], remaining)
        withdrawals[i] += take
        remaining -= take
    return withdrawals


def tax_aware_withdrawals(
    accounts: Sequence[Account],
    total_needed: int,
    rmd_by_account: Optional[Sequence[float]] = None,
) -> List[int]:
    # TODO: fill low ordinary brackets from deferred accounts before realising gains
    return tax_efficient_withdrawals(accounts, total_needed, rmd_by_account)


_STRATEGIES = {
    WithdrawalStrategy.PROPORTIONAL: proportional_withdrawals,
    WithdrawalStrategy.TAX_EFFICIENT: tax_efficient_withdrawals,
    WithdrawalStrategy.TAX_AWARE: tax_aware_withdrawals,
}


def calculate_withdrawals(
    strategy,
    accounts: Sequence[Account],
    total_needed: int,
    rmd_by_account: Optional[Sequence[float]] = None,
) -> List[int]:
    """Dispatch to the strategy named by ``strategy``."""
    func = _STRATEGIES[WithdrawalStrategy.parse(strategy)]
    return func(accounts, total_needed, rmd_by_account)


__all__ = [
    "WithdrawalStrategy",
    "proportional_withdrawals",
    "tax_efficient_withdrawals",
    "tax_aware_withdrawals",
    "calculate_withdrawals",
]
