"""Account-level tax-loss harvesting for taxable brokerage accounts.

A taxable account whose balance has fallen below its tracked cost basis
carries an unrealised loss.  Harvesting sells and immediately rebuys,
realising the loss: it first offsets the year's capital gains and then up to
$3,000 of ordinary income.  Accounts without a cost basis are treated as
having no loss.  Amounts are in cents.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List

from .models import Account, AccountType, HarvestingSettings

ORDINARY_INCOME_OFFSET_LIMIT = 300_000
LONG_TERM_GAINS_RATE = 0.15
DEFAULT_THRESHOLD = 100_000

HARVEST_STRATEGIES = {
    "all": "Harvest all available losses",
    "offset-gains": "Harvest enough to offset capital gains + $3,000 ordinary income",
}


def unrealized_loss(account: Account) -> int:
    if account.type is not AccountType.TAXABLE:
        return 0
    if not account.cost_basis or account.cost_basis <= 0:
        return 0
    # a negative balance cannot lose more than was paid in
    return min(account.cost_basis, max(0, account.cost_basis - account.balance))


def total_unrealized_loss(accounts: Iterable[Account]) -> int:
    return sum(unrealized_loss(a) for a in accounts)


def tax_benefit_from_loss(harvested_loss: int, capital_gains: int, marginal_tax_rate: float) -> float:
    """Tax saved by realising ``harvested_loss`` cents.

    The part offsetting gains saves the 15 % long-term rate; up to $3,000 of
    what is left saves the ordinary marginal rate.
    """
    if harvested_loss <= 0:
        return 0.0
    offsetting_gains = min(harvested_loss, max(0, capital_gains))
    ordinary_offset = min(harvested_loss - offsetting_gains, ORDINARY_INCOME_OFFSET_LIMIT)
    return offsetting_gains * LONG_TERM_GAINS_RATE + ordinary_offset * marginal_tax_rate


def suggest_harvest(
    unrealized: int,
    capital_gains: int,
    marginal_tax_rate: float,
    settings: HarvestingSettings,
) -> Dict[str, object]:
    """Suggest how much loss to harvest.

    Parameters
    ----------
    unrealized : int
        Loss available in cents.
    capital_gains : int
        Gains realised this year in cents.
    marginal_tax_rate : float
        Ordinary marginal rate used to value the income offset.
    settings : HarvestingSettings
        ``all`` harvests every loss; ``offset-gains`` stops at the gains plus
        the $3,000 income offset.  Losses below ``threshold`` are skipped.

    Returns
    -------
    dict
        ``harvest_amount`` and ``tax_benefit`` (cents) and a ``reason``.
    """
    if unrealized <= 0:
        return {"harvest_amount": 0, "tax_benefit": 0.0, "reason": "No unrealized losses available"}

    threshold = settings.threshold or DEFAULT_THRESHOLD
    if unrealized < threshold:
        return {
            "harvest_amount": 0,
            "tax_benefit": 0.0,
            "reason": f"Loss (${unrealized / 100:,.0f}) below threshold (${threshold / 100:,.0f})",
        }

    if settings.strategy == "offset-gains":
        amount = min(unrealized, max(0, capital_gains) + ORDINARY_INCOME_OFFSET_LIMIT)
        reason = "Harvesting to offset gains + $3,000 ordinary income"
    else:
        amount = unrealized
        reason = "Harvesting all available losses"

    return {
        "harvest_amount": amount,
        "tax_benefit": tax_benefit_from_loss(amount, capital_gains, marginal_tax_rate),
        "reason": reason,
    }


def validate_harvest_amount(amount: int, account: Account) -> bool:
    if account.type is not AccountType.TAXABLE:
        return False
    return 0 <= amount <= unrealized_loss(account)


def apply_harvest(account: Account, amount: int) -> Dict[str, object]:
    """Realise ``amount`` of loss on ``account``.

    Returns the updated account (cost basis lowered by the harvested loss)
    together with ``success``, ``new_cost_basis`` and ``harvested_loss``.
    The input account is left unchanged.
    """
    if not validate_harvest_amount(amount, account):
        return {
            "success": False,
            "account": account,
            "new_cost_basis": account.cost_basis,
            "harvested_loss": 0,
        }
    new_basis = account.cost_basis - amount
    return {
        "success": True,
        "account": replace(account, cost_basis=new_basis),
        "new_cost_basis": new_basis,
        "harvested_loss": amount,
    }


def validate_harvesting_settings(settings: HarvestingSettings) -> List[str]:
    errors: List[str] = []
    if not settings.enabled:
        return errors
    if settings.strategy not in HARVEST_STRATEGIES:
        errors.append(f"Invalid harvesting strategy: {settings.strategy}")
    if settings.threshold is not None and settings.threshold < 0:
        errors.append("Harvesting threshold cannot be negative")
    return errors


__all__ = [
    "ORDINARY_INCOME_OFFSET_LIMIT",
    "HARVEST_STRATEGIES",
    "unrealized_loss",
    "total_unrealized_loss",
    "tax_benefit_from_loss",
    "suggest_harvest",
    "validate_harvest_amount",
    "apply_harvest",
    "validate_harvesting_settings",
]
