"""Qualified Charitable Distributions.

A QCD sends money from an IRA or 401k straight to charity.  It is excluded
from taxable income and counts toward the year's RMD.  QCDs are allowed from
age 70 1/2 and are limited to $100,000 a year.  Amounts are in cents.

Example
-------

>>> from .models import Account, QCDSettings
>>> ira = Account("IRA", "IRA", balance=20_000_000)
>>> qcd_for_account(ira, QCDSettings(enabled=True, annual_amount=500_000), age=75)
500000
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .models import Account, QCDSettings, round_half_up

QCD_MINIMUM_AGE = 70.5
QCD_ANNUAL_LIMIT = 10_000_000

QCD_STRATEGIES = ("fixed", "percentage", "rmd")


def qcd_allowed(age: float) -> bool:
    return age >= QCD_MINIMUM_AGE


def qcd_for_account(
    account: Account,
    settings: QCDSettings,
    age: float,
    rmd_amount: float = 0,
) -> int:
    """QCD from one account for the year.

    Parameters
    ----------
    account : Account
        Only IRA and 401k accounts qualify.
    settings : QCDSettings
        ``fixed`` gives ``annual_amount``, ``percentage`` a share of the
        balance, and ``rmd`` the account's RMD.
    age : float
        Owner's age; nothing is distributed below 70 1/2.
    rmd_amount : float
        The account's RMD in cents, used by the ``rmd`` strategy.

    Returns
    -------
    int
        Cents, never more than the balance or the annual limit.
    """
    if not settings.enabled or not account.type.qcd_eligible or not qcd_allowed(age):
        return 0

    balance = max(0, account.balance)
    if settings.strategy == "fixed":
        amount = settings.annual_amount
    elif settings.strategy == "percentage":
        amount = round_half_up(balance * settings.percentage)
    elif settings.strategy == "rmd":
        amount = round_half_up(rmd_amount)
    else:
        return 0
    return max(0, min(amount, balance, QCD_ANNUAL_LIMIT))


def total_qcd(
    accounts: Iterable[Account],
    settings: QCDSettings,
    age: float,
    rmd_by_account: Optional[Sequence[float]] = None,
) -> List[int]:
    """Per-account QCDs with the annual limit applied across all accounts."""
    rmds = list(rmd_by_account or [])
    result = []
    remaining = QCD_ANNUAL_LIMIT
    for i, account in enumerate(accounts):
        rmd = rmds[i] if i < len(rmds) else 0
        amount = min(qcd_for_account(account, settings, age, rmd), remaining)
        remaining -= amount
        result.append(amount)
    return result


def qcd_tax_benefit(qcd_amount: int, marginal_tax_rate: Optional[float]) -> float:
    if qcd_amount <= 0:
        return 0.0
    return qcd_amount * (marginal_tax_rate or 0)


def validate_qcd_settings(settings: QCDSettings) -> List[str]:
    """Return a list of problems with ``settings``; empty when valid."""
    errors: List[str] = []
    if not settings.enabled:
        return errors

    if settings.strategy not in QCD_STRATEGIES:
        errors.append(f"Invalid QCD strategy: {settings.strategy}")
    if settings.strategy == "fixed" and settings.annual_amount <= 0:
        errors.append("Fixed QCD amount must be positive")
    if settings.strategy == "percentage" and not 0 < settings.percentage <= 1:
        errors.append("QCD percentage must be between 0 and 1")
    return errors


__all__ = [
    "QCD_MINIMUM_AGE",
    "QCD_ANNUAL_LIMIT",
    "qcd_allowed",
    "qcd_for_account",
    "total_qcd",
    "qcd_tax_benefit",
    "validate_qcd_settings",
]
