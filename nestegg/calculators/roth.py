"""Roth conversion strategies.

A conversion moves money from a tax-deferred account (401k/IRA) into a Roth
account.  The converted amount is ordinary income in the conversion year,
except for the share covered by after-tax basis (the pro-rata rule).  All
amounts are in cents.

Strategies
----------

``bracket-fill``
    Convert up to the top of the current federal bracket.
``fixed``
    Convert a flat annual amount.
``percentage``
    Convert a fraction of the tax-deferred balance, optionally capped.
``backdoor``
    Convert only the after-tax basis.

Example
-------

>>> bracket_fill_conversion(5_000_000, 10_305_000, 20_000_000)
5305000
>>> pro_rata_basis(2_000_000, 10_000_000, 5_000_000)["taxable_amount"]
4000000
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional

from . import cash_flows, taxes
from .models import Plan, RothConversionSettings, round_half_up, to_cents
from .rmd import must_take_rmd
from .tax_tables import standard_deduction

logger = logging.getLogger(__name__)


class RothConversionStrategy(str, Enum):
    BRACKET_FILL = "bracket-fill"
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    BACKDOOR = "backdoor"


def bracket_fill_conversion(taxable_income: int, bracket_top: int, traditional_balance: int) -> int:
    """Room left below ``bracket_top`` (taxable income terms), capped by the balance."""
    space = bracket_top - taxable_income
    return max(0, min(space, traditional_balance))


def fixed_conversion(
    annual_amount: int,
    traditional_balance: int,
    age: Optional[int] = None,
    must_take_rmd: bool = False,
) -> int:
    # RMD years convert the same amount; the RMD itself is withdrawn separately
    return max(0, min(annual_amount, traditional_balance))


def percentage_conversion(
    percentage: float,
    traditional_balance: int,
    max_amount: Optional[int] = None,
) -> int:
    amount = round_half_up(max(0, traditional_balance) * percentage)
    if max_amount is not None:
        amount = min(amount, max_amount)
    return max(0, amount)


def backdoor_conversion(after_tax_basis: int, traditional_balance: int) -> int:
    """Convert only money that has already been taxed."""
    return max(0, min(after_tax_basis, traditional_balance))


def pro_rata_basis(after_tax_basis: int, total_traditional_balance: int, conversion_amount: int) -> Dict[str, float]:
    """Split a conversion into taxable and non-taxable parts.

    The non-taxable share equals the ratio of after-tax basis to the whole
    tax-deferred balance, whichever dollars are nominally converted.
    """
    if total_traditional_balance <= 0:
        return {
            "conversion_amount": conversion_amount,
            "taxable_amount": 0,
            "non_taxable_amount": 0,
            "basis_ratio": 0.0,
        }
    basis_ratio = min(1.0, max(0.0, after_tax_basis / total_traditional_balance))
    non_taxable = round_half_up(conversion_amount * basis_ratio)
    return {
        "conversion_amount": conversion_amount,
        "taxable_amount": conversion_amount - non_taxable,
        "non_taxable_amount": non_taxable,
        "basis_ratio": basis_ratio,
    }


def conversion_amount(
    settings: RothConversionSettings,
    taxable_income: int,
    traditional_balance: int,
    age: int,
    must_take_rmd: bool = False,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    """Amount the configured strategy converts this year.

    Parameters
    ----------
    settings : RothConversionSettings
        Strategy name and its parameters.
    taxable_income : int
        Federal taxable income (after the standard deduction) before the
        conversion, in cents.
    traditional_balance : int
        Combined tax-deferred balance in cents.
    age : int
        Owner's age this year.
    must_take_rmd : bool
        Whether an RMD is due this year.

    Returns
    -------
    int
        Gross conversion in cents.  Unknown strategies convert nothing.
    """
    if not settings.enabled or traditional_balance <= 0:
        return 0
    try:
        strategy = RothConversionStrategy(settings.strategy)
    except ValueError:
        logger.warning("Unknown Roth conversion strategy %r; no conversion", settings.strategy)
        return 0

    if strategy is RothConversionStrategy.BRACKET_FILL:
        bracket_top = settings.bracket_top
        if bracket_top is None:
            bracket_top = taxes.bracket_ceiling(taxable_income, filing_status, year, tax_tables)
            if bracket_top is None:
                return 0
        amount = bracket_fill_conversion(taxable_income, bracket_top, traditional_balance)
    elif strategy is RothConversionStrategy.FIXED:
        amount = fixed_conversion(settings.annual_amount, traditional_balance, age, must_take_rmd)
    elif strategy is RothConversionStrategy.PERCENTAGE:
        amount = percentage_conversion(settings.percentage, traditional_balance)
    else:
        amount = backdoor_conversion(settings.after_tax_basis, traditional_balance)

    if settings.max_amount is not None:
        amount = min(amount, settings.max_amount)
    return amount


def conversion_tax(amount: int, marginal_rate: Optional[float] = None, total_rate: float = 0.25) -> Dict[str, float]:
    """Tax owed on ``amount`` at the marginal rate, or the blended rate without one."""
    rate = marginal_rate or total_rate
    tax = round_half_up(amount * rate)
    return {
        "conversion_amount": amount,
        "tax_on_conversion": tax,
        "effective_tax_rate": rate,
        "after_tax_cost": amount + tax,
    }


def is_penalty_free(conversion_year: int, current_year: int, age: float) -> bool:
    """Five years since the conversion and age 59 1/2 or older."""
    return current_year - conversion_year >= 5 and age >= 59.5


def apply_conversion(
    pre_tax_balance: int,
    roth_balance: int,
    amount: int,
    tax_rate: float,
    pay_tax_from_taxable: bool = True,
):
    """Apply a Roth conversion to account balances.

    Parameters
    ----------
    pre_tax_balance : int
        Current balance of the pre-tax account in cents.
    roth_balance : int
        Current balance of the Roth account in cents.
    amount : int
        Gross amount to convert from pre-tax to Roth.
    tax_rate : float
        Marginal tax rate applied to the converted amount.
    pay_tax_from_taxable : bool, optional
        If ``True`` taxes are paid from a taxable account and the full
        conversion amount is added to the Roth.  If ``False`` taxes are
        withheld from the conversion, reducing the amount reaching the Roth.

    Returns
    -------
    tuple
        ``(balances, tax_due)`` where ``balances`` is a mapping containing the
        updated ``pre_tax`` and ``roth`` balances.
    """
    amount = max(0, min(amount, pre_tax_balance))
    tax_due = round_half_up(amount * max(0.0, tax_rate))
    pre_tax_balance -= amount
    if pay_tax_from_taxable:
        roth_balance += amount
    else:
        roth_balance += max(0, amount - tax_due)
    return {"pre_tax": pre_tax_balance, "roth": roth_balance}, tax_due


def analyze_conversion(
    amount: int,
    marginal_rate: Optional[float] = None,
    total_rate: float = 0.25,
    growth_rate: float = 0.07,
    years_in_roth: int = 30,
    future_tax_rate: Optional[float] = None,
) -> Dict[str, object]:
    """Compare converting now with leaving the money tax-deferred.

    Both paths grow at ``growth_rate`` for ``years_in_roth`` years.  The
    traditional path pays ``future_tax_rate`` (default ``total_rate``) on
    withdrawal; the Roth path pays the conversion tax now, which is charged
    with the growth it would otherwise have earned.
    """
    impact = conversion_tax(amount, marginal_rate, total_rate)
    growth = (1 + growth_rate) ** years_in_roth
    roth_final = round_half_up(amount * growth)

    traditional_final = round_half_up(amount * growth)
    future_rate = total_rate if future_tax_rate is None else future_tax_rate
    traditional_after_tax = traditional_final - round_half_up(traditional_final * future_rate)

    tax_opportunity_cost = round_half_up(impact["tax_on_conversion"] * growth)
    net_benefit = roth_final - tax_opportunity_cost - traditional_after_tax

    if net_benefit > 0:
        recommendation = "Convert"
        reasoning = f"Tax savings: ${net_benefit / 100:,.2f} by converting now"
    else:
        recommendation = "Do Not Convert"
        reasoning = f"Not beneficial: ${abs(net_benefit) / 100:,.2f} loss by converting now"

    return {
        "conversion_amount": amount,
        "tax_on_conversion": impact["tax_on_conversion"],
        "effective_tax_rate": impact["effective_tax_rate"],
        "roth_final_value": roth_final,
        "traditional_after_tax": traditional_after_tax,
        "net_benefit": net_benefit,
        "years_in_roth": years_in_roth,
        "recommendation": recommendation,
        "reasoning": reasoning,
    }


def analyze_plan_conversion(plan: Plan, amount: int, years_in_roth: int = 30, tax_year: int = 2025) -> Dict[str, object]:
    """Run :func:`analyze_conversion` with rates taken from ``plan``.

    The conversion is taxed at the marginal rate of the plan's year-0
    income.  Later traditional withdrawals pay the tax profile's
    ``estimated_tax_rate``, and both paths grow at the equity rate.
    """
    profile = plan.tax_profile
    income = cash_flows.total_income(plan.incomes, 0, profile.current_age, profile.retirement_age)
    rate = taxes.marginal_rate(to_cents(income), profile.filing_status, tax_year)
    return analyze_conversion(
        amount,
        marginal_rate=rate,
        total_rate=profile.estimated_tax_rate,
        growth_rate=plan.assumptions.equity_growth_rate,
        years_in_roth=years_in_roth,
    )


def plan_conversions(plan: Plan, years: int = 10, tax_year: int = 2025) -> List[Dict[str, object]]:
    """Year-by-year conversion schedule for a plan's settings.

    The tax-deferred balance grows at the equity rate and shrinks by each
    conversion; taxable income comes from the plan's incomes.  The plan's
    own strategy is used even if conversions are disabled in its settings.
    """
    settings = plan.strategies.roth_conversion
    if not settings.enabled:
        settings = replace(settings, enabled=True)
    profile = plan.tax_profile
    deduction = standard_deduction(tax_year, profile.filing_status)
    growth = plan.assumptions.equity_growth_rate
    balance = sum(a.balance for a in plan.accounts if a.type.is_tax_deferred)
    basis = settings.after_tax_basis

    schedule = []
    for offset in range(years):
        age = profile.current_age + offset
        entry = {"year": plan.start_year + offset, "age": age, "conversion_amount": 0}
        if balance <= 0:
            entry.update(taxable_amount=0, tax=0, reason="No traditional balance remaining")
            schedule.append(entry)
            continue

        income = cash_flows.total_income(plan.incomes, offset, profile.current_age, profile.retirement_age)
        taxable_income = max(0, to_cents(income) - deduction)
        amount = conversion_amount(
            settings,
            taxable_income,
            balance,
            age,
            must_take_rmd(age, plan.birth_year),
            profile.filing_status,
            tax_year,
        )
        split = pro_rata_basis(basis, balance, amount)
        taxable_amount = int(split["taxable_amount"])
        tax = (
            taxes.federal_tax(taxable_income + deduction + taxable_amount, profile.filing_status, tax_year)
            - taxes.federal_tax(taxable_income + deduction, profile.filing_status, tax_year)
        )
        entry.update(
            conversion_amount=amount,
            taxable_amount=taxable_amount,
            tax=tax,
            reason=f"{settings.strategy} conversion",
        )
        schedule.append(entry)

        basis = max(0, basis - int(split["non_taxable_amount"]))
        balance = to_cents((balance - amount) / 100 * (1 + growth))
    return schedule


def validate_roth_conversion_settings(settings: RothConversionSettings) -> List[str]:
    """Return a list of problems with ``settings``; empty when valid."""
    errors: List[str] = []
    if not settings.enabled:
        return errors

    valid = [s.value for s in RothConversionStrategy]
    if settings.strategy not in valid:
        errors.append(f"Invalid Roth conversion strategy: {settings.strategy}. Must be one of: {', '.join(valid)}")
    if settings.strategy == RothConversionStrategy.FIXED.value and settings.annual_amount <= 0:
        errors.append("Fixed conversion amount must be greater than 0")
    if settings.strategy == RothConversionStrategy.PERCENTAGE.value and not 0 < settings.percentage <= 1:
        errors.append("Conversion percentage must be between 0 and 1")
    if settings.strategy == RothConversionStrategy.BRACKET_FILL.value and settings.bracket_top is not None and settings.bracket_top <= 0:
        errors.append("Bracket top must be greater than 0")
    if settings.strategy == RothConversionStrategy.BACKDOOR.value and settings.after_tax_basis <= 0:
        errors.append("Backdoor conversion requires an after-tax basis greater than 0")
    if settings.max_amount is not None and settings.max_amount < 0:
        errors.append("Maximum conversion amount cannot be negative")
    return errors


__all__ = [
    "RothConversionStrategy",
    "bracket_fill_conversion",
    "fixed_conversion",
    "percentage_conversion",
    "backdoor_conversion",
    "pro_rata_basis",
    "conversion_amount",
    "conversion_tax",
    "is_penalty_free",
    "apply_conversion",
    "analyze_conversion",
    "analyze_plan_conversion",
    "plan_conversions",
    "validate_roth_conversion_settings",
]
