"""Tax calculation utilities.

This module implements simplified U.S. federal and state income taxes plus
payroll taxes.  The tables cover tax years 2024 and 2025 for the four filing
statuses (single, married filing jointly, married filing separately and head
of household) and include long-term capital gains brackets.  The standard
deduction is applied before the progressive rates; the Alternative Minimum
Tax, itemised deductions and credits are not modelled.

All amounts are integer cents.  A bracket walk taxes ``min(remaining,
width)`` at each row's rate and rounds each row's tax half-up to a whole
cent before summing.

Example
-------

>>> # Federal tax on $50 000 of ordinary income for a single filer in 2025
>>> federal_tax(5_000_000, "single", 2025)
387150

>>> # Long-term capital gains tax on $100 000 of gains for the same filer
>>> long_term_capital_gains_tax(10_000_000, "single", 2025)
761925
"""

from __future__ import annotations

from typing import Dict, List, Optional

from . import tax_tables as tt
from .models import FilingStatus, round_half_up


def _walk_brackets(amount: int, brackets: List[Dict]) -> int:
    tax = 0
    remaining = amount
    for bracket in brackets:
        if remaining <= 0:
            break
        end = bracket["end"]
        width = remaining if end is None else end - bracket["start"] + 1
        portion = min(remaining, width)
        tax += round_half_up(portion * bracket["rate"])
        remaining -= portion
    return tax


def _bracket_for(taxable_income: int, brackets: List[Dict]) -> Dict:
    for bracket in brackets:
        end = bracket["end"]
        if end is None or taxable_income <= end:
            return bracket
    return brackets[-1]


def federal_tax(
    income: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    """Compute federal income tax due on ordinary income.

    Parameters
    ----------
    income : int
        Gross ordinary income in cents.
    filing_status : str or FilingStatus
        One of the four filing statuses.
    year : int
        Tax year; must be present in the tax tables.

    Returns
    -------
    int
        Tax in cents.  Zero or negative income yields zero.
    """
    schedule = tt.federal_schedule(year, filing_status, tax_tables)
    if income <= 0:
        return 0
    taxable_income = max(0, income - schedule["standard_deduction"])
    return _walk_brackets(taxable_income, schedule["brackets"])


def long_term_capital_gains_tax(
    gain: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    """Tax on long-term gains using the 0 / 15 / 20 % brackets."""
    schedule = tt.federal_schedule(year, filing_status, tax_tables)
    if gain <= 0:
        return 0
    return _walk_brackets(gain, schedule["cap_gains"])


def short_term_capital_gains_tax(
    gain: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    # short-term gains are ordinary income
    return federal_tax(gain, filing_status, year, tax_tables)


def niit(
    investment_income: int,
    magi: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    """Net Investment Income Tax.

    3.8 % applies to the lesser of investment income and the amount by which
    MAGI exceeds the filing-status threshold.
    """
    status = FilingStatus.parse(filing_status)
    payroll = tt.payroll_parameters(year, tax_tables)
    threshold = payroll["niit_threshold"][status.value]
    if magi <= threshold or investment_income <= 0:
        return 0
    taxable_amount = min(investment_income, magi - threshold)
    return round_half_up(taxable_amount * payroll["niit_rate"])


def capital_gains_tax(
    long_term_gain: int,
    short_term_gain: int,
    magi: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> Dict[str, int]:
    """Long-term plus short-term gains tax, with NIIT on the combined gains."""
    ordinary = (
        long_term_capital_gains_tax(long_term_gain, filing_status, year, tax_tables)
        + short_term_capital_gains_tax(short_term_gain, filing_status, year, tax_tables)
    )
    niit_tax = niit(long_term_gain + short_term_gain, magi, filing_status, year, tax_tables)
    return {"ordinary_tax": ordinary, "niit": niit_tax, "total_tax": ordinary + niit_tax}


def social_security_tax(wages: int, year: int = 2025, tax_tables: Optional[Dict[str, Dict]] = None) -> int:
    payroll = tt.payroll_parameters(year, tax_tables)
    if wages <= 0:
        return 0
    taxable_wages = min(wages, payroll["social_security_wage_base"])
    return round_half_up(taxable_wages * payroll["social_security_rate"])


def medicare_tax(
    wages: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    """1.45 % Medicare plus the 0.9 % additional tax above the status threshold."""
    status = FilingStatus.parse(filing_status)
    payroll = tt.payroll_parameters(year, tax_tables)
    if wages <= 0:
        return 0
    threshold = payroll["additional_medicare_threshold"][status.value]
    base_tax = round_half_up(wages * payroll["medicare_rate"])
    additional = 0
    if wages > threshold:
        additional = round_half_up((wages - threshold) * payroll["additional_medicare_rate"])
    return base_tax + additional


def fica_tax(
    wages: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> Dict[str, int]:
    ss = social_security_tax(wages, year, tax_tables)
    medicare = medicare_tax(wages, filing_status, year, tax_tables)
    return {"social_security_tax": ss, "medicare_tax": medicare, "total_fica_tax": ss + medicare}


def marginal_rate(
    income: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Rate of the federal bracket containing the taxable part of ``income``."""
    schedule = tt.federal_schedule(year, filing_status, tax_tables)
    taxable_income = max(0, income - schedule["standard_deduction"])
    return _bracket_for(taxable_income, schedule["brackets"])["rate"]


def effective_rate(
    income: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    tax = federal_tax(income, filing_status, year, tax_tables)
    if income <= 0:
        return 0.0
    return tax / income


def bracket_ceiling(
    taxable_income: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> Optional[int]:
    """Upper edge of the bracket holding ``taxable_income``; ``None`` in the top bracket."""
    schedule = tt.federal_schedule(year, filing_status, tax_tables)
    return _bracket_for(max(0, taxable_income), schedule["brackets"])["end"]


def state_tax(
    state: Optional[str],
    income: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> int:
    """Compute state income tax on ``income``.

    The state's standard deduction is applied first; the brackets may be a
    single flat row or progressive.  ``None`` for ``state`` means no state
    tax.
    """
    if not state:
        return 0
    schedule = tt.state_schedule(state, year, filing_status, tax_tables)
    taxable_income = max(0, income - schedule["standard_deduction"])
    return _walk_brackets(taxable_income, schedule["brackets"])


def total_income_tax(
    state: Optional[str],
    income: int,
    filing_status="single",
    year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> Dict[str, int]:
    federal = federal_tax(income, filing_status, year, tax_tables)
    state_amount = state_tax(state, income, filing_status, year, tax_tables)
    return {"federal_tax": federal, "state_tax": state_amount, "total_tax": federal + state_amount}


__all__ = [
    "federal_tax",
    "long_term_capital_gains_tax",
    "short_term_capital_gains_tax",
    "niit",
    "capital_gains_tax",
    "social_security_tax",
    "medicare_tax",
    "fica_tax",
    "marginal_rate",
    "effective_rate",
    "bracket_ceiling",
    "state_tax",
    "total_income_tax",
]
