"""Expense and income streams evaluated for a single projection year.

Items are stored in cents; the functions here return **dollars** because the
projection applies rates to them before converting back to cents.  Year
arguments are offsets from the plan start (year 0).  Both ends of an item's
active window are inclusive, and a one-time item only counts in its start
year.

Expenses inflate from year 0 when ``inflation_adjusted`` is set.  Incomes
grow at their own ``growth_rate`` from the year they start, and their start
and end years may be resolved from rules tied to the retirement age or a
specific age instead of fixed offsets.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .models import Expense, Income, TaxTreatment, to_dollars


def expense_amount_for_year(expense: Expense, year_offset: int, inflation_rate: float) -> float:
    """Return the expense in dollars for ``year_offset``."""
    if year_offset < expense.start_year:
        return 0.0
    if expense.is_one_time:
        return to_dollars(expense.base_amount) if year_offset == expense.start_year else 0.0
    if expense.end_year is not None and year_offset > expense.end_year:
        return 0.0

    amount = to_dollars(expense.base_amount)
    if expense.inflation_adjusted:
        amount *= (1 + inflation_rate) ** year_offset
    return amount


def total_expenses(expenses: Iterable[Expense], year_offset: int, inflation_rate: float) -> float:
    return sum(expense_amount_for_year(e, year_offset, inflation_rate) for e in expenses)


def evaluate_start_year(income: Income, current_age: int, retirement_age: int) -> int:
    """Resolve ``income.start_rule`` to a year offset.

    ``retirement-if-age`` starts at retirement when retirement comes at or
    after ``start_rule_age``; otherwise it waits for that age.  Rules missing
    their age fall back to the manual ``start_year``.
    """
    rule = income.start_rule
    if rule == "retirement":
        return retirement_age - current_age
    if rule == "age" and income.start_rule_age is not None:
        return income.start_rule_age - current_age
    if rule == "retirement-if-age" and income.start_rule_age is not None:
        if retirement_age >= income.start_rule_age:
            return retirement_age - current_age
        return income.start_rule_age - current_age
    return income.start_year


def evaluate_end_year(income: Income, current_age: int, retirement_age: int) -> Optional[int]:
    rule = income.end_rule
    if rule == "retirement":
        return retirement_age - current_age
    if rule == "age" and income.end_rule_age is not None:
        return income.end_rule_age - current_age
    return income.end_year


def income_amount_for_year(
    income: Income,
    year_offset: int,
    current_age: int,
    retirement_age: int,
) -> float:
    """Return the income in dollars for ``year_offset``.

    Parameters
    ----------
    income : Income
        The income stream.
    year_offset : int
        Years since the plan start.
    current_age, retirement_age : int
        Used to resolve rule-based start and end years.

    Returns
    -------
    float
        Dollars, grown by ``income.growth_rate`` for every year since the
        stream started.
    """
    start = evaluate_start_year(income, current_age, retirement_age)
    if year_offset < start:
        return 0.0
    if income.is_one_time:
        return to_dollars(income.base_amount) if year_offset == start else 0.0

    end = evaluate_end_year(income, current_age, retirement_age)
    if end is not None and year_offset > end:
        return 0.0

    years_since_start = year_offset - start
    return to_dollars(income.base_amount) * (1 + income.growth_rate) ** years_since_start


def total_income(
    incomes: Iterable[Income],
    year_offset: int,
    current_age: int,
    retirement_age: int,
) -> float:
    return sum(income_amount_for_year(i, year_offset, current_age, retirement_age) for i in incomes)


def taxable_income_breakdown(
    incomes: Iterable[Income],
    year_offset: int,
    current_age: int,
    retirement_age: int,
) -> Dict[str, float]:
    """Split the year's income (dollars) by tax treatment."""
    breakdown = {
        "total_income": 0.0,
        "earned_income": 0.0,
        "passive_income": 0.0,
        "qualified_dividends": 0.0,
    }
    for income in incomes:
        amount = income_amount_for_year(income, year_offset, current_age, retirement_age)
        breakdown["total_income"] += amount
        treatment = income.tax_treatment
        if treatment is TaxTreatment.EARNED:
            breakdown["earned_income"] += amount
        elif treatment is TaxTreatment.QUALIFIED:
            breakdown["qualified_dividends"] += amount
        else:
            breakdown["passive_income"] += amount
    return breakdown


__all__ = [
    "expense_amount_for_year",
    "total_expenses",
    "evaluate_start_year",
    "evaluate_end_year",
    "income_amount_for_year",
    "total_income",
    "taxable_income_breakdown",
]
