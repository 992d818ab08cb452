"""Social Security benefit estimator.

Users enter their Primary Insurance Amount (PIA, the monthly benefit at Full
Retirement Age) and a claiming age.  The benefit at the chosen age applies
early-claiming reductions or delayed retirement credits relative to FRA,
then compounds a cost-of-living adjustment.  A full earnings history and
spousal coordination are not modelled.

* FRA follows the statutory birth-year bands: 65 through 1937, 65 and two
  months per year for 1938-1942, 66 for 1943-1954, 66 and two months per
  year for 1955-1959, and 67 from 1960.
* Claiming early reduces the benefit by 5.5 % per month for the first 36
  months and 5/12 % per month beyond that; the multiplier never drops below
  zero.
* Claiming late adds 8 % per year (2/3 % per month) of delay.
* COLA compounds from the claiming year to the retirement (reference) year;
  a claiming year after the reference year gets no adjustment.

Example
-------

>>> full_retirement_age(1957)
RetirementAge(years=66, months=6)

>>> # PIA of $2 000 claimed at 70 by someone born in 1960, no COLA
>>> round(social_security_benefit(2000, 1960, 70, 2025, 2030, 0.0), 2)
2480.0
"""

from __future__ import annotations

from typing import Dict, NamedTuple, Optional

from .models import FilingStatus, SocialSecurityProfile, round_half_up

EARLY_REDUCTION_FIRST_36 = 0.055
EARLY_REDUCTION_AFTER_36 = 5 / 12 / 100
DELAYED_CREDIT_PER_YEAR = 0.08

BEND_POINT_1 = 1174
BEND_POINT_2 = 7078


class RetirementAge(NamedTuple):
    years: int
    months: int

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months


def full_retirement_age(birth_year: int) -> RetirementAge:
    """Full Retirement Age for a birth year."""
    if birth_year <= 1937:
        return RetirementAge(65, 0)
    if birth_year >= 1960:
        return RetirementAge(67, 0)
    if 1938 <= birth_year <= 1942:
        return RetirementAge(65, (birth_year - 1937) * 2)
    if 1943 <= birth_year <= 1954:
        return RetirementAge(66, 0)
    return RetirementAge(66, (birth_year - 1954) * 2)


def benefit_multiplier(birth_year: int, filing_age: int) -> float:
    fra_months = full_retirement_age(birth_year).total_months
    filing_months = filing_age * 12

    if filing_months < fra_months:
        months_early = fra_months - filing_months
        if months_early <= 36:
            multiplier = 1 - months_early * EARLY_REDUCTION_FIRST_36
        else:
            multiplier = (
                1
                - 36 * EARLY_REDUCTION_FIRST_36
                - (months_early - 36) * EARLY_REDUCTION_AFTER_36
            )
        return max(0.0, multiplier)
    if filing_months > fra_months:
        years_late = (filing_months - fra_months) / 12
        return 1 + years_late * DELAYED_CREDIT_PER_YEAR
    return 1.0


def social_security_benefit(
    pia: float,
    birth_year: int,
    filing_age: int,
    current_year: int,
    retirement_year: int,
    cola_rate: float = 0.025,
) -> float:
    """Monthly benefit for a claiming age.

    Parameters
    ----------
    pia : float
        Primary Insurance Amount (monthly benefit at FRA, dollars).
    birth_year : int
        Year of birth.
    filing_age : int
        Age at which benefits are claimed.  Ages below 62 are not rejected.
    current_year : int
        The plan's "as of" year.
    retirement_year : int
        Reference year COLA is compounded up to.
    cola_rate : float
        Annual cost-of-living adjustment.

    Returns
    -------
    float
        Monthly benefit in dollars.
    """
    multiplier = benefit_multiplier(birth_year, filing_age)
    filing_year = birth_year + filing_age
    cola_years = max(0, retirement_year - filing_year)
    return pia * multiplier * (1 + cola_rate) ** cola_years


def social_security_for_year(
    profile: Optional[SocialSecurityProfile],
    year_offset: int,
    current_age: int,
    retirement_age: int,
    start_year: int,
    inflation_rate: float = 0.03,
) -> float:
    """Annual benefit (dollars) paid in the year ``year_offset`` of a plan."""
    if not profile or not profile.enabled:
        return 0.0

    age = current_age + year_offset
    claiming_age = profile.filing_age or retirement_age
    if age < claiming_age:
        return 0.0

    birth_year = profile.birth_year or (start_year - current_age)
    cola = inflation_rate if profile.cola_rate is None else profile.cola_rate
    monthly = social_security_benefit(
        profile.monthly_benefit,
        birth_year,
        claiming_age,
        start_year,
        start_year + (retirement_age - current_age),
        cola,
    )
    return monthly * 12


def pia_from_aime(aime: float) -> float:
    """Apply the 90 / 32 / 15 % PIA formula at the 2024 bend points."""
    if aime <= BEND_POINT_1:
        return 0.9 * aime
    elif aime <= BEND_POINT_2:
        return 0.9 * BEND_POINT_1 + 0.32 * (aime - BEND_POINT_1)
    return 0.9 * BEND_POINT_1 + 0.32 * (BEND_POINT_2 - BEND_POINT_1) + 0.15 * (aime - BEND_POINT_2)


def estimate_pia(
    current_age: int,
    retire_age: int,
    salary: float,
    salary_growth: float,
) -> float:
    """Roughly estimate the monthly PIA from projected earnings.

    The calculation assumes earnings from age 22 until the year before
    ``retire_age``.  Salaries grow at ``salary_growth`` each year and the
    highest 35 years of earnings are averaged to compute AIME.  Wage
    indexing and the annual earnings cap are ignored.
    """
    start_age = 22
    if retire_age <= start_age or salary <= 0:
        return 0.0

    earnings = []

    past_salary = salary
    for _age in range(current_age - 1, start_age - 1, -1):
        past_salary /= (1 + salary_growth)
        earnings.append(past_salary)
    earnings.reverse()

    earnings.append(salary)
    future_salary = salary
    for _age in range(current_age + 1, retire_age):
        future_salary *= (1 + salary_growth)
        earnings.append(future_salary)

    top_earnings = sorted(earnings, reverse=True)[:35]
    if len(top_earnings) < 35:
        top_earnings += [0.0] * (35 - len(top_earnings))
    aime = sum(top_earnings) / (35 * 12)
    return pia_from_aime(aime)


def taxable_social_security(
    annual_benefit: float,
    provisional_income: float,
    filing_status="single",
) -> Dict[str, float]:
    """Taxable part of an annual benefit under the provisional-income test.

    Above the first threshold ($25k, or $32k joint) half of the excess is
    taxable, up to half the benefit plus the excess; above the second ($34k,
    or $44k joint) 85 % of the benefit is taxable.  The result never exceeds
    85 % of the benefit.
    """
    status = FilingStatus.parse(filing_status)
    if status is FilingStatus.MARRIED_JOINT:
        first, second = 32000, 44000
    else:
        first, second = 25000, 34000

    taxable = 0.0
    if provisional_income > second:
        taxable = annual_benefit * 0.85
    elif provisional_income > first:
        taxable = annual_benefit * 0.5 + (provisional_income - first) * 0.5
    taxable = max(0.0, min(taxable, annual_benefit * 0.85))

    return {
        "taxable_amount": round_half_up(taxable),
        "effective_tax_rate": taxable / annual_benefit if annual_benefit > 0 else 0.0,
    }


def claiming_strategy_options() -> Dict[str, Dict[str, str]]:
    return {
        "early": {
            "age": "62",
            "reduction": "Reduced from the FRA benefit for every month claimed early",
            "description": "Maximum months of benefits, but reduced amount",
        },
        "fra": {
            "age": "FRA (65-67)",
            "reduction": "No reduction, full benefit amount",
            "description": "Balanced approach - full benefits when you need them",
        },
        "delayed": {
            "age": "70",
            "reduction": "Up to 32% increase from FRA benefit",
            "description": "Higher monthly benefit, fewer years of payments",
        },
    }


__all__ = [
    "RetirementAge",
    "full_retirement_age",
    "benefit_multiplier",
    "social_security_benefit",
    "social_security_for_year",
    "pia_from_aime",
    "estimate_pia",
    "taxable_social_security",
    "claiming_strategy_options",
]
