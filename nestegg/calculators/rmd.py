"""Required Minimum Distribution (RMD) calculator.

This module implements the rules for determining when RMDs must begin and
calculating the annual RMD using the IRS Uniform Lifetime Table.  The SECURE
Act 2.0 raised the RMD start age from 72 to 73 beginning in 2023, and to 75
beginning in 2033:

* Individuals born in 1950 or earlier began RMDs at 72.
* Individuals born between 1951 and 1959 must start RMDs at age 73.
* Individuals born in 1960 or later will start at age 75.

The Uniform Lifetime Table provides distribution periods used to compute RMDs.
This implementation includes the 2022 table effective for distributions after
2021.  Balances are in cents.

Example
-------

>>> # Person born in 1955 (between 1951-1959) starts RMD at age 73
>>> rmd_start_age(1955)
73

>>> # RMD for a 73-year-old with $100k in a traditional IRA at the end of the prior year
>>> round(rmd_amount(balance=10_000_000, age=73))
377358
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .errors import MissingLifeExpectancyFactorError
from .models import Account

MINIMUM_RMD_AGE = 72
MAXIMUM_TABLE_AGE = 120

UNIFORM_LIFETIME_TABLE: Dict[int, float] = {
    72: 27.4, 73: 26.5, 74: 25.5, 75: 24.6, 76: 23.7, 77: 22.9, 78: 22.0,
    79: 21.1, 80: 20.2, 81: 19.4, 82: 18.5, 83: 17.7, 84: 16.8, 85: 16.0,
    86: 15.2, 87: 14.4, 88: 13.7, 89: 12.9, 90: 12.2, 91: 11.5, 92: 10.8,
    93: 10.1, 94: 9.5, 95: 8.9, 96: 8.4, 97: 7.8, 98: 7.3, 99: 6.8,
    100: 6.4, 101: 6.0, 102: 5.6, 103: 5.2, 104: 4.9, 105: 4.6, 106: 4.3,
    107: 4.1, 108: 3.9, 109: 3.7, 110: 3.5, 111: 3.4, 112: 3.3, 113: 3.1,
    114: 3.0, 115: 2.9, 116: 2.8, 117: 2.7, 118: 2.5, 119: 2.3, 120: 2.0,
}


def rmd_start_age(birth_year: Optional[int]) -> int:
    """Determine the age at which RMDs must begin based on year of birth.

    Parameters
    ----------
    birth_year : int, optional
        Birth year of the account owner.  Without one the current rule (73)
        applies.

    Returns
    -------
    int
        The age when RMDs must commence.
    """
    if not birth_year:
        return 73
    if birth_year <= 1950:
        return 72
    elif 1951 <= birth_year <= 1959:
        return 73
    else:
        return 75


def must_take_rmd(age: int, birth_year: Optional[int] = None) -> bool:
    if age < MINIMUM_RMD_AGE:
        return False
    return age >= rmd_start_age(birth_year)


def life_expectancy_factor(age: int, table: Optional[Dict[int, float]] = None) -> Optional[float]:
    """Distribution period for ``age``; ``None`` below the first table age.

    Ages above 120 use the 120 factor.  A missing factor for an age the
    table should cover raises :class:`MissingLifeExpectancyFactorError`.
    """
    if age < MINIMUM_RMD_AGE:
        return None
    table = UNIFORM_LIFETIME_TABLE if table is None else table
    age = min(age, MAXIMUM_TABLE_AGE)
    factor = table.get(age)
    if not factor or factor <= 0:
        raise MissingLifeExpectancyFactorError(age)
    return factor


def rmd_amount(balance: float, age: int, table: Optional[Dict[int, float]] = None) -> float:
    """Compute the Required Minimum Distribution for a given age and balance.

    Parameters
    ----------
    balance : float
        The retirement account balance (cents) on December 31 of the prior year.
    age : int
        Age of the account owner in the distribution year.

    Returns
    -------
    float
        The RMD in cents.  Zero below age 72 or for a non-positive balance.
    """
    factor = life_expectancy_factor(age, table)
    if factor is None or balance <= 0:
        return 0.0
    return balance / factor


def rmd_for_account(account: Account, age: int, birth_year: Optional[int] = None) -> float:
    if not account.type.rmd_eligible or not must_take_rmd(age, birth_year):
        return 0.0
    return rmd_amount(account.balance, age)


def total_rmd(accounts: Iterable[Account], age: int, birth_year: Optional[int] = None) -> float:
    return sum(rmd_for_account(acct, age, birth_year) for acct in accounts)


def rmd_deadline(age: int, birth_year: Optional[int] = None) -> Optional[str]:
    if not must_take_rmd(age, birth_year):
        return None
    start_age = rmd_start_age(birth_year)
    if age == start_age:
        return f"April 1 of the year after turning {start_age}"
    return "December 31 of current year"


__all__ = [
    "UNIFORM_LIFETIME_TABLE",
    "rmd_start_age",
    "must_take_rmd",
    "life_expectancy_factor",
    "rmd_amount",
    "rmd_for_account",
    "total_rmd",
    "rmd_deadline",
]
