"""Unit tests for the taxes module.

These tests verify that federal, state and payroll tax calculations using the
packaged tax tables produce expected results.  Values use the 2024 and 2025
IRS brackets for multiple filing statuses and a mix of flat and progressive
state systems.  Every amount is in cents.
"""

import math

import pytest

from nestegg.calculators import taxes as tax_calc
from nestegg.calculators.errors import (
    ConfigurationError,
    MissingStateDataError,
    UnknownFilingStatusError,
    UnsupportedTaxYearError,
)


def test_federal_tax_example():
    """$50k single filer in 2025: $34,250 taxable inside the 10 % and 12 % brackets."""
    # 1,192,501 * 10 % -> 119,250 ; 2,232,499 * 12 % -> 267,900
    assert tax_calc.federal_tax(5_000_000, "single", 2025) == 387_150


def test_federal_tax_2024_single():
    """Federal tax on $60k of ordinary income for a single filer (2024)."""
    assert tax_calc.federal_tax(6_000_000, year=2024) == 521_600


def test_federal_married_joint():
    """Married filing jointly should use the wider brackets."""
    assert tax_calc.federal_tax(6_000_000, filing_status="married_joint", year=2024) == 323_200


def test_filing_status_accepts_hyphenated_label():
    assert tax_calc.federal_tax(6_000_000, "married-joint", 2024) == 323_200


@pytest.mark.parametrize("income", [0, -100, -5_000_000])
def test_zero_or_negative_income_is_untaxed(income):
    assert tax_calc.federal_tax(income, "single", 2025) == 0


def test_income_below_standard_deduction_is_untaxed():
    assert tax_calc.federal_tax(1_500_000, "single", 2025) == 0


@pytest.mark.parametrize("status", ["single", "married_joint", "married_separate", "head_of_household"])
@pytest.mark.parametrize("year", [2024, 2025])
def test_federal_tax_is_monotonic(status, year):
    incomes = range(0, 100_000_000, 250_000)
    taxes = [tax_calc.federal_tax(i, status, year) for i in incomes]
    assert all(a <= b for a, b in zip(taxes, taxes[1:]))


def test_unknown_filing_status_is_an_error():
    with pytest.raises(UnknownFilingStatusError):
        tax_calc.federal_tax(5_000_000, "widowed", 2025)


def test_unsupported_year_is_an_error():
    with pytest.raises(UnsupportedTaxYearError):
        tax_calc.federal_tax(5_000_000, "single", 2023)
    # even zero income does not hide a bad year
    with pytest.raises(ConfigurationError):
        tax_calc.federal_tax(0, "single", 1999)


def test_capital_gains_tax_example():
    """Long-term gains tax on $100k of gains for a single filer (2025)."""
    assert tax_calc.long_term_capital_gains_tax(10_000_000, "single", 2025) == 761_925


def test_capital_gains_tax_2024():
    assert tax_calc.long_term_capital_gains_tax(10_000_000, year=2024) == 766_125


def test_gains_inside_zero_bracket_are_untaxed():
    assert tax_calc.long_term_capital_gains_tax(4_000_000, "single", 2025) == 0


def test_short_term_gains_use_ordinary_brackets():
    assert tax_calc.short_term_capital_gains_tax(5_000_000, "single", 2025) == 387_150


def test_niit_applies_to_lesser_of_income_and_excess():
    # MAGI $220k is $20k over the single threshold
    assert tax_calc.niit(5_000_000, 22_000_000, "single", 2025) == 76_000
    assert tax_calc.niit(5_000_000, 19_000_000, "single", 2025) == 0


def test_capital_gains_breakdown():
    result = tax_calc.capital_gains_tax(10_000_000, 0, 22_000_000, "single", 2025)
    assert result["ordinary_tax"] == 761_925
    assert result["niit"] == 76_000
    assert result["total_tax"] == 837_925


def test_fica_below_additional_medicare_threshold():
    result = tax_calc.fica_tax(20_000_000, "single", 2025)
    # Social Security stops at the $176,100 wage base
    assert result["social_security_tax"] == 1_091_820
    assert result["medicare_tax"] == 290_000
    assert result["total_fica_tax"] == 1_381_820


def test_fica_additional_medicare():
    result = tax_calc.fica_tax(25_000_000, "single", 2025)
    assert result["medicare_tax"] == 362_500 + 45_000


def test_fica_wage_base_2024():
    assert tax_calc.social_security_tax(20_000_000, 2024) == round(16_860_000 * 0.062)


def test_fica_zero_wages():
    assert tax_calc.fica_tax(0)["total_fica_tax"] == 0


def test_marginal_rate_and_bracket_ceiling():
    assert tax_calc.marginal_rate(5_000_000, "single", 2025) == 0.12
    assert tax_calc.bracket_ceiling(3_425_000, "single", 2025) == 4_847_500
    assert tax_calc.bracket_ceiling(70_000_000, "single", 2025) is None


def test_effective_rate():
    assert math.isclose(tax_calc.effective_rate(5_000_000, "single", 2025), 387_150 / 5_000_000)
    assert tax_calc.effective_rate(0) == 0.0


def test_state_tax_flat_rate():
    """Michigan's flat 4.25 % applies after its $5,600 deduction (2024)."""
    assert tax_calc.state_tax("MI", 10_000_000, year=2024) == 401_200


def test_state_tax_progressive():
    """California uses progressive brackets; verify against the 2024 table."""
    assert tax_calc.state_tax("CA", 10_000_000, "single", 2024) == 532_714


@pytest.mark.parametrize("state", ["TX", "fl", "NH", "WA"])
def test_no_income_tax_states(state):
    assert tax_calc.state_tax(state, 10_000_000, "single", 2025) == 0


def test_no_state_means_no_state_tax():
    assert tax_calc.state_tax(None, 10_000_000) == 0


def test_missing_state_data_is_an_error():
    with pytest.raises(MissingStateDataError):
        tax_calc.state_tax("NY", 10_000_000, "single", 2024)


def test_total_income_tax():
    result = tax_calc.total_income_tax("MI", 10_000_000, "single", 2024)
    assert result["state_tax"] == 401_200
    assert result["total_tax"] == result["federal_tax"] + 401_200
