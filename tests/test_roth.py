"""Tests for the Roth conversion mechanics."""

import logging
import math

import pytest

from nestegg.calculators import roth
from nestegg.calculators.models import (
    Account,
    Assumptions,
    Plan,
    RothConversionSettings,
    StrategySettings,
    TaxProfile,
)


def test_apply_conversion_taxable():
    """Converting from a pre-tax account increases the Roth by the full amount when taxes are paid from taxable funds."""
    balances, tax_due = roth.apply_conversion(pre_tax_balance=10_000_000, roth_balance=0, amount=1_000_000, tax_rate=0.22, pay_tax_from_taxable=True)
    assert balances["pre_tax"] == 9_000_000
    assert balances["roth"] == 1_000_000
    assert tax_due == 220_000


def test_apply_conversion_withheld():
    """When taxes are withheld from the conversion, the Roth receives the net amount."""
    balances, tax_due = roth.apply_conversion(pre_tax_balance=5_000_000, roth_balance=0, amount=1_000_000, tax_rate=0.20, pay_tax_from_taxable=False)
    # 20% withheld; $8,000 reaches the Roth
    assert balances["pre_tax"] == 4_000_000
    assert balances["roth"] == 800_000
    assert tax_due == 200_000


def test_apply_conversion_capped_by_balance():
    balances, _ = roth.apply_conversion(500_000, 100, 1_000_000, 0.1)
    assert balances == {"pre_tax": 0, "roth": 500_100}


def test_strategy_helpers():
    assert roth.bracket_fill_conversion(5_000_000, 10_305_000, 20_000_000) == 5_305_000
    assert roth.bracket_fill_conversion(12_000_000, 10_305_000, 20_000_000) == 0
    assert roth.fixed_conversion(1_000_000, 400_000) == 400_000
    assert roth.percentage_conversion(0.1, 10_000_000, max_amount=500_000) == 500_000
    assert roth.backdoor_conversion(600_000, 10_000_000) == 600_000


def test_pro_rata_basis():
    split = roth.pro_rata_basis(2_000_000, 10_000_000, 5_000_000)
    assert split["taxable_amount"] == 4_000_000
    assert split["non_taxable_amount"] == 1_000_000
    assert math.isclose(split["basis_ratio"], 0.2)


def test_pro_rata_without_balance():
    assert roth.pro_rata_basis(100, 0, 500)["taxable_amount"] == 0


def test_bracket_fill_uses_current_bracket_ceiling():
    settings = RothConversionSettings(enabled=True, strategy="bracket-fill")
    # $50,000 taxable sits in the 22 % bracket, which ends at $103,350 in 2025
    assert roth.conversion_amount(settings, 5_000_000, 20_000_000, 60) == 5_335_000


def test_bracket_fill_in_top_bracket_converts_nothing():
    settings = RothConversionSettings(enabled=True, strategy="bracket-fill")
    assert roth.conversion_amount(settings, 100_000_000, 20_000_000, 60) == 0


@pytest.mark.parametrize(
    "settings, expected",
    [
        (RothConversionSettings(enabled=True, strategy="fixed", annual_amount=1_000_000), 1_000_000),
        (RothConversionSettings(enabled=True, strategy="percentage", percentage=0.05), 500_000),
        (RothConversionSettings(enabled=True, strategy="backdoor", after_tax_basis=600_000), 600_000),
        (RothConversionSettings(enabled=True, strategy="fixed", annual_amount=1_000_000, max_amount=250_000), 250_000),
        (RothConversionSettings(enabled=False, strategy="fixed", annual_amount=1_000_000), 0),
    ],
)
def test_conversion_amount_dispatch(settings, expected):
    assert roth.conversion_amount(settings, 0, 10_000_000, 60) == expected


def test_unknown_conversion_strategy(caplog):
    settings = RothConversionSettings(enabled=True, strategy="ladder")
    with caplog.at_level(logging.WARNING, logger="nestegg.calculators.roth"):
        assert roth.conversion_amount(settings, 0, 10_000_000, 60) == 0
    assert "ladder" in caplog.text


def test_conversion_tax():
    result = roth.conversion_tax(1_000_000)
    assert result["tax_on_conversion"] == 250_000
    assert result["after_tax_cost"] == 1_250_000
    assert roth.conversion_tax(1_000_000, marginal_rate=0.22)["tax_on_conversion"] == 220_000


def test_penalty_free():
    assert roth.is_penalty_free(2020, 2025, 60)
    assert not roth.is_penalty_free(2021, 2025, 60)
    assert not roth.is_penalty_free(2015, 2025, 59)


def test_analyze_conversion_recommends_when_rate_rises():
    result = roth.analyze_conversion(1_000_000, marginal_rate=0.22, total_rate=0.25, growth_rate=0.0)
    # 1,000,000 - 220,000 charged now vs 750,000 after tax later
    assert result["net_benefit"] == 30_000
    assert result["recommendation"] == "Convert"


def test_analyze_conversion_rejects_when_rate_falls():
    result = roth.analyze_conversion(1_000_000, marginal_rate=0.32, total_rate=0.25, growth_rate=0.0)
    assert result["net_benefit"] == -70_000
    assert result["recommendation"] == "Do Not Convert"


def _conversion_plan(balance, settings):
    return Plan(
        name="Conversions",
        tax_profile=TaxProfile(current_age=60, retirement_age=65),
        assumptions=Assumptions(equity_growth_rate=0.0),
        accounts=(Account("IRA", "IRA", balance), Account("Roth", "Roth", 0)),
        strategies=StrategySettings(roth_conversion=settings),
    )


def test_plan_conversions_fixed_schedule():
    settings = RothConversionSettings(enabled=True, strategy="fixed", annual_amount=1_000_000)
    schedule = roth.plan_conversions(_conversion_plan(10_000_000, settings), years=3)
    assert [e["year"] for e in schedule] == [2025, 2026, 2027]
    assert [e["age"] for e in schedule] == [60, 61, 62]
    assert all(e["conversion_amount"] == 1_000_000 for e in schedule)
    # with no other income all $10,000 is taxed at 10 %
    assert all(e["tax"] == 100_000 for e in schedule)


def test_plan_conversions_depletes_balance_even_when_disabled():
    settings = RothConversionSettings(enabled=False, strategy="fixed", annual_amount=1_000_000)
    schedule = roth.plan_conversions(_conversion_plan(1_500_000, settings), years=3)
    assert [e["conversion_amount"] for e in schedule] == [1_000_000, 500_000, 0]
    assert schedule[2]["reason"] == "No traditional balance remaining"


def test_validate_roth_conversion_settings():
    assert roth.validate_roth_conversion_settings(RothConversionSettings()) == []
    errors = roth.validate_roth_conversion_settings(RothConversionSettings(enabled=True, strategy="fixed"))
    assert errors == ["Fixed conversion amount must be greater than 0"]
    errors = roth.validate_roth_conversion_settings(RothConversionSettings(enabled=True, strategy="ladder"))
    assert errors[0].startswith("Invalid Roth conversion strategy: ladder")


def test_analyze_plan_conversion_uses_estimated_tax_rate():
    def plan_with_rate(rate):
        return Plan(
            name="Estimated rate",
            tax_profile=TaxProfile(current_age=60, retirement_age=65, estimated_tax_rate=rate),
            assumptions=Assumptions(equity_growth_rate=0.0),
            accounts=(Account("IRA", "IRA", 10_000_000),),
        )

    # no income: converting costs 10 % now against the estimated rate later
    high = roth.analyze_plan_conversion(plan_with_rate(0.25), 1_000_000)
    assert high["net_benefit"] == 150_000
    assert high["recommendation"] == "Convert"

    low = roth.analyze_plan_conversion(plan_with_rate(0.05), 1_000_000)
    assert low["net_benefit"] == -50_000
    assert low["recommendation"] == "Do Not Convert"
