"""Tests for the Monte Carlo simulation engine."""

import itertools

import numpy as np
import pytest

from nestegg.calculators import monte_carlo
from nestegg.calculators.models import (
    Account,
    Assumptions,
    Expense,
    Plan,
    ScenarioResult,
    TaxProfile,
    YearRecord,
)
from nestegg.calculators.projection import project


def _build_simple_plan(balance=10_000_000, **assumptions) -> Plan:
    return Plan(
        name="Simple",
        tax_profile=TaxProfile(current_age=60, retirement_age=65),
        assumptions=Assumptions(**assumptions),
        accounts=[Account("IRA", "IRA", balance), Account("Roth", "Roth", 0)],
        expenses=[Expense("Living", 1_000_000)],
    )


def test_repeatability_with_seed():
    """Simulations should be repeatable when the same seed is provided."""
    plan = _build_simple_plan()
    result1 = monte_carlo.run_simulation(plan, num_scenarios=10, years=10, seed=12345)
    result2 = monte_carlo.run_simulation(plan, num_scenarios=10, years=10, seed=12345)
    assert result1.success_probability == result2.success_probability
    assert result1.percentiles == result2.percentiles
    assert [s.final_balance for s in result1.scenarios] == [s.final_balance for s in result2.scenarios]


def test_zero_volatility_matches_projection():
    plan = _build_simple_plan(equity_volatility=0.0, bond_volatility=0.0)
    expected = project(plan, years=10)[-1].total_balance
    result = monte_carlo.run_simulation(plan, num_scenarios=3, years=10, seed=7)
    assert all(s.final_balance == expected for s in result.scenarios)
    assert result.percentiles["p50"] == expected
    assert result.success_probability == 1.0


def test_success_requires_positive_final_balance():
    """A plan that runs out of money counts as a failure."""
    plan = _build_simple_plan(balance=0)
    result = monte_carlo.run_simulation(plan, num_scenarios=5, years=10, seed=1)
    assert result.success_count == 0
    assert result.success_probability == 0.0


def test_zero_scenarios():
    result = monte_carlo.run_simulation(_build_simple_plan(), num_scenarios=0)
    assert result.num_scenarios == 0
    assert result.success_probability == 0.0
    assert result.average_final_balance == 0.0
    assert result.percentiles == {"p10": 0, "p25": 0, "p50": 0, "p75": 0, "p90": 0}


def test_should_stop_keeps_finished_scenarios():
    calls = itertools.count()
    result = monte_carlo.run_simulation(
        _build_simple_plan(), num_scenarios=10, years=5, seed=3, should_stop=lambda: next(calls) >= 4
    )
    assert result.num_scenarios == 4
    assert len(result.scenarios) == 4


def test_process_pool_matches_serial_run():
    plan = _build_simple_plan()
    serial = monte_carlo.run_simulation(plan, num_scenarios=4, years=5, seed=99)
    pooled = monte_carlo.run_simulation(plan, num_scenarios=4, years=5, seed=99, max_workers=2)
    assert [s.final_balance for s in pooled.scenarios] == [s.final_balance for s in serial.scenarios]


def test_generate_random_return_zero_volatility():
    rng = np.random.default_rng(0)
    assert monte_carlo.generate_random_return(0.07, 0.0, rng) == 0.07


def test_generate_random_return_distribution():
    rng = np.random.default_rng(42)
    draws = [monte_carlo.generate_random_return(0.07, 0.12, rng) for _ in range(5000)]
    assert np.mean(draws) == pytest.approx(0.07, abs=0.01)
    assert np.std(draws) == pytest.approx(0.12, abs=0.01)


def test_scenario_plan_leaves_base_plan_untouched():
    plan = _build_simple_plan()
    varied = monte_carlo.scenario_plan(plan, np.random.default_rng(5))
    assert plan.assumptions.equity_growth_rate == 0.07
    assert varied.accounts == plan.accounts
    assert varied.assumptions.equity_growth_rate != 0.07


def test_success_probability_with_confidence():
    result = monte_carlo.MonteCarloResult(
        num_scenarios=100, success_count=50, success_probability=0.5, average_final_balance=0.0
    )
    interval = monte_carlo.success_probability_with_confidence(result)
    assert interval["margin_of_error"] == pytest.approx(0.098)
    assert interval["lower_bound"] == pytest.approx(0.402)
    assert interval["upper_bound"] == pytest.approx(0.598)
    assert interval["confidence_level"] == 0.95


def _scenario(balances, retire_at):
    records = tuple(
        YearRecord(
            year=2025 + i, year_offset=i, age=60 + i, is_retired=i >= retire_at,
            total_balance=b, total_expense=0, account_balances=(b,),
        )
        for i, b in enumerate(balances)
    )
    return ScenarioResult(records, balances[-1] > 0, balances[-1], records[-1].age)


def test_sequence_of_returns_risk():
    scenarios = [
        _scenario([100, -5, -10, -20], retire_at=2),
        _scenario([100, 50, 10, -1], retire_at=2),
        _scenario([100, 200, 300, 400], retire_at=2),
        _scenario([100, 90, 80, -70], retire_at=2),
    ]
    risk = monte_carlo.analyze_sequence_of_returns_risk(scenarios)
    assert risk["total_failures"] == 3
    assert risk["early_failures"] == 1
    assert risk["late_failures"] == 2
    assert risk["early_failure_rate"] == 0.25
    assert risk["late_failure_rate"] == 0.5


def test_percentile_bands():
    scenarios = [_scenario([100 * k, 200 * k], retire_at=5) for k in range(1, 6)]
    bands = monte_carlo.percentile_bands(scenarios)
    assert list(bands["p50"]) == [300.0, 600.0]
    assert bands["p10"][0] < bands["p90"][0]


def test_statistics_are_ordered():
    plan = _build_simple_plan(balance=3_000_000, equity_volatility=0.2)
    result = monte_carlo.run_simulation(plan, num_scenarios=50, years=15, seed=11)
    p = result.percentiles
    assert 0.0 <= result.success_probability <= 1.0
    assert p["p10"] <= p["p25"] <= p["p50"] <= p["p75"] <= p["p90"]


def test_percentiles_index_sorted_balances():
    """Each percentile is the sorted balance at index floor(n * p)."""
    balances = [7, 3, 10, 1, 5, 9, 2, 8, 6, 4]
    assert monte_carlo._percentiles(balances) == {"p10": 2, "p25": 3, "p50": 6, "p75": 8, "p90": 10}
