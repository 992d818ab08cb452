"""Monte Carlo wrapper around the deterministic projection.

Each scenario draws one equity return and one bond return from normal
distributions (Box-Muller on the scenario's own generator), substitutes them
into a copy of the plan's assumptions and runs :func:`projection.project`
once.  A scenario succeeds when its final-year balance is strictly
positive.

Scenario generators are spawned from one ``numpy.random.SeedSequence``, so
a given ``seed`` reproduces the same results whether the scenarios run in
this process or in a process pool.

Example
-------

>>> import numpy as np
>>> rng = np.random.default_rng(0)
>>> -1.0 < generate_random_return(0.07, 0.12, rng) < 1.0
True
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from .models import Plan, ScenarioResult
from .projection import project

logger = logging.getLogger(__name__)

DEFAULT_EQUITY_VOLATILITY = 0.12
DEFAULT_BOND_VOLATILITY = 0.04
PERCENTILES = {"p10": 0.10, "p25": 0.25, "p50": 0.50, "p75": 0.75, "p90": 0.90}
Z_95 = 1.96


@dataclass(frozen=True)
class MonteCarloResult:
    num_scenarios: int
    success_count: int
    success_probability: float
    average_final_balance: float
    percentiles: Dict[str, int] = field(default_factory=dict)
    scenarios: Tuple[ScenarioResult, ...] = ()


def generate_random_return(expected_return: float, volatility: float, rng: np.random.Generator) -> float:
    """Draw one annual return using the Box-Muller transform."""
    u1 = 1.0 - rng.random()
    u2 = rng.random()
    z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return expected_return + z0 * volatility


def scenario_plan(plan: Plan, rng: np.random.Generator) -> Plan:
    """Copy of ``plan`` with randomly drawn equity and bond growth rates."""
    a = plan.assumptions
    equity_vol = DEFAULT_EQUITY_VOLATILITY if a.equity_volatility is None else a.equity_volatility
    bond_vol = DEFAULT_BOND_VOLATILITY if a.bond_volatility is None else a.bond_volatility
    bond_expected = a.bond_growth_rate or a.equity_growth_rate * 0.4
    assumptions = replace(
        a,
        equity_growth_rate=generate_random_return(a.equity_growth_rate, equity_vol, rng),
        bond_growth_rate=generate_random_return(bond_expected, bond_vol, rng),
    )
    return replace(plan, assumptions=assumptions)


def run_scenario(
    plan: Plan,
    rng: np.random.Generator,
    years: int = 40,
    tax_year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> ScenarioResult:
    records = project(scenario_plan(plan, rng), years, tax_year, tax_tables)
    final = records[-1]
    return ScenarioResult(
        projection=tuple(records),
        success=final.total_balance > 0,
        final_balance=final.total_balance,
        final_age=final.age,
    )


def _run_seeded(args) -> ScenarioResult:
    plan, seed_seq, years, tax_year, tax_tables = args
    return run_scenario(plan, np.random.default_rng(seed_seq), years, tax_year, tax_tables)


def _percentiles(final_balances: Sequence[int]) -> Dict[str, int]:
    n = len(final_balances)
    if n == 0:
        return {key: 0 for key in PERCENTILES}
    ordered = sorted(final_balances)
    return {key: ordered[min(n - 1, int(math.floor(n * p)))] for key, p in PERCENTILES.items()}


def run_simulation(
    plan: Plan,
    num_scenarios: int = 1000,
    years: int = 40,
    tax_year: int = 2025,
    seed: Optional[int] = None,
    max_workers: Optional[int] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> MonteCarloResult:
    """Run ``num_scenarios`` randomized projections of ``plan``.

    Parameters
    ----------
    plan : Plan
        Base plan; every scenario works on its own copy.
    num_scenarios : int
        Number of scenarios.  Zero returns an empty, all-zero result.
    years, tax_year : int
        Passed through to :func:`project`.
    seed : int, optional
        Seed for reproducible results.
    max_workers : int, optional
        Run scenarios in a process pool of this size.
    should_stop : callable, optional
        Checked between scenarios; once it returns ``True`` no further
        scenarios are started and the statistics cover the finished ones.

    Returns
    -------
    MonteCarloResult
    """
    children = np.random.SeedSequence(seed).spawn(max(0, num_scenarios))
    jobs = [(plan, child, years, tax_year, tax_tables) for child in children]
    scenarios = []

    if max_workers and max_workers > 1 and jobs:
        with ProcessPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(_run_seeded, job) for job in jobs]
            for fut in futures:
                if should_stop is not None and should_stop():
                    for pending in futures:
                        pending.cancel()
                    break
                scenarios.append(fut.result())
    else:
        for job in jobs:
            if should_stop is not None and should_stop():
                break
            scenarios.append(_run_seeded(job))

    n = len(scenarios)
    if n < num_scenarios:
        logger.info("Monte Carlo stopped after %d of %d scenarios", n, num_scenarios)

    final_balances = [s.final_balance for s in scenarios]
    success_count = sum(1 for s in scenarios if s.success)
    result = MonteCarloResult(
        num_scenarios=n,
        success_count=success_count,
        success_probability=success_count / n if n else 0.0,
        average_final_balance=sum(final_balances) / n if n else 0.0,
        percentiles=_percentiles(final_balances),
        scenarios=tuple(scenarios),
    )
    logger.info(
        "Monte Carlo: %d scenarios, success probability %.1f%%",
        n,
        result.success_probability * 100,
    )
    return result


def percentile_bands(scenarios: Sequence[ScenarioResult]) -> Dict[str, np.ndarray]:
    """Per-year p10/p25/p50/p75/p90 of total balance (cents) across scenarios."""
    if not scenarios:
        return {key: np.array([]) for key in PERCENTILES}
    stacked = np.vstack([[r.total_balance for r in s.projection] for s in scenarios])
    return {
        key: np.percentile(stacked, p * 100, axis=0)
        for key, p in PERCENTILES.items()
    }


def success_probability_with_confidence(result: MonteCarloResult) -> Dict[str, float]:
    """95 % confidence interval on the success probability (normal approximation)."""
    p = result.success_probability
    n = result.num_scenarios
    margin = Z_95 * math.sqrt(p * (1 - p) / n) if n else 0.0
    return {
        "probability": p,
        "lower_bound": max(0.0, p - margin),
        "upper_bound": min(1.0, p + margin),
        "confidence_level": 0.95,
        "margin_of_error": margin,
    }


def analyze_sequence_of_returns_risk(scenarios: Sequence[ScenarioResult]) -> Dict[str, float]:
    """Split failed scenarios into early and late failures.

    A failure is early when the total balance went negative before the first
    retired year.  A scenario that never retires is scanned in full.
    """
    failed = [s for s in scenarios if not s.success]
    early = 0
    for scenario in failed:
        records = scenario.projection
        retire_index = next((i for i, r in enumerate(records) if r.is_retired), len(records))
        if any(r.total_balance < 0 for r in records[:retire_index]):
            early += 1
    late = len(failed) - early
    total = len(scenarios)
    return {
        "total_failures": len(failed),
        "early_failures": early,
        "late_failures": late,
        "early_failure_rate": early / total if total else 0.0,
        "late_failure_rate": late / total if total else 0.0,
    }


__all__ = [
    "MonteCarloResult",
    "generate_random_return",
    "scenario_plan",
    "run_scenario",
    "run_simulation",
    "percentile_bands",
    "success_probability_with_confidence",
    "analyze_sequence_of_returns_risk",
]
