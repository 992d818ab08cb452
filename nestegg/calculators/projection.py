"""Deterministic year-by-year projection of a retirement plan.

:func:`project` folds a per-year state (account balances and taxable cost
basis) over year offsets ``0..years`` and emits one :class:`YearRecord` per
year.  Balances are stored in cents; dollar amounts are only used while a
rate is applied.

Before retirement each account receives its annual contribution and then
grows at its account-type rate.  From the first year with
``age >= retirement_age`` the plan draws ``max(0, expenses - Social
Security)`` from the accounts and applies no growth in that year.  The
default draw is an even split across accounts, raised to the account's RMD
where that is larger; an even split can take an account below zero, which
is how a shortfall shows up in the balances.  Selecting a withdrawal
strategy replaces the even split, and the strategies never overdraw.

Each year's federal, state and FICA taxes are computed and recorded.  They
are reported only; balances are not reduced by them.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import pandas as pd

from . import cash_flows, roth, taxes
from . import tax_tables as tt
from .models import (
    Account,
    AccountType,
    Assumptions,
    Plan,
    YearRecord,
    round_half_up,
    to_cents,
    to_dollars,
)
from .qcd import total_qcd
from .rmd import must_take_rmd, rmd_amount
from .social_security import social_security_for_year, taxable_social_security
from .tax_loss_harvesting import (
    ORDINARY_INCOME_OFFSET_LIMIT,
    apply_harvest,
    suggest_harvest,
    unrealized_loss,
)
from .withdrawals import calculate_withdrawals

logger = logging.getLogger(__name__)


class _YearState(NamedTuple):
    balances: Tuple[int, ...]
    cost_basis: Tuple[Optional[int], ...]
    conversion_basis: int


class _Context(NamedTuple):
    plan: Plan
    growth: Tuple[float, ...]
    roth_index: Optional[int]
    tax_year: int
    tax_tables: Dict[str, Dict]


def account_growth_rate(account_type, assumptions: Assumptions) -> float:
    """Annual growth rate for an account type.

    A ``growth_overrides`` entry for the type wins.  Taxable accounts grow at
    the equity rate times ``taxable_growth_multiplier`` to approximate tax
    drag; every other type grows at the equity rate.  Types without a known
    mapping also get the equity rate, with a warning.
    """
    account_type = AccountType.parse(account_type)
    overrides = {str(k).lower(): v for k, v in assumptions.growth_overrides.items()}
    if account_type.value.lower() in overrides:
        return float(overrides[account_type.value.lower()])
    if account_type is AccountType.TAXABLE:
        return assumptions.equity_growth_rate * assumptions.taxable_growth_multiplier
    if account_type is AccountType.OTHER:
        logger.warning("No growth rate for account type %r; using the equity rate", account_type.value)
    return assumptions.equity_growth_rate


def project(
    plan: Plan,
    years: int = 40,
    tax_year: int = 2025,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> List[YearRecord]:
    """Project ``plan`` for year offsets ``0..years`` inclusive.

    Parameters
    ----------
    plan : Plan
        The plan; it is not modified.
    years : int
        Horizon; ``years + 1`` records are returned.
    tax_year : int
        Tax table year used for every projected year (2024 or 2025).
    tax_tables : dict, optional
        Tables to use instead of the packaged ones.

    Returns
    -------
    list of YearRecord
        One record per year, oldest first.

    Raises
    ------
    ConfigurationError
        For an unsupported tax year or a state without tax data.
    """
    tables = tax_tables or tt.load_tax_tables()
    profile = plan.tax_profile
    tt.federal_schedule(tax_year, profile.filing_status, tables)
    if profile.state:
        tt.state_schedule(profile.state, tax_year, profile.filing_status, tables)

    roth_index = next((i for i, a in enumerate(plan.accounts) if a.type is AccountType.ROTH), None)
    if plan.strategies.roth_conversion.enabled and roth_index is None:
        logger.warning("Plan %r enables Roth conversions but has no Roth account; skipping them", plan.name)

    ctx = _Context(
        plan=plan,
        growth=tuple(account_growth_rate(a.type, plan.assumptions) for a in plan.accounts),
        roth_index=roth_index,
        tax_year=tax_year,
        tax_tables=tables,
    )
    state = _YearState(
        balances=tuple(a.balance for a in plan.accounts),
        cost_basis=tuple(a.cost_basis for a in plan.accounts),
        conversion_basis=plan.strategies.roth_conversion.after_tax_basis,
    )

    records: List[YearRecord] = []
    for offset in range(years + 1):
        state, record = _advance_year(ctx, state, offset)
        records.append(record)
    return records


def _with_balances(accounts: Sequence[Account], balances: Sequence[int]) -> List[Account]:
    return [replace(a, balance=b) for a, b in zip(accounts, balances)]


def _realize_gain(balance: int, basis: Optional[int], amount: int) -> Tuple[int, Optional[int]]:
    """Gain realised by selling ``amount`` and the basis left afterwards."""
    if basis is None or balance <= 0:
        return amount, basis
    ratio = min(1.0, max(0.0, basis / balance))
    basis_used = min(basis, round_half_up(amount * ratio))
    return amount - basis_used, basis - basis_used


def _convert_to_roth(
    ctx: _Context,
    balances: List[int],
    rmds: Sequence[float],
    age: int,
    income: Dict[str, float],
    conversion_basis: int,
) -> Tuple[int, int, int]:
    """Move this year's conversion into the first Roth account.

    Returns ``(converted, taxable part, basis used)``.  Money reserved for
    the year's RMDs is not converted, but the pro-rata basis ratio is taken
    over the whole tax-deferred balance.
    """
    plan = ctx.plan
    status = plan.tax_profile.filing_status
    deferred = [i for i, a in enumerate(plan.accounts) if a.type.is_tax_deferred]
    available = {i: max(0, balances[i] - round_half_up(rmds[i])) for i in deferred}
    traditional = sum(available.values())
    deferred_total = sum(max(0, balances[i]) for i in deferred)

    deduction = tt.standard_deduction(ctx.tax_year, status, ctx.tax_tables)
    taxable_income = max(
        0, to_cents(income["earned_income"] + income["passive_income"] + to_dollars(sum(rmds))) - deduction
    )
    settings = replace(plan.strategies.roth_conversion, after_tax_basis=conversion_basis)
    amount = roth.conversion_amount(
        settings,
        taxable_income,
        traditional,
        age,
        must_take_rmd(age, plan.birth_year),
        status,
        ctx.tax_year,
        ctx.tax_tables,
    )
    if amount <= 0:
        return 0, 0, 0

    remaining = amount
    for i in deferred:
        take = min(available[i], remaining)
        balances[i] -= take
        remaining -= take
        if remaining <= 0:
            break
    balances[ctx.roth_index] += amount

    split = roth.pro_rata_basis(conversion_basis, deferred_total, amount)
    return amount, int(split["taxable_amount"]), int(split["non_taxable_amount"])


def _allocate(ctx: _Context, balances: Sequence[int], need: float, rmds: Sequence[float]) -> List[int]:
    accounts = ctx.plan.accounts
    strategy = ctx.plan.strategies.withdrawal_strategy
    if strategy is None:
        share = need / len(accounts)
        result = []
        for i, account in enumerate(accounts):
            amount = to_cents(share)
            if account.type.rmd_eligible and rmds[i] > amount:
                amount = round_half_up(rmds[i])
            result.append(amount)
        return result

    chosen = calculate_withdrawals(strategy, _with_balances(accounts, balances), to_cents(need), rmds)
    # RMDs are taken under every strategy, including proportional
    return [max(w, min(max(0, b), round_half_up(r))) for w, b, r in zip(chosen, balances, rmds)]


def _advance_year(ctx: _Context, state: _YearState, offset: int) -> Tuple[_YearState, YearRecord]:
    plan = ctx.plan
    profile = plan.tax_profile
    assumptions = plan.assumptions
    strategies = plan.strategies
    accounts = plan.accounts
    status = profile.filing_status
    n = len(accounts)

    age = profile.current_age + offset
    is_retired = age >= profile.retirement_age

    expense = cash_flows.total_expenses(plan.expenses, offset, assumptions.inflation_rate)
    ss_income = social_security_for_year(
        plan.social_security,
        offset,
        profile.current_age,
        profile.retirement_age,
        plan.start_year,
        assumptions.inflation_rate,
    )
    income = cash_flows.taxable_income_breakdown(plan.incomes, offset, profile.current_age, profile.retirement_age)

    balances = list(state.balances)
    basis = list(state.cost_basis)
    conversion_basis = state.conversion_basis

    rmds = [0.0] * n
    if is_retired:
        for i, account in enumerate(accounts):
            if account.type.rmd_eligible and must_take_rmd(age, plan.birth_year):
                rmds[i] = rmd_amount(balances[i], age)

    conversion = taxable_conversion = 0
    if strategies.roth_conversion.enabled and offset >= 1 and ctx.roth_index is not None:
        conversion, taxable_conversion, basis_used = _convert_to_roth(
            ctx, balances, rmds, age, income, conversion_basis
        )
        conversion_basis -= basis_used

    withdrawals = [0] * n
    qcds = [0] * n
    realized_gains = 0
    if not is_retired:
        for i, account in enumerate(accounts):
            grown = (to_dollars(balances[i]) + account.annual_contribution) * (1 + ctx.growth[i])
            balances[i] = to_cents(grown)
            if account.type is AccountType.TAXABLE and basis[i] is not None:
                basis[i] += to_cents(account.annual_contribution)
    elif n:
        if strategies.qcd.enabled:
            qcds = total_qcd(_with_balances(accounts, balances), strategies.qcd, age, rmds)
            for i, amount in enumerate(qcds):
                balances[i] -= amount
        remaining_rmds = [max(0.0, r - q) for r, q in zip(rmds, qcds)]

        need = max(0.0, expense - ss_income)
        withdrawals = _allocate(ctx, balances, need, remaining_rmds)
        for i, amount in enumerate(withdrawals):
            if accounts[i].type is AccountType.TAXABLE and amount > 0:
                gain, basis[i] = _realize_gain(balances[i], basis[i], amount)
                realized_gains += gain
            balances[i] -= amount

    ordinary = to_cents(income["earned_income"] + income["passive_income"]) + taxable_conversion
    ordinary += sum(w for w, a in zip(withdrawals, accounts) if a.type.is_tax_deferred)
    gains = to_cents(income["qualified_dividends"]) + realized_gains

    harvested = 0
    if strategies.tax_loss_harvesting.enabled:
        for i, account in enumerate(accounts):
            current = replace(account, balance=balances[i], cost_basis=basis[i])
            loss = unrealized_loss(current)
            if loss <= 0:
                continue
            rate = taxes.marginal_rate(ordinary, status, ctx.tax_year, ctx.tax_tables)
            suggestion = suggest_harvest(loss, max(0, gains - harvested), rate, strategies.tax_loss_harvesting)
            outcome = apply_harvest(current, suggestion["harvest_amount"])
            if outcome["success"] and outcome["harvested_loss"] > 0:
                basis[i] = outcome["new_cost_basis"]
                harvested += outcome["harvested_loss"]
        offset_gains = min(harvested, gains)
        gains -= offset_gains
        ordinary = max(0, ordinary - min(harvested - offset_gains, ORDINARY_INCOME_OFFSET_LIMIT))

    if ss_income > 0:
        provisional = to_dollars(ordinary + gains) + ss_income / 2
        taxable_ss = taxable_social_security(ss_income, provisional, status)["taxable_amount"]
        ordinary += to_cents(taxable_ss)

    federal = (
        taxes.federal_tax(ordinary, status, ctx.tax_year, ctx.tax_tables)
        + taxes.long_term_capital_gains_tax(gains, status, ctx.tax_year, ctx.tax_tables)
        + taxes.niit(gains, ordinary + gains, status, ctx.tax_year, ctx.tax_tables)
    )
    state_amount = taxes.state_tax(profile.state, ordinary + gains, status, ctx.tax_year, ctx.tax_tables)
    fica = taxes.fica_tax(to_cents(income["earned_income"]), status, ctx.tax_year, ctx.tax_tables)["total_fica_tax"]

    record = YearRecord(
        year=plan.start_year + offset,
        year_offset=offset,
        age=age,
        is_retired=is_retired,
        total_balance=sum(balances),
        total_expense=to_cents(expense),
        account_balances=tuple(balances),
        total_income=to_cents(income["total_income"]),
        social_security_income=to_cents(ss_income),
        federal_tax=federal,
        state_tax=state_amount,
        fica_tax=fica,
        rmd_amount=round_half_up(sum(rmds)),
        withdrawals=sum(withdrawals),
        qcd_amount=sum(qcds),
        roth_conversion=conversion,
        harvested_loss=harvested,
    )
    logger.debug(
        "year %d age %d retired=%s balance=%.2f tax=%.2f",
        record.year,
        age,
        is_retired,
        to_dollars(record.total_balance),
        to_dollars(record.total_tax),
    )
    new_state = _YearState(tuple(balances), tuple(basis), conversion_basis)
    return new_state, record


def records_to_frame(records: Sequence[YearRecord], account_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Tabulate projection records in dollars, one row per year.

    Per-account balances become one column each, named from
    ``account_names`` or ``account_<n>``.
    """
    ledger: Dict[str, list] = {
        "year": [], "age": [], "is_retired": [], "total_balance": [], "total_expense": [],
        "total_income": [], "social_security_income": [], "federal_tax": [], "state_tax": [],
        "fica_tax": [], "total_tax": [], "rmd_amount": [], "withdrawals": [], "qcd_amount": [],
        "roth_conversion": [], "harvested_loss": [],
    }
    width = max((len(r.account_balances) for r in records), default=0)
    names = list(account_names or [])
    names += [f"account_{i}" for i in range(len(names), width)]
    account_series: Dict[str, list] = {name: [] for name in names[:width]}

    for r in records:
        ledger["year"].append(r.year)
        ledger["age"].append(r.age)
        ledger["is_retired"].append(r.is_retired)
        for key in ("total_balance", "total_expense", "total_income", "social_security_income",
                    "federal_tax", "state_tax", "fica_tax", "total_tax", "rmd_amount",
                    "withdrawals", "qcd_amount", "roth_conversion", "harvested_loss"):
            ledger[key].append(to_dollars(getattr(r, key)))
        for name, balance in zip(account_series, r.account_balances):
            account_series[name].append(to_dollars(balance))

    ledger.update(account_series)
    return pd.DataFrame(ledger)


__all__ = ["account_growth_rate", "project", "records_to_frame"]
