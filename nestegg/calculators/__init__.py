"""Helper package that exposes the core financial calculators.

The ``calculators`` package contains small, focused modules that each implement
specific pieces of the retirement projection engine:

* ``models`` – plan configuration dataclasses and per-year output records.
* ``errors`` – configuration errors raised for missing statutory data.
* ``tax_tables`` – loader and lookups for the packaged federal, payroll and state tables.
* ``taxes`` – progressive federal and state income tax, capital gains, FICA and NIIT.
* ``rmd`` – Required Minimum Distribution rules and Uniform Lifetime table.
* ``social_security`` – benefit at a claiming age, PIA estimation and benefit taxation.
* ``cash_flows`` – expense and income streams evaluated for a projection year.
* ``withdrawals`` – proportional, tax-efficient and tax-aware withdrawal ordering.
* ``roth`` – Roth conversion strategies and conversion analysis.
* ``qcd`` – Qualified Charitable Distributions.
* ``tax_loss_harvesting`` – harvesting losses in taxable accounts.
* ``projection`` – the deterministic year-by-year projection.
* ``monte_carlo`` – randomized projections and success statistics.

Monetary amounts are integer cents unless a docstring says otherwise.  See
individual docstrings for details.
"""

from . import (  # noqa: F401
    cash_flows,
    errors,
    models,
    monte_carlo,
    projection,
    qcd,
    rmd,
    roth,
    social_security,
    tax_loss_harvesting,
    tax_tables,
    taxes,
    withdrawals,
)

__all__ = [
    "cash_flows",
    "errors",
    "models",
    "monte_carlo",
    "projection",
    "qcd",
    "rmd",
    "roth",
    "social_security",
    "tax_loss_harvesting",
    "tax_tables",
    "taxes",
    "withdrawals",
]
