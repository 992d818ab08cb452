"""Retirement projection engine.

Build a :class:`~nestegg.calculators.models.Plan`, then run
:func:`~nestegg.calculators.projection.project` for a deterministic
year-by-year projection or
:func:`~nestegg.calculators.monte_carlo.run_simulation` for randomized
scenarios.
"""

from .calculators.models import (  # noqa: F401
    Account,
    AccountType,
    Assumptions,
    Expense,
    FilingStatus,
    Income,
    IncomeType,
    Plan,
    SocialSecurityProfile,
    StrategySettings,
    TaxProfile,
    YearRecord,
)
from .calculators.monte_carlo import run_simulation  # noqa: F401
from .calculators.projection import project, records_to_frame  # noqa: F401

__version__ = "0.1.0"
