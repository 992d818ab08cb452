"""Tax table provider.

The statutory tables live in ``data/tax_tables.json`` and are treated as an
opaque data asset.  Every amount in the file is in cents.  The schema is::

    {
      "2025": {
        "federal": {"single": {"standard_deduction": ..., "brackets": [...],
                               "cap_gains": [...]}, ...},
        "payroll": {"social_security_wage_base": ..., ...},
        "state":   {"CA": {"single": {"standard_deduction": ..., "brackets": [...]}, ...}}
      }
    }

Bracket rows are ``{"rate", "start", "end"}`` with inclusive bounds; the top
row has ``"end": null``.  Lookups raise a
:class:`~nestegg.calculators.errors.ConfigurationError` subclass for an
unknown year, filing status or state rather than falling back to a default.
States without an income tax resolve to a single zero-rate bracket.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from .errors import MissingStateDataError, UnsupportedTaxYearError
from .models import FilingStatus

_DEFAULT_TAX_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "tax_tables.json"

NO_INCOME_TAX_STATES = ("AK", "FL", "NV", "SD", "TN", "TX", "WA", "WY", "NH")


def load_tax_tables(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load tax tables from JSON.

    Parameters
    ----------
    path : Path, optional
        File following the schema above.  The default file shipped with the
        package is parsed once and cached.

    Returns
    -------
    dict
        The parsed tables keyed by tax year (as a string).
    """
    if path is None:
        return _default_tables()
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _default_tables() -> Dict[str, Dict]:
    with open(_DEFAULT_TAX_TABLE_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def supported_years(tax_tables: Optional[Dict[str, Dict]] = None) -> List[int]:
    tables = tax_tables or load_tax_tables()
    return sorted(int(k) for k in tables if k.isdigit())


def _year_tables(year: int, tax_tables: Optional[Dict[str, Dict]]) -> Dict:
    tables = tax_tables or load_tax_tables()
    try:
        return tables[str(int(year))]
    except (KeyError, TypeError, ValueError):
        raise UnsupportedTaxYearError(year) from None


def federal_schedule(year: int, filing_status, tax_tables: Optional[Dict[str, Dict]] = None) -> Dict:
    """Return ``standard_deduction``, ``brackets`` and ``cap_gains`` for a filer."""
    status = FilingStatus.parse(filing_status)
    return _year_tables(year, tax_tables)["federal"][status.value]


def standard_deduction(year: int, filing_status, tax_tables: Optional[Dict[str, Dict]] = None) -> int:
    return int(federal_schedule(year, filing_status, tax_tables)["standard_deduction"])


def payroll_parameters(year: int, tax_tables: Optional[Dict[str, Dict]] = None) -> Dict:
    """FICA and NIIT rates, the Social Security wage base and the thresholds."""
    return _year_tables(year, tax_tables)["payroll"]


def state_schedule(
    state: str,
    year: int,
    filing_status,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> Dict:
    """Return the state ``standard_deduction`` and ``brackets`` for a filer."""
    status = FilingStatus.parse(filing_status)
    code = state.upper()
    if code in NO_INCOME_TAX_STATES:
        return {"standard_deduction": 0, "brackets": [{"rate": 0.0, "start": 0, "end": None}]}

    state_tables = _year_tables(year, tax_tables).get("state", {})
    info = state_tables.get(code)
    if not info:
        raise MissingStateDataError(code, year)
    return info[status.value]


__all__ = [
    "NO_INCOME_TAX_STATES",
    "load_tax_tables",
    "supported_years",
    "federal_schedule",
    "standard_deduction",
    "payroll_parameters",
    "state_schedule",
]
