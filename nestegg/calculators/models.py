"""Plan configuration and projection output records.

A :class:`Plan` bundles everything the engine needs: the account roster,
expense and income streams, the tax profile, growth assumptions, the Social
Security profile and the strategy selections.  All of these are frozen
dataclasses; the engine reads them and never mutates them.

Money convention
----------------

Balances, expense and income amounts, cost basis and strategy amounts are
integer **cents**.  The only dollar-denominated inputs are an account's
``annual_contribution`` (dollars per year) and the Social Security
``monthly_benefit``.  Calculators convert to dollars at the point a rate is
applied and back to cents with :func:`to_cents` when a balance is stored.

Example
-------

>>> acct = Account("401k", AccountType.TRADITIONAL_401K, balance=to_cents(100000),
...                annual_contribution=10000)
>>> acct.balance
10000000
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import UnknownFilingStatusError

logger = logging.getLogger(__name__)


def round_half_up(amount: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(amount + 0.5))


def to_cents(dollars: float) -> int:
    return round_half_up(dollars * 100)


def to_dollars(cents: float) -> float:
    return cents / 100


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED_JOINT = "married_joint"
    MARRIED_SEPARATE = "married_separate"
    HEAD_OF_HOUSEHOLD = "head_of_household"

    @classmethod
    def parse(cls, value) -> "FilingStatus":
        """Return the member for ``value``; hyphenated labels are accepted."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("-", "_"))
        except ValueError:
            raise UnknownFilingStatusError(value) from None


class AccountType(str, Enum):
    """Account kinds and the tax and growth treatment each one carries."""

    TRADITIONAL_401K = "401k"
    TRADITIONAL_IRA = "IRA"
    ROTH = "Roth"
    HSA = "HSA"
    TAXABLE = "Taxable"
    OTHER = "Other"

    @classmethod
    def parse(cls, value) -> "AccountType":
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).lower() == member.value.lower():
                return member
        logger.warning("Unknown account type %r; treating it as %s", value, cls.OTHER.value)
        return cls.OTHER

    @property
    def is_tax_deferred(self) -> bool:
        return self in (AccountType.TRADITIONAL_401K, AccountType.TRADITIONAL_IRA)

    @property
    def is_tax_free(self) -> bool:
        return self in (AccountType.ROTH, AccountType.HSA)

    @property
    def rmd_eligible(self) -> bool:
        return self.is_tax_deferred

    @property
    def qcd_eligible(self) -> bool:
        return self.is_tax_deferred

    @property
    def withdrawal_priority(self) -> int:
        """Draw order for the tax-efficient strategy (lower goes first)."""
        return {
            AccountType.TAXABLE: 1,
            AccountType.TRADITIONAL_IRA: 2,
            AccountType.TRADITIONAL_401K: 2,
            AccountType.ROTH: 3,
            AccountType.HSA: 4,
        }.get(self, 999)


class TaxTreatment(str, Enum):
    EARNED = "earned"
    QUALIFIED = "qualified"
    PASSIVE = "passive"


class IncomeType(str, Enum):
    SALARY = "salary"
    BUSINESS = "business"
    PENSION = "pension"
    RENTAL = "rental"
    DIVIDENDS = "dividends"
    OTHER = "other"

    @classmethod
    def parse(cls, value) -> "IncomeType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning("Unknown income type %r; treating it as %s", value, cls.OTHER.value)
            return cls.OTHER

    @property
    def tax_treatment(self) -> TaxTreatment:
        if self in (IncomeType.SALARY, IncomeType.BUSINESS):
            return TaxTreatment.EARNED
        if self is IncomeType.DIVIDENDS:
            return TaxTreatment.QUALIFIED
        return TaxTreatment.PASSIVE


@dataclass(frozen=True)
class Account:
    name: str
    type: AccountType
    balance: int
    annual_contribution: float = 0.0
    cost_basis: Optional[int] = None
    id: str = field(default_factory=lambda: _new_id("acc"))

    def __post_init__(self):
        object.__setattr__(self, "type", AccountType.parse(self.type))
        object.__setattr__(self, "balance", int(self.balance))
        if self.cost_basis is not None:
            object.__setattr__(self, "cost_basis", int(self.cost_basis))


@dataclass(frozen=True)
class Expense:
    """A spending stream; ``start_year``/``end_year`` are offsets from the plan start."""

    name: str
    base_amount: int
    start_year: int = 0
    end_year: Optional[int] = None
    inflation_adjusted: bool = True
    is_one_time: bool = False
    id: str = field(default_factory=lambda: _new_id("exp"))


@dataclass(frozen=True)
class Income:
    """An income stream.

    ``start_rule`` is one of ``manual``, ``retirement``, ``age`` or
    ``retirement-if-age``; ``end_rule`` is one of ``manual``, ``retirement``
    or ``age``.  Rule ages are read from ``start_rule_age`` / ``end_rule_age``.
    """

    name: str
    base_amount: int
    start_year: int = 0
    end_year: Optional[int] = None
    type: IncomeType = IncomeType.SALARY
    growth_rate: float = 0.03
    is_one_time: bool = False
    start_rule: str = "manual"
    start_rule_age: Optional[int] = None
    end_rule: str = "manual"
    end_rule_age: Optional[int] = None
    id: str = field(default_factory=lambda: _new_id("inc"))

    def __post_init__(self):
        object.__setattr__(self, "type", IncomeType.parse(self.type))

    @property
    def tax_treatment(self) -> TaxTreatment:
        return self.type.tax_treatment


@dataclass(frozen=True)
class TaxProfile:
    current_age: int
    retirement_age: int
    filing_status: FilingStatus = FilingStatus.SINGLE
    state: Optional[str] = None
    estimated_tax_rate: float = 0.25

    def __post_init__(self):
        object.__setattr__(self, "filing_status", FilingStatus.parse(self.filing_status))


@dataclass(frozen=True)
class Assumptions:
    inflation_rate: float = 0.03
    equity_growth_rate: float = 0.07
    bond_growth_rate: float = 0.04
    equity_volatility: Optional[float] = None
    bond_volatility: Optional[float] = None
    taxable_growth_multiplier: float = 0.8
    growth_overrides: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class SocialSecurityProfile:
    """``monthly_benefit`` is the PIA in dollars; ``cola_rate`` defaults to inflation."""

    enabled: bool = False
    birth_year: Optional[int] = None
    monthly_benefit: float = 0.0
    filing_age: Optional[int] = None
    cola_rate: Optional[float] = None


@dataclass(frozen=True)
class RothConversionSettings:
    enabled: bool = False
    strategy: str = "bracket-fill"
    annual_amount: int = 0
    bracket_top: Optional[int] = None
    percentage: float = 0.10
    after_tax_basis: int = 0
    max_amount: Optional[int] = None


@dataclass(frozen=True)
class QCDSettings:
    enabled: bool = False
    strategy: str = "fixed"
    annual_amount: int = 0
    percentage: float = 0.0


@dataclass(frozen=True)
class HarvestingSettings:
    enabled: bool = False
    strategy: str = "all"
    threshold: int = 100000


@dataclass(frozen=True)
class StrategySettings:
    """``withdrawal_strategy`` of ``None`` keeps the even split across accounts."""

    withdrawal_strategy: Optional[str] = None
    roth_conversion: RothConversionSettings = field(default_factory=RothConversionSettings)
    qcd: QCDSettings = field(default_factory=QCDSettings)
    tax_loss_harvesting: HarvestingSettings = field(default_factory=HarvestingSettings)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _build(cls, data: Optional[Dict[str, Any]]):
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (data or {}).items() if k in names})


@dataclass(frozen=True)
class Plan:
    name: str
    tax_profile: TaxProfile
    assumptions: Assumptions = field(default_factory=Assumptions)
    accounts: Tuple[Account, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    incomes: Tuple[Income, ...] = ()
    social_security: SocialSecurityProfile = field(default_factory=SocialSecurityProfile)
    strategies: StrategySettings = field(default_factory=StrategySettings)
    start_year: int = 2025
    id: str = field(default_factory=lambda: _new_id("plan"))

    def __post_init__(self):
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "expenses", tuple(self.expenses))
        object.__setattr__(self, "incomes", tuple(self.incomes))

    @property
    def birth_year(self) -> int:
        if self.social_security.birth_year:
            return int(self.social_security.birth_year)
        return self.start_year - self.tax_profile.current_age

    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        strategies = data.get("strategies") or {}
        return cls(
            name=data["name"],
            tax_profile=_build(TaxProfile, data["tax_profile"]),
            assumptions=_build(Assumptions, data.get("assumptions")),
            accounts=tuple(_build(Account, a) for a in data.get("accounts", [])),
            expenses=tuple(_build(Expense, e) for e in data.get("expenses", [])),
            incomes=tuple(_build(Income, i) for i in data.get("incomes", [])),
            social_security=_build(SocialSecurityProfile, data.get("social_security")),
            strategies=StrategySettings(
                withdrawal_strategy=strategies.get("withdrawal_strategy"),
                roth_conversion=_build(RothConversionSettings, strategies.get("roth_conversion")),
                qcd=_build(QCDSettings, strategies.get("qcd")),
                tax_loss_harvesting=_build(HarvestingSettings, strategies.get("tax_loss_harvesting")),
            ),
            start_year=int(data.get("start_year", 2025)),
            id=data.get("id") or _new_id("plan"),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "Plan":
        return cls.from_dict(json.loads(text))


@dataclass(frozen=True)
class YearRecord:
    """Snapshot of one projected year.  Every monetary field is in cents."""

    year: int
    year_offset: int
    age: int
    is_retired: bool
    total_balance: int
    total_expense: int
    account_balances: Tuple[int, ...]
    total_income: int = 0
    social_security_income: int = 0
    federal_tax: int = 0
    state_tax: int = 0
    fica_tax: int = 0
    rmd_amount: int = 0
    withdrawals: int = 0
    qcd_amount: int = 0
    roth_conversion: int = 0
    harvested_loss: int = 0

    @property
    def total_tax(self) -> int:
        return self.federal_tax + self.state_tax + self.fica_tax

    @property
    def total_balance_dollars(self) -> float:
        return to_dollars(self.total_balance)


@dataclass(frozen=True)
class ScenarioResult:
    projection: Tuple[YearRecord, ...]
    success: bool
    final_balance: int
    final_age: int


__all__ = [
    "round_half_up",
    "to_cents",
    "to_dollars",
    "FilingStatus",
    "AccountType",
    "TaxTreatment",
    "IncomeType",
    "Account",
    "Expense",
    "Income",
    "TaxProfile",
    "Assumptions",
    "SocialSecurityProfile",
    "RothConversionSettings",
    "QCDSettings",
    "HarvestingSettings",
    "StrategySettings",
    "Plan",
    "YearRecord",
    "ScenarioResult",
]
