"""Tests for qualified charitable distributions."""

import pytest

from nestegg.calculators import qcd
from nestegg.calculators.models import Account, QCDSettings


def test_qcd_allowed_from_seventy_and_a_half():
    assert not qcd.qcd_allowed(70)
    assert qcd.qcd_allowed(70.5)
    assert qcd.qcd_allowed(80)


def test_fixed_qcd():
    """A $5,000 QCD from a $200,000 IRA at 75."""
    ira = Account("IRA", "IRA", 20_000_000)
    settings = QCDSettings(enabled=True, strategy="fixed", annual_amount=500_000)
    assert qcd.qcd_for_account(ira, settings, 75) == 500_000


@pytest.mark.parametrize(
    "account, age",
    [
        (Account("IRA", "IRA", 20_000_000), 70),
        (Account("Roth", "Roth", 20_000_000), 75),
        (Account("Brokerage", "Taxable", 20_000_000), 75),
    ],
)
def test_no_qcd_when_ineligible(account, age):
    settings = QCDSettings(enabled=True, strategy="fixed", annual_amount=500_000)
    assert qcd.qcd_for_account(account, settings, age) == 0


def test_disabled_settings():
    ira = Account("IRA", "IRA", 20_000_000)
    assert qcd.qcd_for_account(ira, QCDSettings(annual_amount=500_000), 75) == 0


def test_percentage_qcd_capped_at_annual_limit():
    ira = Account("IRA", "IRA", 30_000_000)
    settings = QCDSettings(enabled=True, strategy="percentage", percentage=0.5)
    assert qcd.qcd_for_account(ira, settings, 75) == qcd.QCD_ANNUAL_LIMIT


def test_rmd_strategy_gives_the_rmd():
    ira = Account("401k", "401k", 20_000_000)
    settings = QCDSettings(enabled=True, strategy="rmd")
    assert qcd.qcd_for_account(ira, settings, 75, rmd_amount=813_008.13) == 813_008


def test_fixed_qcd_capped_by_balance():
    ira = Account("IRA", "IRA", 200_000)
    settings = QCDSettings(enabled=True, strategy="fixed", annual_amount=500_000)
    assert qcd.qcd_for_account(ira, settings, 75) == 200_000


def test_annual_limit_shared_across_accounts():
    accounts = [Account("IRA", "IRA", 50_000_000), Account("401k", "401k", 50_000_000), Account("Roth", "Roth", 100)]
    settings = QCDSettings(enabled=True, strategy="fixed", annual_amount=6_000_000)
    assert qcd.total_qcd(accounts, settings, 75) == [6_000_000, 4_000_000, 0]


def test_qcd_tax_benefit():
    assert qcd.qcd_tax_benefit(500_000, 0.22) == pytest.approx(110_000)
    assert qcd.qcd_tax_benefit(500_000, None) == 0
    assert qcd.qcd_tax_benefit(0, 0.22) == 0


def test_validate_qcd_settings():
    assert qcd.validate_qcd_settings(QCDSettings()) == []
    assert qcd.validate_qcd_settings(QCDSettings(enabled=True, strategy="fixed")) == ["Fixed QCD amount must be positive"]
    assert qcd.validate_qcd_settings(QCDSettings(enabled=True, strategy="percentage", percentage=1.5)) == [
        "QCD percentage must be between 0 and 1"
    ]
    assert qcd.validate_qcd_settings(QCDSettings(enabled=True, strategy="monthly", annual_amount=1)) == [
        "Invalid QCD strategy: monthly"
    ]
