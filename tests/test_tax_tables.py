"""Tests for the tax table provider."""

import json

import pytest

from nestegg.calculators import tax_tables, taxes
from nestegg.calculators.errors import MissingStateDataError, UnsupportedTaxYearError


def test_supported_years():
    assert tax_tables.supported_years() == [2024, 2025]


def test_federal_schedule_shape():
    schedule = tax_tables.federal_schedule(2025, "single")
    assert schedule["standard_deduction"] == 1_575_000
    assert schedule["brackets"][0] == {"rate": 0.1, "start": 0, "end": 1_192_500}
    assert schedule["brackets"][-1]["end"] is None
    assert schedule["cap_gains"][-1]["rate"] == 0.2


def test_standard_deduction_by_status():
    assert tax_tables.standard_deduction(2025, "married_joint") == 3_150_000
    assert tax_tables.standard_deduction(2024, "single") == 1_460_000


def test_payroll_parameters():
    payroll = tax_tables.payroll_parameters(2025)
    assert payroll["social_security_wage_base"] == 17_610_000
    assert payroll["additional_medicare_threshold"]["married_joint"] == 25_000_000
    assert payroll["niit_threshold"]["married_separate"] == 12_500_000


def test_no_tax_state_schedule():
    schedule = tax_tables.state_schedule("tx", 2024, "single")
    assert schedule == {"standard_deduction": 0, "brackets": [{"rate": 0.0, "start": 0, "end": None}]}


def test_state_codes_are_case_insensitive():
    assert tax_tables.state_schedule("ca", 2025, "single") == tax_tables.state_schedule("CA", 2025, "single")


def test_missing_state():
    with pytest.raises(MissingStateDataError) as excinfo:
        tax_tables.state_schedule("ZZ", 2025, "single")
    assert "ZZ" in str(excinfo.value)


def test_unsupported_year():
    with pytest.raises(UnsupportedTaxYearError):
        tax_tables.payroll_parameters(2030)


def test_custom_tables_from_file(tmp_path):
    tables = json.loads(json.dumps(tax_tables.load_tax_tables()))
    tables["2025"]["federal"]["single"]["standard_deduction"] = 0
    path = tmp_path / "tables.json"
    path.write_text(json.dumps(tables), encoding="utf-8")

    custom = tax_tables.load_tax_tables(path)
    # no deduction: $10,000 sits entirely in the 10 % bracket
    assert taxes.federal_tax(1_000_000, "single", 2025, tax_tables=custom) == 100_000
    assert taxes.federal_tax(1_000_000, "single", 2025) == 0
