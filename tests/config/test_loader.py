"""
Tests for the YAML configuration loader.

Covers:
- The bundled tax settings, chart template and posting defaults
- Year selection
- Parse failures on malformed files
"""

from decimal import Decimal
from pathlib import Path

import pytest

import kazbooks_config
from kazbooks_config import get_posting_defaults, get_tax_settings, load_chart_template
from kazbooks_config.loader import (
    load_yaml_file,
    parse_chart_template,
    parse_tax_years,
    select_tax_year,
)
from kazbooks_engines.payroll import REQUIRED_PAYROLL_MAPPINGS
from kazbooks_kernel.domain.dtos import AccountClass

SETS_DIR = Path(kazbooks_config.__file__).parent / "sets"


class TestTaxSettings:
    def test_2024(self):
        settings = get_tax_settings(2024)

        assert settings.year == 2024
        assert settings.mrp == Decimal("3692")
        assert settings.mzp == Decimal("85000")
        assert settings.opv_rate == Decimal("0.10")
        assert settings.social_tax_rate == Decimal("0.095")
        assert settings.standard_deduction == Decimal("51688")

    def test_2025(self):
        assert get_tax_settings(2025).mrp == Decimal("3932")

    def test_selects_latest_effective_year(self):
        available = parse_tax_years(load_yaml_file(SETS_DIR / "tax_settings.yaml"))

        assert select_tax_year(available, 2027).year == 2025
        assert select_tax_year(available, 2024).year == 2024

    def test_missing_field(self, tmp_path):
        path = tmp_path / "tax_settings.yaml"
        path.write_text("years:\n  2024:\n    mrp: 3692\n", encoding="utf-8")

        with pytest.raises(KeyError):
            get_tax_settings(2024, config_dir=tmp_path)

    def test_non_numeric_value(self):
        data = load_yaml_file(SETS_DIR / "tax_settings.yaml")
        data["years"][2024]["mrp"] = "много"

        with pytest.raises(ValueError):
            parse_tax_years(data)


class TestChartTemplate:
    def setup_method(self):
        self.seeds = load_chart_template()
        self.by_code = {seed.code: seed for seed in self.seeds}

    def test_headers(self):
        headers = [s for s in self.seeds if s.parent_code is None]
        assert [s.code for s in headers] == ["1000", "2000", "3000", "4000", "5000", "6000", "7000", "8000"]
        assert not any(s.allow_manual_entry for s in headers)

    def test_children_inherit_section(self):
        assert self.by_code["3350"].parent_code == "3000"
        assert self.by_code["3350"].account_class == AccountClass.LIABILITY
        assert self.by_code["3350"].is_current is True
        assert self.by_code["2410"].is_current is False
        assert self.by_code["6280"].account_class == AccountClass.REVENUE
        assert self.by_code["8010"].account_class == AccountClass.EXPENSE

    def test_duplicate_codes_rejected(self):
        data = {
            "sections": [
                {"code": "1000", "name": "A", "class": "asset", "accounts": {"1010": "x"}},
                {"code": "1010", "name": "B", "class": "asset"},
            ]
        }
        with pytest.raises(ValueError):
            parse_chart_template(data)

    def test_unknown_class_rejected(self):
        with pytest.raises(ValueError):
            parse_chart_template({"sections": [{"code": "1000", "name": "A", "class": "cash"}]})


class TestPostingDefaults:
    def test_counter_accounts(self):
        accounts = get_posting_defaults().posting_accounts()
        assert accounts.other_income_code == "6280"
        assert accounts.other_expense_code == "7470"

    def test_covers_required_payroll_mappings(self):
        mappings = get_posting_defaults().payroll_mappings
        assert {m.value for m in REQUIRED_PAYROLL_MAPPINGS} <= set(mappings)

    def test_mapped_codes_exist_in_chart(self):
        codes = {seed.code for seed in load_chart_template()}
        defaults = get_posting_defaults()
        assert set(defaults.payroll_mappings.values()) <= codes
        assert {defaults.other_income_code, defaults.other_expense_code} <= codes


class TestLoadYamlFile:
    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml_file(path) == {}

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")
