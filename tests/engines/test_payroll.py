"""
Pure function unit tests for the payroll tax engine.

NO database, NO I/O.  Amounts are whole tenge; tax settings come from the
bundled configuration.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from kazbooks_config import get_tax_settings
from kazbooks_engines.payroll import (
    EmploymentType,
    PayrollFlags,
    calculate_payroll,
    round_tenge,
    working_days_in_month,
)
from kazbooks_kernel.exceptions import InvalidPayrollInputError

FULL_TIME = PayrollFlags.for_employment_type(EmploymentType.FULL_TIME)
CONTRACTOR = PayrollFlags.for_employment_type(EmploymentType.CONTRACTOR)


class TestReferenceCase:
    """Resident full-time employee earning 100 000 tenge in 2024."""

    def setup_method(self):
        self.result = calculate_payroll(Decimal("100000"), True, FULL_TIME, get_tax_settings(2024))

    def test_employee_withholdings(self):
        assert self.result.adjusted_gross == Decimal("100000")
        assert self.result.opv == Decimal("10000")
        assert self.result.vosms_employee == Decimal("2000")
        assert self.result.standard_deduction == Decimal("51688")
        assert self.result.taxable_income == Decimal("38312")
        assert self.result.ipn == Decimal("3831")
        assert self.result.net_salary == Decimal("84169")

    def test_employer_contributions(self):
        assert self.result.social_contributions == Decimal("3500")
        assert self.result.social_tax == Decimal("5050")
        assert self.result.vosms_employer == Decimal("3000")
        assert self.result.opvr == Decimal("0")
        assert self.result.total_employer_cost == Decimal("111550")

    def test_total_employee_deductions(self):
        assert self.result.total_employee_deductions == Decimal("15831")
        assert self.result.net_salary + self.result.total_employee_deductions == Decimal("100000")


class TestResidency:
    def test_non_resident_has_no_standard_deduction(self):
        result = calculate_payroll(Decimal("100000"), False, FULL_TIME, get_tax_settings(2024))

        assert result.standard_deduction == Decimal("0")
        assert result.taxable_income == Decimal("90000")
        assert result.ipn == Decimal("18000")
        assert result.net_salary == Decimal("70000")

    def test_2025_settings_raise_the_deduction(self):
        result = calculate_payroll(Decimal("100000"), True, FULL_TIME, get_tax_settings(2025))

        assert result.standard_deduction == Decimal("55048")
        assert result.taxable_income == Decimal("34952")
        assert result.ipn == Decimal("3495")


class TestContractor:
    def test_only_income_tax_is_withheld(self):
        result = calculate_payroll(Decimal("100000"), True, CONTRACTOR, get_tax_settings(2024))

        assert result.opv == Decimal("0")
        assert result.vosms_employee == Decimal("0")
        assert result.taxable_income == Decimal("48312")
        assert result.ipn == Decimal("4831")
        assert result.net_salary == Decimal("95169")
        assert result.social_tax == Decimal("0")
        assert result.social_contributions == Decimal("0")
        assert result.vosms_employer == Decimal("0")
        assert result.total_employer_cost == Decimal("100000")


class TestFloorsAndCaps:
    def test_taxable_income_never_negative(self):
        result = calculate_payroll(Decimal("50000"), True, FULL_TIME, get_tax_settings(2024))

        assert result.taxable_income == Decimal("0")
        assert result.ipn == Decimal("0")
        assert result.net_salary == Decimal("44000")

    def test_social_contributions_use_minimum_wage_floor(self):
        result = calculate_payroll(Decimal("50000"), True, FULL_TIME, get_tax_settings(2024))

        assert result.social_contributions_base == Decimal("85000")
        assert result.social_contributions == Decimal("2975")
        assert result.social_tax == Decimal("1300")

    def test_social_tax_is_clamped_after_subtraction(self):
        """Social tax 2565 minus contributions 2975 is clamped to zero."""
        result = calculate_payroll(Decimal("30000"), True, FULL_TIME, get_tax_settings(2024))

        assert result.social_contributions == Decimal("2975")
        assert result.social_tax == Decimal("0")

    def test_high_salary_hits_pension_and_contribution_caps(self):
        result = calculate_payroll(Decimal("5000000"), True, FULL_TIME, get_tax_settings(2024))

        assert result.opv == Decimal("425000")
        assert result.social_contributions_base == Decimal("595000")
        assert result.social_contributions == Decimal("20825")


class TestRounding:
    def test_half_up_to_whole_tenge(self):
        assert round_tenge(Decimal("2000.5")) == Decimal("2001")
        assert round_tenge(Decimal("2000.49")) == Decimal("2000")

    def test_each_step_rounds(self):
        result = calculate_payroll(Decimal("100025"), True, FULL_TIME, get_tax_settings(2024))

        assert result.opv == Decimal("10003")
        assert result.vosms_employee == Decimal("2001")


class TestProRating:
    def test_partial_month(self):
        result = calculate_payroll(
            Decimal("100000"), True, FULL_TIME, get_tax_settings(2024),
            worked_days=10, total_work_days=21,
        )

        assert result.gross == Decimal("100000")
        assert result.adjusted_gross == Decimal("47619")
        assert result.opv == Decimal("4762")

    def test_days_ignored_unless_both_given(self):
        result = calculate_payroll(
            Decimal("100000"), True, FULL_TIME, get_tax_settings(2024), worked_days=10,
        )
        assert result.adjusted_gross == Decimal("100000")

    def test_negative_gross_rejected(self):
        with pytest.raises(InvalidPayrollInputError) as exc_info:
            calculate_payroll(Decimal("-1"), True, FULL_TIME, get_tax_settings(2024))
        assert exc_info.value.field == "gross"

    def test_zero_work_days_rejected(self):
        with pytest.raises(InvalidPayrollInputError) as exc_info:
            calculate_payroll(
                Decimal("100000"), True, FULL_TIME, get_tax_settings(2024),
                worked_days=5, total_work_days=0,
            )
        assert exc_info.value.field == "total_work_days"

    def test_negative_worked_days_rejected(self):
        with pytest.raises(InvalidPayrollInputError):
            calculate_payroll(
                Decimal("100000"), True, FULL_TIME, get_tax_settings(2024),
                worked_days=-1, total_work_days=21,
            )


class TestEmployerPension:
    def test_opvr_adds_to_employer_cost(self):
        flags = replace(FULL_TIME, apply_opvr=True)
        result = calculate_payroll(Decimal("100000"), True, flags, get_tax_settings(2024))

        assert result.opvr == Decimal("1500")
        assert result.total_employer_cost == Decimal("113050")


class TestProgressiveIncomeTax:
    def test_crossing_threshold_splits_rates(self):
        result = calculate_payroll(
            Decimal("100000"), True, FULL_TIME, get_tax_settings(2024),
            ytd_income=Decimal("39990000"),
        )
        assert result.ipn == Decimal("5247")

    def test_above_threshold_uses_higher_rate(self):
        result = calculate_payroll(
            Decimal("100000"), True, FULL_TIME, get_tax_settings(2024),
            ytd_income=Decimal("41000000"),
        )
        assert result.ipn == Decimal("5747")

    def test_non_residents_keep_flat_rate(self):
        result = calculate_payroll(
            Decimal("100000"), False, FULL_TIME, get_tax_settings(2024),
            ytd_income=Decimal("41000000"),
        )
        assert result.ipn == Decimal("18000")


class TestUnifiedPayment:
    def test_unified_payment_split(self):
        flags = replace(FULL_TIME, use_unified_payment=True)
        result = calculate_payroll(Decimal("100000"), True, flags, get_tax_settings(2024))

        assert result.uses_unified_payment
        assert result.unified_payment == Decimal("21500")
        assert result.opv == Decimal("10750")
        assert result.ipn == Decimal("1935")
        assert result.unified_payment_employee_part == Decimal("12685")
        assert result.unified_payment_employer_part == Decimal("8815")
        assert result.net_salary == Decimal("87315")
        assert result.total_employer_cost == Decimal("108815")
        assert result.social_tax == Decimal("0")


class TestDefaultFlags:
    def test_full_time(self):
        assert FULL_TIME.apply_opv
        assert FULL_TIME.apply_social_tax
        assert not FULL_TIME.apply_opvr
        assert not FULL_TIME.use_unified_payment

    def test_contractor(self):
        assert CONTRACTOR.apply_standard_deduction
        assert not CONTRACTOR.apply_opv
        assert not CONTRACTOR.apply_vosms_employer
        assert not CONTRACTOR.apply_social_contributions


class TestTaxSettings:
    def test_later_years_use_latest_settings(self):
        assert get_tax_settings(2030).mrp == Decimal("3932")

    def test_earlier_years_use_earliest_settings(self):
        assert get_tax_settings(2020).mrp == Decimal("3692")

    def test_rate_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            replace(get_tax_settings(2024), opv_rate=Decimal("1.5"))


class TestWorkingDays:
    def test_march_2024(self):
        assert working_days_in_month(2024, 3) == 21

    def test_february_leap_year(self):
        assert working_days_in_month(2024, 2) == 21
