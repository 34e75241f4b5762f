"""
Payroll tax engine -- Kazakhstan statutory withholdings and contributions.

Responsibility:
    Computes, for one employee and one pay period, the pension contribution
    (OPV), medical insurance (VOSMS), standard deduction, individual income
    tax (IPN), social tax and social contributions, the employer pension
    contribution (OPVR) and the unified payment of the simplified regime;
    then maps the result onto balanced journal lines.

Architecture position:
    Engines -- pure functions.  Tax settings come from ``kazbooks_config``;
    PayrollPostingService feeds the generated lines into JournalService.

Invariants enforced:
    - Every intermediate amount is rounded half-up to whole tenge exactly
      where it is computed, not only at the end.
    - Social tax is net of social contributions: the rounded gross social
      tax minus contributions, clamped at zero after the subtraction.
    - Generated journal lines balance exactly or are not returned.

Failure modes:
    - InvalidPayrollInputError: negative gross, non-positive total work
      days, negative worked days.
    - ``generate_payroll_journal_lines`` never raises for configuration
      gaps; it returns issues (missing mappings, unbalanced).
"""

import calendar
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from kazbooks_kernel.domain.dtos import ZERO, LineSpec
from kazbooks_kernel.exceptions import InvalidPayrollInputError
from kazbooks_kernel.logging_config import get_logger

logger = get_logger("engines.payroll")

TENGE = Decimal("1")

# Unified payment (simplified regime) shares attributed to the employee
UNIFIED_OPV_SHARE = Decimal("0.50")
UNIFIED_IPN_SHARE = Decimal("0.09")


def round_tenge(amount: Decimal) -> Decimal:
    """Round half-up to a whole tenge."""
    return amount.quantize(TENGE, rounding=ROUND_HALF_UP)


class EmploymentType(str, Enum):
    FULL_TIME = "full_time"
    CONTRACTOR = "contractor"


class PayrollMapping(str, Enum):
    """Account mapping types used by payroll postings."""

    SALARY_EXPENSE = "salary_expense"
    SALARY_PAYABLE = "salary_payable"
    OPV_PAYABLE = "opv_payable"
    VOSMS_PAYABLE = "vosms_payable"
    IPN_PAYABLE = "ipn_payable"
    SOCIAL_TAX_PAYABLE = "social_tax_payable"
    SOCIAL_CONTRIB_PAYABLE = "social_contrib_payable"
    OPVR_PAYABLE = "opvr_payable"
    UNIFIED_PAYABLE = "unified_payable"


REQUIRED_PAYROLL_MAPPINGS: tuple[PayrollMapping, ...] = (
    PayrollMapping.SALARY_EXPENSE,
    PayrollMapping.SALARY_PAYABLE,
    PayrollMapping.OPV_PAYABLE,
    PayrollMapping.VOSMS_PAYABLE,
    PayrollMapping.IPN_PAYABLE,
    PayrollMapping.SOCIAL_TAX_PAYABLE,
    PayrollMapping.SOCIAL_CONTRIB_PAYABLE,
)


@dataclass(frozen=True)
class TaxSettings:
    """
    Statutory parameters for one tax year.

    ``mrp`` is the monthly calculation index, ``mzp`` the minimum monthly
    wage; caps and floors are expressed as multiples of them.
    """

    year: int
    mrp: Decimal
    mzp: Decimal
    opv_rate: Decimal
    opv_cap_mzp: Decimal
    opvr_rate: Decimal
    opvr_cap_mzp: Decimal
    vosms_employee_rate: Decimal
    vosms_employer_rate: Decimal
    ipn_resident_rate: Decimal
    ipn_nonresident_rate: Decimal
    ipn_progressive_threshold: Decimal
    ipn_progressive_rate: Decimal
    standard_deduction_mrp: Decimal
    social_tax_rate: Decimal
    social_contrib_rate: Decimal
    social_contrib_min_mzp: Decimal
    social_contrib_max_mzp: Decimal
    unified_payment_rate: Decimal

    def __post_init__(self):
        if self.mrp <= ZERO or self.mzp <= ZERO:
            raise ValueError("mrp and mzp must be positive")
        for name in (
            "opv_rate",
            "opvr_rate",
            "vosms_employee_rate",
            "vosms_employer_rate",
            "ipn_resident_rate",
            "ipn_nonresident_rate",
            "ipn_progressive_rate",
            "social_tax_rate",
            "social_contrib_rate",
            "unified_payment_rate",
        ):
            value = getattr(self, name)
            if not ZERO <= value <= Decimal("1"):
                raise ValueError(f"{name} must be between 0 and 1, got {value}")
        if self.social_contrib_min_mzp > self.social_contrib_max_mzp:
            raise ValueError("social_contrib_min_mzp cannot exceed social_contrib_max_mzp")

    @property
    def standard_deduction(self) -> Decimal:
        return self.mrp * self.standard_deduction_mrp


@dataclass(frozen=True)
class PayrollFlags:
    """Which deductions and contributions apply to an employee."""

    apply_opv: bool = True
    apply_opvr: bool = False
    apply_vosms_employee: bool = True
    apply_vosms_employer: bool = True
    apply_social_tax: bool = True
    apply_social_contributions: bool = True
    apply_standard_deduction: bool = True
    use_unified_payment: bool = False

    @classmethod
    def for_employment_type(cls, employment_type: EmploymentType) -> "PayrollFlags":
        """
        Default flags.  Contractors pay their own contributions and keep only
        the standard deduction.
        """
        if employment_type == EmploymentType.CONTRACTOR:
            return cls(
                apply_opv=False,
                apply_opvr=False,
                apply_vosms_employee=False,
                apply_vosms_employer=False,
                apply_social_tax=False,
                apply_social_contributions=False,
                apply_standard_deduction=True,
            )
        return cls()


@dataclass(frozen=True)
class PayrollCalculation:
    """Per-employee, per-period result; the posted entry is the authoritative record."""

    gross: Decimal
    adjusted_gross: Decimal
    is_resident: bool
    opv: Decimal = ZERO
    vosms_employee: Decimal = ZERO
    standard_deduction: Decimal = ZERO
    taxable_income: Decimal = ZERO
    ipn: Decimal = ZERO
    net_salary: Decimal = ZERO
    social_tax_base: Decimal = ZERO
    social_contributions_base: Decimal = ZERO
    social_contributions: Decimal = ZERO
    social_tax: Decimal = ZERO
    vosms_employer: Decimal = ZERO
    opvr: Decimal = ZERO
    unified_payment: Decimal = ZERO
    unified_payment_employee_part: Decimal = ZERO
    unified_payment_employer_part: Decimal = ZERO
    total_employer_cost: Decimal = ZERO
    uses_unified_payment: bool = False

    @property
    def total_employee_deductions(self) -> Decimal:
        if self.uses_unified_payment:
            return self.unified_payment_employee_part
        return self.opv + self.vosms_employee + self.ipn


def _check_inputs(
    gross: Decimal,
    worked_days: int | None,
    total_work_days: int | None,
) -> None:
    if gross < ZERO:
        raise InvalidPayrollInputError("gross", gross, "must not be negative")
    if worked_days is not None and total_work_days is not None:
        if total_work_days <= 0:
            raise InvalidPayrollInputError("total_work_days", total_work_days, "must be positive")
        if worked_days < 0:
            raise InvalidPayrollInputError("worked_days", worked_days, "must not be negative")


def _income_tax(
    taxable_income: Decimal,
    is_resident: bool,
    settings: TaxSettings,
    ytd_income: Decimal,
) -> Decimal:
    rate = settings.ipn_resident_rate if is_resident else settings.ipn_nonresident_rate
    threshold = settings.ipn_progressive_threshold

    if (
        is_resident
        and settings.ipn_progressive_rate > ZERO
        and ytd_income + taxable_income > threshold
    ):
        if ytd_income > threshold:
            return max(ZERO, round_tenge(taxable_income * settings.ipn_progressive_rate))
        below = threshold - ytd_income
        above = taxable_income - below
        return max(ZERO, round_tenge(below * rate + above * settings.ipn_progressive_rate))

    return max(ZERO, round_tenge(taxable_income * rate))


def calculate_payroll(
    gross: Decimal,
    is_resident: bool,
    flags: PayrollFlags,
    settings: TaxSettings,
    worked_days: int | None = None,
    total_work_days: int | None = None,
    ytd_income: Decimal = ZERO,
) -> PayrollCalculation:
    """
    Compute statutory payroll amounts.

    Steps run in a fixed order, each rounding to whole tenge:
    pro-rated gross, OPV, employee VOSMS, standard deduction, taxable
    income, IPN, net salary, social contributions and social tax, employer
    VOSMS, OPVR, total employer cost.

    Args:
        gross: Monthly gross salary in tenge.
        is_resident: Tax residency; selects the IPN rate and the standard
            deduction.
        flags: Deductions and contributions that apply.
        settings: Tax year parameters.
        worked_days: Days worked, for partial periods.
        total_work_days: Working days in the period.
        ytd_income: Taxable income earlier in the year, for progressive IPN.

    Raises:
        InvalidPayrollInputError: Malformed input.
    """
    gross = Decimal(gross)
    _check_inputs(gross, worked_days, total_work_days)

    if worked_days is not None and total_work_days is not None:
        adjusted = round_tenge(gross * Decimal(worked_days) / Decimal(total_work_days))
    else:
        adjusted = gross

    if flags.use_unified_payment:
        return _calculate_unified(gross, adjusted, is_resident, settings)

    mzp = settings.mzp

    opv = ZERO
    if flags.apply_opv:
        opv = round_tenge(min(adjusted, mzp * settings.opv_cap_mzp) * settings.opv_rate)

    vosms_employee = ZERO
    if flags.apply_vosms_employee:
        vosms_employee = round_tenge(adjusted * settings.vosms_employee_rate)

    standard_deduction = ZERO
    if flags.apply_standard_deduction and is_resident:
        standard_deduction = settings.standard_deduction

    taxable_income = max(ZERO, adjusted - opv - standard_deduction)
    ipn = _income_tax(taxable_income, is_resident, settings, Decimal(ytd_income))
    net_salary = adjusted - opv - vosms_employee - ipn

    social_tax_base = adjusted - opv
    social_contributions_base = min(
        max(adjusted, mzp * settings.social_contrib_min_mzp),
        mzp * settings.social_contrib_max_mzp,
    )
    social_contributions = ZERO
    if flags.apply_social_contributions:
        social_contributions = round_tenge(social_contributions_base * settings.social_contrib_rate)

    social_tax = ZERO
    if flags.apply_social_tax:
        social_tax = max(
            ZERO,
            round_tenge(social_tax_base * settings.social_tax_rate) - social_contributions,
        )

    vosms_employer = ZERO
    if flags.apply_vosms_employer:
        vosms_employer = round_tenge(adjusted * settings.vosms_employer_rate)

    opvr = ZERO
    if flags.apply_opvr:
        opvr = round_tenge(min(adjusted, mzp * settings.opvr_cap_mzp) * settings.opvr_rate)

    total_employer_cost = adjusted + social_tax + social_contributions + vosms_employer + opvr

    logger.debug(
        "payroll_calculated",
        extra={
            "tax_year": settings.year,
            "adjusted_gross": adjusted,
            "net_salary": net_salary,
            "total_employer_cost": total_employer_cost,
        },
    )

    return PayrollCalculation(
        gross=gross,
        adjusted_gross=adjusted,
        is_resident=is_resident,
        opv=opv,
        vosms_employee=vosms_employee,
        standard_deduction=standard_deduction,
        taxable_income=taxable_income,
        ipn=ipn,
        net_salary=net_salary,
        social_tax_base=social_tax_base,
        social_contributions_base=social_contributions_base,
        social_contributions=social_contributions,
        social_tax=social_tax,
        vosms_employer=vosms_employer,
        opvr=opvr,
        total_employer_cost=total_employer_cost,
    )


def _calculate_unified(
    gross: Decimal,
    adjusted: Decimal,
    is_resident: bool,
    settings: TaxSettings,
) -> PayrollCalculation:
    """Simplified regime: one unified payment replaces the separate taxes."""
    unified = round_tenge(adjusted * settings.unified_payment_rate)
    opv_share = round_tenge(unified * UNIFIED_OPV_SHARE)
    ipn_share = round_tenge(unified * UNIFIED_IPN_SHARE)
    employee_part = opv_share + ipn_share
    employer_part = unified - employee_part

    return PayrollCalculation(
        gross=gross,
        adjusted_gross=adjusted,
        is_resident=is_resident,
        opv=opv_share,
        ipn=ipn_share,
        net_salary=adjusted - employee_part,
        unified_payment=unified,
        unified_payment_employee_part=employee_part,
        unified_payment_employer_part=employer_part,
        total_employer_cost=adjusted + employer_part,
        uses_unified_payment=True,
    )


def working_days_in_month(year: int, month: int) -> int:
    """Monday to Friday days in the month; public holidays are not excluded."""
    days = calendar.monthrange(year, month)[1]
    return sum(1 for day in range(1, days + 1) if calendar.weekday(year, month, day) < 5)


# =============================================================================
# Journal mapping
# =============================================================================


@dataclass(frozen=True)
class PayrollJournalIssue:
    """Why payroll lines could not be generated."""

    code: str
    message: str
    mapping_type: str | None = None
    debits: Decimal | None = None
    credits: Decimal | None = None


@dataclass(frozen=True)
class PayrollJournalResult:
    lines: tuple[LineSpec, ...] = field(default_factory=tuple)
    issues: tuple[PayrollJournalIssue, ...] = field(default_factory=tuple)

    @property
    def is_success(self) -> bool:
        return not self.issues

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)


MISSING_MAPPING = "MISSING_MAPPING"
UNBALANCED = "UNBALANCED"
NOTHING_TO_POST = "NOTHING_TO_POST"

_LINE_DESCRIPTIONS = {
    PayrollMapping.SALARY_EXPENSE: "Начисление заработной платы",
    PayrollMapping.SALARY_PAYABLE: "Заработная плата к выплате",
    PayrollMapping.OPV_PAYABLE: "ОПВ",
    PayrollMapping.VOSMS_PAYABLE: "ВОСМС / ООСМС",
    PayrollMapping.IPN_PAYABLE: "ИПН",
    PayrollMapping.SOCIAL_TAX_PAYABLE: "Социальный налог",
    PayrollMapping.SOCIAL_CONTRIB_PAYABLE: "Социальные отчисления",
    PayrollMapping.OPVR_PAYABLE: "ОПВР",
    PayrollMapping.UNIFIED_PAYABLE: "Единый платёж",
}


def generate_payroll_journal_lines(
    calculation: PayrollCalculation,
    account_mappings: dict[str, str],
) -> PayrollJournalResult:
    """
    Map a payroll calculation onto journal lines addressed by account code.

    One debit of the total employer cost against salary expense; one credit
    per non-zero liability component.  Under the unified regime the whole
    unified payment is credited to the unified-payment liability.

    Args:
        calculation: Output of ``calculate_payroll``.
        account_mappings: mapping type value -> account code.

    Returns:
        A result carrying either balanced lines or issues, never both.
    """
    required = list(REQUIRED_PAYROLL_MAPPINGS)
    if calculation.opvr > ZERO:
        required.append(PayrollMapping.OPVR_PAYABLE)
    if calculation.uses_unified_payment:
        required.append(PayrollMapping.UNIFIED_PAYABLE)

    missing = [m for m in required if not account_mappings.get(m.value)]
    if missing:
        return PayrollJournalResult(
            issues=tuple(
                PayrollJournalIssue(
                    code=MISSING_MAPPING,
                    mapping_type=m.value,
                    message=f"Account mapping '{m.value}' is not configured",
                )
                for m in missing
            )
        )

    if calculation.total_employer_cost <= ZERO:
        return PayrollJournalResult(
            issues=(PayrollJournalIssue(NOTHING_TO_POST, "Payroll calculation has no amounts"),)
        )

    def line(mapping: PayrollMapping, debit: Decimal = ZERO, credit: Decimal = ZERO) -> LineSpec:
        return LineSpec(
            account_code=account_mappings[mapping.value],
            debit=debit,
            credit=credit,
            description=_LINE_DESCRIPTIONS[mapping],
        )

    lines = [line(PayrollMapping.SALARY_EXPENSE, debit=calculation.total_employer_cost)]
    if calculation.uses_unified_payment:
        credits = [
            (PayrollMapping.SALARY_PAYABLE, calculation.net_salary),
            (PayrollMapping.UNIFIED_PAYABLE, calculation.unified_payment),
        ]
    else:
        credits = [
            (PayrollMapping.SALARY_PAYABLE, calculation.net_salary),
            (PayrollMapping.OPV_PAYABLE, calculation.opv),
            (PayrollMapping.VOSMS_PAYABLE, calculation.vosms_employee + calculation.vosms_employer),
            (PayrollMapping.IPN_PAYABLE, calculation.ipn),
            (PayrollMapping.SOCIAL_TAX_PAYABLE, calculation.social_tax),
            (PayrollMapping.SOCIAL_CONTRIB_PAYABLE, calculation.social_contributions),
            (PayrollMapping.OPVR_PAYABLE, calculation.opvr),
        ]
    lines.extend(line(mapping, credit=amount) for mapping, amount in credits if amount > ZERO)

    result = PayrollJournalResult(lines=tuple(lines))
    if result.total_debits != result.total_credits:
        logger.error(
            "payroll_lines_unbalanced",
            extra={"debits": result.total_debits, "credits": result.total_credits},
        )
        return PayrollJournalResult(
            issues=(
                PayrollJournalIssue(
                    UNBALANCED,
                    f"Payroll lines are unbalanced: debits={result.total_debits}, "
                    f"credits={result.total_credits}",
                    debits=result.total_debits,
                    credits=result.total_credits,
                ),
            )
        )
    return result
