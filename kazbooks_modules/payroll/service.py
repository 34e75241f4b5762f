"""
Payroll Module Service (``kazbooks_modules.payroll.service``).

Responsibility
--------------
Orchestrates payroll accrual: selects tax settings for the pay date,
runs the payroll tax engine, resolves the tenant's payroll account
mappings, generates the journal lines and posts them through
``JournalService.post_lines``.

Architecture position
---------------------
**Modules layer** -- thin glue between ``kazbooks_config``,
``kazbooks_engines.payroll`` and the kernel services.

Invariants enforced
-------------------
* Either one balanced payroll entry is posted or nothing is written.
* Mapping gaps are reported before the period gate is consulted.

Failure modes
-------------
* ``MissingAccountMappingError`` -- a required payroll mapping is unset.
* ``InvalidPayrollInputError`` -- malformed input or nothing to post.
* ``UnbalancedEntryError`` -- generated lines do not balance.
* Period and account errors from ``JournalService`` propagate.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from kazbooks_config import PostingDefaults, get_posting_defaults, get_tax_settings
from kazbooks_engines.payroll import (
    MISSING_MAPPING,
    NOTHING_TO_POST,
    REQUIRED_PAYROLL_MAPPINGS,
    EmploymentType,
    PayrollCalculation,
    PayrollFlags,
    calculate_payroll,
    generate_payroll_journal_lines,
)
from kazbooks_kernel.domain.clock import Clock, SystemClock
from kazbooks_kernel.domain.dtos import ZERO, EntrySource, PostedEntry
from kazbooks_kernel.exceptions import (
    InvalidPayrollInputError,
    MissingAccountMappingError,
    UnbalancedEntryError,
)
from kazbooks_kernel.logging_config import LogContext, get_logger
from kazbooks_kernel.services.chart_service import ChartOfAccountsService, ConfigurationCheck
from kazbooks_kernel.services.journal_service import JournalService

logger = get_logger("modules.payroll.service")


class PayrollPostingService:
    """
    Payroll calculation and accrual posting.

    Contract
    --------
    * ``calculate`` is pure apart from reading tax settings.
    * ``post_payroll`` flushes one posted entry with source ``payroll``;
      the caller commits.

    Non-goals
    ---------
    * Does NOT pay salaries or remit taxes (bank side postings).
    * Does NOT keep employee records.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        journal_service: JournalService | None = None,
        chart_service: ChartOfAccountsService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._chart = chart_service or ChartOfAccountsService(session)
        self._journal = journal_service or JournalService(
            session, chart_service=self._chart, clock=self._clock
        )

    def calculate(
        self,
        gross: Decimal,
        is_resident: bool,
        pay_date: date,
        employment_type: EmploymentType = EmploymentType.FULL_TIME,
        flags: PayrollFlags | None = None,
        worked_days: int | None = None,
        total_work_days: int | None = None,
        ytd_income: Decimal = ZERO,
    ) -> PayrollCalculation:
        """Calculate with the tax settings of ``pay_date``'s year."""
        return calculate_payroll(
            gross,
            is_resident,
            flags or PayrollFlags.for_employment_type(employment_type),
            get_tax_settings(pay_date.year),
            worked_days=worked_days,
            total_work_days=total_work_days,
            ytd_income=ytd_income,
        )

    def install_default_mappings(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        defaults: PostingDefaults | None = None,
    ) -> dict[str, str]:
        """Map the standard payroll mapping types onto the NSFO accounts."""
        defaults = defaults or get_posting_defaults()
        self._chart.set_mappings(tenant_id, defaults.payroll_mappings, actor_id)
        return self._chart.get_mappings(tenant_id)

    def check_configuration(self, tenant_id: UUID) -> ConfigurationCheck:
        return self._chart.check_configuration(
            tenant_id, [m.value for m in REQUIRED_PAYROLL_MAPPINGS]
        )

    def post_payroll(
        self,
        tenant_id: UUID,
        entry_date: date,
        calculation: PayrollCalculation,
        actor_id: UUID,
        description: str | None = None,
    ) -> PostedEntry:
        """
        Post the accrual for one payroll calculation.

        Raises:
            MissingAccountMappingError: first unset required mapping.
            InvalidPayrollInputError: the calculation has no amounts.
            UnbalancedEntryError: the generated lines do not balance.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            result = generate_payroll_journal_lines(
                calculation, self._chart.get_mappings(tenant_id)
            )
            if not result.is_success:
                logger.warning(
                    "payroll_lines_rejected",
                    extra={"issues": [issue.code for issue in result.issues]},
                )
                issue = result.issues[0]
                if issue.code == MISSING_MAPPING:
                    raise MissingAccountMappingError(issue.mapping_type)
                if issue.code == NOTHING_TO_POST:
                    raise InvalidPayrollInputError("gross", calculation.gross, issue.message)
                raise UnbalancedEntryError(issue.debits, issue.credits)

            entry = self._journal.post_lines(
                tenant_id=tenant_id,
                entry_date=entry_date,
                lines=result.lines,
                actor_id=actor_id,
                description=description or "Начисление заработной платы",
                source=EntrySource.PAYROLL,
            )
            logger.info(
                "payroll_posted",
                extra={
                    "entry_number": entry.entry_number,
                    "total_employer_cost": calculation.total_employer_cost,
                    "line_count": len(result.lines),
                },
            )
            return entry
