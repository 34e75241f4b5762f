"""
Reporting Module Service (``kazbooks_modules.reporting.service``).

Responsibility
--------------
Bridges ``LedgerSelector`` reads (accounts, period openings, posted lines in
the period's date range) to the pure aggregation functions and dispatches a
``ReportRequest`` on its ``kind``.

Architecture position
---------------------
**Modules layer** -- thin glue.  No financial logic lives here; everything
is delegated to ``kazbooks_engines.aggregation``.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal.
* Only posted entries are aggregated.
* A period is only reported for the tenant that owns it.

Failure modes
-------------
* Unknown period, or a period of another tenant  -> ``PeriodNotFoundError``.
* Selector query failure  -> exception propagates.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from kazbooks_engines.aggregation import (
    BalanceSheetData,
    ProfitLossData,
    TrialBalanceData,
    build_balance_sheet,
    build_profit_loss,
    build_trial_balance,
)
from kazbooks_kernel.domain.clock import Clock, SystemClock
from kazbooks_kernel.domain.dtos import PeriodInfo
from kazbooks_kernel.exceptions import PeriodNotFoundError
from kazbooks_kernel.logging_config import LogContext, get_logger
from kazbooks_kernel.selectors.ledger_selector import LedgerSelector
from kazbooks_kernel.services.period_service import PeriodService
from kazbooks_modules.reporting.models import ReportKind, ReportRequest, ReportResult

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Period financial statements.

    Contract
    --------
    * ``run`` accepts any ``ReportRequest`` and returns a ``ReportResult``
      whose ``data`` type follows ``request.kind``.
    * Typed convenience methods return the payload directly.

    Non-goals
    ---------
    * Does NOT enforce period locks (read-only service).
    * Does NOT cache reports; every call reads the journal.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._ledger = LedgerSelector(session)
        self._periods = PeriodService(session, self._clock)
        self._builders = {
            ReportKind.TRIAL_BALANCE: self._trial_balance,
            ReportKind.BALANCE_SHEET: self._balance_sheet,
            ReportKind.PROFIT_LOSS: self._profit_loss,
        }

    def run(self, request: ReportRequest) -> ReportResult:
        with LogContext.bind(tenant_id=request.tenant_id, period_id=request.period_id):
            period = self._load_period(request.tenant_id, request.period_id)
            data = self._builders[ReportKind(request.kind)](request.tenant_id, period)
            logger.info(
                "report_generated",
                extra={"report_kind": ReportKind(request.kind).value, "period_name": period.name},
            )
            return ReportResult(
                kind=ReportKind(request.kind),
                period=period,
                generated_at=self._clock.now(),
                data=data,
            )

    def trial_balance(self, tenant_id: UUID, period_id: UUID) -> TrialBalanceData:
        return self.run(ReportRequest(ReportKind.TRIAL_BALANCE, tenant_id, period_id)).data

    def balance_sheet(self, tenant_id: UUID, period_id: UUID) -> BalanceSheetData:
        return self.run(ReportRequest(ReportKind.BALANCE_SHEET, tenant_id, period_id)).data

    def profit_loss(self, tenant_id: UUID, period_id: UUID) -> ProfitLossData:
        return self.run(ReportRequest(ReportKind.PROFIT_LOSS, tenant_id, period_id)).data

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load_period(self, tenant_id: UUID, period_id: UUID) -> PeriodInfo:
        period = self._periods.get_period(period_id)
        if period.tenant_id != tenant_id:
            raise PeriodNotFoundError(str(period_id), str(tenant_id))
        return period

    def _trial_balance(self, tenant_id: UUID, period: PeriodInfo) -> TrialBalanceData:
        accounts = self._ledger.accounts(tenant_id)
        openings = self._ledger.opening_balances(tenant_id, period.id)
        lines = self._ledger.posted_lines(tenant_id, period.start_date, period.end_date)
        logger.debug(
            "ledger_loaded_for_reporting",
            extra={
                "account_count": len(accounts),
                "opening_count": len(openings),
                "line_count": len(lines),
            },
        )
        return build_trial_balance(accounts, lines, openings)

    def _balance_sheet(self, tenant_id: UUID, period: PeriodInfo) -> BalanceSheetData:
        return build_balance_sheet(self._trial_balance(tenant_id, period))

    def _profit_loss(self, tenant_id: UUID, period: PeriodInfo) -> ProfitLossData:
        return build_profit_loss(self._trial_balance(tenant_id, period))
