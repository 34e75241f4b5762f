"""
PeriodService -- accounting period lifecycle and posting-date validation.

Responsibility:
    Creates and transitions a tenant's accounting periods
    (open -> soft_closed -> hard_closed, soft_closed -> open) and answers the
    one question every posting path must ask: may this tenant write on this
    date, and into which period?

Architecture position:
    Kernel > Services -- imperative shell around ``domain.periods``.
    JournalService calls ``validate_for_posting(..., lock=True)`` inside its
    write transaction before building any entry.

Invariants enforced:
    - At most one open period per tenant.  Opening a period first moves any
      other open period of the tenant to soft_closed, or with
      ``close_others=False`` the operation is rejected.
    - hard_closed is terminal.
    - Periods of a tenant never overlap and are created adjacent to the
      existing ones.
    - Non-open statuses stamp closed_by_id/closed_at; reopening clears them.
    - Flush-only: never commits or rolls back.

Failure modes:
    - PeriodNotFoundError: no period covers the date / unknown period id.
    - PeriodClosedError: period is soft_closed or hard_closed.
    - PeriodTransitionError: transition not allowed.
    - PeriodOverlapError, PeriodGapError: invalid date range on create.
    - MultipleOpenPeriodsError: strict open while another period is open.
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kazbooks_kernel.domain import periods as rules
from kazbooks_kernel.domain.clock import Clock, SystemClock
from kazbooks_kernel.domain.dtos import PeriodInfo, PeriodLookup, PeriodStatus
from kazbooks_kernel.exceptions import (
    MultipleOpenPeriodsError,
    PeriodClosedError,
    PeriodGapError,
    PeriodNotFoundError,
    PeriodOverlapError,
    ValidationError,
)
from kazbooks_kernel.logging_config import get_logger
from kazbooks_kernel.models.period import AccountingPeriod
from kazbooks_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[AccountingPeriod]):
    """
    Service for accounting period lifecycle.

    Contract:
        Every operation takes the tenant (and a date or period id)
        explicitly; there is no ambient "current period".  Returns frozen
        ``PeriodInfo`` / ``PeriodLookup`` DTOs.

    Guarantees:
        - ``validate_for_posting`` is the single choke point for writes.
        - With ``lock=True`` the period row is read ``FOR UPDATE`` so a
          concurrent close waits for the posting transaction.

    Non-goals:
        - Does NOT manage opening balances or year-end closing entries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # =========================================================================
    # Lookup and validation
    # =========================================================================

    def find_period_for_date(self, tenant_id: UUID, day: date) -> PeriodLookup:
        """Exact-cover lookup; a miss is a structured ``found=False`` result."""
        period = self._get_period_for_date_orm(tenant_id, day)
        return PeriodLookup(
            tenant_id=tenant_id,
            day=day,
            period=period.to_info() if period is not None else None,
        )

    def can_write(self, period: PeriodInfo) -> bool:
        return rules.can_write(period)

    def validate_for_posting(self, tenant_id: UUID, day: date, *, lock: bool = False) -> UUID:
        """
        Return the id of the open period covering ``day``.

        Args:
            tenant_id: Tenant whose periods are searched.
            day: Entry date.
            lock: Read the period row FOR UPDATE (use inside the write
                transaction so the status cannot change before commit).

        Raises:
            PeriodNotFoundError: No period covers ``day``.
            PeriodClosedError: The period is soft_closed or hard_closed.
        """
        period = self._get_period_for_date_orm(tenant_id, day, for_update=lock)
        if period is None:
            logger.warning(
                "period_validation_failed",
                extra={"tenant_id": str(tenant_id), "date": day.isoformat(), "reason": "not_found"},
            )
            raise PeriodNotFoundError(day, str(tenant_id))

        if not period.is_open:
            logger.warning(
                "period_validation_failed",
                extra={
                    "tenant_id": str(tenant_id),
                    "date": day.isoformat(),
                    "period_id": str(period.id),
                    "reason": period.status,
                },
            )
            raise PeriodClosedError(period.name, period.status)

        return period.id

    def get_period(self, period_id: UUID) -> PeriodInfo:
        return self._require(period_id).to_info()

    def list_periods(self, tenant_id: UUID) -> list[PeriodInfo]:
        rows = self.session.execute(
            select(AccountingPeriod)
            .where(AccountingPeriod.tenant_id == tenant_id)
            .order_by(AccountingPeriod.start_date)
        ).scalars()
        return [row.to_info() for row in rows]

    def get_current_open_period(self, tenant_id: UUID) -> PeriodInfo | None:
        period = self._get_open_orm(tenant_id)
        return period.to_info() if period is not None else None

    def get_writable_periods(self, tenant_id: UUID) -> list[PeriodInfo]:
        return [p for p in self.list_periods(tenant_id) if rules.can_write(p)]

    # =========================================================================
    # Creation
    # =========================================================================

    def create_period(
        self,
        tenant_id: UUID,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
        status: PeriodStatus = PeriodStatus.OPEN,
        close_others: bool = True,
    ) -> PeriodInfo:
        """
        Create a period adjacent to the tenant's existing periods.

        Creating an open period follows the same single-open rule as
        ``reopen_period``.

        Raises:
            ValidationError: start_date after end_date.
            PeriodOverlapError: Range overlaps an existing period.
            PeriodGapError: Range is not adjacent to any existing period.
            MultipleOpenPeriodsError: ``status`` is open, another period is
                open and ``close_others`` is False.
        """
        if start_date > end_date:
            raise ValidationError(
                f"start_date ({start_date}) cannot be after end_date ({end_date})"
            )
        self._validate_no_overlap(tenant_id, name, start_date, end_date)
        self._validate_adjacent(tenant_id, name, start_date, end_date)
        return self._insert_period(tenant_id, name, start_date, end_date, actor_id, status, close_others)

    def initialize_periods(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        as_of: date | None = None,
    ) -> list[PeriodInfo]:
        """
        Ensure monthly periods exist from January through the month of ``as_of``.

        Missing months are created soft_closed, except the ``as_of`` month,
        which is created open when the tenant has no open period.  Existing
        periods are left untouched.

        Returns:
            The periods created, oldest first.
        """
        as_of = as_of or self._clock.today()
        existing = self.list_periods(tenant_id)
        has_open = any(p.status == PeriodStatus.OPEN for p in existing)
        current_start, _ = rules.month_bounds(as_of.year, as_of.month)

        created: list[PeriodInfo] = []
        for name, start, end in rules.monthly_periods(as_of.year, as_of.month):
            if any(p.start_date <= end and p.end_date >= start for p in existing):
                continue
            status = PeriodStatus.SOFT_CLOSED
            if start == current_start and not has_open:
                status = PeriodStatus.OPEN
            created.append(
                self._insert_period(tenant_id, name, start, end, actor_id, status, close_others=False)
            )

        logger.info(
            "periods_initialized",
            extra={
                "tenant_id": str(tenant_id),
                "year": as_of.year,
                "periods_created": len(created),
            },
        )
        return created

    # =========================================================================
    # Transitions
    # =========================================================================

    def soft_close_period(self, period_id: UUID, actor_id: UUID) -> PeriodInfo:
        return self.change_status(period_id, PeriodStatus.SOFT_CLOSED, actor_id)

    def hard_close_period(self, period_id: UUID, actor_id: UUID) -> PeriodInfo:
        return self.change_status(period_id, PeriodStatus.HARD_CLOSED, actor_id)

    def reopen_period(
        self,
        period_id: UUID,
        actor_id: UUID,
        close_others: bool = True,
    ) -> PeriodInfo:
        return self.change_status(period_id, PeriodStatus.OPEN, actor_id, close_others=close_others)

    def change_status(
        self,
        period_id: UUID,
        target: PeriodStatus,
        actor_id: UUID,
        close_others: bool = True,
    ) -> PeriodInfo:
        """
        Move a period to ``target`` along the lifecycle.

        Postconditions:
            - Non-open target: closed_by_id = actor_id, closed_at = now.
            - Open target: closed_by_id/closed_at cleared, and no other
              period of the tenant is open.

        Raises:
            PeriodNotFoundError: Unknown period id.
            PeriodTransitionError: Transition not allowed (e.g. from hard_closed).
            MultipleOpenPeriodsError: Opening while another period is open and
                ``close_others`` is False.
        """
        period = self._require(period_id, for_update=True)
        rules.check_transition(period.to_info(), target)

        if target == PeriodStatus.OPEN:
            self._close_other_open(period.tenant_id, period.name, actor_id, close_others, exclude_id=period.id)
            period.closed_at = None
            period.closed_by_id = None
        else:
            period.closed_at = self._clock.now()
            period.closed_by_id = actor_id

        previous = period.status
        period.status = target.value
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "period_status_changed",
            extra={
                "tenant_id": str(period.tenant_id),
                "period_id": str(period.id),
                "period_name": period.name,
                "from_status": previous,
                "to_status": target.value,
            },
        )
        return period.to_info()

    # =========================================================================
    # Internals
    # =========================================================================

    def _insert_period(
        self,
        tenant_id: UUID,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
        status: PeriodStatus,
        close_others: bool,
    ) -> PeriodInfo:
        if status == PeriodStatus.OPEN:
            self._close_other_open(tenant_id, name, actor_id, close_others)

        period = AccountingPeriod(
            tenant_id=tenant_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            status=status.value,
            created_by_id=actor_id,
        )
        if status != PeriodStatus.OPEN:
            period.closed_at = self._clock.now()
            period.closed_by_id = actor_id

        self.session.add(period)
        self.session.flush()

        logger.info(
            "period_created",
            extra={
                "tenant_id": str(tenant_id),
                "period_name": name,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "status": status.value,
            },
        )
        return period.to_info()

    def _close_other_open(
        self,
        tenant_id: UUID,
        period_name: str,
        actor_id: UUID,
        close_others: bool,
        exclude_id: UUID | None = None,
    ) -> None:
        other = self._get_open_orm(tenant_id, for_update=True)
        if other is None or other.id == exclude_id:
            return
        if not close_others:
            raise MultipleOpenPeriodsError(period_name, other.name)

        other.status = PeriodStatus.SOFT_CLOSED.value
        other.closed_at = self._clock.now()
        other.closed_by_id = actor_id
        # Flush before the new open row so the single-open index never sees two
        self.session.flush()

        logger.info(
            "period_auto_soft_closed",
            extra={
                "tenant_id": str(tenant_id),
                "period_id": str(other.id),
                "period_name": other.name,
                "opened_period": period_name,
            },
        )

    def _validate_no_overlap(
        self,
        tenant_id: UUID,
        name: str,
        start_date: date,
        end_date: date,
    ) -> None:
        overlapping = self.session.execute(
            select(AccountingPeriod).where(
                AccountingPeriod.tenant_id == tenant_id,
                AccountingPeriod.start_date <= end_date,
                AccountingPeriod.end_date >= start_date,
            )
        ).scalars().first()
        if overlapping is not None:
            raise PeriodOverlapError(name, overlapping.name)

    def _validate_adjacent(
        self,
        tenant_id: UUID,
        name: str,
        start_date: date,
        end_date: date,
    ) -> None:
        existing = self.list_periods(tenant_id)
        if not existing:
            return
        one_day = timedelta(days=1)
        if any(
            p.end_date + one_day == start_date or p.start_date - one_day == end_date
            for p in existing
        ):
            return
        raise PeriodGapError(name, start_date, end_date)

    def _require(self, period_id: UUID, for_update: bool = False) -> AccountingPeriod:
        stmt = select(AccountingPeriod).where(AccountingPeriod.id == period_id)
        if for_update:
            stmt = stmt.with_for_update()
        period = self.session.execute(stmt).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _get_open_orm(self, tenant_id: UUID, for_update: bool = False) -> AccountingPeriod | None:
        stmt = select(AccountingPeriod).where(
            AccountingPeriod.tenant_id == tenant_id,
            AccountingPeriod.status == PeriodStatus.OPEN.value,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _get_period_for_date_orm(
        self,
        tenant_id: UUID,
        day: date,
        for_update: bool = False,
    ) -> AccountingPeriod | None:
        stmt = select(AccountingPeriod).where(
            AccountingPeriod.tenant_id == tenant_id,
            AccountingPeriod.start_date <= day,
            AccountingPeriod.end_date >= day,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()
