"""
Period lifecycle rules -- pure state machine and calendar helpers.

Responsibility:
    Decides which status transitions an accounting period may take, whether
    a period accepts writes, and how a fiscal year is tiled into monthly
    periods.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  PeriodService applies
    these rules to stored periods.

Invariants enforced:
    - open -> soft_closed -> hard_closed; soft_closed -> open (reopen).
    - hard_closed is terminal.
    - Only an open period accepts writes.
"""

import calendar
from datetime import date

from kazbooks_kernel.domain.dtos import PeriodInfo, PeriodStatus
from kazbooks_kernel.exceptions import PeriodTransitionError

ALLOWED_TRANSITIONS: dict[PeriodStatus, frozenset[PeriodStatus]] = {
    PeriodStatus.OPEN: frozenset({PeriodStatus.SOFT_CLOSED}),
    PeriodStatus.SOFT_CLOSED: frozenset({PeriodStatus.OPEN, PeriodStatus.HARD_CLOSED}),
    PeriodStatus.HARD_CLOSED: frozenset(),
}

MONTH_NAMES_RU = (
    "Январь",
    "Февраль",
    "Март",
    "Апрель",
    "Май",
    "Июнь",
    "Июль",
    "Август",
    "Сентябрь",
    "Октябрь",
    "Ноябрь",
    "Декабрь",
)


def can_write(period: PeriodInfo) -> bool:
    """True iff the period status is open."""
    return period.status == PeriodStatus.OPEN


def can_transition(current: PeriodStatus, target: PeriodStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(period: PeriodInfo, target: PeriodStatus) -> None:
    """
    Raises:
        PeriodTransitionError: If ``period`` may not move to ``target``.
    """
    if not can_transition(period.status, target):
        raise PeriodTransitionError(period.name, period.status.value, target.value)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_name(year: int, month: int) -> str:
    return f"{MONTH_NAMES_RU[month - 1]} {year}"


def monthly_periods(year: int, through_month: int) -> list[tuple[str, date, date]]:
    """(name, start, end) for January through ``through_month`` of ``year``."""
    if not 1 <= through_month <= 12:
        raise ValueError(f"through_month must be 1..12, got {through_month}")
    return [
        (month_name(year, month), *month_bounds(year, month))
        for month in range(1, through_month + 1)
    ]
