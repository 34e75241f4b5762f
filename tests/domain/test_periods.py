"""
Pure function unit tests for the period lifecycle rules.

NO database, NO I/O.
"""

from datetime import date
from uuid import uuid4

import pytest

from kazbooks_kernel.domain import periods as rules
from kazbooks_kernel.domain.dtos import PeriodInfo, PeriodLookup, PeriodStatus
from kazbooks_kernel.exceptions import PeriodTransitionError


def _period(status: PeriodStatus) -> PeriodInfo:
    return PeriodInfo(
        id=uuid4(),
        tenant_id=uuid4(),
        name="Март 2024",
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 31),
        status=status,
        closed_by_id=None,
        closed_at=None,
    )


class TestTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            (PeriodStatus.OPEN, PeriodStatus.SOFT_CLOSED),
            (PeriodStatus.SOFT_CLOSED, PeriodStatus.OPEN),
            (PeriodStatus.SOFT_CLOSED, PeriodStatus.HARD_CLOSED),
        ],
    )
    def test_allowed(self, current, target):
        assert rules.can_transition(current, target)
        rules.check_transition(_period(current), target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (PeriodStatus.OPEN, PeriodStatus.HARD_CLOSED),
            (PeriodStatus.HARD_CLOSED, PeriodStatus.OPEN),
            (PeriodStatus.HARD_CLOSED, PeriodStatus.SOFT_CLOSED),
        ],
    )
    def test_rejected(self, current, target):
        assert not rules.can_transition(current, target)
        with pytest.raises(PeriodTransitionError) as exc_info:
            rules.check_transition(_period(current), target)
        assert exc_info.value.from_status == current.value
        assert exc_info.value.to_status == target.value


class TestWritability:
    def test_only_open_accepts_writes(self):
        assert rules.can_write(_period(PeriodStatus.OPEN))
        assert not rules.can_write(_period(PeriodStatus.SOFT_CLOSED))
        assert not rules.can_write(_period(PeriodStatus.HARD_CLOSED))

    def test_contains(self):
        period = _period(PeriodStatus.OPEN)
        assert period.contains(date(2024, 3, 1))
        assert period.contains(date(2024, 3, 31))
        assert not period.contains(date(2024, 4, 1))


class TestPeriodLookup:
    def test_not_found(self):
        lookup = PeriodLookup(tenant_id=uuid4(), day=date(2024, 5, 1))

        assert not lookup.found
        assert not lookup.can_write
        assert "2024-05-01" in lookup.message

    def test_closed(self):
        lookup = PeriodLookup(uuid4(), date(2024, 3, 5), _period(PeriodStatus.HARD_CLOSED))

        assert lookup.found
        assert not lookup.can_write
        assert "permanently closed" in lookup.message

    def test_open(self):
        lookup = PeriodLookup(uuid4(), date(2024, 3, 5), _period(PeriodStatus.OPEN))
        assert lookup.can_write
        assert lookup.message is None


class TestCalendar:
    def test_month_bounds_leap_year(self):
        assert rules.month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_month_name(self):
        assert rules.month_name(2024, 3) == "Март 2024"

    def test_monthly_periods_tile_the_year(self):
        months = rules.monthly_periods(2024, 12)

        assert len(months) == 12
        assert months[0] == ("Январь 2024", date(2024, 1, 1), date(2024, 1, 31))
        for (_, _, end), (_, start, _) in zip(months, months[1:]):
            assert (start - end).days == 1

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            rules.monthly_periods(2024, 13)
