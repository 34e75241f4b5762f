"""
Module: kazbooks_kernel.models.period
Responsibility: ORM persistence for accounting periods and their lifecycle
    status (open / soft_closed / hard_closed).
Architecture position: Kernel > Models.

Invariants enforced:
    - At most one open period per tenant: partial unique index on tenant_id
      where status = 'open' (PostgreSQL and SQLite).
    - start_date <= end_date (CHECK).
    - A period with journal entries is never deleted (db/immutability.py).
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from kazbooks_kernel.db.base import TrackedBase, UUIDString
from kazbooks_kernel.domain.dtos import PeriodInfo, PeriodStatus


class AccountingPeriod(TrackedBase):
    """One accounting period of a tenant, usually a calendar month."""

    __tablename__ = "accounting_periods"

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_period_date_order"),
        Index("idx_period_tenant_dates", "tenant_id", "start_date", "end_date"),
        Index(
            "uq_period_single_open",
            "tenant_id",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PeriodStatus.OPEN.value,
    )

    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN.value

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    def to_info(self) -> PeriodInfo:
        return PeriodInfo(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            status=PeriodStatus(self.status),
            closed_by_id=self.closed_by_id,
            closed_at=self.closed_at,
        )

    def __repr__(self) -> str:
        return f"<AccountingPeriod {self.name} [{self.status}]>"
