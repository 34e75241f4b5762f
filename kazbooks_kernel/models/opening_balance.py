"""
Module: kazbooks_kernel.models.opening_balance
Responsibility: Opening balances carried forward from the prior fiscal year,
    stored per period and account.  They seed turnover aggregation.
Architecture position: Kernel > Models.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kazbooks_kernel.db.base import TrackedBase, UUIDString
from kazbooks_kernel.domain.dtos import ZERO, OpeningBalanceInfo


class OpeningBalance(TrackedBase):
    __tablename__ = "opening_balances"

    __table_args__ = (
        UniqueConstraint("period_id", "account_id", name="uq_opening_period_account"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounting_periods.id"),
        nullable=False,
    )
    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )
    opening_debit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=ZERO)
    opening_credit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=ZERO)

    def to_info(self) -> OpeningBalanceInfo:
        return OpeningBalanceInfo(
            account_id=self.account_id,
            opening_debit=self.opening_debit,
            opening_credit=self.opening_credit,
        )
