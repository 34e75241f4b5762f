"""
Module: kazbooks_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines.
Architecture position: Kernel > Models.  Written only by JournalService.

Invariants enforced:
    - Line debit and credit are non-negative and never both non-zero (CHECK).
    - (tenant_id, entry_number) is unique.
    - Posted entries and their lines are immutable (db/immutability.py);
      correction happens through a reversal entry.
    - No running balance column exists anywhere: balances are derived from
      posted lines (LedgerSelector).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kazbooks_kernel.db.base import Base, TrackedBase, UUIDString
from kazbooks_kernel.domain.dtos import ZERO, EntryStatus


class JournalEntry(TrackedBase):
    """Journal entry header.  Lines are inserted in the same flush."""

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_number", name="uq_journal_entry_number"),
        Index("idx_journal_tenant_date", "tenant_id", "entry_date"),
        Index("idx_journal_period", "period_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounting_periods.id"),
        nullable=False,
    )
    entry_number: Mapped[str] = mapped_column(String(20), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=EntryStatus.DRAFT.value,
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
        unique=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_seq",
    )

    @property
    def is_posted(self) -> bool:
        return self.status == EntryStatus.POSTED.value

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} [{self.status}]>"


class JournalLine(Base):
    """One debit or credit line of a journal entry."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_line_non_negative"),
        CheckConstraint("debit = 0 OR credit = 0", name="ck_line_single_side"),
        UniqueConstraint("entry_id", "line_seq", name="uq_journal_line_seq"),
        Index("idx_line_account", "account_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )
    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )
    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    debit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=ZERO)
    credit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=ZERO)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    entry: Mapped[JournalEntry] = relationship("JournalEntry", back_populates="lines")
    account: Mapped["Account"] = relationship("Account")  # noqa: F821

    def __repr__(self) -> str:
        return f"<JournalLine {self.line_seq}: Dr {self.debit} Cr {self.credit}>"
