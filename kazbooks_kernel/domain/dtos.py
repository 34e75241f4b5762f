"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures exchanged between services, selectors and the pure
    engines: account and period snapshots, transaction intents, line
    specifications and posted-entry records.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Free of ORM
    dependencies; ORM models convert themselves into these types.

Invariants enforced:
    - LineSpec amounts are non-negative and at most one side is non-zero.
    - LineSpec amounts are whole minor units (two decimal places).
    - Money is always ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from kazbooks_kernel.exceptions import InvalidAmountError

ZERO = Decimal("0")

# Currency-minor-unit tolerance for accumulated totals.
BALANCE_TOLERANCE = Decimal("0.01")

# Smallest storable amount; line amounts are persisted as Numeric(18, 2).
MINOR_UNIT = Decimal("0.01")


def is_minor_unit_amount(value: Decimal) -> bool:
    """True when ``value`` has no digits beyond the tiyn."""
    value = Decimal(value)
    return value == value.quantize(MINOR_UNIT)


class AccountClass(str, Enum):
    """Account classification; decides the natural (normal-balance) side."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def is_debit_natural(self) -> bool:
        return self in (AccountClass.ASSET, AccountClass.EXPENSE)


class PeriodStatus(str, Enum):
    OPEN = "open"
    SOFT_CLOSED = "soft_closed"
    HARD_CLOSED = "hard_closed"


class EntryStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class EntrySource(str, Enum):
    """What produced a journal entry."""

    TRANSACTION = "transaction"
    MANUAL = "manual"
    PAYROLL = "payroll"
    REVERSAL = "reversal"


@dataclass(frozen=True)
class AccountInfo:
    """Snapshot of one chart-of-accounts row."""

    id: UUID
    code: str
    name: str
    account_class: AccountClass
    is_current: bool | None = None
    parent_id: UUID | None = None
    allow_manual_entry: bool = True
    is_active: bool = True


@dataclass(frozen=True)
class AccountSeed:
    """One row of a chart-of-accounts template, linked to its parent by code."""

    code: str
    name: str
    account_class: AccountClass
    parent_code: str | None = None
    allow_manual_entry: bool = True
    is_current: bool | None = None


@dataclass(frozen=True)
class PeriodInfo:
    """Snapshot of an accounting period."""

    id: UUID
    tenant_id: UUID
    name: str
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_by_id: UUID | None = None
    closed_at: datetime | None = None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class PeriodLookup:
    """
    Result of looking a date up in a tenant's periods.

    A missing period is a distinct, structured outcome (``found`` is False),
    never an implicitly writable one.
    """

    tenant_id: UUID
    day: date
    period: PeriodInfo | None = None

    @property
    def found(self) -> bool:
        return self.period is not None

    @property
    def can_write(self) -> bool:
        return self.period is not None and self.period.status == PeriodStatus.OPEN

    @property
    def message(self) -> str | None:
        if self.period is None:
            return f"No accounting period covers {self.day.isoformat()}"
        if self.period.status == PeriodStatus.SOFT_CLOSED:
            return f"Period '{self.period.name}' is closed"
        if self.period.status == PeriodStatus.HARD_CLOSED:
            return f"Period '{self.period.name}' is permanently closed"
        return None


@dataclass(frozen=True)
class TransactionIntent:
    """A simple cash transaction to be turned into a balanced entry."""

    tenant_id: UUID
    entry_date: date
    transaction_type: TransactionType
    amount: Decimal
    primary_account_id: UUID
    counter_account_id: UUID | None = None
    invoice_id: UUID | None = None
    description: str | None = None


@dataclass(frozen=True)
class LineSpec:
    """
    Specification for one journal line, addressed by account code.

    Guarantees:
        - debit and credit are non-negative.
        - exactly one of debit/credit is non-zero.
    """

    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None

    def __post_init__(self) -> None:
        if self.debit < ZERO or self.credit < ZERO:
            raise InvalidAmountError(
                self.debit if self.debit < ZERO else self.credit,
                f"line amounts must be non-negative (account {self.account_code})",
            )
        if self.debit != ZERO and self.credit != ZERO:
            raise InvalidAmountError(
                self.debit,
                f"line for account {self.account_code} has both debit and credit",
            )
        if self.debit == ZERO and self.credit == ZERO:
            raise InvalidAmountError(
                ZERO, f"line for account {self.account_code} has no amount"
            )
        amount = self.debit or self.credit
        if not is_minor_unit_amount(amount):
            raise InvalidAmountError(
                amount,
                f"line for account {self.account_code} has more than two decimal places",
            )


@dataclass(frozen=True)
class LedgerLine:
    """A posted journal line as consumed by aggregation."""

    account_id: UUID
    debit: Decimal = ZERO
    credit: Decimal = ZERO


@dataclass(frozen=True)
class OpeningBalanceInfo:
    account_id: UUID
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO


@dataclass(frozen=True)
class PostedLine:
    account_id: UUID
    account_code: str
    debit: Decimal
    credit: Decimal
    line_seq: int
    description: str | None = None


@dataclass(frozen=True)
class PostedEntry:
    """Confirmation record returned by every journal write."""

    id: UUID
    tenant_id: UUID
    period_id: UUID
    entry_number: str
    entry_date: date
    status: EntryStatus
    source: EntrySource
    description: str | None
    lines: tuple[PostedLine, ...] = field(default_factory=tuple)
    reversal_of_id: UUID | None = None

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)
