"""
JournalService -- turns transaction intents and line batches into entries.

Responsibility:
    The only writer of journal entries.  Derives balanced legs for simple
    cash transactions, records manual (draft) entries, posts pre-built line
    batches such as payroll, and reverses posted entries.

Architecture position:
    Kernel > Services -- imperative shell.  Pure leg derivation and balance
    checks live in ``domain.journal_rules``; period gating in PeriodService;
    account resolution in ChartOfAccountsService.

Invariants enforced:
    - Every path obtains its period id from
      ``PeriodService.validate_for_posting(..., lock=True)`` inside the
      caller's transaction, so the status cannot change before commit.
    - Σdebit == Σcredit is checked before anything is added to the session.
    - The entry and all its lines are added and flushed as one unit; on any
      failure nothing has been added.
    - Posted entries are never edited; ``reverse_entry`` posts a mirror entry.
    - No running balance is written anywhere (see LedgerSelector).

Failure modes:
    - ValidationError / InvalidAmountError: malformed amount or lines,
      raised before any account resolution.
    - PeriodNotFoundError / PeriodClosedError.
    - AccountNotFoundError / MissingAccountMappingError: configuration.
    - AccountNotPostableError: header or inactive account.
    - UnbalancedEntryError: line batch does not balance.
    - EntryNotFoundError, EntryNotDraftError, EntryNotPostedError,
      EntryAlreadyReversedError: entry lifecycle violations.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kazbooks_kernel.domain.chart import ChartOfAccounts, require_postable
from kazbooks_kernel.domain.clock import Clock, SystemClock
from kazbooks_kernel.domain.dtos import (
    AccountInfo,
    EntrySource,
    EntryStatus,
    LineSpec,
    PostedEntry,
    PostedLine,
    TransactionIntent,
    TransactionType,
)
from kazbooks_kernel.domain.journal_rules import (
    check_balanced,
    derive_transaction_lines,
    entry_sequence,
    format_entry_number,
    reversal_lines,
    validate_amount,
)
from kazbooks_kernel.exceptions import (
    EntryAlreadyReversedError,
    EntryNotDraftError,
    EntryNotFoundError,
    EntryNotPostedError,
    MissingAccountMappingError,
    UnbalancedEntryError,
    ValidationError,
)
from kazbooks_kernel.logging_config import LogContext, get_logger
from kazbooks_kernel.models.journal import JournalEntry, JournalLine
from kazbooks_kernel.services.base import BaseService
from kazbooks_kernel.services.chart_service import ChartOfAccountsService
from kazbooks_kernel.services.period_service import PeriodService

logger = get_logger("services.journal")


@dataclass(frozen=True)
class PostingAccounts:
    """Default category accounts for transactions without an explicit counter account."""

    other_income_code: str = "6280"
    other_expense_code: str = "7470"


class InvoiceRevenueLookup(Protocol):
    """Resolves the revenue account an invoice is mapped to."""

    def revenue_account_id(self, tenant_id: UUID, invoice_id: UUID) -> UUID | None: ...


class JournalService(BaseService[JournalEntry]):
    """
    Journal entry writer.

    Contract:
        Public methods take fully-resolved domain values and return
        ``PostedEntry`` confirmations.  Flushes; the caller commits.

    Guarantees:
        - Entries created by ``post_transaction``, ``post_lines`` and
          ``reverse_entry`` are created already posted.
        - Drafts come only from ``create_manual_entry``.
        - Entry numbers are ``YYYY-NNNNNN``, sequential per tenant per year.

    Non-goals:
        - Does NOT maintain bank/cash running balances.
        - Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        period_service: PeriodService | None = None,
        chart_service: ChartOfAccountsService | None = None,
        clock: Clock | None = None,
        posting_accounts: PostingAccounts | None = None,
        invoice_lookup: InvoiceRevenueLookup | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._periods = period_service or PeriodService(session, self._clock)
        self._chart = chart_service or ChartOfAccountsService(session)
        self._posting_accounts = posting_accounts or PostingAccounts()
        self._invoice_lookup = invoice_lookup

    # =========================================================================
    # Algorithmic path
    # =========================================================================

    def post_transaction(self, intent: TransactionIntent, actor_id: UUID) -> PostedEntry:
        """
        Post a simple income / expense / transfer transaction.

        Steps: validate input, validate the period (row-locked), resolve the
        two accounts, derive equal-amount legs, persist as posted.

        Raises:
            InvalidAmountError: amount not a positive Decimal.
            ValidationError: transfer without a destination account.
            PeriodNotFoundError, PeriodClosedError: period gate.
            AccountNotFoundError, MissingAccountMappingError: configuration.
            AccountNotPostableError: header or inactive account.
        """
        validate_amount(intent.amount)
        if intent.transaction_type == TransactionType.TRANSFER and intent.counter_account_id is None:
            raise ValidationError("A transfer needs a destination account")

        with LogContext.bind(tenant_id=intent.tenant_id, actor_id=actor_id):
            period_id = self._periods.validate_for_posting(
                intent.tenant_id, intent.entry_date, lock=True
            )
            chart = self._chart.load(intent.tenant_id)
            primary = chart.get(intent.primary_account_id)
            counter = self._resolve_counter_account(intent, chart)
            lines = derive_transaction_lines(intent, primary, counter)

            return self._persist(
                tenant_id=intent.tenant_id,
                period_id=period_id,
                entry_date=intent.entry_date,
                lines=lines,
                chart=chart,
                status=EntryStatus.POSTED,
                source=EntrySource.TRANSACTION,
                description=intent.description or _default_description(intent),
                actor_id=actor_id,
            )

    def post_lines(
        self,
        tenant_id: UUID,
        entry_date: date,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        description: str | None = None,
        source: EntrySource = EntrySource.PAYROLL,
    ) -> PostedEntry:
        """
        Post a pre-built, balanced batch of lines addressed by account code.

        Raises:
            ValidationError: fewer than two lines.
            UnbalancedEntryError: lines do not balance.
            PeriodNotFoundError, PeriodClosedError: period gate.
            AccountNotFoundError, AccountNotPostableError: account problems.
        """
        check_balanced(lines)
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            period_id = self._periods.validate_for_posting(tenant_id, entry_date, lock=True)
            return self._persist(
                tenant_id=tenant_id,
                period_id=period_id,
                entry_date=entry_date,
                lines=lines,
                chart=self._chart.load(tenant_id),
                status=EntryStatus.POSTED,
                source=source,
                description=description,
                actor_id=actor_id,
            )

    # =========================================================================
    # Manual entries
    # =========================================================================

    def create_manual_entry(
        self,
        tenant_id: UUID,
        entry_date: date,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        description: str | None = None,
        post: bool = False,
    ) -> PostedEntry:
        """
        Record an ad hoc entry as a draft (or posted when ``post`` is True).

        Manual entries skip leg derivation but still pass period validation
        and the balance check.
        """
        check_balanced(lines)
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            period_id = self._periods.validate_for_posting(tenant_id, entry_date, lock=True)
            return self._persist(
                tenant_id=tenant_id,
                period_id=period_id,
                entry_date=entry_date,
                lines=lines,
                chart=self._chart.load(tenant_id),
                status=EntryStatus.POSTED if post else EntryStatus.DRAFT,
                source=EntrySource.MANUAL,
                description=description,
                actor_id=actor_id,
            )

    def post_draft(self, entry_id: UUID, actor_id: UUID) -> PostedEntry:
        """
        Post a draft entry after re-validating its period.

        Raises:
            EntryNotFoundError, EntryNotDraftError.
            PeriodNotFoundError, PeriodClosedError.
            UnbalancedEntryError: stored lines no longer balance.
        """
        entry = self._require_entry(entry_id, for_update=True)
        if entry.status != EntryStatus.DRAFT.value:
            raise EntryNotDraftError(str(entry_id), entry.status)

        with LogContext.bind(tenant_id=entry.tenant_id, actor_id=actor_id, entry_id=entry.id):
            entry.period_id = self._periods.validate_for_posting(
                entry.tenant_id, entry.entry_date, lock=True
            )
            if not entry.is_balanced:
                raise UnbalancedEntryError(entry.total_debits, entry.total_credits)

            entry.status = EntryStatus.POSTED.value
            entry.posted_at = self._clock.now()
            entry.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_number": entry.entry_number,
                    "source": entry.source,
                    "total": entry.total_debits,
                },
            )
            return self._to_posted(entry)

    # =========================================================================
    # Reversal
    # =========================================================================

    def reverse_entry(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        description: str | None = None,
    ) -> PostedEntry:
        """
        Post a mirror entry cancelling a posted entry.

        The original entry is left untouched; the reversal references it
        through ``reversal_of_id``.

        Raises:
            EntryNotFoundError, EntryNotPostedError, EntryAlreadyReversedError.
            PeriodNotFoundError, PeriodClosedError: for ``reversal_date``.
        """
        original = self._require_entry(entry_id)
        if original.status != EntryStatus.POSTED.value:
            raise EntryNotPostedError(str(entry_id), original.status)

        existing = self.session.execute(
            select(JournalEntry.id).where(JournalEntry.reversal_of_id == original.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise EntryAlreadyReversedError(str(entry_id), str(existing))

        reversal_date = reversal_date or self._clock.today()
        posted = self._to_posted(original)
        memo = description or f"Сторно {original.entry_number}"

        with LogContext.bind(tenant_id=original.tenant_id, actor_id=actor_id):
            period_id = self._periods.validate_for_posting(
                original.tenant_id, reversal_date, lock=True
            )
            return self._persist(
                tenant_id=original.tenant_id,
                period_id=period_id,
                entry_date=reversal_date,
                lines=reversal_lines(posted.lines),
                chart=self._chart.load(original.tenant_id),
                status=EntryStatus.POSTED,
                source=EntrySource.REVERSAL,
                description=memo,
                actor_id=actor_id,
                reversal_of_id=original.id,
                check_postable=False,
            )

    def get_entry(self, entry_id: UUID) -> PostedEntry:
        return self._to_posted(self._require_entry(entry_id))

    # =========================================================================
    # Internals
    # =========================================================================

    def _resolve_counter_account(
        self,
        intent: TransactionIntent,
        chart: ChartOfAccounts,
    ) -> AccountInfo:
        if intent.transaction_type == TransactionType.INCOME and intent.invoice_id is not None:
            account_id = None
            if self._invoice_lookup is not None:
                account_id = self._invoice_lookup.revenue_account_id(
                    intent.tenant_id, intent.invoice_id
                )
            if account_id is None:
                raise MissingAccountMappingError("invoice_revenue", str(intent.invoice_id))
            return chart.get(account_id)

        if intent.counter_account_id is not None:
            return chart.get(intent.counter_account_id)

        if intent.transaction_type == TransactionType.INCOME:
            mapping_type, code = "other_income", self._posting_accounts.other_income_code
        else:
            mapping_type, code = "other_expense", self._posting_accounts.other_expense_code
        account = chart.find(code)
        if account is None:
            raise MissingAccountMappingError(mapping_type, code)
        return account

    def _persist(
        self,
        *,
        tenant_id: UUID,
        period_id: UUID,
        entry_date: date,
        lines: Sequence[LineSpec],
        chart: ChartOfAccounts,
        status: EntryStatus,
        source: EntrySource,
        description: str | None,
        actor_id: UUID,
        reversal_of_id: UUID | None = None,
        check_postable: bool = True,
    ) -> PostedEntry:
        total = check_balanced(lines)
        accounts = [chart.resolve(spec.account_code) for spec in lines]
        if check_postable:
            for account in accounts:
                require_postable(account)

        entry = JournalEntry(
            tenant_id=tenant_id,
            period_id=period_id,
            entry_number=self._next_entry_number(tenant_id, entry_date.year),
            entry_date=entry_date,
            status=status.value,
            source=source.value,
            description=description,
            reversal_of_id=reversal_of_id,
            created_by_id=actor_id,
            lines=[
                JournalLine(
                    account_id=account.id,
                    line_seq=seq,
                    debit=spec.debit,
                    credit=spec.credit,
                    description=spec.description,
                )
                for seq, (spec, account) in enumerate(zip(lines, accounts), start=1)
            ],
        )
        if status == EntryStatus.POSTED:
            entry.posted_at = self._clock.now()

        self.session.add(entry)
        self.session.flush()

        logger.info(
            "journal_entry_posted" if status == EntryStatus.POSTED else "journal_entry_drafted",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "period_id": str(period_id),
                "source": source.value,
                "line_count": len(lines),
                "total": total,
            },
        )
        return self._to_posted(entry)

    def _next_entry_number(self, tenant_id: UUID, year: int) -> str:
        last = self.session.execute(
            select(JournalEntry.entry_number)
            .where(
                JournalEntry.tenant_id == tenant_id,
                JournalEntry.entry_number.like(f"{year}-%"),
            )
            .order_by(JournalEntry.entry_number.desc())
            .limit(1)
        ).scalar_one_or_none()
        sequence = entry_sequence(last) + 1 if last else 1
        return format_entry_number(year, sequence)

    def _require_entry(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        stmt = select(JournalEntry).where(JournalEntry.id == entry_id)
        if for_update:
            stmt = stmt.with_for_update()
        entry = self.session.execute(stmt).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def _to_posted(self, entry: JournalEntry) -> PostedEntry:
        return PostedEntry(
            id=entry.id,
            tenant_id=entry.tenant_id,
            period_id=entry.period_id,
            entry_number=entry.entry_number,
            entry_date=entry.entry_date,
            status=EntryStatus(entry.status),
            source=EntrySource(entry.source),
            description=entry.description,
            reversal_of_id=entry.reversal_of_id,
            lines=tuple(
                PostedLine(
                    account_id=line.account_id,
                    account_code=line.account.code,
                    debit=line.debit,
                    credit=line.credit,
                    line_seq=line.line_seq,
                    description=line.description,
                )
                for line in entry.lines
            ),
        )


def _default_description(intent: TransactionIntent) -> str:
    labels = {
        TransactionType.INCOME: "Поступление",
        TransactionType.EXPENSE: "Расход",
        TransactionType.TRANSFER: "Перевод",
    }
    return labels[intent.transaction_type]
