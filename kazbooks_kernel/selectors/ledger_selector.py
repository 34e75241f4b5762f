"""
Module: kazbooks_kernel.selectors.ledger_selector
Responsibility: Tenant-scoped reads feeding aggregation: accounts, posted
    journal lines for a date range, opening balances of a period, and the
    derived running balance of one account.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - No stored balances.  An account's running balance is recomputed from
      posted JournalLine rows on every call, so it is updated exactly once
      per posted transaction by construction.
    - Only posted entries feed reports; drafts never do.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from kazbooks_kernel.domain.dtos import (
    ZERO,
    AccountInfo,
    EntryStatus,
    LedgerLine,
    OpeningBalanceInfo,
)
from kazbooks_kernel.models.account import Account
from kazbooks_kernel.models.journal import JournalEntry, JournalLine
from kazbooks_kernel.models.opening_balance import OpeningBalance
from kazbooks_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountRunningBalance:
    """Derived balance of one account as of a date."""

    account_id: UUID
    as_of: date
    debit_total: Decimal
    credit_total: Decimal
    line_count: int

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit_total - self.credit_total


class LedgerSelector(BaseSelector[JournalLine]):
    """
    Ledger reads over posted journal lines.

    Contract:
        Every method is scoped to one tenant and returns DTOs.
    """

    def accounts(self, tenant_id: UUID) -> list[AccountInfo]:
        rows = self.session.execute(
            select(Account).where(Account.tenant_id == tenant_id).order_by(Account.code)
        ).scalars()
        return [row.to_info() for row in rows]

    def posted_lines(
        self,
        tenant_id: UUID,
        start_date: date,
        end_date: date,
    ) -> list[LedgerLine]:
        """Posted lines with entry_date in [start_date, end_date]."""
        rows = self.session.execute(
            select(JournalLine.account_id, JournalLine.debit, JournalLine.credit)
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .where(
                JournalEntry.tenant_id == tenant_id,
                JournalEntry.status == EntryStatus.POSTED.value,
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
            .order_by(JournalEntry.entry_number, JournalLine.line_seq)
        ).all()
        return [
            LedgerLine(account_id=account_id, debit=debit, credit=credit)
            for account_id, debit, credit in rows
        ]

    def opening_balances(self, tenant_id: UUID, period_id: UUID) -> list[OpeningBalanceInfo]:
        rows = self.session.execute(
            select(OpeningBalance).where(
                OpeningBalance.tenant_id == tenant_id,
                OpeningBalance.period_id == period_id,
            )
        ).scalars()
        return [row.to_info() for row in rows]

    def account_balance(
        self,
        tenant_id: UUID,
        account_id: UUID,
        as_of: date,
    ) -> AccountRunningBalance:
        """Running balance of an account from every posted line up to ``as_of``."""
        debit_total, credit_total, line_count = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit), ZERO),
                func.coalesce(func.sum(JournalLine.credit), ZERO),
                func.count(JournalLine.id),
            )
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .where(
                JournalEntry.tenant_id == tenant_id,
                JournalEntry.status == EntryStatus.POSTED.value,
                JournalEntry.entry_date <= as_of,
                JournalLine.account_id == account_id,
            )
        ).one()
        return AccountRunningBalance(
            account_id=account_id,
            as_of=as_of,
            debit_total=Decimal(str(debit_total)),
            credit_total=Decimal(str(credit_total)),
            line_count=line_count,
        )
