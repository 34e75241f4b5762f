"""ORM models.  Importing this package registers every table on Base.metadata."""

from kazbooks_kernel.models.account import Account, AccountMapping
from kazbooks_kernel.models.journal import JournalEntry, JournalLine
from kazbooks_kernel.models.opening_balance import OpeningBalance
from kazbooks_kernel.models.period import AccountingPeriod

__all__ = [
    "Account",
    "AccountMapping",
    "AccountingPeriod",
    "JournalEntry",
    "JournalLine",
    "OpeningBalance",
]
