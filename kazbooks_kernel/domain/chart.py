"""
ChartOfAccounts -- in-memory view of one tenant's chart.

Responsibility:
    Code lookup and postability checks over a snapshot of accounts.  Used by
    the journal and payroll paths to resolve account codes before anything
    is written.

Architecture position:
    Kernel > Domain -- pure, side-effect free.  ``ChartOfAccountsService``
    builds instances from storage.

Failure modes:
    - AccountNotFoundError: code or id unknown for the tenant.  This is a
      configuration error, not retried.
    - AccountNotPostableError: header or inactive account used in a line.
"""

from collections.abc import Iterable, Iterator
from uuid import UUID

from kazbooks_kernel.domain.dtos import AccountInfo
from kazbooks_kernel.exceptions import AccountNotFoundError, AccountNotPostableError


def is_postable(account: AccountInfo) -> bool:
    """True iff the account accepts manual entry and is active."""
    return account.allow_manual_entry and account.is_active


def require_postable(account: AccountInfo) -> AccountInfo:
    """Return ``account`` or raise AccountNotPostableError."""
    if not account.is_active:
        raise AccountNotPostableError(account.code, "account is inactive")
    if not account.allow_manual_entry:
        raise AccountNotPostableError(account.code, "header account, post to a child account")
    return account


class ChartOfAccounts:
    """
    Immutable code/id index over a tenant's accounts.

    Contract:
        ``resolve`` raises on unknown codes; ``find`` returns None instead.
        Iteration yields accounts ordered by code.
    """

    def __init__(self, accounts: Iterable[AccountInfo], tenant_id: UUID | None = None):
        self.tenant_id = tenant_id
        ordered = sorted(accounts, key=lambda a: a.code)
        self._by_code = {a.code: a for a in ordered}
        self._by_id = {a.id: a for a in ordered}

    def __iter__(self) -> Iterator[AccountInfo]:
        return iter(self._by_code.values())

    def __len__(self) -> int:
        return len(self._by_code)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def find(self, code: str) -> AccountInfo | None:
        return self._by_code.get(code)

    def resolve(self, code: str) -> AccountInfo:
        """
        Resolve an account code.

        Raises:
            AccountNotFoundError: If the code does not exist for the tenant.
        """
        account = self._by_code.get(code)
        if account is None:
            raise AccountNotFoundError(
                code, str(self.tenant_id) if self.tenant_id else None
            )
        return account

    def get(self, account_id: UUID) -> AccountInfo:
        """
        Resolve an account id.

        Raises:
            AccountNotFoundError: If the id does not exist for the tenant.
        """
        account = self._by_id.get(account_id)
        if account is None:
            raise AccountNotFoundError(
                str(account_id), str(self.tenant_id) if self.tenant_id else None
            )
        return account

    def is_postable(self, account: AccountInfo) -> bool:
        return is_postable(account)

    def children(self, code: str) -> list[AccountInfo]:
        """Direct children of the account with ``code``, ordered by code."""
        parent = self.resolve(code)
        return [a for a in self._by_code.values() if a.parent_id == parent.id]

    def postable_accounts(self) -> list[AccountInfo]:
        return [a for a in self._by_code.values() if is_postable(a)]
