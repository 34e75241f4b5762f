"""
ChartOfAccountsService -- per-tenant chart storage and account mappings.

Responsibility:
    Installs a tenant's chart from a template, resolves accounts by code or
    id, soft-deactivates accounts and maintains the account mappings that
    payroll posting depends on.

Architecture position:
    Kernel > Services -- imperative shell around ``domain.chart``.

Invariants enforced:
    - Accounts are never deleted here; ``deactivate`` only clears is_active.
    - Template installation creates parents before children and skips codes
      that already exist, so it can be re-run.

Failure modes:
    - AccountNotFoundError: unknown code or id for the tenant.
    - MissingAccountMappingError: a mapping points at a missing code.
    - ValueError: template row references an unknown parent code.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kazbooks_kernel.domain.chart import ChartOfAccounts
from kazbooks_kernel.domain.dtos import AccountInfo, AccountSeed
from kazbooks_kernel.exceptions import AccountNotFoundError, MissingAccountMappingError
from kazbooks_kernel.logging_config import get_logger
from kazbooks_kernel.models.account import Account, AccountMapping
from kazbooks_kernel.services.base import BaseService

logger = get_logger("services.chart")


@dataclass(frozen=True)
class ConfigurationCheck:
    """Outcome of checking a tenant's required account mappings."""

    tenant_id: UUID
    missing: tuple[str, ...]

    @property
    def is_complete(self) -> bool:
        return not self.missing


class ChartOfAccountsService(BaseService[Account]):
    """
    Persistent chart of accounts for one or more tenants.

    Contract:
        Returns ``AccountInfo`` DTOs or ``ChartOfAccounts`` snapshots, never
        ORM rows.  Flushes within the caller's transaction.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def load(self, tenant_id: UUID) -> ChartOfAccounts:
        """Snapshot of the tenant's whole chart."""
        rows = self.session.execute(
            select(Account).where(Account.tenant_id == tenant_id)
        ).scalars()
        return ChartOfAccounts((row.to_info() for row in rows), tenant_id=tenant_id)

    def resolve(self, tenant_id: UUID, code: str) -> AccountInfo:
        """
        Raises:
            AccountNotFoundError: If the code does not exist for the tenant.
        """
        row = self._get_by_code(tenant_id, code)
        if row is None:
            raise AccountNotFoundError(code, str(tenant_id))
        return row.to_info()

    def get(self, tenant_id: UUID, account_id: UUID) -> AccountInfo:
        """
        Raises:
            AccountNotFoundError: If the id does not exist for the tenant.
        """
        row = self.session.execute(
            select(Account).where(Account.tenant_id == tenant_id, Account.id == account_id)
        ).scalar_one_or_none()
        if row is None:
            raise AccountNotFoundError(str(account_id), str(tenant_id))
        return row.to_info()

    def install_template(
        self,
        tenant_id: UUID,
        template: Sequence[AccountSeed],
        actor_id: UUID,
    ) -> int:
        """
        Create the tenant's chart from template rows.

        Rows may appear in any order; a parent is always created before its
        children.

        Returns:
            Number of accounts created.

        Raises:
            ValueError: If a row names a parent code that is in neither the
                template nor the tenant's existing chart.
        """
        existing = {
            row.code: row
            for row in self.session.execute(
                select(Account).where(Account.tenant_id == tenant_id)
            ).scalars()
        }
        seeds = {seed.code: seed for seed in template}
        created = 0

        def ensure(code: str) -> Account:
            nonlocal created
            if code in existing:
                return existing[code]
            seed = seeds.get(code)
            if seed is None:
                raise ValueError(f"Template references unknown parent account {code}")
            parent = ensure(seed.parent_code) if seed.parent_code else None
            account = Account(
                tenant_id=tenant_id,
                code=seed.code,
                name=seed.name,
                account_class=seed.account_class.value,
                is_current=seed.is_current,
                allow_manual_entry=seed.allow_manual_entry,
                is_active=True,
                parent=parent,
                created_by_id=actor_id,
            )
            self.session.add(account)
            existing[code] = account
            created += 1
            return account

        for code in sorted(seeds):
            ensure(code)
        self.session.flush()

        logger.info(
            "chart_template_installed",
            extra={
                "tenant_id": str(tenant_id),
                "accounts_created": created,
                "accounts_total": len(existing),
            },
        )
        return created

    def deactivate(self, tenant_id: UUID, code: str, actor_id: UUID) -> AccountInfo:
        """Soft-deactivate an account; it stays in reports but takes no postings."""
        row = self._get_by_code(tenant_id, code)
        if row is None:
            raise AccountNotFoundError(code, str(tenant_id))
        row.is_active = False
        row.updated_by_id = actor_id
        self.session.flush()
        logger.info("account_deactivated", extra={"tenant_id": str(tenant_id), "code": code})
        return row.to_info()

    # =========================================================================
    # Account mappings
    # =========================================================================

    def set_mapping(
        self,
        tenant_id: UUID,
        mapping_type: str,
        account_code: str,
        actor_id: UUID,
    ) -> None:
        """
        Point ``mapping_type`` at the account with ``account_code``.

        Raises:
            MissingAccountMappingError: If the code does not exist for the tenant.
        """
        account = self._get_by_code(tenant_id, account_code)
        if account is None:
            raise MissingAccountMappingError(mapping_type, account_code)

        mapping = self.session.execute(
            select(AccountMapping).where(
                AccountMapping.tenant_id == tenant_id,
                AccountMapping.mapping_type == mapping_type,
            )
        ).scalar_one_or_none()
        if mapping is None:
            mapping = AccountMapping(
                tenant_id=tenant_id,
                mapping_type=mapping_type,
                account_id=account.id,
                created_by_id=actor_id,
            )
            self.session.add(mapping)
        else:
            mapping.account_id = account.id
            mapping.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_mapping_set",
            extra={
                "tenant_id": str(tenant_id),
                "mapping_type": mapping_type,
                "account_code": account_code,
            },
        )

    def set_mappings(
        self,
        tenant_id: UUID,
        mappings: dict[str, str],
        actor_id: UUID,
    ) -> None:
        for mapping_type, code in mappings.items():
            self.set_mapping(tenant_id, mapping_type, code, actor_id)

    def get_mappings(self, tenant_id: UUID) -> dict[str, str]:
        """mapping_type -> account code for every mapping of the tenant."""
        rows = self.session.execute(
            select(AccountMapping.mapping_type, Account.code)
            .join(Account, AccountMapping.account_id == Account.id)
            .where(AccountMapping.tenant_id == tenant_id)
        ).all()
        return {mapping_type: code for mapping_type, code in rows}

    def check_configuration(
        self,
        tenant_id: UUID,
        required_mappings: Iterable[str],
    ) -> ConfigurationCheck:
        """Report which required mapping types are unset for the tenant."""
        present = self.get_mappings(tenant_id)
        missing = tuple(m for m in required_mappings if m not in present)
        if missing:
            logger.warning(
                "account_mappings_incomplete",
                extra={"tenant_id": str(tenant_id), "missing": list(missing)},
            )
        return ConfigurationCheck(tenant_id=tenant_id, missing=missing)

    def _get_by_code(self, tenant_id: UUID, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.tenant_id == tenant_id, Account.code == code)
        ).scalar_one_or_none()
