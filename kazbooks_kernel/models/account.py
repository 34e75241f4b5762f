"""
Module: kazbooks_kernel.models.account
Responsibility: ORM persistence for the per-tenant chart of accounts and the
    per-tenant account mappings used by payroll posting.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - (tenant_id, code) is unique.
    - (tenant_id, mapping_type) is unique.
    - Accounts referenced by journal lines are never deleted; they are
      deactivated (see db/immutability.py).
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kazbooks_kernel.db.base import TrackedBase, UUIDString
from kazbooks_kernel.domain.dtos import AccountClass, AccountInfo


class Account(TrackedBase):
    """
    One chart-of-accounts row.

    Header accounts (``allow_manual_entry`` False) group children and are
    never posted to.  ``is_current`` is optional; when unset, balance sheet
    classification falls back to the account code.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_class", "tenant_id", "account_class"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_class: Mapped[str] = mapped_column(String(20), nullable=False)
    is_current: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    allow_manual_entry: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    parent: Mapped["Account | None"] = relationship(
        "Account",
        remote_side="Account.id",
        back_populates="children",
    )
    children: Mapped[list["Account"]] = relationship("Account", back_populates="parent")

    def to_info(self) -> AccountInfo:
        return AccountInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            account_class=AccountClass(self.account_class),
            is_current=self.is_current,
            parent_id=self.parent_id,
            allow_manual_entry=self.allow_manual_entry,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"


class AccountMapping(TrackedBase):
    """Binds a mapping type (e.g. ``salary_expense``) to one tenant account."""

    __tablename__ = "account_mappings"

    __table_args__ = (
        UniqueConstraint("tenant_id", "mapping_type", name="uq_account_mapping_type"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    mapping_type: Mapped[str] = mapped_column(String(50), nullable=False)
    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    account: Mapped[Account] = relationship("Account")

    def __repr__(self) -> str:
        return f"<AccountMapping {self.mapping_type} -> {self.account_id}>"
