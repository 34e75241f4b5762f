"""
ORM-level immutability enforcement for posted ledger data.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When immutable                     | Enforcement
--------------------|------------------------------------|-----------------------
JournalEntry        | once status = posted               | before_update/delete
JournalLine         | once the parent entry is posted    | before_update/delete
Account             | code/class once referenced by any  | before_update
                    | journal line; never deleted then   | before_delete
AccountingPeriod    | never deleted once it has entries  | before_delete

The posting transition itself (draft -> posted) is allowed: the entry was
not posted before the UPDATE began.  ``updated_at``/``updated_by_id`` are
audit metadata and may always change.

Listeners are registered once at startup with
``register_immutability_listeners()``; tests that need to tamper with rows
call ``unregister_immutability_listeners()``.
"""

from sqlalchemy import event, func, inspect, select
from sqlalchemy.orm.attributes import get_history

from kazbooks_kernel.domain.dtos import EntryStatus
from kazbooks_kernel.exceptions import ImmutabilityViolationError
from kazbooks_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})
ACCOUNT_STRUCTURAL_FIELDS = ("code", "account_class")


def _blocked(entity_type: str, entity_id, operation: str, reason: str) -> ImmutabilityViolationError:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(entity_type, str(entity_id), reason)


def _was_posted_before(target) -> bool:
    history = get_history(target, "status")
    if history.deleted:
        return history.deleted[0] == EntryStatus.POSTED.value
    if not history.added:
        return target.status == EntryStatus.POSTED.value
    # Pending status change with no prior value loaded: a new row
    return False


def _check_journal_entry_update(mapper, connection, target):
    if not _was_posted_before(target):
        return
    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            raise _blocked(
                "JournalEntry",
                target.id,
                "UPDATE",
                f"field '{attr.key}' of a posted entry cannot change; post a reversal",
            )


def _check_journal_entry_delete(mapper, connection, target):
    if target.status == EntryStatus.POSTED.value:
        raise _blocked("JournalEntry", target.id, "DELETE", "posted entries cannot be deleted")


def _parent_posted(target) -> bool:
    return target.entry is not None and target.entry.status == EntryStatus.POSTED.value


def _check_journal_line_update(mapper, connection, target):
    if _parent_posted(target):
        raise _blocked("JournalLine", target.id, "UPDATE", "lines of a posted entry cannot change")


def _check_journal_line_delete(mapper, connection, target):
    if _parent_posted(target):
        raise _blocked("JournalLine", target.id, "DELETE", "lines of a posted entry cannot be deleted")


def _account_is_referenced(connection, account_id) -> bool:
    from kazbooks_kernel.models.journal import JournalLine

    lines = JournalLine.__table__
    count = connection.execute(
        select(func.count()).select_from(lines).where(lines.c.account_id == str(account_id))
    ).scalar()
    return bool(count)


def _check_account_update(mapper, connection, target):
    changed = [f for f in ACCOUNT_STRUCTURAL_FIELDS if get_history(target, f).has_changes()]
    if changed and _account_is_referenced(connection, target.id):
        raise _blocked(
            "Account",
            target.id,
            "UPDATE",
            f"fields {changed} cannot change once the account has journal lines",
        )


def _check_account_delete(mapper, connection, target):
    if _account_is_referenced(connection, target.id):
        raise _blocked(
            "Account",
            target.id,
            "DELETE",
            "account has journal lines; deactivate it instead",
        )


def _check_period_delete(mapper, connection, target):
    from kazbooks_kernel.models.journal import JournalEntry

    entries = JournalEntry.__table__
    count = connection.execute(
        select(func.count()).select_from(entries).where(entries.c.period_id == str(target.id))
    ).scalar()
    if count:
        raise _blocked(
            "AccountingPeriod",
            target.id,
            "DELETE",
            "period contains journal entries",
        )


def _listeners():
    from kazbooks_kernel.models.account import Account
    from kazbooks_kernel.models.journal import JournalEntry, JournalLine
    from kazbooks_kernel.models.period import AccountingPeriod

    return (
        (JournalEntry, "before_update", _check_journal_entry_update),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_update),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (Account, "before_update", _check_account_update),
        (Account, "before_delete", _check_account_delete),
        (AccountingPeriod, "before_delete", _check_period_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners() -> None:
    """Remove the listeners. Tests only."""
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
