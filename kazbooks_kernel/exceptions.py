"""
Typed exception hierarchy for the kazbooks kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to react to a failure without parsing its message:

    try:
        journal.post_transaction(intent)
    except PeriodClosedError as e:
        show_period_screen(e.status)          # structured data
        api_response(code=e.code)              # machine-readable

Every exception carries a ``code`` class attribute and stores its structured
fields as instance attributes.  Errors that an administrator or user can fix
also carry a ``remediation`` pointer naming the screen where the fix happens.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    KazbooksError (base)
    |
    +-- ConfigurationError            fatal, fixed by an administrator
    |   +-- AccountNotFoundError
    |   +-- MissingAccountMappingError
    |
    +-- AccountError
    |   +-- AccountNotPostableError
    |
    +-- PeriodError                   expected, user-recoverable
    |   +-- PeriodNotFoundError
    |   +-- PeriodClosedError
    |   +-- PeriodTransitionError
    |   +-- PeriodOverlapError
    |   +-- PeriodGapError
    |   +-- MultipleOpenPeriodsError
    |
    +-- BalanceError                  engine bug, never persisted
    |   +-- UnbalancedEntryError
    |
    +-- ValidationError               malformed input, raised first
    |   +-- InvalidAmountError
    |   +-- InvalidPayrollInputError
    |
    +-- JournalError
    |   +-- EntryNotFoundError
    |   +-- EntryNotDraftError
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyReversedError
    |
    +-- ImmutabilityViolationError
"""

from datetime import date
from decimal import Decimal

REMEDIATION_PERIODS = "period_management"
REMEDIATION_ACCOUNT_MAPPINGS = "account_mapping_settings"
REMEDIATION_CHART = "chart_of_accounts"


class KazbooksError(Exception):
    """Base exception for all kernel errors."""

    code: str = "KAZBOOKS_ERROR"
    remediation: str | None = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(KazbooksError):
    """Base for configuration errors. Not retried."""

    code: str = "CONFIGURATION_ERROR"
    remediation = REMEDIATION_ACCOUNT_MAPPINGS


class AccountNotFoundError(ConfigurationError):
    """An account code or id does not exist for the tenant."""

    code: str = "ACCOUNT_NOT_FOUND"
    remediation = REMEDIATION_CHART

    def __init__(self, reference: str, tenant_id: str | None = None):
        self.reference = reference
        self.tenant_id = tenant_id
        super().__init__(f"Account not found: {reference}")


class MissingAccountMappingError(ConfigurationError):
    """A posting needs an account mapping that is unset or unresolvable."""

    code: str = "MISSING_ACCOUNT_MAPPING"

    def __init__(self, mapping_type: str, reference: str | None = None):
        self.mapping_type = mapping_type
        self.reference = reference
        detail = f" (account {reference} not found)" if reference else ""
        super().__init__(
            f"Missing account mapping '{mapping_type}'{detail}. "
            "Configure it in the account mapping settings."
        )


# =============================================================================
# Account errors
# =============================================================================


class AccountError(KazbooksError):
    """Base for account errors."""

    code: str = "ACCOUNT_ERROR"
    remediation = REMEDIATION_CHART


class AccountNotPostableError(AccountError):
    """Account is a header account or inactive."""

    code: str = "ACCOUNT_NOT_POSTABLE"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Account {account_code} cannot be posted to: {reason}")


# =============================================================================
# Period errors
# =============================================================================


class PeriodError(KazbooksError):
    """Base for period errors."""

    code: str = "PERIOD_ERROR"
    remediation = REMEDIATION_PERIODS


class PeriodNotFoundError(PeriodError):
    """No period covers the date (or the period id does not exist)."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, reference: date | str, tenant_id: str | None = None):
        self.reference = str(reference)
        self.tenant_id = tenant_id
        super().__init__(
            f"No accounting period covers {reference}. "
            "Create the period in period management first."
        )


class PeriodClosedError(PeriodError):
    """Posting attempted into a soft_closed or hard_closed period."""

    code: str = "PERIOD_CLOSED"

    def __init__(self, period_name: str, status: str):
        self.period_name = period_name
        self.status = status
        label = "closed" if status == "soft_closed" else "permanently closed"
        super().__init__(
            f"Period '{period_name}' is {label} ({status}). "
            "Reopen it in period management or choose another date."
        )


class PeriodTransitionError(PeriodError):
    """Status transition not allowed by the period state machine."""

    code: str = "PERIOD_TRANSITION_NOT_ALLOWED"

    def __init__(self, period_name: str, from_status: str, to_status: str):
        self.period_name = period_name
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Period '{period_name}' cannot move from {from_status} to {to_status}"
        )


class PeriodOverlapError(PeriodError):
    """New period date range overlaps an existing period of the tenant."""

    code: str = "PERIOD_OVERLAP"

    def __init__(self, new_period_name: str, existing_period_name: str):
        self.new_period_name = new_period_name
        self.existing_period_name = existing_period_name
        super().__init__(
            f"Period '{new_period_name}' overlaps existing period "
            f"'{existing_period_name}'"
        )


class PeriodGapError(PeriodError):
    """New period would leave a gap between it and the existing periods."""

    code: str = "PERIOD_GAP"

    def __init__(self, new_period_name: str, start_date: date, end_date: date):
        self.new_period_name = new_period_name
        self.start_date = str(start_date)
        self.end_date = str(end_date)
        super().__init__(
            f"Period '{new_period_name}' ({start_date}..{end_date}) is not "
            "adjacent to any existing period"
        )


class MultipleOpenPeriodsError(PeriodError):
    """Opening a period while another period of the tenant is open (strict mode)."""

    code: str = "MULTIPLE_OPEN_PERIODS"

    def __init__(self, period_name: str, open_period_name: str):
        self.period_name = period_name
        self.open_period_name = open_period_name
        super().__init__(
            f"Cannot open '{period_name}': period '{open_period_name}' is "
            "already open"
        )


# =============================================================================
# Balance errors
# =============================================================================


class BalanceError(KazbooksError):
    """Base for balance errors. Indicates an engine bug."""

    code: str = "BALANCE_ERROR"


class UnbalancedEntryError(BalanceError):
    """Journal lines do not balance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal):
        self.debits = str(debits)
        self.credits = str(credits)
        super().__init__(f"Entry is unbalanced: debits={debits}, credits={credits}")


# =============================================================================
# Validation errors
# =============================================================================


class ValidationError(KazbooksError):
    """Base for malformed input."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Amount is missing, non-positive, or a line has both sides set."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Decimal | str | None, reason: str):
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InvalidPayrollInputError(ValidationError):
    """Payroll calculation input is malformed."""

    code: str = "INVALID_PAYROLL_INPUT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid payroll input {field}={value}: {reason}")


# =============================================================================
# Journal errors
# =============================================================================


class JournalError(KazbooksError):
    """Base for journal entry lifecycle errors."""

    code: str = "JOURNAL_ERROR"


class EntryNotFoundError(JournalError):
    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class EntryNotDraftError(JournalError):
    code: str = "ENTRY_NOT_DRAFT"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Journal entry {entry_id} is {status}, expected draft")


class EntryNotPostedError(JournalError):
    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(
            f"Journal entry {entry_id} is {status}; only posted entries can be reversed"
        )


class EntryAlreadyReversedError(JournalError):
    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: str, reversal_entry_id: str):
        self.entry_id = entry_id
        self.reversal_entry_id = reversal_entry_id
        super().__init__(
            f"Journal entry {entry_id} was already reversed by {reversal_entry_id}"
        )


# =============================================================================
# Immutability
# =============================================================================


class ImmutabilityViolationError(KazbooksError):
    """Attempt to modify or delete a posted journal record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
