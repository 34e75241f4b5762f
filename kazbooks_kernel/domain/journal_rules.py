"""
Journal rules -- pure leg derivation and balance checks.

Responsibility:
    Turns a ``TransactionIntent`` into a balanced pair of ``LineSpec`` legs,
    checks the balance identity of any line batch, builds reversal lines and
    formats entry numbers.

Architecture position:
    Kernel > Domain -- pure functional core.  JournalService resolves
    accounts and periods, calls into here, then persists.

Invariants enforced:
    - Both legs of a transaction carry the same amount; no rounding split.
    - Σdebit == Σcredit exactly, checked before anything is persisted.
    - Only postable accounts appear in derived legs.
"""

from collections.abc import Sequence
from decimal import Decimal

from kazbooks_kernel.domain.chart import require_postable
from kazbooks_kernel.domain.dtos import (
    ZERO,
    AccountInfo,
    LineSpec,
    PostedLine,
    TransactionIntent,
    TransactionType,
    is_minor_unit_amount,
)
from kazbooks_kernel.exceptions import (
    InvalidAmountError,
    UnbalancedEntryError,
    ValidationError,
)

ENTRY_NUMBER_DIGITS = 6


def validate_amount(amount: object) -> Decimal:
    """
    Return ``amount`` as a positive Decimal.

    Raises:
        InvalidAmountError: float, non-numeric, zero or negative amounts,
            or amounts finer than one tiyn.
    """
    if isinstance(amount, bool) or not isinstance(amount, (Decimal, int)):
        raise InvalidAmountError(amount, "amount must be a Decimal")
    value = Decimal(amount)
    if not value.is_finite() or value <= ZERO:
        raise InvalidAmountError(amount, "amount must be greater than zero")
    if not is_minor_unit_amount(value):
        raise InvalidAmountError(amount, "amount cannot have more than two decimal places")
    return value


def derive_transaction_lines(
    intent: TransactionIntent,
    primary: AccountInfo,
    counter: AccountInfo,
) -> tuple[LineSpec, LineSpec]:
    """
    Build the debit and credit legs for a cash transaction.

    income:   Dr primary (cash/bank)      Cr counter (revenue)
    expense:  Dr counter (expense)        Cr primary (cash/bank)
    transfer: Dr counter (destination)    Cr primary (source)

    Raises:
        InvalidAmountError: amount not positive.
        ValidationError: primary and counter are the same account.
        AccountNotPostableError: either account is a header or inactive.
    """
    amount = validate_amount(intent.amount)
    if primary.id == counter.id:
        raise ValidationError(
            f"Transaction posts to account {primary.code} on both sides"
        )
    require_postable(primary)
    require_postable(counter)

    memo = intent.description
    if intent.transaction_type == TransactionType.INCOME:
        debit_account, credit_account = primary, counter
    else:
        debit_account, credit_account = counter, primary

    return (
        LineSpec(account_code=debit_account.code, debit=amount, description=memo),
        LineSpec(account_code=credit_account.code, credit=amount, description=memo),
    )


def check_balanced(lines: Sequence[LineSpec]) -> Decimal:
    """
    Verify Σdebit == Σcredit exactly and return the entry total.

    Raises:
        ValidationError: fewer than two lines.
        UnbalancedEntryError: totals differ.
    """
    if len(lines) < 2:
        raise ValidationError("A journal entry needs at least two lines")
    debits = sum((line.debit for line in lines), ZERO)
    credits = sum((line.credit for line in lines), ZERO)
    if debits != credits:
        raise UnbalancedEntryError(debits, credits)
    return debits


def reversal_lines(lines: Sequence[PostedLine], description: str | None = None) -> list[LineSpec]:
    """Mirror image of posted lines: every debit becomes a credit and vice versa."""
    return [
        LineSpec(
            account_code=line.account_code,
            debit=line.credit,
            credit=line.debit,
            description=description or line.description,
        )
        for line in lines
    ]


def format_entry_number(year: int, sequence: int) -> str:
    """``2024-000001`` style number, sequential per tenant per year."""
    return f"{year}-{sequence:0{ENTRY_NUMBER_DIGITS}d}"


def entry_sequence(entry_number: str) -> int:
    """Sequence part of an entry number (``2024-000042`` -> 42)."""
    _, _, seq = entry_number.partition("-")
    return int(seq)
