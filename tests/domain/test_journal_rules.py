"""
Pure function unit tests for journal leg derivation and balance checks.

NO database, NO I/O.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from kazbooks_kernel.domain.dtos import (
    AccountClass,
    AccountInfo,
    LineSpec,
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
    AccountNotPostableError,
    InvalidAmountError,
    UnbalancedEntryError,
    ValidationError,
)

BANK = AccountInfo(uuid4(), "1030", "Банк", AccountClass.ASSET)
CASH = AccountInfo(uuid4(), "1010", "Касса", AccountClass.ASSET)
SERVICES = AccountInfo(uuid4(), "6020", "Доход от услуг", AccountClass.REVENUE)
ADMIN = AccountInfo(uuid4(), "7210", "Административные расходы", AccountClass.EXPENSE)
HEADER = AccountInfo(uuid4(), "7000", "Расходы", AccountClass.EXPENSE, allow_manual_entry=False)


def _intent(transaction_type: TransactionType, amount=Decimal("15000")) -> TransactionIntent:
    return TransactionIntent(
        tenant_id=uuid4(),
        entry_date=date(2024, 3, 10),
        transaction_type=transaction_type,
        amount=amount,
        primary_account_id=BANK.id,
        description="Тест",
    )


class TestValidateAmount:
    def test_accepts_decimal_and_int(self):
        assert validate_amount(Decimal("10.50")) == Decimal("10.50")
        assert validate_amount(7) == Decimal("7")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), 0, -1])
    def test_rejects_non_positive(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    @pytest.mark.parametrize("amount", [1.5, "100", None, True, Decimal("NaN"), Decimal("Infinity")])
    def test_rejects_non_decimal(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    @pytest.mark.parametrize("amount", [Decimal("0.004"), Decimal("100.005"), Decimal("1.001")])
    def test_rejects_fractions_of_a_tiyn(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    def test_trailing_zeros_allowed(self):
        assert validate_amount(Decimal("12.500")) == Decimal("12.500")


class TestDeriveTransactionLines:
    def test_income_debits_primary(self):
        debit, credit = derive_transaction_lines(_intent(TransactionType.INCOME), BANK, SERVICES)

        assert (debit.account_code, debit.debit, debit.credit) == ("1030", Decimal("15000"), Decimal("0"))
        assert (credit.account_code, credit.debit, credit.credit) == ("6020", Decimal("0"), Decimal("15000"))
        assert debit.description == credit.description == "Тест"

    def test_expense_credits_primary(self):
        debit, credit = derive_transaction_lines(_intent(TransactionType.EXPENSE), BANK, ADMIN)

        assert debit.account_code == "7210"
        assert credit.account_code == "1030"

    def test_transfer_moves_from_primary_to_counter(self):
        debit, credit = derive_transaction_lines(_intent(TransactionType.TRANSFER), BANK, CASH)

        assert debit.account_code == "1010"
        assert credit.account_code == "1030"

    def test_same_account_rejected(self):
        with pytest.raises(ValidationError):
            derive_transaction_lines(_intent(TransactionType.TRANSFER), BANK, BANK)

    def test_header_account_rejected(self):
        with pytest.raises(AccountNotPostableError):
            derive_transaction_lines(_intent(TransactionType.EXPENSE), BANK, HEADER)

    def test_amount_checked_first(self):
        with pytest.raises(InvalidAmountError):
            derive_transaction_lines(_intent(TransactionType.EXPENSE, Decimal("0")), BANK, HEADER)


class TestLineSpec:
    def test_negative_rejected(self):
        with pytest.raises(InvalidAmountError):
            LineSpec("1030", debit=Decimal("-1"))

    def test_both_sides_rejected(self):
        with pytest.raises(InvalidAmountError):
            LineSpec("1030", debit=Decimal("1"), credit=Decimal("1"))

    def test_empty_line_rejected(self):
        with pytest.raises(InvalidAmountError):
            LineSpec("1030")

    def test_sub_tiyn_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            LineSpec("1030", credit=Decimal("0.004"))


class TestCheckBalanced:
    def test_balanced_returns_total(self):
        lines = [
            LineSpec("7210", debit=Decimal("100.10")),
            LineSpec("1030", credit=Decimal("60.05")),
            LineSpec("1010", credit=Decimal("40.05")),
        ]
        assert check_balanced(lines) == Decimal("100.10")

    def test_off_by_one_tiyn_rejected(self):
        lines = [LineSpec("7210", debit=Decimal("100.00")), LineSpec("1030", credit=Decimal("99.99"))]
        with pytest.raises(UnbalancedEntryError) as exc_info:
            check_balanced(lines)
        assert exc_info.value.debits == "100.00"
        assert exc_info.value.credits == "99.99"

    def test_single_line_rejected(self):
        with pytest.raises(ValidationError):
            check_balanced([LineSpec("7210", debit=Decimal("1"))])


class TestReversalLines:
    def test_sides_swapped(self):
        posted = [
            PostedLine(ADMIN.id, "7210", Decimal("500"), Decimal("0"), 1, "Аренда"),
            PostedLine(BANK.id, "1030", Decimal("0"), Decimal("500"), 2, "Аренда"),
        ]

        lines = reversal_lines(posted, "Сторно")

        assert [(l.account_code, l.debit, l.credit) for l in lines] == [
            ("7210", Decimal("0"), Decimal("500")),
            ("1030", Decimal("500"), Decimal("0")),
        ]
        assert {l.description for l in lines} == {"Сторно"}
        assert check_balanced(lines) == Decimal("500")


class TestEntryNumbers:
    def test_format(self):
        assert format_entry_number(2024, 1) == "2024-000001"
        assert format_entry_number(2025, 123456) == "2025-123456"

    def test_sequence(self):
        assert entry_sequence("2024-000042") == 42
