"""
Pure function unit tests for aggregation.py.

NO database, NO I/O.  Tests the trial balance (ОСВ), balance sheet and
profit and loss builders with synthetic accounts and lines.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from kazbooks_engines.aggregation import (
    BalanceSheetSection,
    build_balance_sheet,
    build_profit_loss,
    build_trial_balance,
    classify_for_balance_sheet,
    closing_balance,
)
from kazbooks_kernel.domain.dtos import AccountClass, AccountInfo, LedgerLine, OpeningBalanceInfo

# =========================================================================
# Fixtures / helpers
# =========================================================================

CASH = AccountInfo(uuid4(), "1030", "Денежные средства на текущих счетах", AccountClass.ASSET)
RECEIVABLES = AccountInfo(uuid4(), "1210", "Дебиторская задолженность", AccountClass.ASSET)
EQUIPMENT = AccountInfo(uuid4(), "2410", "Основные средства", AccountClass.ASSET)
SUPPLIERS = AccountInfo(uuid4(), "3310", "Кредиторская задолженность", AccountClass.LIABILITY)
LOANS = AccountInfo(uuid4(), "4010", "Долгосрочные займы", AccountClass.LIABILITY)
CAPITAL = AccountInfo(uuid4(), "5010", "Уставный капитал", AccountClass.EQUITY)
SALES = AccountInfo(uuid4(), "6010", "Доход от реализации", AccountClass.REVENUE)
ADMIN = AccountInfo(uuid4(), "7210", "Административные расходы", AccountClass.EXPENSE)
UNUSED = AccountInfo(uuid4(), "1050", "Сберегательный счёт", AccountClass.ASSET)

ACCOUNTS = (CASH, RECEIVABLES, EQUIPMENT, SUPPLIERS, LOANS, CAPITAL, SALES, ADMIN, UNUSED)


def _pair(debit: AccountInfo, credit: AccountInfo, amount: str) -> list[LedgerLine]:
    value = Decimal(amount)
    return [
        LedgerLine(account_id=debit.id, debit=value),
        LedgerLine(account_id=credit.id, credit=value),
    ]


OPENINGS = (
    OpeningBalanceInfo(CASH.id, opening_debit=Decimal("500000")),
    OpeningBalanceInfo(CAPITAL.id, opening_credit=Decimal("500000")),
)

LINES = (
    _pair(CASH, SALES, "300000")
    + _pair(ADMIN, CASH, "120000")
    + _pair(EQUIPMENT, LOANS, "1000000")
    + _pair(ADMIN, SUPPLIERS, "30000")
)


def _row(trial_balance, account):
    return next(r for r in trial_balance.accounts if r.account_id == account.id)


class TestClosingBalance:
    def test_debit_natural_excess_stays_on_debit(self):
        assert closing_balance(AccountClass.ASSET, Decimal("100"), Decimal("40")) == (
            Decimal("60"),
            Decimal("0"),
        )

    def test_debit_natural_deficit_flips_to_credit(self):
        assert closing_balance(AccountClass.EXPENSE, Decimal("40"), Decimal("100")) == (
            Decimal("0"),
            Decimal("60"),
        )

    def test_credit_natural(self):
        assert closing_balance(AccountClass.LIABILITY, Decimal("10"), Decimal("70")) == (
            Decimal("0"),
            Decimal("60"),
        )
        assert closing_balance(AccountClass.REVENUE, Decimal("70"), Decimal("10")) == (
            Decimal("60"),
            Decimal("0"),
        )


class TestTrialBalance:
    def setup_method(self):
        self.tb = build_trial_balance(ACCOUNTS, LINES, OPENINGS)

    def test_is_balanced(self):
        assert self.tb.is_balanced
        assert self.tb.totals.turnover_debit == self.tb.totals.turnover_credit == Decimal("1450000")
        assert self.tb.totals.closing_debit == self.tb.totals.closing_credit

    def test_cash_row(self):
        cash = _row(self.tb, CASH)
        assert cash.opening_debit == Decimal("500000")
        assert cash.turnover_debit == Decimal("300000")
        assert cash.turnover_credit == Decimal("120000")
        assert cash.closing_debit == Decimal("680000")
        assert cash.closing_credit == Decimal("0")

    def test_zero_activity_accounts_excluded(self):
        codes = [r.code for r in self.tb.accounts]
        assert "1050" not in codes
        assert "1210" not in codes

    def test_rows_sorted_by_code(self):
        codes = [r.code for r in self.tb.accounts]
        assert codes == sorted(codes)

    def test_idempotent(self):
        assert build_trial_balance(ACCOUNTS, LINES, OPENINGS) == self.tb

    def test_missing_openings_default_to_zero(self):
        tb = build_trial_balance(ACCOUNTS, LINES)
        assert _row(tb, CASH).opening_debit == Decimal("0")
        assert tb.is_balanced

    def test_unbalanced_openings_detected(self):
        tb = build_trial_balance(
            ACCOUNTS, LINES, [OpeningBalanceInfo(CASH.id, opening_debit=Decimal("1.00"))]
        )
        assert not tb.is_balanced

    def test_difference_below_tolerance_is_balanced(self):
        tb = build_trial_balance(
            ACCOUNTS,
            [],
            [
                OpeningBalanceInfo(CASH.id, opening_debit=Decimal("100.005")),
                OpeningBalanceInfo(CAPITAL.id, opening_credit=Decimal("100.00")),
            ],
        )
        assert tb.is_balanced

    def test_unknown_account_lines_are_skipped(self, captured_logs):
        tb = build_trial_balance(ACCOUNTS, [LedgerLine(uuid4(), debit=Decimal("5"))])

        assert tb.accounts == ()
        assert any(r["message"] == "trial_balance_unknown_accounts" for r in captured_logs())


class TestClassification:
    @pytest.mark.parametrize(
        "account_class, code, expected",
        [
            (AccountClass.ASSET, "1999", BalanceSheetSection.CURRENT_ASSETS),
            (AccountClass.ASSET, "2000", BalanceSheetSection.NON_CURRENT_ASSETS),
            (AccountClass.LIABILITY, "3999", BalanceSheetSection.CURRENT_LIABILITIES),
            (AccountClass.LIABILITY, "4000", BalanceSheetSection.NON_CURRENT_LIABILITIES),
            (AccountClass.EQUITY, "5010", BalanceSheetSection.EQUITY),
        ],
    )
    def test_code_fallback(self, account_class, code, expected):
        assert classify_for_balance_sheet(account_class, code) == expected

    def test_flag_overrides_code(self):
        assert (
            classify_for_balance_sheet(AccountClass.ASSET, "2410", is_current=True)
            == BalanceSheetSection.CURRENT_ASSETS
        )
        assert (
            classify_for_balance_sheet(AccountClass.LIABILITY, "3010", is_current=False)
            == BalanceSheetSection.NON_CURRENT_LIABILITIES
        )

    def test_income_statement_accounts_have_no_section(self):
        assert classify_for_balance_sheet(AccountClass.REVENUE, "6010") is None
        assert classify_for_balance_sheet(AccountClass.EXPENSE, "7210") is None


class TestBalanceSheet:
    def setup_method(self):
        self.bs = build_balance_sheet(build_trial_balance(ACCOUNTS, LINES, OPENINGS))

    def test_sections(self):
        assert [l.code for l in self.bs.current_assets] == ["1030"]
        assert [l.code for l in self.bs.non_current_assets] == ["2410"]
        assert [l.code for l in self.bs.current_liabilities] == ["3310"]
        assert [l.code for l in self.bs.non_current_liabilities] == ["4010"]
        assert [l.code for l in self.bs.equity] == ["5010"]
        assert self.bs.section(BalanceSheetSection.EQUITY) == self.bs.equity

    def test_totals(self):
        assert self.bs.total_assets == Decimal("1680000")
        assert self.bs.total_liabilities == Decimal("1030000")
        assert self.bs.current_result == Decimal("150000")
        assert self.bs.total_equity == Decimal("650000")

    def test_identity_holds(self):
        assert self.bs.is_balanced
        assert self.bs.total_assets == self.bs.total_liabilities + self.bs.total_equity


class TestProfitLoss:
    def test_turnover_only(self):
        pl = build_profit_loss(build_trial_balance(ACCOUNTS, LINES, OPENINGS))

        assert pl.total_revenue == Decimal("300000")
        assert pl.total_expenses == Decimal("150000")
        assert pl.net_profit == Decimal("150000")
        assert [l.code for l in pl.revenue] == ["6010"]
        assert [l.code for l in pl.expenses] == ["7210"]

    def test_openings_do_not_affect_result(self):
        openings = OPENINGS + (
            OpeningBalanceInfo(SALES.id, opening_credit=Decimal("999")),
            OpeningBalanceInfo(ADMIN.id, opening_debit=Decimal("999")),
        )
        pl = build_profit_loss(build_trial_balance(ACCOUNTS, LINES, openings))
        assert pl.net_profit == Decimal("150000")

    def test_empty_ledger(self):
        pl = build_profit_loss(build_trial_balance(ACCOUNTS, []))
        assert pl.revenue == ()
        assert pl.net_profit == Decimal("0")
