"""
Aggregation engine -- trial balance, balance sheet and profit and loss.

Responsibility:
    Folds posted journal lines and opening balances into per-account
    balances, then derives the balance sheet and the profit and loss
    statement from that trial balance.

Architecture position:
    Engines -- pure functions over kernel DTOs.  ReportingService loads the
    inputs through LedgerSelector and calls into here.

Invariants enforced:
    - Closing balances follow normal-balance polarity: asset/expense are
      debit-natural, liability/equity/revenue credit-natural.
    - Trial balance totals include every account, even those left out of
      the row list for having no activity.
    - Balanced means within 0.01 on both opening and closing totals.
    - Profit and loss uses turnover only, never opening or closing balances.
    - The balance sheet carries the unclosed revenue/expense result inside
      equity, so assets = liabilities + equity whenever the trial balance
      is balanced.

Failure modes:
    - Lines or openings for accounts missing from ``accounts`` are skipped
      and logged at WARNING.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

from kazbooks_kernel.domain.dtos import (
    BALANCE_TOLERANCE,
    ZERO,
    AccountClass,
    AccountInfo,
    LedgerLine,
    OpeningBalanceInfo,
)
from kazbooks_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")

CURRENT_ASSET_CODE_LIMIT = "2000"
CURRENT_LIABILITY_CODE_LIMIT = "4000"


# =============================================================================
# Trial balance
# =============================================================================


@dataclass(frozen=True)
class AccountBalance:
    """Derived balance of one account; lives for one aggregation call."""

    account_id: UUID
    code: str
    name: str
    account_class: AccountClass
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    turnover_debit: Decimal = ZERO
    turnover_credit: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO
    is_current: bool | None = None

    @property
    def has_activity(self) -> bool:
        return any(
            v != ZERO
            for v in (
                self.opening_debit,
                self.opening_credit,
                self.turnover_debit,
                self.turnover_credit,
            )
        )


@dataclass(frozen=True)
class TrialBalanceTotals:
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    turnover_debit: Decimal = ZERO
    turnover_credit: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO


@dataclass(frozen=True)
class TrialBalanceData:
    accounts: tuple[AccountBalance, ...]
    totals: TrialBalanceTotals
    is_balanced: bool


def within_tolerance(left: Decimal, right: Decimal) -> bool:
    return abs(left - right) < BALANCE_TOLERANCE


def closing_balance(
    account_class: AccountClass,
    debit_side: Decimal,
    credit_side: Decimal,
) -> tuple[Decimal, Decimal]:
    """
    (closing_debit, closing_credit) from the accumulated sides.

    The natural side keeps a positive excess; a negative excess flips to
    the other side.  At most one of the two results is non-zero.
    """
    if account_class.is_debit_natural:
        net = debit_side - credit_side
        return (net, ZERO) if net > ZERO else (ZERO, -net)
    net = credit_side - debit_side
    return (ZERO, net) if net > ZERO else (-net, ZERO)


def build_trial_balance(
    accounts: Iterable[AccountInfo],
    journal_lines: Iterable[LedgerLine],
    opening_balances: Iterable[OpeningBalanceInfo] = (),
) -> TrialBalanceData:
    """
    Fold openings and lines into one ``AccountBalance`` per account.

    Returns:
        Rows with activity, sorted by code; totals over every account;
        ``is_balanced`` within 0.01 on opening and closing totals.
    """
    by_id = {a.id: a for a in accounts}
    sides: dict[UUID, list[Decimal]] = {
        account_id: [ZERO, ZERO, ZERO, ZERO] for account_id in by_id
    }

    skipped = 0
    for opening in opening_balances:
        acc = sides.get(opening.account_id)
        if acc is None:
            skipped += 1
            continue
        acc[0] += opening.opening_debit
        acc[1] += opening.opening_credit

    for line in journal_lines:
        acc = sides.get(line.account_id)
        if acc is None:
            skipped += 1
            continue
        acc[2] += line.debit
        acc[3] += line.credit

    if skipped:
        logger.warning("trial_balance_unknown_accounts", extra={"skipped_rows": skipped})

    balances: list[AccountBalance] = []
    for account_id, (open_d, open_c, turn_d, turn_c) in sides.items():
        info = by_id[account_id]
        close_d, close_c = closing_balance(info.account_class, open_d + turn_d, open_c + turn_c)
        balances.append(
            AccountBalance(
                account_id=account_id,
                code=info.code,
                name=info.name,
                account_class=info.account_class,
                opening_debit=open_d,
                opening_credit=open_c,
                turnover_debit=turn_d,
                turnover_credit=turn_c,
                closing_debit=close_d,
                closing_credit=close_c,
                is_current=info.is_current,
            )
        )

    totals = TrialBalanceTotals(
        opening_debit=sum((b.opening_debit for b in balances), ZERO),
        opening_credit=sum((b.opening_credit for b in balances), ZERO),
        turnover_debit=sum((b.turnover_debit for b in balances), ZERO),
        turnover_credit=sum((b.turnover_credit for b in balances), ZERO),
        closing_debit=sum((b.closing_debit for b in balances), ZERO),
        closing_credit=sum((b.closing_credit for b in balances), ZERO),
    )
    is_balanced = within_tolerance(totals.opening_debit, totals.opening_credit) and within_tolerance(
        totals.closing_debit, totals.closing_credit
    )

    rows = tuple(sorted((b for b in balances if b.has_activity), key=lambda b: b.code))
    return TrialBalanceData(accounts=rows, totals=totals, is_balanced=is_balanced)


# =============================================================================
# Balance sheet
# =============================================================================


class BalanceSheetSection(str, Enum):
    CURRENT_ASSETS = "current_assets"
    NON_CURRENT_ASSETS = "non_current_assets"
    CURRENT_LIABILITIES = "current_liabilities"
    NON_CURRENT_LIABILITIES = "non_current_liabilities"
    EQUITY = "equity"


def classify_for_balance_sheet(
    account_class: AccountClass,
    code: str,
    is_current: bool | None = None,
) -> BalanceSheetSection | None:
    """
    Balance sheet section of an account, or None for revenue/expense.

    The ``is_current`` flag wins when set; otherwise codes below 2000 are
    current assets and codes below 4000 current liabilities.
    """
    if account_class == AccountClass.ASSET:
        current = is_current if is_current is not None else code < CURRENT_ASSET_CODE_LIMIT
        return BalanceSheetSection.CURRENT_ASSETS if current else BalanceSheetSection.NON_CURRENT_ASSETS
    if account_class == AccountClass.LIABILITY:
        current = is_current if is_current is not None else code < CURRENT_LIABILITY_CODE_LIMIT
        return (
            BalanceSheetSection.CURRENT_LIABILITIES
            if current
            else BalanceSheetSection.NON_CURRENT_LIABILITIES
        )
    if account_class == AccountClass.EQUITY:
        return BalanceSheetSection.EQUITY
    return None


@dataclass(frozen=True)
class StatementLine:
    account_id: UUID
    code: str
    name: str
    amount: Decimal


@dataclass(frozen=True)
class BalanceSheetData:
    current_assets: tuple[StatementLine, ...]
    non_current_assets: tuple[StatementLine, ...]
    current_liabilities: tuple[StatementLine, ...]
    non_current_liabilities: tuple[StatementLine, ...]
    equity: tuple[StatementLine, ...]
    current_result: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    is_balanced: bool

    def section(self, kind: BalanceSheetSection) -> tuple[StatementLine, ...]:
        return getattr(self, kind.value)


def _total(lines: Iterable[StatementLine]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)


def build_balance_sheet(trial_balance: TrialBalanceData) -> BalanceSheetData:
    """
    Partition balance sheet accounts by section.

    Asset amounts are closing debit minus closing credit; liability and
    equity amounts closing credit minus closing debit.  Revenue and expense
    closing balances are summed into ``current_result`` and added to
    equity.
    """
    sections: dict[BalanceSheetSection, list[StatementLine]] = {s: [] for s in BalanceSheetSection}
    current_result = ZERO

    for row in trial_balance.accounts:
        debit_net = row.closing_debit - row.closing_credit
        if row.account_class in (AccountClass.REVENUE, AccountClass.EXPENSE):
            current_result -= debit_net
            continue
        section = classify_for_balance_sheet(row.account_class, row.code, row.is_current)
        amount = debit_net if row.account_class == AccountClass.ASSET else -debit_net
        if amount == ZERO:
            continue
        sections[section].append(StatementLine(row.account_id, row.code, row.name, amount))

    total_assets = _total(sections[BalanceSheetSection.CURRENT_ASSETS]) + _total(
        sections[BalanceSheetSection.NON_CURRENT_ASSETS]
    )
    total_liabilities = _total(sections[BalanceSheetSection.CURRENT_LIABILITIES]) + _total(
        sections[BalanceSheetSection.NON_CURRENT_LIABILITIES]
    )
    total_equity = _total(sections[BalanceSheetSection.EQUITY]) + current_result

    return BalanceSheetData(
        current_assets=tuple(sections[BalanceSheetSection.CURRENT_ASSETS]),
        non_current_assets=tuple(sections[BalanceSheetSection.NON_CURRENT_ASSETS]),
        current_liabilities=tuple(sections[BalanceSheetSection.CURRENT_LIABILITIES]),
        non_current_liabilities=tuple(sections[BalanceSheetSection.NON_CURRENT_LIABILITIES]),
        equity=tuple(sections[BalanceSheetSection.EQUITY]),
        current_result=current_result,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        is_balanced=within_tolerance(total_assets, total_liabilities + total_equity),
    )


# =============================================================================
# Profit and loss
# =============================================================================


@dataclass(frozen=True)
class ProfitLossData:
    revenue: tuple[StatementLine, ...] = field(default_factory=tuple)
    expenses: tuple[StatementLine, ...] = field(default_factory=tuple)
    total_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO


def build_profit_loss(trial_balance: TrialBalanceData) -> ProfitLossData:
    """
    Period-flow statement from turnovers only.

    revenue = Σ(turnover_credit - turnover_debit) over revenue accounts;
    expenses = Σ(turnover_debit - turnover_credit) over expense accounts.
    """
    revenue: list[StatementLine] = []
    expenses: list[StatementLine] = []
    for row in trial_balance.accounts:
        if row.account_class == AccountClass.REVENUE:
            amount = row.turnover_credit - row.turnover_debit
            target = revenue
        elif row.account_class == AccountClass.EXPENSE:
            amount = row.turnover_debit - row.turnover_credit
            target = expenses
        else:
            continue
        if amount != ZERO:
            target.append(StatementLine(row.account_id, row.code, row.name, amount))

    total_revenue = _total(revenue)
    total_expenses = _total(expenses)
    return ProfitLossData(
        revenue=tuple(revenue),
        expenses=tuple(expenses),
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=total_revenue - total_expenses,
    )
