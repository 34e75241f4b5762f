"""
Reporting request and result value objects.

All models are frozen; report payloads are the frozen dataclasses built by
``kazbooks_engines.aggregation``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union
from uuid import UUID

from kazbooks_engines.aggregation import BalanceSheetData, ProfitLossData, TrialBalanceData
from kazbooks_kernel.domain.dtos import PeriodInfo


class ReportKind(str, Enum):
    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_LOSS = "profit_loss"


ReportData = Union[TrialBalanceData, BalanceSheetData, ProfitLossData]


@dataclass(frozen=True)
class ReportRequest:
    """One report of one kind for one tenant's accounting period."""

    kind: ReportKind
    tenant_id: UUID
    period_id: UUID


@dataclass(frozen=True)
class ReportResult:
    kind: ReportKind
    period: PeriodInfo
    generated_at: datetime
    data: ReportData
