"""
Financial Reporting Module (``kazbooks_modules.reporting``).

Read-only: builds the trial balance (ОСВ), balance sheet and profit and
loss statement of one accounting period from the posted journal.  No
journal entries are created here.
"""

from kazbooks_modules.reporting.models import ReportKind, ReportRequest, ReportResult
from kazbooks_modules.reporting.service import ReportingService

__all__ = ["ReportKind", "ReportRequest", "ReportResult", "ReportingService"]
