"""
Payroll Module (``kazbooks_modules.payroll``).

Calculates statutory payroll amounts with the tax settings of the pay
date's year and posts the resulting accrual through the journal.
"""

from kazbooks_modules.payroll.service import PayrollPostingService

__all__ = ["PayrollPostingService"]
