"""
kazbooks_kernel -- double-entry ledger core for Kazakhstan small businesses.

Chart of accounts, accounting periods, journal posting and ledger reads.
Pure calculation engines live in ``kazbooks_engines``; YAML configuration in
``kazbooks_config``; orchestration for reports and payroll in
``kazbooks_modules``.
"""
