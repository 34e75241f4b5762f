"""
kazbooks_engines -- pure calculation engines.

Aggregation (trial balance, balance sheet, profit and loss), payroll tax
calculation and payroll journal line generation, VAT helpers.  No I/O, no
ORM: every function takes domain values and returns frozen dataclasses.
"""
