"""
kazbooks_modules -- application services composed from the kernel, the
engines and configuration: financial reporting and payroll posting.
"""
