# reports/__init__.py
"""
Reports app - financial statements derived from the posted ledger.

Reports never mutate ledger state. The only table owned here is
ReportConfiguration (saved P&L / Cash Flow layouts per company).
"""
