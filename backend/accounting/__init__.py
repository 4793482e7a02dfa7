# accounting/__init__.py
"""
Accounting app - double-entry bookkeeping.

This app provides:
- Account: Chart of Accounts as a parent-pointer forest
- JournalEntry: Double-entry entries with a DRAFT -> POSTED -> REVERSED lifecycle
- JournalLine: Debit/credit lines

Commands handle all mutations; the journal engine is the only writer of
running balances.
"""
