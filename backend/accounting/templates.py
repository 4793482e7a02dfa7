# accounting/templates.py
"""
Industry chart-of-accounts templates.

The codes here are the ones the default P&L and Cash Flow configurations
(reports.configs) are keyed to.
"""

ASSET = "ASSET"
LIABILITY = "LIABILITY"
EQUITY = "EQUITY"
INCOME = "INCOME"
EXPENSE = "EXPENSE"

_BASE = [
    # Assets
    {"code": "1000", "name": "Current Assets", "type": ASSET},
    {"code": "1001", "name": "Cash", "type": ASSET, "parent_code": "1000"},
    {"code": "1002", "name": "Bank", "type": ASSET, "parent_code": "1000"},
    {"code": "1100", "name": "Accounts Receivable", "type": ASSET, "parent_code": "1000"},
    {"code": "1400", "name": "Equipment and Fixed Assets", "type": ASSET},
    {"code": "1500", "name": "GST Input Credit", "type": ASSET, "tax_role": "INPUT_TAX"},
    # Liabilities
    {"code": "2000", "name": "Accounts Payable", "type": LIABILITY},
    {"code": "2100", "name": "Short-Term Loans", "type": LIABILITY},
    {"code": "2200", "name": "GST Output Payable", "type": LIABILITY, "tax_role": "OUTPUT_TAX"},
    {"code": "2300", "name": "Long-Term Debt", "type": LIABILITY},
    # Equity
    {"code": "3000", "name": "Owner's Capital", "type": EQUITY},
    {"code": "3100", "name": "Retained Earnings", "type": EQUITY},
    # Income
    {"code": "4000", "name": "Sales Revenue", "type": INCOME},
    {"code": "4100", "name": "Sales Returns", "type": INCOME},
    {"code": "4200", "name": "Other Income", "type": INCOME},
    # Expenses
    {"code": "5000", "name": "Cost of Goods Sold", "type": EXPENSE},
    {"code": "5100", "name": "Salaries and Wages", "type": EXPENSE},
    {"code": "5200", "name": "Rent Expense", "type": EXPENSE},
    {"code": "5300", "name": "Utilities Expense", "type": EXPENSE},
    {"code": "5400", "name": "Advertising Expense", "type": EXPENSE},
    {"code": "5500", "name": "Depreciation Expense", "type": EXPENSE},
    {"code": "5600", "name": "Interest Expense", "type": EXPENSE},
]

_RETAIL = [
    {"code": "1200", "name": "Inventory", "type": ASSET, "parent_code": "1000"},
    {"code": "1201", "name": "Merchandise Inventory", "type": ASSET, "parent_code": "1200"},
]

_SERVICE = [
    {"code": "1150", "name": "Unbilled Receivables", "type": ASSET, "parent_code": "1000"},
    {"code": "4300", "name": "Service Revenue", "type": INCOME},
]

_MANUFACTURING = [
    {"code": "1200", "name": "Inventory", "type": ASSET, "parent_code": "1000"},
    {"code": "1210", "name": "Raw Materials", "type": ASSET, "parent_code": "1200"},
    {"code": "1220", "name": "Work in Progress", "type": ASSET, "parent_code": "1200"},
    {"code": "1230", "name": "Finished Goods", "type": ASSET, "parent_code": "1200"},
    {"code": "5050", "name": "Factory Overhead", "type": EXPENSE},
]

TEMPLATES = {
    "retail": _BASE + _RETAIL,
    "service": _BASE + _SERVICE,
    "manufacturing": _BASE + _MANUFACTURING,
}

ALIASES = {"serviceBased": "service"}

INDUSTRIES = tuple(TEMPLATES)


def get_template(industry: str) -> list[dict]:
    """Template rows for an industry, parents before children. Raises KeyError."""
    key = ALIASES.get(industry, industry)
    return [dict(row) for row in TEMPLATES[key]]
