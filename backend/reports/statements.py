# reports/statements.py
"""
Fixed-layout statements.

Point-in-time (Balance Resolver, "current" unless an as-of date is given):
- Trial Balance
- Balance Sheet
- Inventory Valuation

Period (posted movements in [date_from, date_to]):
- Net Income

Every builder is a pure read: no locks, no writes. Amounts are Decimal;
views stringify them. An empty ledger yields zero totals.
"""

from decimal import Decimal

from django.utils import timezone

from accounting.balances import ZERO, balances_as_of, money, period_movements, split_columns, to_date
from accounting.exceptions import LedgerValidationError
from accounting.hierarchy import AccountForest
from accounting.models import Account

REPORT_TOLERANCE = Decimal("0.02")
DISPLAY_THRESHOLD = Decimal("0.01")


def _accounts(company):
    return list(Account.objects.filter(company=company).order_by("code"))


def normalize_period(date_from, date_to):
    """Parse and check a reporting period. Both ends are inclusive whole days."""
    try:
        start, end = to_date(date_from), to_date(date_to)
    except ValueError as exc:
        raise LedgerValidationError(f"Invalid period date: {exc}")
    if start is None or end is None:
        raise LedgerValidationError("Both period dates (from, to) are required.")
    if start > end:
        raise LedgerValidationError("Period start must not be after period end.")
    return start, end


def _as_of(as_of_date):
    try:
        return to_date(as_of_date)
    except ValueError as exc:
        raise LedgerValidationError(f"Invalid as-of date: {exc}")


def trial_balance(company, as_of_date=None) -> dict:
    """
    Every account with its balance split into debit/credit columns.

    ``is_balanced`` when the column totals agree within 0.02; otherwise the
    gap is reported as ``difference``.
    """
    as_of = _as_of(as_of_date)
    accounts = _accounts(company)
    balances = balances_as_of(company, as_of, accounts)

    rows = []
    total_debit = ZERO
    total_credit = ZERO
    for account in accounts:
        debit, credit = split_columns(account, balances[account.id])
        total_debit += debit
        total_credit += credit
        rows.append({
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "account_type": account.account_type,
            "debit": money(debit),
            "credit": money(credit),
        })

    report = {
        "title": "Trial Balance",
        "as_of": as_of or timezone.localdate(),
        "accounts": rows,
        "total_debit": money(total_debit),
        "total_credit": money(total_credit),
    }
    difference = abs(report["total_debit"] - report["total_credit"])
    report["is_balanced"] = difference < REPORT_TOLERANCE
    if not report["is_balanced"]:
        report["difference"] = money(difference)
    return report


def _section(accounts, balances, account_type: str, title: str) -> dict:
    rows = []
    for account in accounts:
        if account.account_type != account_type:
            continue
        amount = money(account.signed_balance(balances[account.id]))
        if abs(amount) < DISPLAY_THRESHOLD:
            continue
        rows.append({
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "balance": amount,
        })
    return {
        "title": title,
        "accounts": rows,
        "total": money(sum((r["balance"] for r in rows), ZERO)),
    }


def balance_sheet(company, as_of_date=None) -> dict:
    """
    Assets, liabilities and equity as of a date, with the net income
    accumulated up to that date folded into equity.

    Assets = Liabilities + Equity + Net Income (within 0.02).
    """
    as_of = _as_of(as_of_date)
    accounts = _accounts(company)
    balances = balances_as_of(company, as_of, accounts)

    assets = _section(accounts, balances, Account.AccountType.ASSET, "Total Assets")
    liabilities = _section(accounts, balances, Account.AccountType.LIABILITY, "Total Liabilities")
    equity = _section(accounts, balances, Account.AccountType.EQUITY, "Total Equity")

    revenue = sum(
        (-balances[a.id] for a in accounts if a.account_type == Account.AccountType.INCOME),
        ZERO,
    )
    expenses = sum(
        (balances[a.id] for a in accounts if a.account_type == Account.AccountType.EXPENSE),
        ZERO,
    )
    net_income = money(revenue - expenses)

    total_liabilities_and_equity = money(liabilities["total"] + equity["total"] + net_income)
    difference = abs(assets["total"] - total_liabilities_and_equity)

    report = {
        "title": "Balance Sheet",
        "as_of": as_of or timezone.localdate(),
        "assets": assets,
        "liabilities": liabilities,
        "equity": equity,
        "net_income": net_income,
        "total_assets": assets["total"],
        "total_liabilities": liabilities["total"],
        "total_equity": equity["total"],
        "total_liabilities_and_equity": total_liabilities_and_equity,
        "is_balanced": difference < REPORT_TOLERANCE,
    }
    if not report["is_balanced"]:
        report["difference"] = money(difference)
    return report


def net_income(company, date_from, date_to) -> dict:
    """Revenue (credits to INCOME) less expenses (debits to EXPENSE) for a period."""
    start, end = normalize_period(date_from, date_to)
    movements = period_movements(company, start, end)

    revenue = ZERO
    expenses = ZERO
    for account in Account.objects.filter(
        company=company,
        account_type__in=[Account.AccountType.INCOME, Account.AccountType.EXPENSE],
    ):
        delta = movements.get(account.id, ZERO)
        if account.account_type == Account.AccountType.INCOME:
            revenue += -delta
        else:
            expenses += delta

    return {
        "title": "Net Income",
        "period": {"from": start, "to": end},
        "revenue": money(revenue),
        "expenses": money(expenses),
        "net_income": money(revenue - expenses),
    }


def inventory_valuation(company, as_of_date=None, parent_code: str = None) -> dict:
    """
    As-of balances of ASSET accounts, optionally limited to the subtree
    rooted at ``parent_code`` (the parent included).
    """
    as_of = _as_of(as_of_date)
    accounts = [a for a in _accounts(company) if a.account_type == Account.AccountType.ASSET]

    if parent_code:
        forest = AccountForest.for_company(company)
        subtree = forest.subtree_codes(parent_code)
        accounts = [a for a in accounts if a.code in subtree]

    balances = balances_as_of(company, as_of, accounts)
    rows = [
        {
            "account_id": a.id,
            "code": a.code,
            "name": a.name,
            "balance": money(balances[a.id]),
        }
        for a in accounts
    ]
    return {
        "title": "Inventory Valuation",
        "as_of": as_of or timezone.localdate(),
        "parent_code": parent_code,
        "rows": rows,
        "total_value": money(sum((r["balance"] for r in rows), ZERO)),
    }
