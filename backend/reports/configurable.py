# reports/configurable.py
"""
Configurable period reports: Profit & Loss and Cash Flow.

Line items name account codes; codes are resolved to this company's
accounts at run time and codes the company does not have are ignored.

Cash Flow section totals come from the transaction-level drill-down:
every entry (or reversal) that moves a designated cash account is attributed,
through its first non-cash (counter) account, to the section whose line
items list that account's code. Line items still show the period movement
of their own accounts, signed by the item's ``sign``.
"""

from collections import defaultdict
from datetime import timedelta

from django.db.models import Q
from django.utils import timezone

from accounting.balances import ZERO, balances_as_of, money, period_movements
from accounting.models import Account, JournalEntry, JournalLine
from reports.configs import CashFlowConfig, PnLConfig, resolve_config
from reports.statements import normalize_period

CASH_THRESHOLD = money("0.01")

PNL_SECTION_TITLES = {
    "revenue": "Revenue",
    "cogs": "Cost of Goods Sold",
    "operating_expenses": "Operating Expenses",
    "other_income": "Other Income",
    "other_expenses": "Other Expenses",
}

CASH_FLOW_SECTION_TITLES = {
    "operating": "Operating Activities",
    "investing": "Investing Activities",
    "financing": "Financing Activities",
}


def _accounts_by_code(company, codes) -> dict:
    return {a.code: a for a in Account.objects.filter(company=company, code__in=list(codes))}


# =============================================================================
# Profit & Loss
# =============================================================================

def _pnl_amount(account: Account, delta):
    if account.account_type == Account.AccountType.INCOME:
        return -delta
    if account.account_type == Account.AccountType.EXPENSE:
        return delta
    return account.signed_balance(delta)


def _pnl_section(items, by_code, movements, title) -> dict:
    line_items = []
    for item in items:
        detail = []
        amount = ZERO
        for code in item.account_codes:
            account = by_code.get(code)
            if account is None:
                continue
            value = _pnl_amount(account, movements.get(account.id, ZERO))
            amount += value
            detail.append({"code": account.code, "name": account.name, "amount": money(value)})
        line_items.append({
            "label": item.label,
            "account_codes": list(item.account_codes),
            "amount": money(amount),
            "accounts": detail,
        })
    return {
        "title": title,
        "line_items": line_items,
        "total": money(sum((li["amount"] for li in line_items), ZERO)),
    }


def profit_and_loss(company, date_from, date_to, config: dict = None) -> dict:
    """
    Period P&L:

        gross_profit     = revenue - cogs
        operating_income = gross_profit - operating_expenses
        net_income       = operating_income + other_income - other_expenses
    """
    start, end = normalize_period(date_from, date_to)
    pnl_config, used_default = resolve_config(company, "PROFIT_LOSS", config)

    by_code = _accounts_by_code(company, pnl_config.all_codes())
    movements = period_movements(company, start, end)

    sections = {
        name: _pnl_section(getattr(pnl_config, name), by_code, movements, PNL_SECTION_TITLES[name])
        for name in PnLConfig.SECTIONS
    }

    gross_profit = sections["revenue"]["total"] - sections["cogs"]["total"]
    operating_income = gross_profit - sections["operating_expenses"]["total"]
    net_income = operating_income + sections["other_income"]["total"] - sections["other_expenses"]["total"]

    return {
        "title": "Profit & Loss",
        "period": {"from": start, "to": end},
        **sections,
        "gross_profit": money(gross_profit),
        "operating_income": money(operating_income),
        "net_income": money(net_income),
        "used_default_config": used_default,
    }


# =============================================================================
# Cash Flow
# =============================================================================

def cash_transactions(company, start, end, cash_ids: set, cf_config: CashFlowConfig) -> dict:
    """
    Drill-down: one item per entry whose cash effect changed during the period.

    Items follow the as-of rule, so opening cash plus the items equals the
    as-of cash balance at ``end``:

    - entries dated in the period and still in effect at its end
    - reversals made in the period of entries dated before it, as a
      negative item dated on the reversal day

    ``amount`` is the net (debit - credit) on the cash accounts; the counter
    account is the entry's first non-cash line. Entries whose cash lines net
    to zero, or that only touch cash accounts, are skipped.
    """
    items = {name: [] for name in CashFlowConfig.SECTIONS}
    if not cash_ids:
        return items

    Status = JournalEntry.Status
    in_period = Q(date__gte=start, date__lte=end)
    entries = (
        JournalEntry.objects.filter(company=company, lines__account_id__in=cash_ids)
        .filter(
            Q(in_period, status=Status.POSTED)
            | Q(in_period, status=Status.REVERSED, reversed_at__date__gt=end)
            | Q(
                status=Status.REVERSED,
                date__lt=start,
                reversed_at__date__gte=start,
                reversed_at__date__lte=end,
            )
        )
        .distinct()
        .order_by("date", "id")
    )
    lines_by_entry = defaultdict(list)
    for line in (
        JournalLine.objects.filter(entry__in=entries)
        .select_related("account")
        .order_by("entry_id", "line_no")
    ):
        lines_by_entry[line.entry_id].append(line)

    for entry in entries:
        cash_amount = ZERO
        counter = None
        for line in lines_by_entry[entry.id]:
            if line.account_id in cash_ids:
                cash_amount += line.delta
            elif counter is None:
                counter = line.account
        if counter is None or abs(cash_amount) < CASH_THRESHOLD:
            continue

        reversal = entry.status == Status.REVERSED and entry.date < start
        if reversal:
            cash_amount = -cash_amount

        items[cf_config.section_for_code(counter.code)].append({
            "entry_id": entry.id,
            "reference": entry.reference,
            "date": timezone.localdate(entry.reversed_at) if reversal else entry.date,
            "description": f"Reversal: {entry.description}" if reversal else entry.description,
            "is_reversal": reversal,
            "account_code": counter.code,
            "account_name": counter.name,
            "account_type": counter.account_type,
            "amount": money(cash_amount),
        })
    return items


def _cash_line_items(items, by_code, movements) -> list:
    line_items = []
    for item in items:
        detail = []
        amount = ZERO
        for code in item.account_codes:
            account = by_code.get(code)
            if account is None:
                continue
            value = movements.get(account.id, ZERO)
            if item.is_negative:
                value = -value
            amount += value
            detail.append({"code": account.code, "name": account.name, "amount": money(value)})
        line_items.append({
            "label": item.label,
            "account_codes": list(item.account_codes),
            "sign": item.sign,
            "amount": money(amount),
            "accounts": detail,
        })
    return line_items


def cash_flow(company, date_from, date_to, config: dict = None) -> dict:
    """
    Period cash flow statement.

        net_cash_flow        = operating + investing + financing
        closing_cash_balance = opening_cash_balance + net_cash_flow

    Opening cash is the as-of balance of the cash accounts at the end of
    the day before the period starts.
    """
    start, end = normalize_period(date_from, date_to)
    cf_config, used_default = resolve_config(company, "CASH_FLOW", config)

    by_code = _accounts_by_code(company, cf_config.all_codes() | set(cf_config.cash_account_codes))
    cash_accounts = [by_code[c] for c in cf_config.cash_account_codes if c in by_code]
    cash_ids = {a.id for a in cash_accounts}

    opening_balances = balances_as_of(company, start - timedelta(days=1), cash_accounts)
    opening_cash = money(sum(opening_balances.values(), ZERO))

    movements = period_movements(company, start, end)
    transactions = cash_transactions(company, start, end, cash_ids, cf_config)

    sections = {}
    for name in CashFlowConfig.SECTIONS:
        sections[name] = {
            "title": CASH_FLOW_SECTION_TITLES[name],
            "line_items": _cash_line_items(getattr(cf_config, name), by_code, movements),
            "transactions": transactions[name],
            "total": money(sum((t["amount"] for t in transactions[name]), ZERO)),
        }

    net_cash_flow = money(sum((s["total"] for s in sections.values()), ZERO))
    return {
        "title": "Cash Flow",
        "period": {"from": start, "to": end},
        "opening_cash_balance": opening_cash,
        **sections,
        "net_cash_flow": net_cash_flow,
        "closing_cash_balance": money(opening_cash + net_cash_flow),
        "used_default_config": used_default,
    }
