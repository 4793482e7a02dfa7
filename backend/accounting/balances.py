# accounting/balances.py
"""
Balance Resolver.

Two ways to read an account balance:

- current: ``Account.current_balance``, maintained by the Journal Engine
- as of a date: ``opening_balance + sum(debit - credit)`` over lines of
  entries dated on or before that date that were in effect on that date

Stored balances are raw (debit - credit). ``normal_balance`` is applied
only here, at read time: ``signed_balance`` makes an increase on the
account's normal side positive, ``split_columns`` produces trial-balance
debit/credit columns.

An entry reversed after the as-of date still counts for that date
(``reversed_at`` is later than the date asked about). Period movements only
count entries that are POSTED now.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models import Account, JournalEntry, JournalLine

ZERO = Decimal("0.00")
MONEY_Q = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize to two decimal places."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_Q)


def to_date(value) -> Optional[date]:
    """Normalize a date/datetime/ISO string to a date (end-of-day semantics)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def signed_balance(account: Account, raw: Decimal) -> Decimal:
    """Interpret a raw balance so that the account's normal side is positive."""
    return account.signed_balance(raw)


def split_columns(account: Account, raw: Decimal) -> tuple[Decimal, Decimal]:
    """
    Split a raw balance into (debit, credit) trial-balance columns.

    A positive signed balance sits on the account's normal side; a negative
    one sits on the opposite side.
    """
    signed = signed_balance(account, raw)
    if account.is_debit_normal:
        if signed >= 0:
            return signed, ZERO
        return ZERO, -signed
    if signed >= 0:
        return ZERO, signed
    return -signed, ZERO


def _effective_on(as_of: date) -> Q:
    """Entries whose posting effect was in place at the end of ``as_of``."""
    return Q(entry__status=JournalEntry.Status.POSTED) | Q(
        entry__status=JournalEntry.Status.REVERSED,
        entry__reversed_at__date__gt=as_of,
    )


def _sum_deltas(lines) -> dict[int, Decimal]:
    rows = lines.values("account_id").annotate(
        total_debit=Sum("debit"),
        total_credit=Sum("credit"),
    )
    return {
        row["account_id"]: (row["total_debit"] or ZERO) - (row["total_credit"] or ZERO)
        for row in rows
    }


def deltas_as_of(company, as_of_date) -> dict[int, Decimal]:
    """Raw (debit - credit) per account for everything in effect on ``as_of_date``."""
    as_of = to_date(as_of_date)
    lines = JournalLine.objects.filter(
        company=company,
        entry__date__lte=as_of,
    ).filter(_effective_on(as_of))
    return _sum_deltas(lines)


def balances_as_of(
    company,
    as_of_date=None,
    accounts: Optional[Iterable[Account]] = None,
) -> dict[int, Decimal]:
    """
    Raw balance per account id.

    With no ``as_of_date`` the running balances are returned as stored.
    """
    if accounts is None:
        accounts = Account.objects.filter(company=company)
    if as_of_date is None:
        return {a.id: a.current_balance for a in accounts}

    deltas = deltas_as_of(company, as_of_date)
    return {a.id: a.opening_balance + deltas.get(a.id, ZERO) for a in accounts}


def account_balance(account: Account, as_of_date=None) -> Decimal:
    """Raw balance of a single account, current or as of a date."""
    if as_of_date is None:
        return account.current_balance
    return balances_as_of(account.company, as_of_date, accounts=[account])[account.id]


def period_movements(company, date_from, date_to) -> dict[int, Decimal]:
    """
    Raw (debit - credit) per account over POSTED entries dated in
    ``[date_from, date_to]``; ``date_to`` covers the whole day.
    """
    lines = JournalLine.objects.filter(
        company=company,
        entry__status=JournalEntry.Status.POSTED,
        entry__date__gte=to_date(date_from),
        entry__date__lte=to_date(date_to),
    )
    return _sum_deltas(lines)
