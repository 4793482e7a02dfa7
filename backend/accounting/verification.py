# accounting/verification.py
"""
Ledger verification sweep.

Journal lines are the source of truth; ``Account.current_balance`` is a
running total that can always be recomputed:

    expected = opening_balance + sum(debit - credit) over POSTED entries

REVERSED entries contribute nothing (posting plus its exact negation).
The sweep reports every account whose stored balance differs from the
expected one, optionally repairs it, lists quarantined entries, and
checks that every posted entry still balances.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from accounting.balances import ZERO
from accounting.models import Account, JournalEntry, JournalLine

logger = logging.getLogger(__name__)


def expected_balances(company) -> dict[int, Decimal]:
    rows = (
        JournalLine.objects.filter(company=company, entry__status=JournalEntry.Status.POSTED)
        .values("account_id")
        .annotate(total_debit=Sum("debit"), total_credit=Sum("credit"))
    )
    deltas = {r["account_id"]: (r["total_debit"] or ZERO) - (r["total_credit"] or ZERO) for r in rows}
    return {
        a.id: a.opening_balance + deltas.get(a.id, ZERO)
        for a in Account.objects.filter(company=company)
    }


def unbalanced_posted_entries(company) -> list[dict]:
    rows = (
        JournalLine.objects.filter(company=company, entry__status=JournalEntry.Status.POSTED)
        .values("entry_id", "entry__reference")
        .annotate(total_debit=Sum("debit"), total_credit=Sum("credit"))
    )
    return [
        {
            "entry_id": r["entry_id"],
            "reference": r["entry__reference"],
            "total_debit": str(r["total_debit"]),
            "total_credit": str(r["total_credit"]),
        }
        for r in rows
        if abs((r["total_debit"] or ZERO) - (r["total_credit"] or ZERO)) >= Decimal("0.01")
    ]


def verify_ledger_balances(company, repair: bool = False) -> dict:
    """
    Compare stored running balances against a full replay.

    Returns:
        {
            "total_accounts": 20,
            "verified": 19,
            "mismatches": [{"account_code", "stored", "expected", "difference"}],
            "repaired": 0,
            "unbalanced_entries": [...],
            "quarantined_entries": [{"id", "reference", "reason"}],
        }
    """
    with transaction.atomic():
        accounts = {
            a.id: a
            for a in Account.objects.select_for_update().filter(company=company).order_by("id")
        }
        expected = expected_balances(company)

        mismatches = []
        repaired = 0
        for account_id, account in accounts.items():
            should_be = expected.get(account_id, account.opening_balance)
            if account.current_balance == should_be:
                continue
            mismatches.append({
                "account_code": account.code,
                "stored": str(account.current_balance),
                "expected": str(should_be),
                "difference": str(account.current_balance - should_be),
            })
            if repair:
                Account.objects.filter(pk=account_id).update(current_balance=should_be)
                repaired += 1

    quarantined = [
        {"id": e.id, "reference": e.reference, "reason": e.quarantine_reason}
        for e in JournalEntry.objects.filter(company=company, is_quarantined=True).order_by("id")
    ]
    unbalanced = unbalanced_posted_entries(company)

    if mismatches or unbalanced:
        logger.error(
            "Ledger verification found problems",
            extra={
                "company_id": company.id,
                "mismatch_count": len(mismatches),
                "repaired": repaired,
                "unbalanced_count": len(unbalanced),
            },
        )
    else:
        logger.info(
            "Ledger verification passed",
            extra={"company_id": company.id, "account_count": len(accounts)},
        )

    return {
        "total_accounts": len(accounts),
        "verified": len(accounts) - len(mismatches),
        "mismatches": mismatches,
        "repaired": repaired,
        "unbalanced_entries": unbalanced,
        "quarantined_entries": quarantined,
    }


def release_quarantine(company, entry_id: int) -> bool:
    """Clear the quarantine flag after manual review. Returns False if nothing was flagged."""
    updated = JournalEntry.objects.filter(
        company=company,
        pk=entry_id,
        is_quarantined=True,
    ).update(is_quarantined=False, quarantine_reason="")
    if updated:
        logger.warning(
            "Journal entry released from quarantine",
            extra={"company_id": company.id, "entry_id": entry_id},
        )
    return bool(updated)
