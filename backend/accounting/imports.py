# accounting/imports.py
"""
Tabular journal import.

One CSV row per journal line, account referenced by its code:

    date,reference,description,accountCode,debit,credit,narration

Consecutive rows sharing (date, reference) form one entry. Row numbers in
errors are 1-based data rows (the header is not counted). A bad row or a
bad entry is reported and skipped; every valid entry is still created.
"""

import csv
import io
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings

from accounts.authz import ActorContext, require
from accounting.commands import BALANCE_TOLERANCE, CommandResult, create_journal_entry
from accounting.models import Account, JournalEntry

logger = logging.getLogger(__name__)

IMPORT_HEADERS = ["date", "reference", "description", "accountCode", "debit", "credit", "narration"]

TEMPLATE_ROWS = [
    ["2026-02-12", "JV-001", "Capital contribution", "1001", "10000", "0", "Cash received"],
    ["2026-02-12", "JV-001", "Capital contribution", "3000", "0", "10000", "Capital contribution"],
]


def template_csv() -> str:
    """Downloadable example file for the import."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(IMPORT_HEADERS)
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()


def _amount(raw) -> Decimal:
    raw = (raw or "").strip()
    if not raw:
        return Decimal("0")
    amount = Decimal(raw)
    if not amount.is_finite():
        raise InvalidOperation(raw)
    return amount


def parse_rows(content: str) -> list[tuple[int, dict]]:
    """
    Parse CSV text into ``(row, fields)`` pairs keyed by the header row.

    ``row`` is the data line number in the file (the line after the header
    is 1), so blank lines are skipped but still counted.
    """
    if content.startswith("\ufeff"):
        content = content[1:]
    reader = csv.DictReader(io.StringIO(content))
    rows = []
    for raw in reader:
        if not any((v or "").strip() for v in raw.values() if isinstance(v, str)):
            continue
        fields = {(k or "").strip(): (v or "").strip() for k, v in raw.items() if isinstance(v, str)}
        rows.append((reader.line_num - 1, fields))
    return rows


def group_rows(rows: list[tuple[int, dict]]) -> tuple[list[dict], list[dict]]:
    """
    Group consecutive rows with the same (date, reference).

    Returns (groups, errors). Each group is
    ``{"row", "date", "reference", "description", "lines"}`` where ``row`` is
    the first data row of the group.
    """
    groups = []
    errors = []
    current = None
    for row_no, row in rows:
        date = row.get("date", "")
        reference = row.get("reference", "")
        account_code = row.get("accountCode") or row.get("account_code", "")

        if not date or not reference or not account_code:
            errors.append({
                "row": row_no,
                "reference": reference or "(blank)",
                "message": "date, reference, and accountCode are required",
            })
            current = None
            continue

        try:
            debit = _amount(row.get("debit"))
            credit = _amount(row.get("credit"))
        except InvalidOperation:
            errors.append({
                "row": row_no,
                "reference": reference,
                "message": "debit and credit must be numbers",
            })
            current = None
            continue

        key = (date, reference)
        if current is None or current["key"] != key:
            current = {
                "key": key,
                "row": row_no,
                "date": date,
                "reference": reference,
                "description": row.get("description", ""),
                "lines": [],
            }
            groups.append(current)
        current["lines"].append({
            "account_code": account_code,
            "debit": debit,
            "credit": credit,
            "narration": row.get("narration", ""),
        })
    return groups, errors


def _check_group(group: dict, known_codes: set) -> str:
    if len(group["lines"]) < 2:
        return "Each entry must have at least 2 lines (same date+reference)"
    missing = sorted({l["account_code"] for l in group["lines"]} - known_codes)
    if missing:
        return f"Unknown accountCode(s): {', '.join(missing)}"
    total_debit = sum((l["debit"] for l in group["lines"]), Decimal("0"))
    total_credit = sum((l["credit"] for l in group["lines"]), Decimal("0"))
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        return f"Debits ({total_debit}) must equal credits ({total_credit})"
    return ""


def import_journal_csv(actor: ActorContext, content: str) -> CommandResult:
    """
    Import journal entries from CSV text.

    Entries get the default status for the actor's privilege.

    Returns:
        CommandResult with {"created": [JournalEntry], "count": int,
        "errors": [{"row", "reference", "message"}]}
    """
    require(actor, "journal.import")

    rows = parse_rows(content)
    max_rows = getattr(settings, "LEDGER_IMPORT_MAX_ROWS", 5000)
    if len(rows) > max_rows:
        return CommandResult.fail(f"Import is limited to {max_rows} rows.")

    groups, errors = group_rows(rows)

    all_codes = {l["account_code"] for g in groups for l in g["lines"]}
    known_codes = set(
        Account.objects.filter(company=actor.company, code__in=all_codes).values_list("code", flat=True)
    )

    created = []
    for group in groups:
        problem = _check_group(group, known_codes)
        if problem:
            errors.append({"row": group["row"], "reference": group["reference"], "message": problem})
            continue

        result = create_journal_entry(
            actor,
            date=group["date"],
            reference=group["reference"],
            lines=group["lines"],
            description=group["description"],
            source=JournalEntry.Source.IMPORT,
        )
        if result.success:
            created.append(result.data)
        else:
            errors.append({"row": group["row"], "reference": group["reference"], "message": result.error})

    errors.sort(key=lambda e: e["row"])
    logger.info(
        "Journal CSV imported",
        extra={
            "company_id": actor.company.id,
            "rows": len(rows),
            "created_count": len(created),
            "errors": len(errors),
        },
    )
    return CommandResult.ok({"created": created, "count": len(created), "errors": errors})
