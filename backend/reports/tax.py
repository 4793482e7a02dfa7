# reports/tax.py
"""
GST reports.

- gst_summary: basic GSTR-3B pre-fill (tables 3.1 and 4) from posted
  period activity.
- reconcile_gstr2b: match an uploaded GSTR-2B statement against the input
  tax credit booked in the ledger.

Tax accounts are identified by ``Account.tax_role``. A company that has not
tagged any account for a role falls back to matching account names:

    output tax  LIABILITY accounts named like output/igst/cgst/sgst/gst
    input tax   ASSET or EXPENSE accounts named like input/itc/igst/cgst/sgst/gst
"""

import csv
import io
import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.db.models import Sum

from accounting.balances import ZERO, money
from accounting.exceptions import LedgerValidationError
from accounting.models import Account, JournalEntry, JournalLine
from reports.statements import normalize_period

logger = logging.getLogger(__name__)

OUTPUT_TAX_PATTERN = re.compile(r"output|igst|cgst|sgst|gst", re.IGNORECASE)
INPUT_TAX_PATTERN = re.compile(r"input|itc|igst|cgst|sgst|gst", re.IGNORECASE)

# Standard-chart input credit account, always counted on the books side.
DEFAULT_ITC_CODE = "1500"

DEFAULT_GST_RATE = Decimal("0.18")
DEFAULT_TOLERANCE_AMOUNT = Decimal("1.00")
DEFAULT_TOLERANCE_DAYS = 3

SUMMARY_NOTE = "Basic pre-fill. Configure GST account mapping for accurate GSTR-3B values."

GSTR2B_HEADERS = {
    "gstin": "GSTIN of supplier",
    "trade_name": "Trade/Legal name",
    "invoice_number": "Invoice number",
    "invoice_type": "Invoice type",
    "invoice_date": "Invoice Date",
    "invoice_value": "Invoice Value(₹)",
    "place_of_supply": "Place of supply",
    "reverse_charge": "Supply Attract Reverse Charge",
    "taxable_value": "Taxable Value (₹)",
    "igst": "Integrated Tax(₹)",
    "cgst": "Central Tax(₹)",
    "sgst": "State/UT Tax(₹)",
}
REQUIRED_GSTR2B_HEADERS = ("invoice_number", "invoice_date", "igst", "cgst", "sgst")
AMOUNT_FIELDS = ("invoice_value", "taxable_value", "igst", "cgst", "sgst")
DATE_FORMATS = ("%d-%m-%Y", "%Y-%m-%d", "%d/%m/%Y", "%d-%b-%Y")


# =============================================================================
# Tax account classification
# =============================================================================

def output_tax_accounts(company) -> list[Account]:
    tagged = list(Account.objects.filter(company=company, tax_role=Account.TaxRole.OUTPUT_TAX))
    if tagged:
        return tagged
    return [
        a for a in Account.objects.filter(company=company, account_type=Account.AccountType.LIABILITY)
        if OUTPUT_TAX_PATTERN.search(a.name)
    ]


def input_tax_accounts(company, include_default_code: bool = False) -> list[Account]:
    tagged = list(Account.objects.filter(company=company, tax_role=Account.TaxRole.INPUT_TAX))
    if tagged:
        return tagged
    return [
        a for a in Account.objects.filter(
            company=company,
            account_type__in=[Account.AccountType.ASSET, Account.AccountType.EXPENSE],
        )
        if INPUT_TAX_PATTERN.search(a.name) or (include_default_code and a.code == DEFAULT_ITC_CODE)
    ]


def _posted_lines(company, start, end):
    return JournalLine.objects.filter(
        company=company,
        entry__status=JournalEntry.Status.POSTED,
        entry__date__gte=start,
        entry__date__lte=end,
    )


def _sum(lines, field: str) -> Decimal:
    return lines.aggregate(total=Sum(field))["total"] or ZERO


# =============================================================================
# GSTR-3B summary
# =============================================================================

def gst_summary(company, date_from, date_to) -> dict:
    start, end = normalize_period(date_from, date_to)
    lines = _posted_lines(company, start, end)

    income_lines = lines.filter(account__account_type=Account.AccountType.INCOME)
    taxable_value = money(_sum(income_lines, "credit") - _sum(income_lines, "debit"))

    output_ids = [a.id for a in output_tax_accounts(company)]
    output_tax = money(_sum(lines.filter(account_id__in=output_ids), "credit")) if output_ids else ZERO

    itc_ids = [a.id for a in input_tax_accounts(company)]
    itc = money(_sum(lines.filter(account_id__in=itc_ids), "debit")) if itc_ids else ZERO

    tax = output_tax if output_tax > 0 else money(taxable_value * DEFAULT_GST_RATE)

    def _slot(description, value=ZERO, tax_amount=ZERO):
        return {"description": description, "taxable_value": value, "tax": tax_amount}

    table31 = {
        "3.1(a)": _slot(
            "Outward taxable supplies (other than zero-rated, nil-rated, exempt and non-GST)",
            taxable_value,
            tax,
        ),
        "3.1(b)": _slot("Outward taxable supplies (zero-rated)"),
        "3.1(c)": _slot("Other outward supplies (nil-rated, exempted and non-GST)"),
        "3.1(d)": _slot("Inward supplies liable to reverse charge"),
        "3.1(e)": _slot("Non-GST outward supplies"),
    }
    table4 = {
        "4A": {"total_itc_available": itc},
        "4A(1)": {"description": "ITC on imports of goods (IMPG)", "amount": ZERO},
        "4A(2)": {"description": "ITC on imports of services (IMPS)", "amount": ZERO},
        "4A(3)": {"description": "Reverse charge mechanism ITC", "amount": ZERO},
        "4A(4)": {"description": "ITC from Input Service Distributors (ISD)", "amount": ZERO},
        "4A(5)": {"description": "All other ITC (from GSTR-2B)", "amount": itc},
        "4B": {"itc_reversals": ZERO},
        "4C": {"net_itc": itc},
        "4D": {"ineligible_itc": ZERO},
    }
    return {
        "title": "GST Summary (GSTR-3B)",
        "period": {"from": start, "to": end},
        "table31": table31,
        "table4": table4,
        "note": SUMMARY_NOTE,
    }


# =============================================================================
# GSTR-2B reconciliation
# =============================================================================

def _parse_date(raw: str):
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognized date '{raw}'")


def _parse_amount(raw: str) -> Decimal:
    raw = (raw or "").replace(",", "").strip()
    if not raw:
        return ZERO
    amount = Decimal(raw)
    if not amount.is_finite():
        raise ValueError(f"amount '{raw}' is not a number")
    return money(amount)


def parse_gstr2b(content: str) -> tuple[list[dict], list[dict]]:
    """
    Parse a GSTR-2B CSV export.

    Returns (rows, errors). Errors are ``{"row", "message"}`` with 1-based
    data row numbers; a bad row is skipped, the rest are kept.
    """
    if content.startswith("\ufeff"):
        content = content[1:]
    reader = csv.reader(io.StringIO(content))
    header = next(reader, None)
    if header is None:
        return [], []

    position = {name.strip(): i for i, name in enumerate(header)}
    missing = [GSTR2B_HEADERS[k] for k in REQUIRED_GSTR2B_HEADERS if GSTR2B_HEADERS[k] not in position]
    if missing:
        raise LedgerValidationError(
            "GSTR-2B file is missing required columns.",
            details={"missing_columns": missing},
        )

    rows, errors = [], []
    row_no = 0
    for cols in reader:
        if not any(c.strip() for c in cols):
            continue
        row_no += 1
        if len(cols) < len(header):
            errors.append({"row": row_no, "message": f"Expected {len(header)} columns, got {len(cols)}."})
            continue

        record = {"row": row_no}
        for key, title in GSTR2B_HEADERS.items():
            idx = position.get(title)
            record[key] = cols[idx].strip() if idx is not None else ""
        try:
            record["invoice_date"] = _parse_date(record["invoice_date"])
            for key in AMOUNT_FIELDS:
                record[key] = _parse_amount(record[key])
        except (ValueError, InvalidOperation) as exc:
            errors.append({"row": row_no, "message": f"Invalid value: {exc}"})
            continue

        record["itc"] = record["igst"] + record["cgst"] + record["sgst"]
        rows.append(record)
    return rows, errors


def books_itc_rows(company, date_from, date_to) -> list[dict]:
    """Posted debits to input tax accounts in the period, one row per line."""
    start, end = normalize_period(date_from, date_to)
    itc_ids = [a.id for a in input_tax_accounts(company, include_default_code=True)]
    if not itc_ids:
        return []
    lines = (
        _posted_lines(company, start, end)
        .filter(account_id__in=itc_ids, debit__gt=0)
        .select_related("entry")
        .order_by("entry__date", "entry_id", "line_no")
    )
    return [
        {
            "entry_id": line.entry_id,
            "reference": line.entry.reference,
            "date": line.entry.date,
            "amount": money(line.debit),
        }
        for line in lines
    ]


def _nearest_book_row(books: list[dict], used: set, amount: Decimal):
    best_idx, best_diff = None, None
    for idx, book in enumerate(books):
        if idx in used:
            continue
        diff = abs(book["amount"] - amount)
        if best_diff is None or diff < best_diff:
            best_idx, best_diff = idx, diff
    return best_idx, best_diff


def _statement_part(row: dict) -> dict:
    return {
        "gstin": row["gstin"],
        "invoice_number": row["invoice_number"],
        "invoice_date": row["invoice_date"],
        "gstr2b": {
            "taxable_value": row["taxable_value"],
            "igst": row["igst"],
            "cgst": row["cgst"],
            "sgst": row["sgst"],
        },
    }


def _books_part(book: dict) -> dict:
    return {"journal_references": [book["reference"]], "itc_amount": book["amount"]}


def reconcile_gstr2b(
    company,
    content: str,
    date_from,
    date_to,
    tolerance_amount=DEFAULT_TOLERANCE_AMOUNT,
    tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
) -> dict:
    """
    Match GSTR-2B invoices to booked ITC lines.

    A statement row first pairs with the unused book row whose reference is
    its invoice number; an amount gap beyond ``tolerance_amount`` on that
    pair is an amount mismatch. Without a reference match the nearest unused
    book amount is taken greedily. Paired rows whose dates are more than
    ``tolerance_days`` apart are date mismatches. Unpaired statement rows are
    missing in books; unpaired book rows are missing in GSTR-2B.
    """
    start, end = normalize_period(date_from, date_to)
    tolerance_amount = money(tolerance_amount)
    statement, errors = parse_gstr2b(content)
    books = books_itc_rows(company, start, end)

    buckets = {
        "matched": [],
        "amount_mismatch": [],
        "date_mismatch": [],
        "missing_in_books": [],
        "missing_in_gstr2b": [],
    }
    used = set()
    by_reference = {}
    for idx, book in enumerate(books):
        by_reference.setdefault(book["reference"], []).append(idx)

    for row in statement:
        candidates = [i for i in by_reference.get(row["invoice_number"], []) if i not in used]
        if candidates:
            idx = candidates[0]
            diff = abs(books[idx]["amount"] - row["itc"])
            if diff > tolerance_amount:
                used.add(idx)
                buckets["amount_mismatch"].append({**_statement_part(row), "books": _books_part(books[idx])})
                continue
        else:
            idx, diff = _nearest_book_row(books, used, row["itc"])
            if idx is None or diff > tolerance_amount:
                buckets["missing_in_books"].append(_statement_part(row))
                continue

        used.add(idx)
        book = books[idx]
        bucket = {**_statement_part(row), "books": _books_part(book)}
        if abs((book["date"] - row["invoice_date"]).days) > tolerance_days:
            buckets["date_mismatch"].append(bucket)
        else:
            buckets["matched"].append(bucket)

    for idx, book in enumerate(books):
        if idx not in used:
            buckets["missing_in_gstr2b"].append({"books": _books_part(book)})

    gstr2b_itc = money(sum((r["itc"] for r in statement), ZERO))
    books_itc = money(sum((b["amount"] for b in books), ZERO))

    logger.info(
        "GSTR-2B reconciliation",
        extra={
            "company_id": company.id,
            "statement_rows": len(statement),
            "book_rows": len(books),
            "matched_count": len(buckets["matched"]),
            "error_count": len(errors),
        },
    )
    return {
        "title": "GST Reconciliation (GSTR-2B vs Books)",
        "period": {"from": start, "to": end},
        "summary": {
            "gstr2b_itc": gstr2b_itc,
            "books_itc": books_itc,
            "difference": money(books_itc - gstr2b_itc),
            "matched_count": len(buckets["matched"]),
            "missing_in_books_count": len(buckets["missing_in_books"]),
            "missing_in_gstr2b_count": len(buckets["missing_in_gstr2b"]),
        },
        "buckets": buckets,
        "errors": errors,
    }
