# reports/exports.py
"""
Spreadsheet exports for reports.

Each report is flattened into rows plus a column spec
(``{"key", "header", "width", "numeric"}``) and written as Excel (.xlsx)
or CSV. Totals are appended as the last rows of the sheet.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter


class ExportFormat:
    EXCEL = "xlsx"
    CSV = "csv"

    CHOICES = [EXCEL, CSV]
    CONTENT_TYPES = {
        EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        CSV: "text/csv",
    }


def format_value(value: Any):
    """Cell value for export. Decimals stay numeric in xlsx."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value


def export_to_excel(rows: list[dict], columns: list[dict], title: str, subtitle: str = "") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14)
    title_cell.alignment = Alignment(horizontal="center")

    if subtitle:
        ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(columns))
        sub_cell = ws.cell(row=2, column=1, value=subtitle)
        sub_cell.font = Font(italic=True, size=10, color="666666")
        sub_cell.alignment = Alignment(horizontal="center")

    header_row = 4
    for col_idx, col in enumerate(columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col["header"])
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = border
        ws.column_dimensions[get_column_letter(col_idx)].width = col.get("width", 15)

    for row_idx, row in enumerate(rows, header_row + 1):
        for col_idx, col in enumerate(columns, 1):
            value = format_value(row.get(col["key"], ""))
            if isinstance(value, Decimal):
                value = float(value)
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = border
            if col.get("numeric"):
                cell.alignment = Alignment(horizontal="right")
                cell.number_format = "#,##0.00"
            if row.get("_total"):
                cell.font = Font(bold=True)

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_to_csv(rows: list[dict], columns: list[dict]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([col["header"] for col in columns])
    for row in rows:
        writer.writerow([format_value(row.get(col["key"], "")) for col in columns])
    return output.getvalue()


def create_export_response(report: dict, kind: str, fmt: str) -> HttpResponse:
    """Build a file download for ``report`` using the flattener registered for ``kind``."""
    if fmt not in ExportFormat.CHOICES:
        raise ValueError(f"Invalid format: {fmt}. Must be one of {ExportFormat.CHOICES}")

    flatten, columns, filename = EXPORTERS[kind]
    rows = flatten(report)

    if fmt == ExportFormat.EXCEL:
        content = export_to_excel(rows, columns, title=report["title"], subtitle=_subtitle(report))
        response = HttpResponse(content, content_type=ExportFormat.CONTENT_TYPES[fmt])
    else:
        # UTF-8 with BOM
        response = HttpResponse(
            export_to_csv(rows, columns),
            content_type=ExportFormat.CONTENT_TYPES[fmt],
            charset="utf-8-sig",
        )

    response["Content-Disposition"] = f'attachment; filename="{filename}.{fmt}"'
    return response


def _subtitle(report: dict) -> str:
    if "as_of" in report:
        return f"As of {format_value(report['as_of'])}"
    period = report.get("period")
    if period:
        return f"{format_value(period['from'])} to {format_value(period['to'])}"
    return ""


def _total(label: str, key: str = "name", **amounts) -> dict:
    return {key: label, "_total": True, **amounts}


# =============================================================================
# Report flatteners
# =============================================================================

TRIAL_BALANCE_COLUMNS = [
    {"key": "code", "header": "Account Code", "width": 14},
    {"key": "name", "header": "Account Name", "width": 32},
    {"key": "account_type", "header": "Type", "width": 12},
    {"key": "debit", "header": "Debit", "width": 16, "numeric": True},
    {"key": "credit", "header": "Credit", "width": 16, "numeric": True},
]


def trial_balance_rows(report: dict) -> list[dict]:
    rows = list(report["accounts"])
    rows.append(_total("Total", debit=report["total_debit"], credit=report["total_credit"]))
    return rows


STATEMENT_COLUMNS = [
    {"key": "section", "header": "Section", "width": 22},
    {"key": "code", "header": "Account Code", "width": 14},
    {"key": "name", "header": "Account / Line", "width": 34},
    {"key": "amount", "header": "Amount", "width": 16, "numeric": True},
]


def balance_sheet_rows(report: dict) -> list[dict]:
    rows = []
    for key in ("assets", "liabilities", "equity"):
        section = report[key]
        for account in section["accounts"]:
            rows.append({"section": key.title(), "code": account["code"], "name": account["name"], "amount": account["balance"]})
        rows.append(_total(section["title"], amount=section["total"]))
    rows.append({"section": "Equity", "name": "Net Income", "amount": report["net_income"]})
    rows.append(_total("Total Liabilities and Equity", amount=report["total_liabilities_and_equity"]))
    return rows


def profit_and_loss_rows(report: dict) -> list[dict]:
    rows = []
    for key in ("revenue", "cogs", "operating_expenses", "other_income", "other_expenses"):
        section = report[key]
        for item in section["line_items"]:
            rows.append({"section": section["title"], "code": ", ".join(item["account_codes"]), "name": item["label"], "amount": item["amount"]})
        rows.append(_total(f"Total {section['title']}", amount=section["total"]))
        if key == "cogs":
            rows.append(_total("Gross Profit", amount=report["gross_profit"]))
        elif key == "operating_expenses":
            rows.append(_total("Operating Income", amount=report["operating_income"]))
    rows.append(_total("Net Income", amount=report["net_income"]))
    return rows


def cash_flow_rows(report: dict) -> list[dict]:
    rows = [{"name": "Opening Cash Balance", "amount": report["opening_cash_balance"]}]
    for key in ("operating", "investing", "financing"):
        section = report[key]
        for txn in section["transactions"]:
            rows.append({
                "section": section["title"],
                "code": txn["account_code"],
                "name": f"{txn['reference']} {txn['description']}".strip(),
                "amount": txn["amount"],
            })
        rows.append(_total(f"Net Cash from {section['title']}", amount=section["total"]))
    rows.append(_total("Net Cash Flow", amount=report["net_cash_flow"]))
    rows.append(_total("Closing Cash Balance", amount=report["closing_cash_balance"]))
    return rows


INVENTORY_COLUMNS = [
    {"key": "code", "header": "Account Code", "width": 14},
    {"key": "name", "header": "Account Name", "width": 32},
    {"key": "balance", "header": "Value", "width": 16, "numeric": True},
]


def inventory_rows(report: dict) -> list[dict]:
    rows = list(report["rows"])
    rows.append(_total("Total", balance=report["total_value"]))
    return rows


EXPORTERS = {
    "trial-balance": (trial_balance_rows, TRIAL_BALANCE_COLUMNS, "trial_balance"),
    "balance-sheet": (balance_sheet_rows, STATEMENT_COLUMNS, "balance_sheet"),
    "profit-loss": (profit_and_loss_rows, STATEMENT_COLUMNS, "profit_and_loss"),
    "cash-flow": (cash_flow_rows, STATEMENT_COLUMNS, "cash_flow"),
    "inventory-valuation": (inventory_rows, INVENTORY_COLUMNS, "inventory_valuation"),
}
