# tests/test_imports.py
"""
Tests for CSV journal import.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.test import override_settings

from accounting.imports import group_rows, import_journal_csv, parse_rows, template_csv
from accounting.models import JournalEntry

HEADER = "date,reference,description,accountCode,debit,credit,narration\n"


@pytest.mark.django_db
class TestImport:

    def test_template_imports_cleanly(self, owner, chart, balance):
        result = import_journal_csv(owner, template_csv())
        assert result.data["count"] == 1
        assert result.data["errors"] == []
        entry = result.data["created"][0]
        assert entry.source == JournalEntry.Source.IMPORT
        assert entry.status == JournalEntry.Status.POSTED
        assert balance("1001") == Decimal("10000.00")

    def test_restricted_actor_imports_drafts(self, staff, chart):
        result = import_journal_csv(staff, template_csv())
        assert result.data["created"][0].status == JournalEntry.Status.DRAFT

    def test_rows_grouped_by_date_and_reference(self, owner, chart):
        content = HEADER + (
            "2020-01-01,JV-1,Opening,1001,500,,\n"
            "2020-01-01,JV-1,Opening,1002,500,,\n"
            "2020-01-01,JV-1,Opening,3000,,1000,\n"
            "2020-01-02,JV-2,Rent,5200,80,,January\n"
            "2020-01-02,JV-2,Rent,1001,,80,\n"
        )
        result = import_journal_csv(owner, content)
        assert result.data["count"] == 2
        first = JournalEntry.objects.get(reference="JV-1")
        assert first.lines.count() == 3
        assert JournalEntry.objects.get(reference="JV-2").lines.get(line_no=1).narration == "January"

    def test_single_line_entry_reported(self, owner, chart):
        content = HEADER + (
            "2020-01-01,JV-1,Solo,1001,500,0,\n"
            "2020-01-01,JV-2,Ok,1001,5,0,\n"
            "2020-01-01,JV-2,Ok,3000,0,5,\n"
        )
        result = import_journal_csv(owner, content)
        assert result.data["count"] == 1
        assert result.data["errors"] == [{
            "row": 1,
            "reference": "JV-1",
            "message": "Each entry must have at least 2 lines (same date+reference)",
        }]

    def test_unbalanced_entry_reported_others_created(self, owner, chart):
        content = HEADER + (
            "2020-01-01,JV-1,Off,1001,500,0,\n"
            "2020-01-01,JV-1,Off,3000,0,400,\n"
            "2020-01-01,JV-2,Ok,1001,5,0,\n"
            "2020-01-01,JV-2,Ok,3000,0,5,\n"
        )
        result = import_journal_csv(owner, content)
        assert result.data["count"] == 1
        assert result.data["errors"][0]["row"] == 1
        assert result.data["errors"][0]["message"].startswith("Debits (500) must equal credits (400)")

    def test_unknown_account_and_missing_fields(self, owner, chart):
        content = HEADER + (
            ",JV-1,No date,1001,5,0,\n"
            "2020-01-01,JV-2,Bad,1001,5,0,\n"
            "2020-01-01,JV-2,Bad,9999,0,5,\n"
            "2020-01-01,JV-3,Bad amount,1001,five,0,\n"
        )
        result = import_journal_csv(owner, content)
        assert result.data["count"] == 0
        assert [(e["row"], e["reference"]) for e in result.data["errors"]] == [
            (1, "JV-1"),
            (2, "JV-2"),
            (4, "JV-3"),
        ]
        assert result.data["errors"][1]["message"] == "Unknown accountCode(s): 9999"

    def test_duplicate_reference_reported(self, owner, chart, make_entry):
        make_entry(owner, [("1001", 5, 0), ("3000", 0, 5)], reference="JV-001")
        result = import_journal_csv(owner, template_csv())
        assert result.data["count"] == 0
        assert "already exists" in result.data["errors"][0]["message"]

    def test_byte_order_mark_and_blank_lines(self, owner, chart):
        content = "\ufeff" + HEADER + "\n2020-01-01,JV-1,x,1001,5,0,\n\n2020-01-01,JV-1,x,3000,0,5,\n"
        assert import_journal_csv(owner, content).data["count"] == 1

    def test_error_rows_count_blank_lines(self, owner, chart):
        content = HEADER + (
            "2020-01-01,JV-1,Ok,1001,5,0,\n"
            "2020-01-01,JV-1,Ok,3000,0,5,\n"
            "\n"
            "2020-01-02,JV-2,Solo,1001,5,0,\n"
            "2020-01-03,JV-3,Bad,1001,NaN,0,\n"
        )
        result = import_journal_csv(owner, content)
        assert result.data["count"] == 1
        assert [(e["row"], e["reference"]) for e in result.data["errors"]] == [(4, "JV-2"), (5, "JV-3")]
        assert result.data["errors"][1]["message"] == "debit and credit must be numbers"

    @override_settings(LEDGER_IMPORT_MAX_ROWS=1)
    def test_row_limit(self, owner, chart):
        assert not import_journal_csv(owner, template_csv()).success

    def test_viewer_cannot_import(self, viewer, chart):
        with pytest.raises(PermissionDenied):
            import_journal_csv(viewer, template_csv())


class TestGrouping:

    def test_same_reference_on_other_date_is_a_new_entry(self):
        rows = parse_rows(HEADER + "2020-01-01,A,,1001,1,0,\n2020-01-02,A,,3000,0,1,\n")
        groups, errors = group_rows(rows)
        assert errors == []
        assert [g["row"] for g in groups] == [1, 2]

    def test_snake_case_account_column_accepted(self):
        rows = parse_rows("date,reference,account_code,debit,credit\n2020-01-01,A,1001,1,0\n")
        groups, _ = group_rows(rows)
        assert groups[0]["lines"][0]["account_code"] == "1001"
