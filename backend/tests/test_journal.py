# tests/test_journal.py
"""
Tests for the Journal Engine.

Tests cover:
- Line validation pipeline
- DRAFT -> POSTED -> REVERSED lifecycle and running balances
- Privilege rules for restricted (non-posting) members
- Bulk create / post-many / reverse-many
- Quarantine on internal inconsistency
- Stock adjustment dispatch after posting
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.test import override_settings

from accounting.commands import (
    bulk_create_journal_entries,
    create_journal_entry,
    delete_journal_entry,
    post_journal_entry,
    post_many,
    reverse_journal_entry,
    reverse_many,
    update_journal_entry,
    validate_journal_entry,
    validate_lines,
)
from accounting.exceptions import LedgerValidationError, UnbalancedEntry
from accounting.integrations import InventoryGatewayError
from accounting.models import JournalEntry, JournalLine
from accounting.queries import visible_entries


DRAFT = JournalEntry.Status.DRAFT
POSTED = JournalEntry.Status.POSTED


def _lines(*rows):
    return [{"account_code": code, "debit": debit, "credit": credit} for code, debit, credit in rows]


class FailingGateway:
    """Inventory gateway that rejects one product."""
    calls = []

    def adjust_stock(self, company, adjustment, *, reference):
        FailingGateway.calls.append((adjustment.product_id, reference))
        if adjustment.product_id == "SKU-BAD":
            raise InventoryGatewayError("inventory service unavailable")


# =============================================================================
# Validation Pipeline
# =============================================================================

@pytest.mark.django_db
class TestValidation:

    def test_needs_two_lines(self, owner, chart):
        with pytest.raises(LedgerValidationError) as exc:
            validate_lines(owner.company, _lines(("1001", 10, 0)))
        assert exc.value.code == "TooFewLines"

    def test_debit_xor_credit(self, owner, chart):
        with pytest.raises(LedgerValidationError) as exc:
            validate_lines(owner.company, _lines(("1001", 10, 10), ("3000", 0, 0)))
        assert exc.value.code == "InvalidLine"

    def test_negative_amount(self, owner, chart):
        with pytest.raises(LedgerValidationError):
            validate_lines(owner.company, _lines(("1001", -10, 0), ("3000", 0, -10)))

    def test_unbalanced(self, owner, chart):
        with pytest.raises(UnbalancedEntry):
            validate_lines(owner.company, _lines(("1001", 100, 0), ("3000", 0, 99.98)))

    def test_sub_cent_difference_tolerated(self, owner, chart):
        lines = validate_lines(owner.company, _lines(("1001", "100.004", 0), ("3000", 0, "100.00")))
        assert lines[0]["debit"] == Decimal("100.00")

    def test_unknown_account_aborts_whole_entry(self, owner, chart):
        result = create_journal_entry(owner, date(2020, 1, 1), "JV-X", _lines(("1001", 10, 0), ("9999", 0, 10)))
        assert result.error_code == "AccountNotFound"
        assert not JournalEntry.objects.filter(reference="JV-X").exists()

    def test_account_of_other_company_is_unknown(self, owner, chart, other_company):
        from accounting.models import Account

        foreign = Account.objects.create(company=other_company, code="7000", name="Foreign", account_type="ASSET")
        lines = [{"account_id": foreign.id, "debit": 5, "credit": 0}, {"account_code": "3000", "debit": 0, "credit": 5}]
        result = create_journal_entry(owner, date(2020, 1, 1), "JV-F", lines)
        assert result.error_code == "AccountNotFound"

    def test_validate_reports_equation(self, owner, chart):
        result = validate_journal_entry(owner, _lines(("1001", 100, 0), ("3000", 0, 100)))
        assert result.data["is_valid"]
        assert result.data["balance_sheet_balanced"]
        assert result.data["total_assets"] == Decimal("100.00")
        assert result.data["total_equity"] == Decimal("100.00")

    def test_validate_unbalanced_is_advisory(self, owner, chart):
        result = validate_journal_entry(owner, _lines(("1001", 100, 0), ("3000", 0, 60)))
        assert result.success
        assert not result.data["is_valid"]
        assert result.data["errors"]


# =============================================================================
# Lifecycle & Balances
# =============================================================================

@pytest.mark.django_db
class TestLifecycle:

    def test_elevated_actor_posts_by_default(self, owner, chart, balance):
        result = create_journal_entry(owner, date(2020, 1, 1), "JV-1", _lines(("1001", 500, 0), ("3000", 0, 500)))
        assert result.data.status == POSTED
        assert balance("1001") == Decimal("500.00")
        assert balance("3000") == Decimal("-500.00")

    def test_restricted_actor_creates_draft(self, staff, chart, balance):
        result = create_journal_entry(staff, date(2020, 1, 1), "JV-1", _lines(("1001", 500, 0), ("3000", 0, 500)))
        assert result.data.status == DRAFT
        assert balance("1001") == Decimal("0.00")

    def test_restricted_actor_cannot_request_posted(self, staff, chart):
        with pytest.raises(PermissionDenied):
            create_journal_entry(staff, date(2020, 1, 1), "JV-1", _lines(("1001", 5, 0), ("3000", 0, 5)), status=POSTED)

    def test_duplicate_reference(self, owner, chart, make_entry):
        make_entry(owner, [("1001", 5, 0), ("3000", 0, 5)], reference="JV-DUP")
        result = create_journal_entry(owner, date(2020, 1, 1), "JV-DUP", _lines(("1001", 5, 0), ("3000", 0, 5)))
        assert result.error_code == "DuplicateReference"
        assert result.http_status == 409

    def test_post_then_reverse_restores_balances(self, owner, chart, make_entry, balance):
        entry = make_entry(owner, [("1001", 250, 0), ("4000", 0, 250)], status=DRAFT)
        before = {code: balance(code) for code in ("1001", "4000")}

        posted = post_journal_entry(owner, entry.id)
        assert posted.success
        assert balance("1001") == before["1001"] + Decimal("250.00")
        assert balance("4000") == before["4000"] - Decimal("250.00")

        reversed_ = reverse_journal_entry(owner, entry.id)
        assert reversed_.data.status == JournalEntry.Status.REVERSED
        assert reversed_.data.reversed_by == owner.user
        assert {code: balance(code) for code in ("1001", "4000")} == before

    def test_posting_twice_is_invalid(self, owner, chart, make_entry, balance):
        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)])
        result = post_journal_entry(owner, entry.id)
        assert result.error_code == "InvalidTransition"
        assert balance("1001") == Decimal("10.00")

    def test_reversing_draft_is_invalid(self, owner, chart, make_entry):
        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        assert reverse_journal_entry(owner, entry.id).error_code == "InvalidTransition"

    def test_reversed_is_terminal(self, owner, chart, make_entry):
        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)])
        reverse_journal_entry(owner, entry.id)
        assert reverse_journal_entry(owner, entry.id).error_code == "InvalidTransition"
        assert post_journal_entry(owner, entry.id).error_code == "InvalidTransition"

    def test_unknown_entry(self, owner, chart):
        assert post_journal_entry(owner, 424242).error_code == "EntryNotFound"

    def test_entry_of_other_company_not_found(self, owner, chart, make_entry, other_company, make_member):
        from accounts.authz import actor_for_membership

        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        outsider = actor_for_membership(make_member("OWNER", email="boss@globex.test", target=other_company))
        assert post_journal_entry(outsider, entry.id).error_code == "EntryNotFound"

    def test_staff_cannot_post(self, staff, chart, make_entry):
        entry = make_entry(staff, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        with pytest.raises(PermissionDenied):
            post_journal_entry(staff, entry.id)


@pytest.mark.django_db
class TestDrafts:

    def test_update_replaces_lines(self, staff, chart, make_entry):
        entry = make_entry(staff, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        result = update_journal_entry(
            staff, entry.id,
            description="Corrected",
            lines=_lines(("1002", 30, 0), ("3000", 0, 20), ("4200", 0, 10)),
        )
        assert result.success
        entry.refresh_from_db()
        assert entry.description == "Corrected"
        assert entry.lines.count() == 3
        assert entry.total_debit == Decimal("30.00")

    def test_update_revalidates(self, staff, chart, make_entry):
        entry = make_entry(staff, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        result = update_journal_entry(staff, entry.id, lines=_lines(("1001", 10, 0), ("3000", 0, 9)))
        assert result.error_code == "Unbalanced"
        assert entry.lines.count() == 2

    def test_posted_entry_is_immutable(self, owner, chart, make_entry):
        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)])
        assert update_journal_entry(owner, entry.id, description="x").error_code == "InvalidTransition"
        assert delete_journal_entry(owner, entry.id).error_code == "InvalidTransition"

    def test_restricted_actor_only_touches_own_drafts(self, staff, accountant, chart, make_entry, make_member):
        from accounts.authz import actor_for_membership

        entry = make_entry(staff, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        colleague = actor_for_membership(make_member("STAFF", email="other.staff@acme.test"))

        assert update_journal_entry(colleague, entry.id, description="x").error_code == "Forbidden"
        assert delete_journal_entry(colleague, entry.id).error_code == "Forbidden"
        assert update_journal_entry(accountant, entry.id, description="reviewed").success

    def test_delete_draft(self, staff, chart, make_entry):
        entry = make_entry(staff, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        assert delete_journal_entry(staff, entry.id).success
        assert not JournalEntry.objects.filter(pk=entry.id).exists()
        assert not JournalLine.objects.filter(entry_id=entry.id).exists()

    def test_visibility(self, staff, owner, chart, make_entry, make_member):
        from accounts.authz import actor_for_membership

        own_draft = make_entry(staff, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        others_draft = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        posted = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)])

        visible = set(visible_entries(staff).values_list("id", flat=True))
        assert visible == {own_draft.id, posted.id}
        assert others_draft.id in set(visible_entries(owner).values_list("id", flat=True))


# =============================================================================
# Bulk Operations
# =============================================================================

@pytest.mark.django_db
class TestBulk:

    def test_bulk_create_partial_success(self, owner, chart):
        result = bulk_create_journal_entries(owner, [
            {"date": "2020-01-01", "reference": "B-1", "lines": _lines(("1001", 10, 0), ("3000", 0, 10))},
            {"date": "2020-01-01", "reference": "B-2", "lines": _lines(("1001", 10, 0), ("3000", 0, 5))},
            {"date": "2020-01-02", "reference": "B-3", "lines": _lines(("1002", 7, 0), ("3000", 0, 7))},
        ])
        assert [e.reference for e in result.data["created"]] == ["B-1", "B-3"]
        assert result.data["failed"] == [
            {"index": 1, "reference": "B-2", "reason": "Unbalanced", "detail": result.data["failed"][0]["detail"]},
        ]

    @override_settings(LEDGER_BULK_LIMIT=2)
    def test_bulk_limit(self, owner, chart):
        entries = [{"date": "2020-01-01", "reference": f"B-{i}", "lines": []} for i in range(3)]
        assert not bulk_create_journal_entries(owner, entries).success
        assert not post_many(owner, [1, 2, 3]).success

    def test_post_many_isolates_failures(self, owner, chart, make_entry, balance):
        first = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        already = make_entry(owner, [("1001", 20, 0), ("3000", 0, 20)])
        second = make_entry(owner, [("1001", 30, 0), ("3000", 0, 30)], status=DRAFT)

        result = post_many(owner, [first.id, already.id, 999999, second.id])
        assert result.data["succeeded"] == [first.id, second.id]
        assert [f["reason"] for f in result.data["failed"]] == ["InvalidTransition", "EntryNotFound"]
        assert balance("1001") == Decimal("60.00")

    def test_reverse_many(self, owner, chart, make_entry, balance):
        entries = [make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)]) for _ in range(3)]
        result = reverse_many(owner, [e.id for e in entries])
        assert len(result.data["succeeded"]) == 3
        assert balance("1001") == Decimal("0.00")


# =============================================================================
# Quarantine
# =============================================================================

@pytest.mark.django_db
class TestQuarantine:

    def _corrupt(self, entry):
        # Stored lines no longer balance.
        JournalLine.objects.filter(entry=entry, line_no=1).update(debit=Decimal("11.00"))

    def test_inconsistent_entry_is_quarantined(self, owner, chart, make_entry, balance):
        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        self._corrupt(entry)

        result = post_journal_entry(owner, entry.id)
        assert result.error_code == "LedgerInconsistent"
        assert result.http_status == 500

        entry.refresh_from_db()
        assert entry.is_quarantined
        assert entry.status == DRAFT
        assert balance("1001") == Decimal("0.00")

        again = post_journal_entry(owner, entry.id)
        assert again.error_code == "Quarantined"

    def test_released_entry_can_post_once_fixed(self, owner, chart, make_entry):
        from accounting.verification import release_quarantine

        entry = make_entry(owner, [("1001", 10, 0), ("3000", 0, 10)], status=DRAFT)
        self._corrupt(entry)
        post_journal_entry(owner, entry.id)

        JournalLine.objects.filter(entry=entry, line_no=1).update(debit=Decimal("10.00"))
        assert release_quarantine(owner.company, entry.id)
        assert post_journal_entry(owner, entry.id).success
        assert not release_quarantine(owner.company, entry.id)


# =============================================================================
# Stock Adjustments
# =============================================================================

@pytest.mark.django_db
class TestStockAdjustments:

    def test_invalid_adjustment_rejected(self, owner, chart):
        result = create_journal_entry(
            owner, date(2020, 1, 1), "S-1", _lines(("1201", 10, 0), ("2000", 0, 10)),
            stock_adjustments=[{"type": "TELEPORT", "product_id": "SKU-1", "qty": 1}],
        )
        assert result.error_code == "InvalidStockAdjustment"

    def test_gateway_failure_does_not_undo_posting(self, owner, chart, balance):
        FailingGateway.calls = []
        with override_settings(INVENTORY_GATEWAY=f"{__name__}.FailingGateway"):
            result = create_journal_entry(
                owner, date(2020, 1, 1), "S-2", _lines(("1201", 100, 0), ("2000", 0, 100)),
                stock_adjustments=[
                    {"type": "STOCK_IN", "product_id": "SKU-1", "qty": "4", "cost_price": "20"},
                    {"type": "STOCK_IN", "productId": "SKU-BAD", "qty": "1", "costPrice": "20"},
                ],
            )
        assert result.success
        assert result.data.status == POSTED
        assert balance("1201") == Decimal("100.00")
        assert result.meta["stock_adjustment_failures"] == [
            {"index": 1, "product_id": "SKU-BAD", "reason": "inventory service unavailable"},
        ]
        assert FailingGateway.calls == [("SKU-1", "S-2"), ("SKU-BAD", "S-2")]

    def test_drafts_do_not_dispatch(self, staff, chart):
        FailingGateway.calls = []
        with override_settings(INVENTORY_GATEWAY=f"{__name__}.FailingGateway"):
            create_journal_entry(
                staff, date(2020, 1, 1), "S-3", _lines(("1201", 10, 0), ("2000", 0, 10)),
                stock_adjustments=[{"type": "STOCK_OUT", "product_id": "SKU-1", "qty": "1"}],
            )
        assert FailingGateway.calls == []
