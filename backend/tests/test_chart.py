# tests/test_chart.py
"""
Tests for the chart of accounts.

Tests cover:
- Seeding templates (idempotent, system accounts)
- Account create/update/delete rules
- Hierarchy moves (SelfParent, CycleDetected) and forest navigation
- Audit log diffs
"""

from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from accounting.commands import (
    create_account,
    delete_account,
    move_account,
    seed_chart_of_accounts,
    update_account,
)
from accounting.hierarchy import AccountForest
from accounting.models import Account, AccountAuditLog, JournalEntry
from accounting.templates import INDUSTRIES, get_template


# =============================================================================
# Templates & Seeding
# =============================================================================

class TestTemplates:

    def test_every_industry_has_cash_and_bank(self):
        for industry in INDUSTRIES:
            codes = {row["code"] for row in get_template(industry)}
            assert {"1001", "1002", "3000", "4000"} <= codes

    def test_parents_listed_before_children(self):
        for industry in INDUSTRIES:
            seen = set()
            for row in get_template(industry):
                if row.get("parent_code"):
                    assert row["parent_code"] in seen
                seen.add(row["code"])

    def test_service_alias(self):
        assert get_template("serviceBased") == get_template("service")

    def test_unknown_industry(self):
        with pytest.raises(KeyError):
            get_template("mining")


@pytest.mark.django_db
class TestSeeding:

    def test_seed_creates_system_accounts(self, owner, chart):
        assert chart["1001"].is_system
        assert chart["1001"].parent_code == "1000"
        assert chart["2200"].tax_role == Account.TaxRole.OUTPUT_TAX
        assert chart["3000"].normal_balance == Account.NormalBalance.CREDIT

    def test_seed_is_idempotent(self, owner, chart):
        result = seed_chart_of_accounts(owner, "retail")
        assert result.success
        assert result.data == []
        assert result.meta["skipped"] == len(get_template("retail"))

    def test_seed_unknown_industry(self, owner):
        result = seed_chart_of_accounts(owner, "mining")
        assert not result.success

    def test_seed_requires_manage(self, staff):
        with pytest.raises(PermissionDenied):
            seed_chart_of_accounts(staff, "retail")


# =============================================================================
# Account Commands
# =============================================================================

@pytest.mark.django_db
class TestCreateAccount:

    def test_opening_balance_starts_running_balance(self, owner):
        result = create_account(owner, code="1600", name="Deposits", account_type="ASSET", opening_balance="250.50")
        assert result.success
        account = result.data
        assert account.opening_balance == Decimal("250.50")
        assert account.current_balance == Decimal("250.50")
        assert account.normal_balance == Account.NormalBalance.DEBIT

    def test_duplicate_code(self, owner, chart):
        result = create_account(owner, code="1001", name="Cash again", account_type="ASSET")
        assert not result.success
        assert result.error_code == "DuplicateCode"
        assert result.http_status == 409

    def test_same_code_in_another_company(self, owner, chart, other_company, make_member):
        from accounts.authz import actor_for_membership

        other = actor_for_membership(make_member("OWNER", email="boss@globex.test", target=other_company))
        result = create_account(other, code="1001", name="Cash", account_type="ASSET")
        assert result.success

    def test_unknown_parent(self, owner):
        result = create_account(owner, code="1600", name="X", account_type="ASSET", parent_code="9999")
        assert result.error_code == "ParentNotFound"

    def test_self_parent(self, owner):
        result = create_account(owner, code="1600", name="X", account_type="ASSET", parent_code="1600")
        assert result.error_code == "SelfParent"

    def test_unknown_type(self, owner):
        result = create_account(owner, code="1600", name="X", account_type="CONTRA")
        assert not result.success

    def test_viewer_cannot_create(self, viewer):
        with pytest.raises(PermissionDenied):
            create_account(viewer, code="1600", name="X", account_type="ASSET")


@pytest.mark.django_db
class TestUpdateAccount:

    def test_opening_balance_shifts_running_balance(self, owner, chart, make_entry, balance):
        make_entry(owner, [("1001", 100, 0), ("3000", 0, 100)])
        result = update_account(owner, "1001", opening_balance="40.00")
        assert result.success
        assert balance("1001") == Decimal("140.00")
        assert result.meta["changes"]["opening_balance"] == {"old": "0.00", "new": "40.00"}

    def test_audit_diff_only_changed_fields(self, owner, chart):
        update_account(owner, "5200", name="Office Rent", description="")
        log = AccountAuditLog.objects.filter(account_code="5200", action=AccountAuditLog.Action.UPDATED).get()
        assert log.changes == {"name": {"old": "Rent Expense", "new": "Office Rent"}}
        assert log.actor == owner.user

    def test_no_changes_no_audit(self, owner, chart):
        result = update_account(owner, "5200", name="Rent Expense")
        assert result.success
        assert result.meta["changes"] == {}
        assert not AccountAuditLog.objects.filter(action=AccountAuditLog.Action.UPDATED).exists()

    def test_type_is_not_updatable(self, owner, chart):
        result = update_account(owner, "5200", account_type="INCOME")
        assert not result.success
        assert "account_type" in result.error
        assert Account.objects.get(company=owner.company, code="5200").account_type == "EXPENSE"

    def test_unknown_account(self, owner, chart):
        result = update_account(owner, "9999", name="Ghost")
        assert result.error_code == "AccountNotFound"
        assert result.http_status == 404


@pytest.mark.django_db
class TestDeleteAccount:

    def test_system_account_forbidden(self, owner, chart):
        result = delete_account(owner, "5200")
        assert result.error_code == "Forbidden"
        assert Account.objects.filter(company=owner.company, code="5200").exists()

    def test_used_account_in_use(self, owner, chart, make_entry):
        create_account(owner, code="5700", name="Travel", account_type="EXPENSE")
        make_entry(owner, [("5700", 10, 0), ("1001", 0, 10)])
        result = delete_account(owner, "5700")
        assert result.error_code == "AccountInUse"

    def test_parent_in_use(self, owner):
        create_account(owner, code="1600", name="Deposits", account_type="ASSET")
        create_account(owner, code="1610", name="Rent Deposit", account_type="ASSET", parent_code="1600")
        assert delete_account(owner, "1600").error_code == "AccountInUse"

    def test_delete_unused(self, owner):
        create_account(owner, code="1600", name="Deposits", account_type="ASSET")
        result = delete_account(owner, "1600")
        assert result.success
        assert AccountAuditLog.objects.filter(account_code="1600", action="DELETED").exists()


# =============================================================================
# Hierarchy
# =============================================================================

@pytest.mark.django_db
class TestHierarchy:

    def test_move_under_own_descendant(self, owner, chart):
        result = move_account(owner, "1200", "1201")
        assert result.error_code == "CycleDetected"
        assert Account.objects.get(company=owner.company, code="1200").parent_code == "1000"

    def test_move_under_self(self, owner, chart):
        assert move_account(owner, "1200", "1200").error_code == "SelfParent"

    def test_move_to_root(self, owner, chart):
        result = move_account(owner, "1200", None)
        assert result.success
        assert result.data.parent_code is None
        log = AccountAuditLog.objects.get(account_code="1200", action=AccountAuditLog.Action.MOVED)
        assert log.changes == {"parent_code": {"old": "1000", "new": None}}

    def test_update_parent_follows_move_rules(self, owner, chart):
        assert update_account(owner, "1000", parent_code="1201").error_code == "CycleDetected"

    def test_navigation(self, owner, chart):
        forest = AccountForest.for_company(owner.company)
        assert [a.code for a in forest.ancestors("1201")] == ["1000", "1200"]
        assert forest.level("1201") == 2
        assert forest.subtree_codes("1200") == {"1200", "1201"}
        assert {a.code for a in forest.children("1000")} == {"1001", "1002", "1100", "1200"}
        assert "1000" not in {a.code for a in forest.leaves()}
        assert [a.code for a in forest.path("1201")] == ["1000", "1200", "1201"]

    def test_orphan_is_a_root(self, owner, chart):
        Account.objects.filter(company=owner.company, code="1002").update(parent_code="8888")
        forest = AccountForest.for_company(owner.company)
        assert "1002" in {a.code for a in forest.roots()}

    def test_tree_covers_every_account(self, owner, chart):
        forest = AccountForest.for_company(owner.company)

        def count(nodes):
            return sum(1 + count(n["children"]) for n in nodes)

        assert count(forest.tree()) == len(chart)

    def test_statistics(self, owner, chart):
        stats = AccountForest.for_company(owner.company).statistics()
        assert stats["total"] == len(chart)
        assert stats["by_type"]["EQUITY"] == 2


@pytest.mark.django_db
def test_account_journal_entries_includes_descendants(owner, chart, make_entry):
    from accounting.queries import account_journal_entries

    make_entry(owner, [("1201", 50, 0), ("2000", 0, 50)])
    make_entry(owner, [("1001", 20, 0), ("3000", 0, 20)])

    direct = account_journal_entries(owner, "1200")
    assert direct["total"] == 0
    subtree = account_journal_entries(owner, "1200", include_descendants=True)
    assert subtree["total"] == 1
    assert subtree["results"][0].status == JournalEntry.Status.POSTED
