# tests/test_reports.py
"""
Tests for financial reports.

Tests cover:
- Trial Balance and Balance Sheet equations
- Net Income and Profit & Loss (default and custom layouts)
- Cash Flow drill-down and opening/closing cash
- Inventory valuation by subtree
- Saved report configurations
- Empty periods
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.utils import timezone

from accounting.balances import balances_as_of
from accounting.commands import reverse_journal_entry
from accounting.exceptions import LedgerValidationError
from accounting.models import Account, JournalEntry
from reports.commands import reset_report_configuration, save_report_configuration
from reports.configs import CashFlowConfig, PnLConfig, default_cash_flow_config, default_pnl_config, resolve_config
from reports.configurable import cash_flow, profit_and_loss
from reports.models import ReportConfiguration
from reports.statements import balance_sheet, inventory_valuation, net_income, trial_balance

JAN = (date(2020, 1, 1), date(2020, 1, 31))


@pytest.fixture
def capital_and_rent(owner, make_entry):
    """Owner invests 100000 in cash, then pays 5000 rent in cash."""
    make_entry(owner, [("1001", 100000, 0), ("3000", 0, 100000)], entry_date=date(2020, 1, 2), description="Capital")
    make_entry(owner, [("5200", 5000, 0), ("1001", 0, 5000)], entry_date=date(2020, 1, 5), description="Rent")


# =============================================================================
# Fixed Statements
# =============================================================================

@pytest.mark.django_db
class TestTrialBalance:

    def test_columns_balance(self, owner, chart, capital_and_rent):
        report = trial_balance(owner.company)
        rows = {r["code"]: r for r in report["accounts"]}
        assert rows["1001"]["debit"] == Decimal("95000.00")
        assert rows["3000"]["credit"] == Decimal("100000.00")
        assert rows["5200"]["debit"] == Decimal("5000.00")
        assert report["total_debit"] == report["total_credit"] == Decimal("100000.00")
        assert report["is_balanced"]
        assert "difference" not in report

    def test_as_of_before_any_entry(self, owner, chart, capital_and_rent):
        report = trial_balance(owner.company, "2019-12-31")
        assert report["total_debit"] == Decimal("0.00")
        assert report["is_balanced"]

    def test_invalid_as_of(self, owner, chart):
        with pytest.raises(LedgerValidationError):
            trial_balance(owner.company, "31/12/2019")


@pytest.mark.django_db
class TestBalanceSheet:

    def test_equation_holds(self, owner, chart, capital_and_rent):
        report = balance_sheet(owner.company)
        assert report["total_assets"] == Decimal("95000.00")
        assert report["total_equity"] == Decimal("100000.00")
        assert report["net_income"] == Decimal("-5000.00")
        assert report["total_liabilities_and_equity"] == Decimal("95000.00")
        assert report["is_balanced"]

    def test_zero_balances_hidden(self, owner, chart, capital_and_rent):
        report = balance_sheet(owner.company)
        assert [r["code"] for r in report["assets"]["accounts"]] == ["1001"]

    def test_as_of_includes_net_income_to_date(self, owner, chart, capital_and_rent):
        report = balance_sheet(owner.company, date(2020, 1, 3))
        assert report["total_assets"] == Decimal("100000.00")
        assert report["net_income"] == Decimal("0.00")


@pytest.mark.django_db
class TestNetIncome:

    def test_period(self, owner, chart, capital_and_rent, make_entry):
        make_entry(owner, [("1001", 8000, 0), ("4000", 0, 8000)], entry_date=date(2020, 1, 20))
        report = net_income(owner.company, *JAN)
        assert report["revenue"] == Decimal("8000.00")
        assert report["expenses"] == Decimal("5000.00")
        assert report["net_income"] == Decimal("3000.00")

    def test_reversed_entries_excluded(self, owner, chart, make_entry):
        entry = make_entry(owner, [("1001", 8000, 0), ("4000", 0, 8000)], entry_date=date(2020, 1, 20))
        reverse_journal_entry(owner, entry.id)
        assert net_income(owner.company, *JAN)["revenue"] == Decimal("0.00")

    def test_start_after_end(self, owner, chart):
        with pytest.raises(LedgerValidationError):
            net_income(owner.company, "2020-02-01", "2020-01-01")

    def test_missing_dates(self, owner, chart):
        with pytest.raises(LedgerValidationError):
            net_income(owner.company, None, "2020-01-01")


@pytest.mark.django_db
class TestInventoryValuation:

    def test_subtree_only(self, owner, chart, make_entry):
        make_entry(owner, [("1201", 700, 0), ("2000", 0, 700)])
        make_entry(owner, [("1001", 50, 0), ("3000", 0, 50)])

        report = inventory_valuation(owner.company, parent_code="1200")
        assert [r["code"] for r in report["rows"]] == ["1200", "1201"]
        assert report["total_value"] == Decimal("700.00")

    def test_all_assets_without_parent(self, owner, chart, make_entry):
        make_entry(owner, [("1201", 700, 0), ("2000", 0, 700)])
        report = inventory_valuation(owner.company)
        assert "2000" not in {r["code"] for r in report["rows"]}
        assert report["total_value"] == Decimal("700.00")


# =============================================================================
# Configurable Reports
# =============================================================================

@pytest.mark.django_db
class TestProfitAndLoss:

    def test_default_layout(self, owner, chart, capital_and_rent, make_entry):
        make_entry(owner, [("1100", 20000, 0), ("4000", 0, 20000)], entry_date=date(2020, 1, 10))
        make_entry(owner, [("5000", 12000, 0), ("1201", 0, 12000)], entry_date=date(2020, 1, 10))

        report = profit_and_loss(owner.company, *JAN)
        assert report["used_default_config"]
        assert report["revenue"]["total"] == Decimal("20000.00")
        assert report["cogs"]["total"] == Decimal("12000.00")
        assert report["gross_profit"] == Decimal("8000.00")
        assert report["operating_expenses"]["total"] == Decimal("5000.00")
        assert report["operating_income"] == Decimal("3000.00")
        assert report["net_income"] == Decimal("3000.00")

    def test_matches_net_income_for_full_layout(self, owner, chart, capital_and_rent):
        assert profit_and_loss(owner.company, *JAN)["net_income"] == net_income(owner.company, *JAN)["net_income"]

    def test_custom_layout_with_unknown_codes(self, owner, chart, capital_and_rent):
        config = {
            "revenue": [],
            "operatingExpenses": [{"label": "Premises", "accountCodes": ["5200", "5999"]}],
        }
        report = profit_and_loss(owner.company, *JAN, config=config)
        assert not report["used_default_config"]
        item = report["operating_expenses"]["line_items"][0]
        assert item["amount"] == Decimal("5000.00")
        assert [a["code"] for a in item["accounts"]] == ["5200"]
        assert report["net_income"] == Decimal("-5000.00")

    def test_empty_period(self, owner, chart, capital_and_rent):
        report = profit_and_loss(owner.company, date(2021, 1, 1), date(2021, 1, 31))
        assert report["net_income"] == Decimal("0.00")
        assert all(s["total"] == Decimal("0.00") for s in (report["revenue"], report["cogs"]))

    def test_bad_layout(self, owner, chart):
        with pytest.raises(LedgerValidationError):
            profit_and_loss(owner.company, *JAN, config={"revenue": [{"label": "x", "account_codes": "4000"}]})


@pytest.mark.django_db
class TestCashFlow:

    def test_capital_and_rent(self, owner, chart, capital_and_rent):
        report = cash_flow(owner.company, *JAN)
        assert report["opening_cash_balance"] == Decimal("0.00")
        assert report["financing"]["total"] == Decimal("100000.00")
        assert report["operating"]["total"] == Decimal("-5000.00")
        assert report["investing"]["total"] == Decimal("0.00")
        assert report["net_cash_flow"] == Decimal("95000.00")
        assert report["closing_cash_balance"] == Decimal("95000.00")

    def test_drill_down_items(self, owner, chart, capital_and_rent):
        report = cash_flow(owner.company, *JAN)
        [capital] = report["financing"]["transactions"]
        assert capital["account_code"] == "3000"
        assert capital["amount"] == Decimal("100000.00")
        assert capital["description"] == "Capital"
        [rent] = report["operating"]["transactions"]
        assert rent["account_code"] == "5200"
        assert rent["account_type"] == "EXPENSE"

    def test_opening_cash_from_prior_periods(self, owner, chart, capital_and_rent, make_entry):
        make_entry(owner, [("1400", 30000, 0), ("1002", 0, 30000)], entry_date=date(2020, 2, 3))
        report = cash_flow(owner.company, date(2020, 2, 1), date(2020, 2, 29))
        assert report["opening_cash_balance"] == Decimal("95000.00")
        assert report["investing"]["total"] == Decimal("-30000.00")
        assert report["closing_cash_balance"] == Decimal("65000.00")

    def test_transfers_between_cash_accounts_skipped(self, owner, chart, capital_and_rent, make_entry):
        make_entry(owner, [("1002", 1000, 0), ("1001", 0, 1000)], entry_date=date(2020, 1, 6))
        report = cash_flow(owner.company, *JAN)
        assert report["net_cash_flow"] == Decimal("95000.00")
        assert len(report["operating"]["transactions"]) == 1

    def test_custom_cash_accounts(self, owner, chart, capital_and_rent):
        config = {
            "operating": [{"label": "Bank only", "account_codes": ["1002"], "sign": "positive"}],
            "investing": [],
            "financing": [],
        }
        report = cash_flow(owner.company, *JAN, config=config)
        assert report["net_cash_flow"] == Decimal("0.00")
        assert not report["used_default_config"]

    def test_later_reversal_keeps_closing_tied_to_ledger(self, owner, chart, capital_and_rent, make_entry):
        capital = JournalEntry.objects.get(company=owner.company, description="Capital")
        reverse_journal_entry(owner, capital.id)
        transfer = make_entry(owner, [("1400", 30000, 0), ("1002", 0, 30000)], entry_date=date(2020, 2, 3))
        reverse_journal_entry(owner, transfer.id)

        january = cash_flow(owner.company, *JAN)
        assert january["financing"]["total"] == Decimal("100000.00")
        assert january["closing_cash_balance"] == Decimal("95000.00")

        today = timezone.localdate()
        report = cash_flow(owner.company, date(2020, 2, 1), today)
        assert report["opening_cash_balance"] == Decimal("95000.00")
        assert report["investing"]["transactions"] == []
        [reversal] = report["financing"]["transactions"]
        assert reversal["is_reversal"]
        assert reversal["amount"] == Decimal("-100000.00")
        assert reversal["date"] == today
        assert report["closing_cash_balance"] == Decimal("-5000.00")

        cash = Account.objects.filter(company=owner.company, code__in=["1001", "1002"])
        assert report["closing_cash_balance"] == sum(balances_as_of(owner.company, today, cash).values())

    def test_empty_period(self, owner, chart):
        report = cash_flow(owner.company, *JAN)
        assert report["net_cash_flow"] == Decimal("0.00")
        assert report["closing_cash_balance"] == Decimal("0.00")


# =============================================================================
# Report Configurations
# =============================================================================

class TestConfigs:

    def test_round_trip(self):
        for config in (default_pnl_config(), default_cash_flow_config()):
            assert type(config).from_dict(config.to_dict()) == config

    def test_cash_codes_default_when_operating_empty(self):
        assert CashFlowConfig.from_dict({}).cash_account_codes == ("1001", "1002")

    def test_unlisted_code_is_operating(self):
        assert default_cash_flow_config().section_for_code("5200") == "operating"
        assert default_cash_flow_config().section_for_code("2300") == "financing"

    def test_invalid_sign(self):
        with pytest.raises(LedgerValidationError):
            CashFlowConfig.from_dict({"operating": [{"label": "x", "account_codes": [], "sign": "up"}]})

    def test_pnl_sections(self):
        assert PnLConfig.SECTIONS[0] == "revenue"


@pytest.mark.django_db
class TestSavedConfigurations:

    def test_saved_layout_is_used(self, owner, chart, capital_and_rent):
        result = save_report_configuration(owner, "PROFIT_LOSS", {
            "operatingExpenses": [{"label": "Everything", "accountCodes": ["5100", "5200"]}],
        })
        assert result.success
        stored = ReportConfiguration.objects.get(company=owner.company, kind="PROFIT_LOSS").config
        assert stored["operating_expenses"] == [{"label": "Everything", "account_codes": ["5100", "5200"]}]

        config, used_default = resolve_config(owner.company, "PROFIT_LOSS")
        assert not used_default
        report = profit_and_loss(owner.company, *JAN)
        assert report["operating_expenses"]["line_items"][0]["label"] == "Everything"

    def test_reset(self, owner, chart):
        save_report_configuration(owner, "CASH_FLOW", default_cash_flow_config().to_dict())
        assert reset_report_configuration(owner, "CASH_FLOW").meta == {"deleted": True}
        _, used_default = resolve_config(owner.company, "CASH_FLOW")
        assert used_default

    def test_unknown_kind(self, owner):
        assert not save_report_configuration(owner, "BALANCE", {}).success

    def test_invalid_layout_not_saved(self, owner):
        result = save_report_configuration(owner, "PROFIT_LOSS", {"revenue": "4000"})
        assert not result.success
        assert not ReportConfiguration.objects.exists()

    def test_staff_cannot_configure(self, staff):
        with pytest.raises(PermissionDenied):
            save_report_configuration(staff, "PROFIT_LOSS", {})
