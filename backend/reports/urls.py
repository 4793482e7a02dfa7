# reports/urls.py
"""
URL configuration for reports API.

Endpoints:
- point-in-time: trial balance, balance sheet, inventory valuation
- period: net income, P&L, cash flow, GST summary
- GSTR-2B reconciliation upload
- saved layouts for the configurable reports
"""

from django.urls import path

from .views import (
    BalanceSheetView,
    CashFlowView,
    GstReconciliationView,
    GstSummaryView,
    InventoryValuationView,
    NetIncomeView,
    ProfitLossView,
    ReportConfigurationView,
    TrialBalanceView,
)

app_name = "reports"

urlpatterns = [
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("inventory-valuation/", InventoryValuationView.as_view(), name="inventory-valuation"),
    path("net-income/", NetIncomeView.as_view(), name="net-income"),
    path("profit-loss/", ProfitLossView.as_view(), name="profit-loss"),
    path("cash-flow/", CashFlowView.as_view(), name="cash-flow"),
    path("gst-summary/", GstSummaryView.as_view(), name="gst-summary"),
    path("gst-reconciliation/", GstReconciliationView.as_view(), name="gst-reconciliation"),
    path("configurations/<str:kind>/", ReportConfigurationView.as_view(), name="configuration"),
]
