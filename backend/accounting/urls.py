# accounting/urls.py
"""
URL configuration for accounting API.

Endpoints:
- /accounts/ - Chart of Accounts CRUD, hierarchy, balances, seeding
- /journal-entries/ - Journal Entry CRUD with workflow actions, bulk and import
"""

from django.urls import path

from .views import (
    # Account views
    AccountListCreateView,
    AccountDetailView,
    AccountMoveView,
    AccountTreeView,
    AccountRelativesView,
    AccountStatisticsView,
    AccountBalanceView,
    AccountJournalEntriesView,
    AccountAuditLogView,
    SeedChartView,
    # Journal entry views
    JournalEntryListCreateView,
    JournalEntryDetailView,
    JournalPostView,
    JournalReverseView,
    JournalValidateView,
    JournalBulkCreateView,
    JournalBulkPostView,
    JournalBulkReverseView,
    JournalImportView,
    JournalImportTemplateView,
)

app_name = "accounting"

urlpatterns = [
    # ==========================================================================
    # Accounts (Chart of Accounts)
    # ==========================================================================
    path("accounts/", AccountListCreateView.as_view(), name="account-list"),
    path("accounts/tree/", AccountTreeView.as_view(), name="account-tree"),
    path("accounts/statistics/", AccountStatisticsView.as_view(), name="account-statistics"),
    path("accounts/seed/", SeedChartView.as_view(), name="account-seed"),
    path("accounts/<str:code>/", AccountDetailView.as_view(), name="account-detail"),
    path("accounts/<str:code>/move/", AccountMoveView.as_view(), name="account-move"),
    path("accounts/<str:code>/balance/", AccountBalanceView.as_view(), name="account-balance"),
    path("accounts/<str:code>/journal-entries/", AccountJournalEntriesView.as_view(), name="account-journal-entries"),
    path("accounts/<str:code>/audit/", AccountAuditLogView.as_view(), name="account-audit"),
    path("accounts/<str:code>/<str:relation>/", AccountRelativesView.as_view(), name="account-relatives"),

    # ==========================================================================
    # Journal Entries
    # ==========================================================================
    path("journal-entries/", JournalEntryListCreateView.as_view(), name="journal-list"),
    path("journal-entries/validate/", JournalValidateView.as_view(), name="journal-validate"),
    path("journal-entries/bulk/", JournalBulkCreateView.as_view(), name="journal-bulk-create"),
    path("journal-entries/post-many/", JournalBulkPostView.as_view(), name="journal-post-many"),
    path("journal-entries/reverse-many/", JournalBulkReverseView.as_view(), name="journal-reverse-many"),
    path("journal-entries/import/", JournalImportView.as_view(), name="journal-import"),
    path("journal-entries/import/template/", JournalImportTemplateView.as_view(), name="journal-import-template"),
    path("journal-entries/<int:pk>/", JournalEntryDetailView.as_view(), name="journal-detail"),
    path("journal-entries/<int:pk>/post/", JournalPostView.as_view(), name="journal-post"),
    path("journal-entries/<int:pk>/reverse/", JournalReverseView.as_view(), name="journal-reverse"),
]
