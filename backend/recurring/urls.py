# recurring/urls.py
from django.urls import path

from .views import RecurringEntryDetailView, RecurringEntryListCreateView

app_name = "recurring"

urlpatterns = [
    path("", RecurringEntryListCreateView.as_view(), name="recurring-list"),
    path("<int:pk>/", RecurringEntryDetailView.as_view(), name="recurring-detail"),
]
