# reports/admin.py
"""Saved layouts are edited through the API so they are validated first."""

from django.contrib import admin

from accounting.admin import ReadOnlyModelAdmin
from .models import ReportConfiguration


@admin.register(ReportConfiguration)
class ReportConfigurationAdmin(ReadOnlyModelAdmin):
    list_display = ("company", "kind", "updated_at", "updated_by")
    list_filter = ("kind",)
