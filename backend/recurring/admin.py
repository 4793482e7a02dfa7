# recurring/admin.py
from django.contrib import admin

from accounting.admin import ReadOnlyModelAdmin
from .models import RecurringEntry


@admin.register(RecurringEntry)
class RecurringEntryAdmin(ReadOnlyModelAdmin):
    list_display = ("name", "schedule_type", "enabled", "next_run", "run_count", "max_runs", "company")
    list_filter = ("schedule_type", "enabled", "company")
    search_fields = ("name",)
