# accounting/admin.py
"""
Django admin configuration for accounting models.

The admin is for viewing only. All mutations MUST go through the command
layer (accounting/commands.py), which keeps running balances consistent.
"""

from django.contrib import admin

from .models import Account, AccountAuditLog, JournalEntry, JournalLine


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """
    Base admin class for read-only models.

    Direct admin edits would bypass balance maintenance.
    To modify these models, use the command layer (accounting/commands.py).
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    list_display = ("code", "name", "account_type", "parent_code", "tax_role", "current_balance", "company")
    list_filter = ("account_type", "tax_role", "is_system", "company")
    search_fields = ("code", "name")
    ordering = ("company", "code")


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    fields = ("line_no", "account", "narration", "debit", "credit")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyModelAdmin):
    list_display = ("reference", "date", "status", "source", "is_quarantined", "company")
    list_filter = ("status", "source", "is_quarantined", "company")
    search_fields = ("reference", "description")
    date_hierarchy = "date"
    inlines = [JournalLineInline]


@admin.register(AccountAuditLog)
class AccountAuditLogAdmin(ReadOnlyModelAdmin):
    list_display = ("account_code", "action", "actor", "created_at", "company")
    list_filter = ("action", "company")
    search_fields = ("account_code",)
