# recurring/models.py
"""
Recurring journal entry templates.

``lines`` is stored as ``[{account_code, debit, credit, narration}]`` and
is re-validated against the chart of accounts on every run, so an account
deleted after the template was saved surfaces as ``last_error``.
"""

import uuid

from django.conf import settings
from django.db import models

from accounts.models import Company


class RecurringEntry(models.Model):
    """A journal entry that is created on a schedule."""

    class ScheduleType(models.TextChoices):
        DAILY = "DAILY", "Daily"
        WEEKLY = "WEEKLY", "Weekly"
        MONTHLY = "MONTHLY", "Monthly (day of month)"
        CALENDAR_MONTHLY = "CALENDAR_MONTHLY", "Monthly (last day)"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="recurring_entries",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    name = models.CharField(max_length=255)
    description = models.CharField(max_length=500, blank=True, default="")
    lines = models.JSONField(default=list)

    # Schedule
    schedule_type = models.CharField(max_length=20, choices=ScheduleType.choices)
    time_of_day = models.TimeField(null=True, blank=True, help_text="Local time; midnight when empty")
    day_of_week = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="0=Monday .. 6=Sunday (WEEKLY)",
    )
    day_of_month = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="1-31, clamped to the month's length (MONTHLY)",
    )
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)

    # Post the created entry straight away (requires journal.post on the creator)
    auto_post = models.BooleanField(default=False)

    enabled = models.BooleanField(default=True)
    run_count = models.PositiveIntegerField(default=0)
    max_runs = models.PositiveIntegerField(null=True, blank=True)
    next_run = models.DateTimeField(null=True, blank=True)
    last_run = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="recurring_entries",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["next_run", "id"]
        indexes = [
            models.Index(fields=["enabled", "next_run"], name="idx_recurring_due"),
            models.Index(fields=["company", "enabled"], name="idx_recurring_company"),
        ]

    def __str__(self):
        return f"{self.name} ({self.schedule_type})"

    @property
    def is_exhausted(self) -> bool:
        return self.max_runs is not None and self.run_count >= self.max_runs

    def reference_for_run(self, run_number: int) -> str:
        return f"REC-{self.id}-{run_number}"
