# tests/test_recurring.py
"""
Tests for recurring entries.

Tests cover:
- Next-run computation per schedule type
- Template validation on create/update
- Dispatch (idempotent references, max runs, failures)
- The beat task
"""

from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.utils import timezone

from accounting.models import JournalEntry
from recurring.commands import (
    create_recurring_entry,
    delete_recurring_entry,
    dispatch_recurring_entry,
    update_recurring_entry,
)
from recurring.models import RecurringEntry
from recurring.schedule import compute_next_run
from recurring.tasks import dispatch_due_recurring_entries

Schedule = RecurringEntry.ScheduleType

RENT_LINES = [
    {"account_code": "5200", "debit": "1500", "credit": "0", "narration": "Monthly rent"},
    {"account_code": "1002", "debit": "0", "credit": "1500"},
]


def aware(*args):
    return timezone.make_aware(datetime(*args))


# =============================================================================
# Schedule
# =============================================================================

class TestComputeNextRun:

    def test_daily_next_midnight(self):
        assert compute_next_run(Schedule.DAILY, aware(2026, 1, 31, 10, 0)) == aware(2026, 2, 1)

    def test_daily_later_today(self):
        run = compute_next_run(Schedule.DAILY, aware(2026, 1, 31, 10, 0), time_of_day=time(18, 30))
        assert run == aware(2026, 1, 31, 18, 30)

    def test_weekly_defaults_to_monday(self):
        # 2026-01-31 is a Saturday
        assert compute_next_run(Schedule.WEEKLY, aware(2026, 1, 31, 10, 0)) == aware(2026, 2, 2)

    def test_weekly_same_day_already_passed(self):
        # 2026-02-02 is a Monday
        run = compute_next_run(Schedule.WEEKLY, aware(2026, 2, 2, 9, 0), time_of_day=time(8, 0), day_of_week=0)
        assert run == aware(2026, 2, 9, 8, 0)

    def test_monthly_clamps_to_month_end(self):
        run = compute_next_run(Schedule.MONTHLY, aware(2026, 1, 31, 10, 0), day_of_month=31)
        assert run == aware(2026, 2, 28)

    def test_monthly_later_this_month(self):
        assert compute_next_run(Schedule.MONTHLY, aware(2026, 3, 2), day_of_month=15) == aware(2026, 3, 15)

    def test_monthly_year_rollover(self):
        assert compute_next_run(Schedule.MONTHLY, aware(2026, 12, 20)) == aware(2027, 1, 1)

    def test_calendar_monthly_last_day(self):
        assert compute_next_run(Schedule.CALENDAR_MONTHLY, aware(2028, 2, 10)) == aware(2028, 2, 29)

    def test_always_strictly_later(self):
        after = aware(2026, 3, 15)
        assert compute_next_run(Schedule.MONTHLY, after, day_of_month=15) == aware(2026, 4, 15)

    def test_start_at_in_future(self):
        run = compute_next_run(Schedule.DAILY, aware(2026, 1, 31, 10, 0), start_at=aware(2026, 3, 1))
        assert run == aware(2026, 3, 1)

    def test_past_end_at(self):
        assert compute_next_run(Schedule.MONTHLY, aware(2026, 1, 31), end_at=aware(2026, 1, 31, 12, 0)) is None

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            compute_next_run("YEARLY", aware(2026, 1, 1))


# =============================================================================
# Template Commands
# =============================================================================

@pytest.mark.django_db
class TestTemplates:

    def test_create_schedules_first_run(self, owner, chart):
        result = create_recurring_entry(owner, name="Rent", lines=RENT_LINES, schedule_type=Schedule.MONTHLY, day_of_month=1)
        assert result.success
        entry = result.data
        assert entry.next_run > timezone.now()
        assert entry.lines[0] == {"account_code": "5200", "debit": "1500.00", "credit": "0.00", "narration": "Monthly rent"}

    def test_lines_must_balance(self, owner, chart):
        lines = [dict(RENT_LINES[0]), {"account_code": "1002", "debit": "0", "credit": "1000"}]
        result = create_recurring_entry(owner, name="Rent", lines=lines, schedule_type=Schedule.MONTHLY)
        assert result.error_code == "Unbalanced"
        assert not RecurringEntry.objects.exists()

    def test_invalid_day_of_week(self, owner, chart):
        result = create_recurring_entry(owner, name="Rent", lines=RENT_LINES, schedule_type=Schedule.WEEKLY, day_of_week=9)
        assert not result.success

    def test_end_before_start(self, owner, chart):
        result = create_recurring_entry(
            owner, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY,
            start_at=aware(2026, 5, 1), end_at=aware(2026, 4, 1),
        )
        assert not result.success

    def test_auto_post_needs_posting_rights(self, make_member, chart):
        from accounts.authz import actor_for_membership

        staff = actor_for_membership(make_member("STAFF", permissions=["recurring.manage"]))
        with pytest.raises(PermissionDenied):
            create_recurring_entry(staff, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY, auto_post=True)
        assert create_recurring_entry(staff, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY).success

    def test_viewer_cannot_manage(self, viewer, chart):
        with pytest.raises(PermissionDenied):
            create_recurring_entry(viewer, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY)

    def test_disable_and_reenable(self, owner, chart):
        entry = create_recurring_entry(owner, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY).data
        disabled = update_recurring_entry(owner, entry.id, enabled=False).data
        assert disabled.next_run is None
        enabled = update_recurring_entry(owner, entry.id, enabled=True).data
        assert enabled.next_run is not None

    def test_schedule_change_reschedules(self, owner, chart):
        entry = create_recurring_entry(owner, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY).data
        updated = update_recurring_entry(owner, entry.id, schedule_type=Schedule.CALENDAR_MONTHLY).data
        local = timezone.localtime(updated.next_run)
        assert (local + timedelta(days=1)).day == 1

    def test_update_unknown(self, owner, chart):
        assert update_recurring_entry(owner, 999, name="x").http_status == 404

    def test_delete(self, owner, chart):
        entry = create_recurring_entry(owner, name="Rent", lines=RENT_LINES, schedule_type=Schedule.DAILY).data
        assert delete_recurring_entry(owner, entry.id).success
        assert delete_recurring_entry(owner, entry.id).http_status == 404


# =============================================================================
# Dispatch
# =============================================================================

@pytest.fixture
def due_template(owner, chart):
    """Monthly rent template whose run on 2026-01-01 is due."""
    def _make(**fields):
        entry = create_recurring_entry(
            owner,
            name="Rent",
            lines=RENT_LINES,
            schedule_type=Schedule.MONTHLY,
            day_of_month=1,
            **fields,
        ).data
        RecurringEntry.objects.filter(pk=entry.pk).update(next_run=aware(2026, 1, 1))
        entry.refresh_from_db()
        return entry

    return _make


NOW = aware(2026, 1, 1, 0, 5)


@pytest.mark.django_db
class TestDispatch:

    def test_creates_draft_entry(self, due_template):
        template = due_template()
        result = dispatch_recurring_entry(template.id, now=NOW)
        assert result.success

        entry = JournalEntry.objects.get(reference=f"REC-{template.id}-1")
        assert entry.status == JournalEntry.Status.DRAFT
        assert entry.source == JournalEntry.Source.RECURRING
        assert entry.date.isoformat() == "2026-01-01"
        assert entry.description == "Rent"

        template.refresh_from_db()
        assert template.run_count == 1
        assert template.last_run == NOW
        assert template.next_run == aware(2026, 2, 1)

    def test_auto_post_updates_balances(self, due_template, balance):
        template = due_template(auto_post=True)
        dispatch_recurring_entry(template.id, now=NOW)
        assert JournalEntry.objects.get(reference=f"REC-{template.id}-1").status == JournalEntry.Status.POSTED
        assert balance("5200") == Decimal("1500.00")

    def test_existing_reference_counts_as_done(self, owner, due_template, make_entry):
        template = due_template()
        make_entry(owner, [("5200", 1500, 0), ("1002", 0, 1500)], reference=f"REC-{template.id}-1")

        result = dispatch_recurring_entry(template.id, now=NOW)
        assert result.error_code == "DuplicateReference"
        template.refresh_from_db()
        assert template.run_count == 1
        assert template.last_error == ""
        assert JournalEntry.objects.filter(reference__startswith=f"REC-{template.id}-").count() == 1

    def test_not_due_is_skipped(self, due_template):
        template = due_template()
        result = dispatch_recurring_entry(template.id, now=aware(2025, 12, 31))
        assert result.meta == {"skipped": True}
        assert not JournalEntry.objects.exists()

    def test_max_runs_disables(self, due_template):
        template = due_template(max_runs=1)
        dispatch_recurring_entry(template.id, now=NOW)
        template.refresh_from_db()
        assert not template.enabled
        assert template.next_run is None

    def test_failure_recorded_and_schedule_advances(self, owner_membership, due_template):
        template = due_template()
        owner_membership.is_active = False
        owner_membership.save()

        result = dispatch_recurring_entry(template.id, now=NOW)
        assert not result.success
        template.refresh_from_db()
        assert template.last_error.startswith("Forbidden")
        assert template.run_count == 0
        assert template.next_run == aware(2026, 2, 1)
        assert template.enabled

    def test_beat_task(self, due_template):
        first = due_template()
        second = due_template()
        RecurringEntry.objects.filter(pk=second.pk).update(next_run=timezone.now() + timedelta(days=30))

        summary = dispatch_due_recurring_entries()
        assert summary == {"due": 1, "dispatched": 1, "failed": 0, "skipped": 0}
        assert JournalEntry.objects.filter(reference=f"REC-{first.id}-1").exists()
