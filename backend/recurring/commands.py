# recurring/commands.py
"""
Commands for recurring entries.

Managing templates requires ``recurring.manage``. Running a due template
(``dispatch_recurring_entry``) happens in the worker, acting as the user
who created the template, through accounting.commands.create_journal_entry.
"""

import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, actor_for_membership, require
from accounts.models import CompanyMembership
from accounting.commands import CommandResult, create_journal_entry, validate_lines
from accounting.exceptions import LedgerError, LedgerValidationError
from accounting.models import JournalEntry
from recurring.models import RecurringEntry
from recurring.schedule import next_run_for

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("schedule_type", "time_of_day", "day_of_week", "day_of_month", "start_at", "end_at")
UPDATABLE_FIELDS = ("name", "description", "lines", "auto_post", "enabled", "max_runs") + SCHEDULE_FIELDS


def _stored_lines(lines: list[dict]) -> list[dict]:
    """Keep templates keyed by account code so they survive account id churn."""
    return [
        {
            "account_code": line["account"].code,
            "debit": str(line["debit"]),
            "credit": str(line["credit"]),
            "narration": line["narration"],
        }
        for line in lines
    ]


def _check_schedule(entry: RecurringEntry) -> None:
    if entry.schedule_type not in RecurringEntry.ScheduleType.values:
        raise LedgerValidationError(f"Unknown schedule type '{entry.schedule_type}'.")
    if entry.day_of_week is not None and not 0 <= entry.day_of_week <= 6:
        raise LedgerValidationError("day_of_week must be between 0 (Monday) and 6 (Sunday).")
    if entry.day_of_month is not None and not 1 <= entry.day_of_month <= 31:
        raise LedgerValidationError("day_of_month must be between 1 and 31.")
    if entry.start_at and entry.end_at and entry.end_at <= entry.start_at:
        raise LedgerValidationError("end_at must be after start_at.")


def _check_template(actor: ActorContext, entry: RecurringEntry) -> None:
    if not (entry.name or "").strip():
        raise LedgerValidationError("Name is required.")
    entry.lines = _stored_lines(validate_lines(actor.company, entry.lines))
    _check_schedule(entry)
    if entry.auto_post:
        require(actor, "journal.post")


@transaction.atomic
def create_recurring_entry(actor: ActorContext, **fields) -> CommandResult:
    """
    Create a recurring template and schedule its first run.

    Lines use the journal line shape (account_id or account_code, debit,
    credit, narration) and must pass the same validation as a journal entry.
    """
    require(actor, "recurring.manage")

    entry = RecurringEntry(
        company=actor.company,
        created_by=actor.user,
        **{k: v for k, v in fields.items() if k in UPDATABLE_FIELDS},
    )
    try:
        _check_template(actor, entry)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    entry.next_run = next_run_for(entry, timezone.now()) if entry.enabled else None
    entry.save()
    logger.info(
        "Recurring entry created",
        extra={"company_id": actor.company.id, "recurring_id": entry.id, "next_run": str(entry.next_run)},
    )
    return CommandResult.ok(entry)


@transaction.atomic
def update_recurring_entry(actor: ActorContext, recurring_id: int, **updates) -> CommandResult:
    require(actor, "recurring.manage")

    entry = (
        RecurringEntry.objects.select_for_update()
        .filter(company=actor.company, pk=recurring_id)
        .first()
    )
    if entry is None:
        return CommandResult.fail("Recurring entry not found.", code="NotFound", http_status=404)

    reschedule = False
    for field, value in updates.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field in SCHEDULE_FIELDS or (field == "enabled" and value and not entry.enabled):
            reschedule = True
        setattr(entry, field, value)

    try:
        _check_template(actor, entry)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    if not entry.enabled:
        entry.next_run = None
    elif reschedule or entry.next_run is None:
        entry.next_run = next_run_for(entry, timezone.now())
    entry.save()
    return CommandResult.ok(entry)


@transaction.atomic
def delete_recurring_entry(actor: ActorContext, recurring_id: int) -> CommandResult:
    require(actor, "recurring.manage")

    deleted, _ = RecurringEntry.objects.filter(company=actor.company, pk=recurring_id).delete()
    if not deleted:
        return CommandResult.fail("Recurring entry not found.", code="NotFound", http_status=404)
    return CommandResult.ok({"deleted": True})


# =============================================================================
# Worker side
# =============================================================================

def _creator_actor(entry: RecurringEntry):
    membership = (
        CompanyMembership.objects.select_related("company", "user")
        .filter(company=entry.company, user_id=entry.created_by_id, is_active=True)
        .first()
    )
    return actor_for_membership(membership) if membership else None


def _advance(entry: RecurringEntry, now) -> None:
    entry.next_run = None if entry.is_exhausted else next_run_for(entry, now)
    if entry.next_run is None:
        entry.enabled = False


@transaction.atomic
def dispatch_recurring_entry(recurring_id: int, now=None) -> CommandResult:
    """
    Create the journal entry for one due template and schedule the next run.

    The template row is locked (rows locked by another worker are skipped),
    so a run is never dispatched twice concurrently. The created entry's
    reference is ``REC-<id>-<run>``; if that reference already exists the
    run is treated as done. Failures are stored in ``last_error`` and the
    template still moves on to its next run.
    """
    now = now or timezone.now()
    entry = (
        RecurringEntry.objects.select_for_update(skip_locked=True)
        .select_related("company")
        .filter(pk=recurring_id, enabled=True, next_run__lte=now)
        .first()
    )
    if entry is None:
        return CommandResult.ok(None, meta={"skipped": True})

    log_extra = {"company_id": entry.company_id, "recurring_id": entry.id}
    run_number = entry.run_count + 1
    actor = _creator_actor(entry)

    if actor is None:
        result = CommandResult.fail("Creator is no longer an active member of the company.", code="Forbidden", http_status=403)
    else:
        try:
            result = create_journal_entry(
                actor,
                date=timezone.localtime(entry.next_run).date(),
                reference=entry.reference_for_run(run_number),
                lines=entry.lines,
                description=entry.description or entry.name,
                status=JournalEntry.Status.POSTED if entry.auto_post else JournalEntry.Status.DRAFT,
                source=JournalEntry.Source.RECURRING,
            )
        except PermissionDenied as exc:
            result = CommandResult.fail(str(exc), code="Forbidden", http_status=403)

    if result.success or result.error_code == "DuplicateReference":
        entry.run_count = run_number
        entry.last_run = now
        entry.last_error = ""
        if not result.success:
            logger.warning("Recurring run already recorded", extra={**log_extra, "run_number": run_number})
    else:
        entry.last_error = f"{result.error_code}: {result.error}"
        logger.error("Recurring run failed", extra={**log_extra, "error": entry.last_error})

    _advance(entry, now)
    entry.save(update_fields=["run_count", "last_run", "last_error", "next_run", "enabled", "updated_at"])

    if result.success:
        logger.info(
            "Recurring entry dispatched",
            extra={**log_extra, "entry_id": result.data.id, "run_number": run_number},
        )
    return result
