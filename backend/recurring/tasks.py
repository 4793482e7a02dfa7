"""
Celery tasks for recurring entries.

Tasks:
- dispatch_due_recurring_entries: Create entries for every due template (beat, every minute)
"""
import logging

from celery import shared_task
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def dispatch_due_recurring_entries(self) -> dict:
    """
    Dispatch templates whose ``next_run`` has passed.

    Each template is handled in its own transaction, so one failing
    template never holds back the rest of the batch.
    """
    from recurring.commands import dispatch_recurring_entry
    from recurring.models import RecurringEntry

    now = timezone.now()
    batch = getattr(settings, "RECURRING_DISPATCH_BATCH", 100)
    due_ids = list(
        RecurringEntry.objects.filter(enabled=True, next_run__lte=now)
        .order_by("next_run", "id")
        .values_list("id", flat=True)[:batch]
    )

    dispatched = failed = skipped = 0
    for recurring_id in due_ids:
        result = dispatch_recurring_entry(recurring_id, now=now)
        if result.meta.get("skipped"):
            skipped += 1
        elif result.success:
            dispatched += 1
        else:
            failed += 1

    if due_ids:
        logger.info(
            "Recurring dispatch finished",
            extra={"due_count": len(due_ids), "dispatched": dispatched, "failed": failed, "skipped": skipped},
        )
    return {"due": len(due_ids), "dispatched": dispatched, "failed": failed, "skipped": skipped}
