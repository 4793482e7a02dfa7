# reports/commands.py
"""
Commands for saved report layouts.

Report builders are pure reads and are called directly by views; only
saving or clearing a configuration mutates state.
"""

import logging

from django.db import transaction

from accounts.authz import ActorContext, require
from accounting.commands import CommandResult
from accounting.exceptions import LedgerError
from reports.configs import KIND_CLASSES
from reports.models import ReportConfiguration

logger = logging.getLogger(__name__)


def _check_kind(kind: str):
    if kind not in KIND_CLASSES:
        return CommandResult.fail(
            f"Unknown report kind '{kind}'. Expected one of: {', '.join(KIND_CLASSES)}.",
        )
    return None


@transaction.atomic
def save_report_configuration(actor: ActorContext, kind: str, config: dict) -> CommandResult:
    """
    Validate and store the company's layout for a configurable report.

    The stored JSON is the normalized form (snake_case keys), whatever
    casing the caller used.
    """
    require(actor, "reports.configure")
    invalid = _check_kind(kind)
    if invalid:
        return invalid

    config_cls, _ = KIND_CLASSES[kind]
    try:
        parsed = config_cls.from_dict(config)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    saved, created = ReportConfiguration.objects.update_or_create(
        company=actor.company,
        kind=kind,
        defaults={"config": parsed.to_dict(), "updated_by": actor.user},
    )
    logger.info(
        "Report configuration saved",
        extra={"company_id": actor.company.id, "kind": kind, "was_created": created},
    )
    return CommandResult.ok(saved)


@transaction.atomic
def reset_report_configuration(actor: ActorContext, kind: str) -> CommandResult:
    """Drop the saved layout so the built-in default applies again."""
    require(actor, "reports.configure")
    invalid = _check_kind(kind)
    if invalid:
        return invalid

    deleted, _ = ReportConfiguration.objects.filter(company=actor.company, kind=kind).delete()
    return CommandResult.ok(meta={"deleted": bool(deleted)})
