# accounting/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Usage:
    from accounting.policies import can_post_entry, assert_can_post_entry

    # Option 1: Check and get boolean + reason
    allowed, reason = can_post_entry(actor, entry)
    if not allowed:
        return CommandResult.fail(reason)

    # Option 2: Assert and raise the matching LedgerError on failure
    assert_can_post_entry(actor, entry)

Design Principles:
1. Policies are pure functions (no side effects)
2. Policies return (bool, str) tuples for clear error messages
3. The status state machine is a single table (STATUS_TRANSITIONS)
4. Commands compose policies as needed
"""

from accounting.exceptions import (
    AccountInUse,
    ConflictError,
    ForbiddenError,
    InvalidTransition,
)
from accounting.models import JournalEntry


# =============================================================================
# Tenant Boundary Policies
# =============================================================================

def check_tenant_boundary(actor, entity) -> bool:
    """
    Verify entity belongs to actor's company.
    This is the fundamental multi-tenant security check.
    """
    entity_company_id = getattr(entity, "company_id", None)
    if entity_company_id is None:
        company = getattr(entity, "company", None)
        entity_company_id = getattr(company, "id", None) if company else None
    return entity_company_id == actor.company.id


# =============================================================================
# Journal Entry Status Transitions
# =============================================================================

STATUS_TRANSITIONS = {
    (JournalEntry.Status.DRAFT, JournalEntry.Status.POSTED): "post",
    (JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED): "reverse",
}

# Statuses in which an entry may still be edited or physically deleted.
MUTABLE_STATUSES = {JournalEntry.Status.DRAFT}


def validate_status_transition(old_status, new_status) -> tuple[bool, str]:
    """
    Validate a status transition against the lifecycle table.

    Allowed transitions:
    - DRAFT -> POSTED (posting)
    - POSTED -> REVERSED (reversal, terminal)

    A "transition" to the same status is not allowed: posting an already
    POSTED entry is an error, not a no-op.
    """
    if (old_status, new_status) in STATUS_TRANSITIONS:
        return True, ""

    return False, f"Invalid status transition: {old_status} -> {new_status}"


# =============================================================================
# Account Policies
# =============================================================================

def can_delete_account(actor, account) -> tuple[bool, str]:
    """
    Check if an account can be deleted.

    Rules:
    - Must belong to actor's company
    - Cannot be a system (template-seeded) account
    - Cannot be referenced by any journal line
    - Cannot have child accounts
    """
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."

    if account.is_system:
        return False, f"Account {account.code} is a system account and cannot be deleted."

    if account.journal_lines.exists():
        return False, f"Account {account.code} is referenced by journal entries."

    from accounting.models import Account
    if Account.objects.filter(company_id=account.company_id, parent_code=account.code).exists():
        return False, f"Account {account.code} has child accounts."

    return True, ""


# =============================================================================
# Journal Entry Policies
# =============================================================================

def _is_owner_or_elevated(actor, entry) -> bool:
    return actor.is_elevated or entry.created_by_id == getattr(actor.user, "id", None)


def can_view_entry(actor, entry) -> bool:
    """Restricted actors see their own entries plus everything POSTED."""
    if not check_tenant_boundary(actor, entry):
        return False
    return _is_owner_or_elevated(actor, entry) or entry.status == JournalEntry.Status.POSTED


def can_edit_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be edited.

    Rules:
    - Must belong to actor's company
    - Must be in DRAFT status
    - Actor must be the creator or an elevated member
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.status not in MUTABLE_STATUSES:
        return False, f"Cannot edit entry in {entry.status} status."

    if not _is_owner_or_elevated(actor, entry):
        return False, "Only the creator can edit this draft."

    return True, ""


def can_delete_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be deleted.

    Rules:
    - Must belong to actor's company
    - Must be in DRAFT status (posted entries must be reversed)
    - Actor must be the creator or an elevated member
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.status not in MUTABLE_STATUSES:
        return False, f"Cannot delete entry in {entry.status} status. Posted entries must be reversed."

    if not _is_owner_or_elevated(actor, entry):
        return False, "Only the creator can delete this draft."

    return True, ""


def can_post_entry(actor, entry) -> tuple[bool, str]:
    """Check if a journal entry can be posted (DRAFT, not quarantined)."""
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.is_quarantined:
        return False, "Entry is quarantined for review."

    return validate_status_transition(entry.status, JournalEntry.Status.POSTED)


def can_reverse_entry(actor, entry) -> tuple[bool, str]:
    """Check if a journal entry can be reversed (POSTED, not quarantined)."""
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.is_quarantined:
        return False, "Entry is quarantined for review."

    return validate_status_transition(entry.status, JournalEntry.Status.REVERSED)


# =============================================================================
# Assertion Helpers (raise the matching LedgerError on failure)
# =============================================================================

def _assert_transition(actor, entry, target, reason: str) -> None:
    if not check_tenant_boundary(actor, entry):
        raise ForbiddenError(reason)
    if entry.is_quarantined:
        raise ConflictError(reason, code="Quarantined")
    raise InvalidTransition(reason, details={"from": entry.status, "to": target})


def assert_can_post_entry(actor, entry) -> None:
    allowed, reason = can_post_entry(actor, entry)
    if not allowed:
        _assert_transition(actor, entry, JournalEntry.Status.POSTED, reason)


def assert_can_reverse_entry(actor, entry) -> None:
    allowed, reason = can_reverse_entry(actor, entry)
    if not allowed:
        _assert_transition(actor, entry, JournalEntry.Status.REVERSED, reason)


def _assert_mutable(actor, entry, allowed: bool, reason: str) -> None:
    if allowed:
        return
    if entry.status not in MUTABLE_STATUSES:
        raise InvalidTransition(reason)
    raise ForbiddenError(reason)


def assert_can_edit_entry(actor, entry) -> None:
    allowed, reason = can_edit_entry(actor, entry)
    _assert_mutable(actor, entry, allowed, reason)


def assert_can_delete_entry(actor, entry) -> None:
    allowed, reason = can_delete_entry(actor, entry)
    _assert_mutable(actor, entry, allowed, reason)


def assert_can_delete_account(actor, account) -> None:
    allowed, reason = can_delete_account(actor, account)
    if allowed:
        return
    if account.is_system or not check_tenant_boundary(actor, account):
        raise ForbiddenError(reason)
    raise AccountInUse(reason)
