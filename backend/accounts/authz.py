# accounts/authz.py
"""
Authorization utilities for the ledger.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- actor_for_membership / owner_actor: Build a context outside of a request (workers, commands)
- require: Check permissions and raise if not granted

Permissions are checked:
1. First by role (OWNER: implicit allow)
2. ACCOUNTANT/STAFF/VIEWER: role defaults plus explicit grants
"""

from dataclasses import dataclass
from typing import FrozenSet
from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import CompanyMembership, Company


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + company).

    This is passed to commands and policies to provide context
    about who is performing an action and in which company.

    Attributes:
        user: The authenticated user
        company: The active company (tenant)
        membership: The user's membership in the company
        perms: Effective permission codes (role defaults + grants)
    """
    user: object  # User model
    company: Company
    membership: CompanyMembership
    perms: FrozenSet[str]

    def has(self, code: str) -> bool:
        """
        Check if actor has a specific permission.

        Order of checks:
        1. inactive membership: deny
        2. OWNER: implicit allow
        3. everyone else: only codes in perms
        """
        if not self.membership.is_active:
            return False

        if self.membership.role == CompanyMembership.Role.OWNER:
            return True
        return code in self.perms

    @property
    def is_owner(self) -> bool:
        return self.membership.role == CompanyMembership.Role.OWNER

    @property
    def is_elevated(self) -> bool:
        """Elevated actors may post directly and act on other users' drafts."""
        return self.has("journal.post")

    @property
    def role(self) -> str:
        return self.membership.role


def actor_for_membership(membership: CompanyMembership) -> ActorContext:
    """Build an ActorContext from a membership row (used by background workers)."""
    return ActorContext(
        user=membership.user,
        company=membership.company,
        membership=membership,
        perms=membership.effective_permissions(),
    )


def owner_actor(company: Company) -> ActorContext:
    """Act as the company's first active owner (management commands)."""
    membership = (
        CompanyMembership.objects.select_related("company", "user")
        .filter(company=company, role=CompanyMembership.Role.OWNER, is_active=True)
        .order_by("joined_at", "id")
        .first()
    )
    if membership is None:
        raise PermissionDenied(f"Company {company.slug} has no active owner.")
    return actor_for_membership(membership)


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    The membership is loaded fresh from the database on every request so
    that role changes take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If user has no active company or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    company = getattr(user, "active_company", None)

    if not company:
        raise PermissionDenied("No active company selected. Please select a company first.")

    try:
        membership = CompanyMembership.objects.select_related(
            "company", "user"
        ).get(
            user=user,
            company=company,
            is_active=True,
        )
    except CompanyMembership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected company.")

    return ActorContext(
        user=user,
        company=company,
        membership=membership,
        perms=membership.effective_permissions(),
    )


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Raises:
        PermissionDenied: If permission is not granted

    Example:
        require(actor, "journal.post")
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")


def require_any(actor: ActorContext, *codes: str) -> None:
    """Require that the actor has AT LEAST ONE of the specified permissions."""
    for code in codes:
        if actor.has(code):
            return

    raise PermissionDenied(f"Permission denied: requires one of {', '.join(codes)}")
