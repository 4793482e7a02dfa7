# tests/conftest.py
"""
Pytest fixtures for ledger tests.

- One company per test with an owner, accountant, staff and viewer member
- ActorContext fixtures built the same way resolve_actor builds them
- ``chart``: the retail template seeded through the command layer
- ``make_entry``: create (and by default post) an entry by account codes
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from accounts.authz import actor_for_membership
from accounts.models import Company, CompanyMembership
from accounting.commands import create_journal_entry, seed_chart_of_accounts
from accounting.models import Account, JournalEntry


User = get_user_model()


# =============================================================================
# Company & Membership Fixtures
# =============================================================================

@pytest.fixture
def company(db):
    return Company.objects.create(name="Acme Traders", slug="acme", default_currency="INR")


@pytest.fixture
def other_company(db):
    """Second tenant for isolation tests."""
    return Company.objects.create(name="Globex", slug="globex")


@pytest.fixture
def make_member(db, company):
    """Factory: a user with an active membership of ``role`` in ``company``."""
    def _make(role, email=None, target=None, permissions=None):
        target = target or company
        user = User.objects.create_user(
            email=email or f"{role.lower()}@{target.slug}.test",
            password="testpass123",
            name=role.title(),
        )
        user.active_company = target
        user.save()
        membership = CompanyMembership.objects.create(
            company=target,
            user=user,
            role=role,
            permissions=permissions or [],
        )
        return membership

    return _make


@pytest.fixture
def owner_membership(make_member):
    return make_member(CompanyMembership.Role.OWNER)


@pytest.fixture
def accountant_membership(make_member):
    return make_member(CompanyMembership.Role.ACCOUNTANT)


@pytest.fixture
def staff_membership(make_member):
    return make_member(CompanyMembership.Role.STAFF)


@pytest.fixture
def viewer_membership(make_member):
    return make_member(CompanyMembership.Role.VIEWER)


# =============================================================================
# Actor Context Fixtures
# =============================================================================

@pytest.fixture
def owner(owner_membership):
    return actor_for_membership(owner_membership)


@pytest.fixture
def accountant(accountant_membership):
    return actor_for_membership(accountant_membership)


@pytest.fixture
def staff(staff_membership):
    return actor_for_membership(staff_membership)


@pytest.fixture
def viewer(viewer_membership):
    return actor_for_membership(viewer_membership)


# =============================================================================
# Chart & Journal Fixtures
# =============================================================================

@pytest.fixture
def chart(owner):
    """Retail chart of accounts, keyed by code."""
    result = seed_chart_of_accounts(owner, "retail")
    assert result.success, result.error
    return {a.code: a for a in Account.objects.filter(company=owner.company)}


@pytest.fixture
def make_entry(chart):
    """
    Factory: create an entry from ``(code, debit, credit)`` tuples.

    Posts by default; pass status=JournalEntry.Status.DRAFT for a draft.
    """
    counter = {"n": 0}

    def _make(actor, lines, entry_date=date(2020, 1, 15), reference=None, status=JournalEntry.Status.POSTED, **kwargs):
        counter["n"] += 1
        result = create_journal_entry(
            actor,
            date=entry_date,
            reference=reference or f"JV-{counter['n']:04d}",
            lines=[
                {"account_code": code, "debit": Decimal(str(debit)), "credit": Decimal(str(credit))}
                for code, debit, credit in lines
            ],
            status=status,
            **kwargs,
        )
        assert result.success, f"{result.error_code}: {result.error}"
        return result.data

    return _make


@pytest.fixture
def balance(company):
    """Fresh raw running balance of an account, by code."""
    def _balance(code):
        return Account.objects.get(company=company, code=code).current_balance

    return _balance


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def owner_client(api_client, owner_membership):
    api_client.force_authenticate(user=owner_membership.user)
    return api_client


@pytest.fixture
def viewer_client(viewer_membership):
    from rest_framework.test import APIClient
    client = APIClient()
    client.force_authenticate(user=viewer_membership.user)
    return client
