# tests/test_accounts.py
"""
Tests for the accounts module.

Tests cover:
- Role defaults and effective permissions
- ActorContext checks (inactive membership, owner implicit allow)
- resolve_actor against the active company
"""

import pytest
from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.authz import actor_for_membership, owner_actor, require, require_any, resolve_actor
from accounts.models import CompanyMembership
from accounts.permission_defaults import ROLE_DEFAULTS, all_permission_codes


class _Request:
    def __init__(self, user):
        self.user = user


class TestPermissionDefaults:

    def test_all_permission_codes_is_union_of_roles(self):
        codes = all_permission_codes()
        for role_codes in ROLE_DEFAULTS.values():
            assert role_codes <= codes
        assert "journal.post" in codes
        assert "recurring.manage" in codes

    def test_staff_cannot_post(self):
        assert "journal.create" in ROLE_DEFAULTS["STAFF"]
        assert "journal.post" not in ROLE_DEFAULTS["STAFF"]

    def test_viewer_is_read_only(self):
        assert all(code.endswith(".view") for code in ROLE_DEFAULTS["VIEWER"])


@pytest.mark.django_db
class TestActorContext:

    def test_owner_has_everything(self, owner):
        assert owner.has("journal.post")
        assert owner.has("anything.at.all")
        assert owner.is_elevated

    def test_staff_is_not_elevated(self, staff):
        assert staff.has("journal.create")
        assert not staff.has("journal.post")
        assert not staff.is_elevated

    def test_explicit_grant_adds_to_role(self, make_member):
        membership = make_member(CompanyMembership.Role.STAFF, permissions=["journal.post"])
        actor = actor_for_membership(membership)
        assert actor.is_elevated

    def test_inactive_membership_has_nothing(self, owner_membership):
        owner_membership.is_active = False
        owner_membership.save()
        actor = actor_for_membership(owner_membership)
        assert not actor.has("journal.view")

    def test_require_raises(self, viewer):
        require(viewer, "journal.view")
        with pytest.raises(PermissionDenied):
            require(viewer, "journal.create")

    def test_require_any(self, staff):
        require_any(staff, "journal.post", "journal.create")
        with pytest.raises(PermissionDenied):
            require_any(staff, "journal.post", "accounts.manage")

    def test_owner_actor(self, company, owner_membership):
        actor = owner_actor(company)
        assert actor.membership == owner_membership

    def test_owner_actor_without_owner(self, company):
        with pytest.raises(PermissionDenied):
            owner_actor(company)


@pytest.mark.django_db
class TestResolveActor:

    def test_resolves_active_company(self, owner_membership):
        actor = resolve_actor(_Request(owner_membership.user))
        assert actor.company == owner_membership.company
        assert actor.role == CompanyMembership.Role.OWNER

    def test_anonymous_rejected(self):
        from django.contrib.auth.models import AnonymousUser

        with pytest.raises(NotAuthenticated):
            resolve_actor(_Request(AnonymousUser()))

    def test_no_membership_in_active_company(self, owner_membership, other_company):
        user = owner_membership.user
        user.active_company = other_company
        user.save()
        with pytest.raises(PermissionDenied):
            resolve_actor(_Request(user))
