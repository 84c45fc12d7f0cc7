"""
Tests for auth/store.py -- UserStore and RoleStore.

Uses the in-memory engine from conftest.py: each test gets a fresh schema
with both roles seeded.

Coverage:
  - role seeding inserts the fixed set once and is idempotent
  - find_by_role_name for seeded and unseeded roles
  - save + lookup_by_username round trip including role links
  - exists_by_username / exists_by_email
  - UNIQUE(username) and UNIQUE(email) raise IntegrityError and write nothing
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import Principal, RoleName
from auth.store import RoleStore, create_store_engine


def _principal(username="johndoe", email="a@x.com", roles=("ROLE_USER",)) -> Principal:
    return Principal(
        username=username,
        email=email,
        password="$2b$04$digest",
        first_name="John",
        last_name="Doe",
        phone_number="+15551234567",
        roles=roles,
    )


class TestRoleSeeding:
    def test_seeds_both_roles_on_empty_table(self):
        engine = create_store_engine("sqlite:///:memory:")
        store = RoleStore(engine)
        assert store.seed_roles() == 2
        assert store.count() == 2
        engine.dispose()

    def test_second_run_is_noop(self, role_store):
        assert role_store.seed_roles() == 0
        assert role_store.count() == 2

    def test_find_seeded_role(self, role_store):
        role = role_store.find_by_role_name(RoleName.ADMIN)
        assert role is not None
        assert role.name is RoleName.ADMIN
        assert role.id is not None

    def test_find_accepts_plain_string(self, role_store):
        assert role_store.find_by_role_name("ROLE_USER").name is RoleName.USER

    def test_unseeded_store_finds_nothing(self, engine):
        assert RoleStore(engine).find_by_role_name(RoleName.USER) is None


class TestSaveAndLookup:
    def test_round_trip(self, user_store, role_store):
        user_id = user_store.save(_principal())
        loaded = user_store.lookup_by_username("johndoe")
        assert loaded.id == user_id
        assert loaded.email == "a@x.com"
        assert loaded.password == "$2b$04$digest"
        assert loaded.roles == ("ROLE_USER",)
        assert loaded.created_at

    def test_multiple_roles_in_role_id_order(self, user_store, role_store):
        user_store.save(_principal(roles=("ROLE_ADMIN", "ROLE_USER")))
        assert user_store.lookup_by_username("johndoe").roles == ("ROLE_USER", "ROLE_ADMIN")

    def test_unknown_username_returns_none(self, user_store):
        assert user_store.lookup_by_username("nobody") is None

    def test_lookup_is_case_sensitive(self, user_store, role_store):
        user_store.save(_principal())
        assert user_store.lookup_by_username("JohnDoe") is None

    def test_exists_checks(self, user_store, role_store):
        user_store.save(_principal())
        assert user_store.exists_by_username("johndoe") is True
        assert user_store.exists_by_username("janedoe") is False
        assert user_store.exists_by_email("a@x.com") is True
        assert user_store.exists_by_email("b@x.com") is False


class TestUniqueness:
    def test_duplicate_username_raises(self, user_store, role_store):
        user_store.save(_principal())
        with pytest.raises(IntegrityError):
            user_store.save(_principal(email="b@x.com"))
        assert user_store.exists_by_email("b@x.com") is False

    def test_duplicate_email_raises(self, user_store, role_store):
        user_store.save(_principal())
        with pytest.raises(IntegrityError):
            user_store.save(_principal(username="janedoe"))
        assert user_store.exists_by_username("janedoe") is False
