"""
Tests for auth/models.py and auth/errors.py -- value types.

Coverage:
  - RegistrationDetails rejects missing required fields and coerces role
  - Principal never exposes its digest through repr
  - Result holds exactly one of value / error
"""

from __future__ import annotations

import pytest

from auth.errors import ErrorKind, Result
from auth.models import Principal, RoleName
from conftest import make_details


class TestRegistrationDetails:
    @pytest.mark.parametrize("field", ["username", "email", "password", "first_name", "last_name", "phone_number"])
    def test_blank_required_field(self, field):
        with pytest.raises(ValueError, match=field):
            make_details(**{field: "  "})

    def test_role_coerced_to_frozenset(self):
        assert make_details(role=["admin", "admin"]).role == frozenset({"admin"})

    def test_password_not_in_repr(self):
        assert "password123" not in repr(make_details())


class TestPrincipal:
    def test_repr_hides_digest(self):
        p = Principal(username="johndoe", email="a@x.com", password="$2b$04$secretdigest")
        assert "secretdigest" not in repr(p)

    def test_authorities(self):
        p = Principal(username="johndoe", email="a@x.com", password="x", roles=("ROLE_USER", "ROLE_ADMIN"))
        assert p.authorities == frozenset({RoleName.USER.value, RoleName.ADMIN.value})


class TestResult:
    def test_success(self):
        r = Result.success(5)
        assert r.ok and r.unwrap() == 5

    def test_failure_unwrap_raises(self):
        r = Result.failure(ErrorKind.NOT_FOUND, "missing")
        assert not r.ok
        with pytest.raises(RuntimeError):
            r.unwrap()

    def test_requires_exactly_one(self):
        with pytest.raises(ValueError):
            Result()
