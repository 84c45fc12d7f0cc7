"""
Tests for auth/policy.py -- route classification.

Coverage:
  - login/registration, role-check demo routes, health and docs are PUBLIC
  - everything else, including unknown paths, is PROTECTED
  - prefix matching does not leak onto look-alike paths
"""

from __future__ import annotations

import pytest

from auth.policy import RouteAccess, classify


class TestClassify:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/v1/auth/signin",
            "/api/v1/auth/signup",
            "/api/v1/test/all",
            "/api/v1/test/admin",
            "/api/v1/health",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/docs/oauth2-redirect",
        ],
    )
    def test_public(self, path):
        assert classify(path) is RouteAccess.PUBLIC

    @pytest.mark.parametrize(
        "path",
        [
            "/api/v1/users/me",
            "/api/v1/auth",
            "/api/v1/authx/signin",
            "/api/v1/healthz",
            "/",
            "/api/v2/auth/signin",
        ],
    )
    def test_protected(self, path):
        assert classify(path) is RouteAccess.PROTECTED
