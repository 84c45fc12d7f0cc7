"""
tests/conftest.py -- Shared test fixtures for Archilogic unit and integration tests.

This module provides:
  - engine / user_store / role_store / hasher / codec / service: in-memory auth core
    for unit tests (one fresh database per test)
  - _make_test_stores(): named shared-memory stores for integration tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus tokens for a USER and an ADMIN account

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
integration tests because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

Environment must be set before any api/ import: api.main reads settings at
import time (DEBUG auto-generates JWT_SECRET, ALLOWED_HOSTS must admit the
TestClient host, bcrypt runs at minimum cost).
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import base64

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_auth_components
from auth.models import RegistrationDetails
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import RoleStore, UserStore, create_store_engine
from auth.tokens import TokenCodec
from core.config import get_settings

TEST_KEY = base64.b64decode(base64.b64encode(b"k" * 32))


def make_details(**overrides) -> RegistrationDetails:
    """RegistrationDetails for "johndoe" / a@x.com, with any field overridden."""
    fields = {
        "username": "johndoe",
        "first_name": "John",
        "last_name": "Doe",
        "email": "a@x.com",
        "phone_number": "+15551234567",
        "password": "password123",
        "role": None,
    }
    fields.update(overrides)
    return RegistrationDetails(**fields)


# ---------------------------------------------------------------------------
# Unit-test fixtures -- fresh in-memory database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    eng = create_store_engine("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine=engine)


@pytest.fixture
def role_store(engine) -> RoleStore:
    store = RoleStore(engine)
    store.seed_roles()
    return store


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_KEY, ttl_ms=60_000)


@pytest.fixture
def service(user_store, role_store, hasher, codec) -> AuthService:
    return AuthService(users=user_store, roles=role_store, hasher=hasher, codec=codec)


# ---------------------------------------------------------------------------
# Integration helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, RoleStore]:
    """Create a named shared-memory store pair for one test module.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'gate').
    """
    url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    engine = create_store_engine(url)
    role_store = RoleStore(engine)
    role_store.seed_roles()
    return UserStore(engine=engine), role_store


def _patch_lifespan(user_store: UserStore, role_store: RoleStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_auth_components(app, get_settings(), user_store, role_store)
        yield

    return test_lifespan


@dataclass
class ApiContext:
    client: TestClient
    user_token: str
    admin_token: str
    codec: TokenCodec
    user_store: UserStore


# ---------------------------------------------------------------------------
# Module-scoped fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    Accounts registered before the client starts:
      johndoe   / password123   (ROLE_USER,  email johndoe@example.com)
      adminuser / adminpass123  (ROLE_ADMIN, email admin@example.com)
    Tokens are issued by the app's own codec, so they verify against the
    app's signing key.
    """
    user_store, role_store = _make_test_stores("api")
    app.router.lifespan_context = _patch_lifespan(user_store, role_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        service: AuthService = app.state.auth_service
        service.register(make_details(email="johndoe@example.com")).unwrap()
        service.register(
            make_details(
                username="adminuser",
                email="admin@example.com",
                password="adminpass123",
                role=frozenset({"admin"}),
            )
        ).unwrap()
        codec: TokenCodec = app.state.token_codec
        user_token = codec.issue(user_store.lookup_by_username("johndoe"))
        admin_token = codec.issue(user_store.lookup_by_username("adminuser"))
        yield ApiContext(
            client=client,
            user_token=user_token,
            admin_token=admin_token,
            codec=codec,
            user_store=user_store,
        )

    user_store.close()
