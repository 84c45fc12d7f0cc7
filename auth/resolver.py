"""
auth/resolver.py -- Load the full principal for an authenticated username.

Used by the authentication gate on every request that carries a valid token.
The store lookup joins roles in the same query, so resolving a principal is
one round trip.
"""

from __future__ import annotations

from auth.errors import ErrorKind, Result
from auth.models import Principal
from auth.store import UserStore


class IdentityResolver:
    def __init__(self, store: UserStore) -> None:
        self._store = store

    def load_principal(self, username: str) -> Result[Principal]:
        principal = self._store.lookup_by_username(username)
        if principal is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"User Not Found with username: {username}")
        return Result.success(principal)
