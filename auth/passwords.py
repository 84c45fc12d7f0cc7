"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection creates a password longer than 72 bytes, which bcrypt 4.x rejects.

Passwords longer than 72 bytes are truncated by bcrypt. The API layer caps
passwords at 100 characters, and the signup model rejects anything over
72 bytes once encoded.

Layer rule: no imports from api/ or core/. The cost factor is injected.
"""

from __future__ import annotations

import bcrypt


class PasswordHasher:
    """One-way hash/verify for credentials.

    rounds is the bcrypt cost factor. Production uses 12; tests pass 4 so the
    suite does not spend most of its time in key stretching.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Timing equalization dummy [C1]: verified against when a username
        # does not exist so the response time does not reveal that fact.
        self.dummy_hash: str = self.hash("archilogic_timing_dummy")

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if plain matches digest. A malformed digest is a mismatch."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            return False
