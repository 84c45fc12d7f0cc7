"""
auth/tokens.py -- JWT issue and verification.

Security design decisions:
  JWT: python-jose with HS256. The key is the base64-decoded JWT_SECRET,
       decoded once when the codec is built and never mutated afterwards, so
       one TokenCodec is shared by every request without locking.

  validate() never raises. Every failure class (empty input, malformed
       token, bad signature, wrong algorithm, missing claims, expiry) gets
       its own log line and then collapses to False. The gate treats False
       as "no authentication" and lets the request continue.

  Signature encoding: only the canonical base64url spelling of the signature
       is accepted. Any other character in the final position fails.

  Expiry: jose checks exp against the wall clock in whole seconds and
       accepts exp == now. validate() additionally requires exp > now, so a
       token issued with TTL <= 0 is never valid.

  Log lines carry the failure reason only. Tokens are bearer credentials and
       are never written to the log.

Layer rule: no imports from api/ or core/. Key and TTL are injected.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from jose.utils import base64url_decode, base64url_encode

from auth.models import Principal

logger = logging.getLogger("archilogic.auth.tokens")

ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "require_sub": True,
    "require_iat": True,
    "require_exp": True,
}


class TokenCodec:
    """Issue and verify signed bearer tokens carrying identity + roles.

    Usage:
        codec = TokenCodec(settings.signing_key, settings.jwt_expiration_ms)
        token = codec.issue(principal)
        if codec.validate(token):
            username = codec.subject(token)
    """

    def __init__(self, key: bytes, ttl_ms: int) -> None:
        self._key = key
        self.ttl = timedelta(milliseconds=ttl_ms)

    def issue(self, principal: Principal) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": principal.username,
            "roles": list(principal.roles),
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._key, algorithm=ALGORITHM)

    def validate(self, token: str | None) -> bool:
        """Return True only for a well-formed, correctly signed, unexpired token."""
        if not token or not isinstance(token, str):
            logger.warning("JWT claims string is empty")
            return False
        try:
            claims = self._decode(token)
        except ExpiredSignatureError:
            logger.warning("JWT token is expired")
            return False
        except JWTClaimsError as exc:
            logger.warning("JWT token claims are invalid: %s", exc)
            return False
        except JWTError as exc:
            # Bad signature, malformed segments and disallowed algorithms all land here.
            logger.warning("Invalid JWT token: %s", exc)
            return False
        if not _canonical_signature(token):
            logger.warning("Invalid JWT token: non-canonical signature encoding")
            return False
        if claims["exp"] <= datetime.now(timezone.utc).timestamp():
            logger.warning("JWT token is expired")
            return False
        return True

    def subject(self, token: str) -> str:
        """Username carried by a token. Call validate() first; raises JWTError otherwise."""
        return self._decode(token)["sub"]

    def roles(self, token: str) -> list[str]:
        """Roles claim of a validated token, in issue order."""
        return list(self._decode(token).get("roles", []))

    def _decode(self, token: str) -> dict[str, Any]:
        return jwt.decode(token, self._key, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)


def _canonical_signature(token: str) -> bool:
    # base64url decoding ignores the unused low bits of the final character,
    # so several spellings of the same signature would otherwise verify.
    segment = token.rsplit(".", 1)[-1].encode("ascii")
    return base64url_encode(base64url_decode(segment)) == segment
