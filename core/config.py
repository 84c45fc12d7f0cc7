"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Archilogic happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET).

  @model_validator(mode="after"): Enforces the signing-secret policy once all
      fields are resolved.

Security notes:
  [S1] JWT_SECRET is base64-encoded. The decoded key must be at least 32 bytes
       (256 bits) -- the minimum key size for HMAC-SHA256.

  [S2] In production mode (DEBUG not set or false), a missing JWT_SECRET is a
       hard startup failure. Debug mode generates a random key with a warning.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import base64
import binascii
import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("archilogic.config")

_MIN_KEY_BYTES = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file, as long as DEBUG=true or a
    JWT_SECRET is supplied.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./archilogic.db"

    # ------------------------------------------------------------------
    # Token signing
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured" -- see validator.
    jwt_secret: str = Field(default="", repr=False)
    # 24 hours, expressed in milliseconds.
    jwt_expiration_ms: int = 86_400_000

    # ------------------------------------------------------------------
    # Credentials and registration
    # ------------------------------------------------------------------

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    # Off: unknown role strings fall back to ROLE_USER (legacy client behaviour).
    strict_role_mapping: bool = False

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy [S1] [S2].

        Dev mode (DEBUG=true): auto-generate a random base64 key with a
            warning. Tokens will not survive a restart.

        Production mode: refuse to start without JWT_SECRET.

        Both modes: the secret must be valid base64 and decode to at least
            32 bytes.
        """
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = base64.b64encode(secrets.token_bytes(_MIN_KEY_BYTES)).decode("ascii")
                logger.warning("WARNING: Using auto-generated JWT_SECRET. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET to a base64-encoded key in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        try:
            key = base64.b64decode(self.jwt_secret, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("JWT_SECRET must be base64-encoded.") from exc
        if len(key) < _MIN_KEY_BYTES:
            raise ValueError(f"JWT_SECRET must decode to at least {_MIN_KEY_BYTES} bytes.")
        return self

    @property
    def signing_key(self) -> bytes:
        """Decoded HMAC key. Validated at construction, so this cannot fail."""
        return base64.b64decode(self.jwt_secret)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
