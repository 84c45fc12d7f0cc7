"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data containers). Stores, the service layer and
routes do the work; these types only own shape and construction-time checks.

Principal is a plain capability record: identity, credential digest and
authority set. It does not implement any framework interface.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RoleName(str, Enum):
    """The fixed set of roles. Values are stored in the roles table verbatim."""

    USER = "ROLE_USER"
    ADMIN = "ROLE_ADMIN"


@dataclass(frozen=True)
class Role:
    name: RoleName
    id: int | None = None


@dataclass
class Principal:
    """An identity record as held by the credential store.

    password is always a bcrypt digest -- never plaintext. roles keeps the
    store's iteration order (role id ascending) so token claims are stable.
    """

    username: str
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    roles: tuple[str, ...] = ()
    id: int | None = None
    created_at: str | None = None

    @property
    def authorities(self) -> frozenset[str]:
        return frozenset(self.roles)

    def __repr__(self) -> str:
        # Digest stays out of logs and tracebacks.
        return f"Principal(id={self.id!r}, username={self.username!r}, email={self.email!r}, roles={self.roles!r})"


def _require(value: str, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{name} is required.")
    return value


@dataclass(frozen=True)
class RegistrationDetails:
    """Input to AuthService.register().

    Required fields are checked at construction so a half-built request can
    never reach the service. role=None means "no roles requested".
    """

    username: str
    first_name: str
    last_name: str
    email: str
    phone_number: str
    password: str = field(repr=False)
    role: frozenset[str] | None = None

    def __post_init__(self) -> None:
        for name in ("username", "first_name", "last_name", "email", "phone_number", "password"):
            _require(getattr(self, name), name)
        if self.role is not None and not isinstance(self.role, frozenset):
            object.__setattr__(self, "role", frozenset(self.role))


@dataclass(frozen=True)
class AuthContext:
    """Request-scoped authentication, attached to request.state.auth by the gate."""

    principal: Principal
    authorities: frozenset[str]

    @classmethod
    def for_principal(cls, principal: Principal) -> AuthContext:
        return cls(principal=principal, authorities=principal.authorities)


@dataclass(frozen=True)
class LoginResult:
    """Successful login payload. token_type is always "Bearer"."""

    token: str
    id: int
    username: str
    email: str
    roles: list[str]
    login_message: str
    token_type: str = "Bearer"
