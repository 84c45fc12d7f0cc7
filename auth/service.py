"""
auth/service.py -- Login and registration.

AuthService owns the two write-side flows of the auth core. Both return a
Result; the route layer maps error kinds to HTTP statuses.

Login:
  Uses _verify_credentials(), which always runs bcrypt -- against the real
  digest or against the hasher's dummy digest when the username is unknown
  -- so response time does not reveal which usernames exist [C1]. Unknown
  user and wrong password produce the same AUTHENTICATION_FAILURE.

Registration:
  existence(username) -> existence(email) -> hash -> resolve roles -> save.
  The existence checks are a fast path only. Two concurrent registrations can
  both pass them; the store's UNIQUE constraints reject the second insert and
  that IntegrityError is reported as DUPLICATE_IDENTITY, exactly like the
  pre-check [R1]. Any other IntegrityError propagates.

Role mapping:
  No roles requested -> {ROLE_USER}. "admin" -> ROLE_ADMIN. Anything else ->
  ROLE_USER, logged at WARNING because a typo such as "admn" silently
  downgrades the account. Existing API clients rely on this, so it stays the
  default; strict_role_mapping=True turns unknown values into VALIDATION
  errors instead.

Layer rule: no imports from api/ or core/. Settings values are injected.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import ErrorKind, Result
from auth.models import LoginResult, Principal, RegistrationDetails, RoleName
from auth.passwords import PasswordHasher
from auth.store import RoleStore, UserStore
from auth.tokens import TokenCodec

logger = logging.getLogger("archilogic.auth.service")

USERNAME_TAKEN = "Error: Username is already taken!"
EMAIL_IN_USE = "Error: Email is already in use!"
ROLE_NOT_FOUND = "Error: Role not found. Initial data may not be seeded."
BAD_CREDENTIALS = "Invalid username or password."

# Request tokens understood by the role mapping. Only "admin" is special.
_ROLE_TOKENS: dict[str, RoleName] = {
    "admin": RoleName.ADMIN,
    "user": RoleName.USER,
}


def login_message(roles: list[str] | tuple[str, ...]) -> str:
    """Greeting by role precedence: ADMIN, then USER, then a generic message."""
    if RoleName.ADMIN.value in roles:
        return "Login successful. Welcome, Admin!"
    if RoleName.USER.value in roles:
        return "Login successful. Welcome, User!"
    return "Login successful."


class AuthService:
    def __init__(
        self,
        users: UserStore,
        roles: RoleStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        strict_role_mapping: bool = False,
    ) -> None:
        self.users = users
        self.roles = roles
        self.hasher = hasher
        self.codec = codec
        self.strict_role_mapping = strict_role_mapping

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> Result[LoginResult]:
        principal = self._verify_credentials(username, password)
        if principal is None:
            logger.info("Login failed")
            return Result.failure(ErrorKind.AUTHENTICATION_FAILURE, BAD_CREDENTIALS)

        token = self.codec.issue(principal)
        roles = list(principal.roles)
        logger.info("Login succeeded for user id=%s", principal.id)
        return Result.success(
            LoginResult(
                token=token,
                id=principal.id,
                username=principal.username,
                email=principal.email,
                roles=roles,
                login_message=login_message(roles),
            )
        )

    def _verify_credentials(self, username: str, password: str) -> Principal | None:
        principal = self.users.lookup_by_username(username)
        if principal is None:
            # Equalize timing -- do NOT return before running bcrypt [C1].
            self.hasher.verify(password, self.hasher.dummy_hash)
            return None
        if not self.hasher.verify(password, principal.password):
            return None
        return principal

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, details: RegistrationDetails) -> Result[Principal]:
        if self.users.exists_by_username(details.username):
            return Result.failure(ErrorKind.DUPLICATE_IDENTITY, USERNAME_TAKEN, field="username")
        if self.users.exists_by_email(details.email):
            return Result.failure(ErrorKind.DUPLICATE_IDENTITY, EMAIL_IN_USE, field="email")

        role_names = self._map_roles(details.role)
        if not role_names.ok:
            return Result(error=role_names.error)
        for name in role_names.unwrap():
            if self.roles.find_by_role_name(name) is None:
                logger.error("Seed role %s is missing; role initialization has not run", name.value)
                return Result.failure(ErrorKind.CONFIGURATION, ROLE_NOT_FOUND)

        principal = Principal(
            username=details.username,
            email=details.email,
            password=self.hasher.hash(details.password),
            first_name=details.first_name,
            last_name=details.last_name,
            phone_number=details.phone_number,
            roles=tuple(name.value for name in role_names.unwrap()),
        )
        try:
            principal.id = self.users.save(principal)
        except IntegrityError:
            # Lost a race with a concurrent registration [R1], or a genuine schema fault.
            conflict = self._duplicate_after_conflict(details)
            if conflict is None:
                raise
            return conflict

        logger.info("Registered user id=%s with roles %s", principal.id, list(principal.roles))
        return Result.success(principal)

    def _map_roles(self, requested: frozenset[str] | None) -> Result[list[RoleName]]:
        """Map requested role tokens to RoleNames, ordered as the RoleName enum."""
        if not requested:
            return Result.success([RoleName.USER])

        mapped: set[RoleName] = set()
        for token in requested:
            role = _ROLE_TOKENS.get(token)
            if role is None:
                if self.strict_role_mapping:
                    return Result.failure(ErrorKind.VALIDATION, f"Unknown role: {token!r}.", field="role")
                logger.warning("Unrecognized role %r requested at registration; assigning %s", token, RoleName.USER.value)
                role = RoleName.USER
            mapped.add(role)
        return Result.success([r for r in RoleName if r in mapped])

    def _duplicate_after_conflict(self, details: RegistrationDetails) -> Result[Principal] | None:
        # The constraint message is backend-specific; re-checking tells us which field lost.
        if self.users.exists_by_username(details.username):
            return Result.failure(ErrorKind.DUPLICATE_IDENTITY, USERNAME_TAKEN, field="username")
        if self.users.exists_by_email(details.email):
            return Result.failure(ErrorKind.DUPLICATE_IDENTITY, EMAIL_IN_USE, field="email")
        return None
