"""
auth/dependencies.py -- FastAPI Depends() helpers for authorization.

The authentication gate (auth/gate.py) has already run by the time a route
executes: request.state.auth holds an AuthContext or None. These helpers only
read that context.

try_get_auth_context() is the soft variant (returns None).
get_current_principal() raises HTTP 401 if the request is unauthenticated.
require_roles(*names) builds a dependency that raises HTTP 403 unless the
principal holds at least one of the named roles.

Layer rule: may import from fastapi (Depends/HTTPException/Request). No
imports from api/.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from auth.models import AuthContext, Principal, RoleName


def try_get_auth_context(request: Request) -> AuthContext | None:
    """Return the context the gate attached, or None. Never raises."""
    return getattr(request.state, "auth", None)


def get_current_principal(request: Request) -> Principal:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(principal: Principal = Depends(get_current_principal)): ...
    """
    context = try_get_auth_context(request)
    if context is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context.principal


def require_roles(*roles: RoleName):
    """Dependency factory: 401 if unauthenticated, 403 unless any of roles is held.

    Checks the authorities captured in the AuthContext, which equal the
    principal's stored role names.

        @router.get("/admin", dependencies=[Depends(require_roles(RoleName.ADMIN))])
    """
    allowed = frozenset(r.value for r in roles)

    def _dependency(request: Request, principal: Principal = Depends(get_current_principal)) -> Principal:
        context = try_get_auth_context(request)
        authorities = context.authorities if context is not None else principal.authorities
        if not allowed & authorities:
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "Insufficient role."},
            )
        return principal

    return _dependency
