"""
auth/policy.py -- Route classification and the "must be authenticated" check.

Every path is exactly one of:
  PUBLIC    -- no authentication required: login/registration, the role-check
               demo endpoints (which guard themselves with require_roles), the
               health probe and the API documentation.
  PROTECTED -- requires the AuthContext attached by auth/gate.py.

Sessions are stateless: the policy looks only at request.state.auth, which
the gate derives from this request's own token.

Per-operation role checks ("admin only") live in auth/dependencies.py and
run after this check, inside the route.

Layer rule: may import from starlette. No imports from api/.
"""

from __future__ import annotations

import logging
from enum import Enum

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("archilogic.auth.policy")


class RouteAccess(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


# Exact paths, then path prefixes ("/**" in ant-style route patterns).
PUBLIC_PATHS: frozenset[str] = frozenset(
    {
        "/api/v1/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }
)
PUBLIC_PREFIXES: tuple[str, ...] = (
    "/api/v1/auth/",
    "/api/v1/test/",
    "/docs/",
)


def classify(path: str) -> RouteAccess:
    if path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES):
        return RouteAccess.PUBLIC
    return RouteAccess.PROTECTED


def unauthorized_response() -> JSONResponse:
    """401 in the standard error envelope. Never says why authentication failed."""
    return JSONResponse(
        status_code=401,
        content={"error": {"code": "unauthorized", "message": "Authentication required."}},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def enforce_authentication(request: Request, call_next) -> Response:
    """HTTP middleware: reject PROTECTED paths that reached here without an AuthContext.

    Must be registered so that it runs after AuthenticationGate (i.e. added
    before it -- Starlette wraps later-added middleware around earlier ones).
    CORS preflight requests carry no credentials and are always let through.
    """
    if request.method == "OPTIONS":
        return await call_next(request)
    if classify(request.url.path) is RouteAccess.PROTECTED and getattr(request.state, "auth", None) is None:
        logger.info("Unauthorized error: %s %s", request.method, request.url.path)
        return unauthorized_response()
    return await call_next(request)
