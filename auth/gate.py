"""
auth/gate.py -- Per-request authentication middleware.

The gate only *attempts* authentication. It never rejects a request:
  1. Extract a bearer token from "Authorization: Bearer <token>".
  2. If the token validates and the request has no authentication yet,
     resolve the principal and attach an AuthContext to request.state.auth.
  3. Any failure along the way is logged and the request continues with
     request.state.auth = None.
  4. The request always reaches the next stage. Deciding whether a route
     needs authentication belongs to auth/policy.py.

The context lives on request.state (backed by the ASGI scope), so it is
scoped to one request and visible to every later middleware, dependency and
handler of that request. Nothing is stored process-wide.

Layer rule: may import from starlette (middleware API). No imports from api/.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from auth.models import AuthContext
from auth.resolver import IdentityResolver
from auth.tokens import TokenCodec

logger = logging.getLogger("archilogic.auth.gate")

BEARER_PREFIX = "Bearer "


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from an Authorization header value, or None.

    Only the exact "Bearer " prefix is accepted. Anything else -- missing
    header, Basic auth, lowercase "bearer", an empty token -- means no token.
    """
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        return None
    token = header_value[len(BEARER_PREFIX) :]
    return token or None


def authenticate_header(
    header_value: str | None,
    codec: TokenCodec,
    resolver: IdentityResolver,
) -> AuthContext | None:
    """Turn an Authorization header value into an AuthContext, or None.

    Never raises: unexpected errors from the codec or store are logged and
    reported as "not authenticated".
    """
    try:
        token = extract_bearer_token(header_value)
        if token is None or not codec.validate(token):
            return None
        username = codec.subject(token)
        result = resolver.load_principal(username)
        if not result.ok:
            logger.warning("Token subject could not be resolved: %s", result.error.message)
            return None
        return AuthContext.for_principal(result.unwrap())
    except Exception:
        logger.exception("Cannot set user authentication")
        return None


class AuthenticationGate(BaseHTTPMiddleware):
    """Attach request.state.auth once per request, then always call the next stage.

    The codec and resolver are read from app.state (wired in the lifespan),
    so the middleware can be registered before startup runs. The attempt runs at
    most once per request: an existing request.state.auth, even None, is kept.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not hasattr(request.state, "auth"):
            # Token decode and the store lookup block; keep them off the event loop.
            request.state.auth = await run_in_threadpool(self._attempt, request)
        return await call_next(request)

    @staticmethod
    def _attempt(request: Request) -> AuthContext | None:
        header_value = request.headers.get("Authorization")
        if header_value is None:
            return None
        try:
            codec: TokenCodec = request.app.state.token_codec
            resolver: IdentityResolver = request.app.state.identity_resolver
        except AttributeError:
            logger.error("Authentication gate is not wired: token_codec/identity_resolver missing from app.state")
            return None
        return authenticate_header(header_value, codec, resolver)
