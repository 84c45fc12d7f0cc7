"""
api/main.py -- FastAPI application entry point for Archilogic.

Run with:      uvicorn asgi:app --reload

Middleware stack, in the order a request meets it:
  1. log_requests             -- method, path, status, latency, client
  2. TrustedHostMiddleware    -- rejects requests with unexpected Host headers
  3. CORSMiddleware           -- adds CORS headers for allowed browser origins
  4. SlowAPIMiddleware        -- enforces per-route rate limits from api.limiter
  5. AuthenticationGate       -- attaches request.state.auth, never rejects
  6. enforce_authentication   -- 401 for PROTECTED paths without request.state.auth

Lifespan handles startup (store, role seeding, auth wiring) and shutdown
(dispose the engine) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.test import router as test_router
from api.routes.v1.users import router as users_router
from auth.gate import AuthenticationGate
from auth.passwords import PasswordHasher
from auth.policy import enforce_authentication
from auth.resolver import IdentityResolver
from auth.service import AuthService
from auth.store import RoleStore, UserStore, create_store_engine
from auth.tokens import TokenCodec
from core.config import Settings, get_settings

VERSION = "0.1.0"

settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("archilogic.api")


# ---------------------------------------------------------------------------
# Auth wiring
# ---------------------------------------------------------------------------


def wire_auth_components(app: FastAPI, settings: Settings, user_store: UserStore, role_store: RoleStore) -> None:
    """Build the auth core from settings + stores and publish it on app.state.

    The gate reads token_codec and identity_resolver; the auth routes read
    auth_service. Shared by the real lifespan and the test lifespan.
    """
    codec = TokenCodec(settings.signing_key, settings.jwt_expiration_ms)
    app.state.user_store = user_store
    app.state.role_store = role_store
    app.state.token_codec = codec
    app.state.identity_resolver = IdentityResolver(user_store)
    app.state.auth_service = AuthService(
        users=user_store,
        roles=role_store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        codec=codec,
        strict_role_mapping=settings.strict_role_mapping,
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Engine + schema first -- everything else reads from it.
      2. Role seeding second -- registration fails with a configuration
         error until both roles exist.
      3. Auth wiring last -- the service needs both stores.
    """
    logger.info("Archilogic API starting up")
    engine = create_store_engine(settings.database_url)
    user_store = UserStore(engine=engine)
    role_store = RoleStore(engine)
    seeded = role_store.seed_roles()
    wire_auth_components(app, settings, user_store, role_store)
    logger.info("Auth initialized (roles seeded=%d, token ttl=%dms)", seeded, settings.jwt_expiration_ms)

    yield

    user_store.close()
    logger.info("Archilogic API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Archilogic API",
    description="Token-based authentication and role-based authorization.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps each add_middleware() call around everything added before
# it, so the LAST registration is the OUTERMOST layer. Registration below
# runs innermost-first: policy, gate, rate limit, CORS, host check, logging.
# ---------------------------------------------------------------------------

app.add_middleware(BaseHTTPMiddleware, dispatch=enforce_authentication)
app.add_middleware(AuthenticationGate)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

# Attach the shared limiter to app.state so SlowAPIMiddleware can locate it.
# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Registered last, so it is the outermost layer and also sees responses
# produced by the host check and the authorization policy.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Authentication"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(test_router, prefix="/api/v1", tags=["Role checks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation.

    The rejected input is not echoed back -- it may contain a password.
    """
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()})
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=", ".join(f for f in fields if f) or None,
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route dependencies raise HTTPException with a dict detail; use it directly
    as the error field rather than stringifying it.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the server log only, never to the response
    body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. PUBLIC in auth/policy.py.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
