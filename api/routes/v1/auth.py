"""
api/routes/v1/auth.py -- Login and registration REST endpoints.

Routes:
  POST /api/v1/auth/signin   -- password login; returns a bearer token
  POST /api/v1/auth/signup   -- create an account

Both are PUBLIC in auth/policy.py.

Security:
  [H2] POST /signin is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  [C1] AuthService.authenticate() equalizes timing -- never inline the lookup.
  [M5] Cache-Control: no-store on signin responses (they carry a token).
  Wrong username and wrong password return the same 401 body.
  Configuration errors (missing seed roles) are logged in full server side
  and reported to the client as a generic 500.

Error mapping is done in one place, _error_response(), from the ErrorKind
carried by the service Result.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, MessageResponse, SignUpRequest
from auth.errors import AuthError, ErrorKind
from auth.models import RegistrationDetails
from auth.service import AuthService

logger = logging.getLogger("archilogic.api.auth")

# Auth policy:
# - POST /api/v1/auth/signin: public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/signup: public -- self-registration
router = APIRouter()

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.DUPLICATE_IDENTITY: 409,
    ErrorKind.AUTHENTICATION_FAILURE: 401,
    ErrorKind.TOKEN_INVALID: 401,
    ErrorKind.NOT_FOUND: 401,
    ErrorKind.CONFIGURATION: 500,
}


@limiter.limit(login_rate_limit)  # [H2] brute-force mitigation -- must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/signin", response_model=LoginResponse)
def signin(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed bearer token.

    Returns the same generic error for wrong username and wrong password
    ("bad_credentials") to avoid leaking username existence information.
    """
    service: AuthService = request.app.state.auth_service
    result = service.authenticate(body.username, body.password)
    if not result.ok:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse.from_result(result.unwrap()).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/signup", response_model=MessageResponse)
def signup(request: Request, body: SignUpRequest) -> JSONResponse:
    """Register a new account. Username and email must both be unused."""
    service: AuthService = request.app.state.auth_service
    try:
        details = RegistrationDetails(
            username=body.username,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            phone_number=body.phone_number,
            password=body.password,
            role=frozenset(body.role) if body.role is not None else None,
        )
    except ValueError as exc:
        return _error_response(AuthError(kind=ErrorKind.VALIDATION, message=str(exc)))

    result = service.register(details)
    if not result.ok:
        return _error_response(result.error)
    return JSONResponse(status_code=200, content=MessageResponse(message="User registered successfully!").model_dump())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_response(error: AuthError) -> JSONResponse:
    status = _STATUS_BY_KIND[error.kind]
    if error.kind is ErrorKind.CONFIGURATION:
        # Deployment defect -- keep the detail in the server log only.
        logger.error("Registration failed on server configuration: %s", error.message)
        message = "An unexpected error occurred."
        code = "internal_error"
    else:
        message = error.message
        code = error.kind.value
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=error.field)).model_dump(),
    )
