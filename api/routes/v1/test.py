"""
api/routes/v1/test.py -- Role-check endpoints for API clients and smoke tests.

Routes:
  GET /api/v1/test/all    -- anyone
  GET /api/v1/test/user   -- ROLE_USER or ROLE_ADMIN
  GET /api/v1/test/admin  -- ROLE_ADMIN only

The whole /api/v1/test/ prefix is PUBLIC in auth/policy.py, so these routes
show the per-operation layer on its own: require_roles() answers 401 without
a principal and 403 with the wrong one.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import MessageResponse
from auth.dependencies import require_roles
from auth.models import RoleName

router = APIRouter()


@router.get("/test/all", response_model=MessageResponse)
async def all_access() -> MessageResponse:
    return MessageResponse(message="Public Content.")


@router.get(
    "/test/user",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles(RoleName.USER, RoleName.ADMIN))],
)
async def user_access() -> MessageResponse:
    return MessageResponse(message="User Content.")


@router.get(
    "/test/admin",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles(RoleName.ADMIN))],
)
async def admin_access() -> MessageResponse:
    return MessageResponse(message="Admin Board.")
