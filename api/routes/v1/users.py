"""
api/routes/v1/users.py -- Endpoints about the authenticated caller.

Routes:
  GET /api/v1/users/me -- profile and roles of the current principal

PROTECTED in auth/policy.py: the enforcement middleware answers 401 before
this handler runs when the request carries no valid token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import ProfileResponse
from auth.dependencies import get_current_principal
from auth.models import Principal

router = APIRouter()


@router.get("/users/me", response_model=ProfileResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> ProfileResponse:
    """Return identity information for the currently authenticated principal."""
    return ProfileResponse.from_principal(principal)
