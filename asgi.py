"""
asgi.py -- ASGI entry point for Archilogic.

Run with:  uvicorn asgi:app --reload

Kept separate from api/main.py so process managers and tests import the same
module-level app, and so additional routers (admin UI, internal tools) can be
mounted here without api/ knowing about them.
"""

from api.main import app

__all__ = ["app"]
