"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a blanket include_router(dependencies=...) guard, auth is
declared per route here, because the resources mix open, optional and
strict endpoints (e.g. the event list works for anonymous visitors).
"""

from fastapi import APIRouter

from eventease.api.auth import router as auth_router
from eventease.api.events import router as events_router
from eventease.api.health import router as health_router
from eventease.api.invitations import router as invitations_router
from eventease.api.rsvps import router as rsvps_router
from eventease.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(invitations_router, tags=["invitations"])
api_router.include_router(rsvps_router, tags=["rsvps"])
