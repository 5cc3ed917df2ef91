"""HTTP API for the event gallery.

Contains the routers mounted under ``/api``.
"""

from fastapi import APIRouter

from app.api.events import router as events_router

router = APIRouter(prefix="/api")
router.include_router(events_router)

__all__ = ["router"]
