"""Events Service router/endpoints."""

from fastapi import APIRouter
from services.events_service.routers import admin_router, member_router

router = APIRouter()

# Admin routes first so /events/admin/... never falls through to /events/{event_id}
router.include_router(admin_router)
router.include_router(member_router)
