"""Events service routers package."""

from services.events_service.routers.admin import router as admin_router
from services.events_service.routers.member import router as member_router

__all__ = ["admin_router", "member_router"]
