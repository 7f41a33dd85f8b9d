"""FastAPI application for the Events Service."""
from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()

from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.events_service.router import router as events_router


def create_app() -> FastAPI:
    """Create and configure the Events Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title=f"{settings.CLUB_NAME} Events Service",
        version="0.1.0",
        description="Event visibility, registration, waitlists and cancellations.",
    )

    add_observability_middleware(app, service_name="events")
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "events"}

    app.include_router(events_router)

    return app


app = create_app()
