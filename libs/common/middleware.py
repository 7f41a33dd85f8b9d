"""Request tracing middleware.

Every request gets an id (taken from ``X-Request-ID`` or generated), bound to
the logging context for the request's lifetime and echoed back to the client.
Completed requests are logged with status and duration; probes listed in
``quiet_paths`` are not logged at all.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app, service_name="events")
"""
import time
from typing import Callable, Iterable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

SLOW_REQUEST_MS = 1000.0


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        service_name: str,
        quiet_paths: Iterable[str] = ("/health",),
        slow_request_ms: float = SLOW_REQUEST_MS,
    ):
        super().__init__(app)
        self.service_name = service_name
        self.quiet_paths = frozenset(quiet_paths)
        self.slow_request_ms = slow_request_ms

    def _fields(self, **fields) -> dict:
        return {"extra_fields": {"service": self.service_name, **fields}}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            if request.url.path not in self.quiet_paths:
                # 4xx are ordinary outcomes here (not eligible, already registered)
                slow = duration_ms >= self.slow_request_ms
                log = logger.warning if response.status_code >= 500 or slow else logger.info
                log(
                    "Request completed",
                    extra=self._fields(
                        status_code=response.status_code,
                        duration_ms=round(duration_ms, 2),
                        slow=slow,
                    ),
                )

            response.headers["X-Request-ID"] = request_id
            response.headers["Server-Timing"] = f"app;dur={duration_ms:.1f}"
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                "Request failed with unhandled exception",
                extra=self._fields(error=str(e), duration_ms=round(duration_ms, 2)),
            )
            raise

        finally:
            clear_request_context()


def add_observability_middleware(
    app: FastAPI, service_name: str, **options
) -> None:
    """Configure logging and install request tracing on ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware, service_name=service_name, **options)
    logger.info("Request tracing enabled for %s", service_name)
