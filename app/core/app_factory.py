"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build fresh instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import applications_router, health_router, settings_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Send Quota API",
        description=(
            "Per-user outbound send accounting for the job application dashboard: "
            "quota stats for the current window, send/bounce recording, and the "
            "active/paused account switch. Authenticate with X-API-Key."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(applications_router)
    app.include_router(settings_router)
    app.include_router(health_router)

    return app
