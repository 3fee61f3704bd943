"""
FastAPI application for the client intake portal.

Production deployment configuration via environment variables.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_core.submission import MAX_REQUEST_BYTES
from utils.config import Config
from web.limits import RequestSizeLimitMiddleware, RequestTooLarge, request_too_large_handler
from web.submission_routes import router as submission_router


logger = logging.getLogger(__name__)

# =============================================================================
# Environment Configuration
# =============================================================================

# Production mode detection
IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

# Development fallback only
DEV_ORIGINS = ["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"]


def create_app(
    config: Optional[Config] = None,
    max_request_bytes: int = MAX_REQUEST_BYTES,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings; loaded from the environment when omitted
        max_request_bytes: Hard cap on request bodies (413 above it)
    """
    config = config or Config.load()

    app = FastAPI(
        title="Client Intake Portal",
        description="Multi-step client intake for prospective immigration clients",
        version="1.0.0",
        # Production settings: disable docs/redoc for public deployment
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
    )

    # Healthchecks first: synchronous, no IO
    @app.get("/", include_in_schema=False)
    def root():
        """Root healthcheck. No dependencies, no IO."""
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        """Secondary health endpoint. No dependencies, no IO."""
        return {"status": "healthy", "version": "1.0.0"}

    # Added before CORS so 413 responses still carry CORS headers
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=max_request_bytes)
    app.add_exception_handler(RequestTooLarge, request_too_large_handler)

    allowed_origins = config.allowed_origins or ([] if IS_PRODUCTION else DEV_ORIGINS)
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def on_startup():
        """Deferred startup tasks. Runs after healthcheck is ready."""
        logger.info(
            "Client Intake Portal started (storage=%s, webhook=%s)",
            config.storage_backend,
            "on" if config.webhook_url else "off",
        )

    app.include_router(submission_router)

    return app


# Create app instance for uvicorn
app = create_app()
