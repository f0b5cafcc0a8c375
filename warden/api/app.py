"""
Warden - FastAPI Application
============================

FastAPI application factory and configuration.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from warden import __version__
from warden.core.errors import (
    HierarchyViolation,
    NotConfiguredError,
    NotFoundError,
    StateError,
    ValidationError,
    WardenError,
)
from warden.core.logger import logger
from warden.api.dependencies import set_core
from warden.api.routers import cases_router, health_router
from warden.services.container import ModerationCore


OPENAPI_TAGS = [
    {
        "name": "Health",
        "description": "Health check and status endpoints",
    },
    {
        "name": "Cases",
        "description": "Read-only moderation case history and statistics",
    },
]

ERROR_STATUS = {
    ValidationError: 400,
    HierarchyViolation: 403,
    NotFoundError: 404,
    StateError: 409,
    NotConfiguredError: 503,
}


def _status_for(exc: WardenError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 500


def _error_body(message: str) -> dict:
    return {"success": False, "error": message, "data": None}


# =============================================================================
# Application Factory
# =============================================================================

def create_app(core: Optional[ModerationCore] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        core: Moderation core to serve. May be set later with set_core().
    """
    app = FastAPI(
        title="Warden API",
        description="Read-only moderation case history.",
        version=__version__,
        openapi_tags=OPENAPI_TAGS,
    )

    if core is not None:
        set_core(core)

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(WardenError)
    async def domain_exception_handler(request: Request, exc: WardenError):
        status = _status_for(exc)
        if status >= 500:
            logger.error("API Domain Error", [
                ("Path", str(request.url.path)[:50]),
                ("Error Type", type(exc).__name__),
                ("Error", str(exc)[:100]),
            ])
        return JSONResponse(status_code=status, content=_error_body(exc.user_message))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled API Error", [
            ("Path", str(request.url.path)[:50]),
            ("Method", request.method),
            ("Error Type", type(exc).__name__),
            ("Error", str(exc)[:100]),
        ])
        return JSONResponse(status_code=500, content=_error_body("Internal server error"))

    # ==========================================================================
    # Routers
    # ==========================================================================

    app.include_router(health_router)
    app.include_router(cases_router)

    return app


__all__ = ["create_app"]
