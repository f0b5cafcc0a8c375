"""
Warden - API Routers
====================
"""

from .cases import router as cases_router
from .health import router as health_router

__all__ = ["cases_router", "health_router"]
