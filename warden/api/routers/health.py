"""
Warden - Health Router
======================

Liveness endpoint.
"""

from fastapi import APIRouter

from warden.api.dependencies import get_core_status
from warden.api.models.base import APIResponse, HealthData


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", response_model=APIResponse[HealthData])
async def health_check() -> APIResponse[HealthData]:
    """
    Basic health check endpoint.

    Reports healthy as long as the process answers; started is False
    until the moderation core has finished recovery.
    """
    started, pending = get_core_status()
    return APIResponse(
        data=HealthData(
            status="healthy",
            started=started,
            pending_reversals=pending,
        ),
    )
