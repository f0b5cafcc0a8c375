"""
Warden - API Dependencies
=========================

FastAPI dependency injection utilities.
"""

from typing import TYPE_CHECKING, Optional, Tuple

from fastapi import HTTPException

if TYPE_CHECKING:
    from warden.services.container import ModerationCore


# =============================================================================
# Core Reference
# =============================================================================

_core_instance: Optional["ModerationCore"] = None


def set_core(core: Optional["ModerationCore"]) -> None:
    """Set the moderation core for dependency injection."""
    global _core_instance
    _core_instance = core


def get_core() -> "ModerationCore":
    """Get the moderation core."""
    if _core_instance is None:
        raise HTTPException(
            status_code=503,
            detail="Moderation core not initialized",
        )
    return _core_instance


def get_core_status() -> Tuple[bool, int]:
    """(started, pending reversal count) without failing when no core is set."""
    if _core_instance is None:
        return False, 0
    return _core_instance.started, _core_instance.scheduler.pending_count


__all__ = ["set_core", "get_core", "get_core_status"]
