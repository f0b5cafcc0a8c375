"""
Warden - Base API Models
========================

Common response wrapper.
"""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthData(BaseModel):
    status: str = "healthy"
    started: bool
    pending_reversals: int = Field(ge=0, description="Armed sanction reversal timers")


__all__ = ["APIResponse", "HealthData"]
