"""
Warden - Case API Models
========================

Read-only views of ledger cases and per-user statistics.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from warden.core.models import CaseStats, ModerationCase


def _iso(epoch: Optional[float]) -> Optional[str]:
    if epoch is None:
        return None
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


class CaseItem(BaseModel):
    """One ledger case."""

    case_id: Optional[int] = Field(None, description="Per-community case number, if numbered")
    action_type: str = Field(description="warn, mute, unmute, kick, ban, unban or note")
    user_id: str = Field(description="Subject user ID")
    moderator_id: str = Field(description="Actor user ID")
    reason: str
    evidence: List[str] = Field(default_factory=list)
    created_at: str = Field(description="ISO timestamp")
    duration_ms: Optional[int] = None
    expires_at: Optional[str] = Field(None, description="ISO timestamp")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_case(cls, case: ModerationCase) -> "CaseItem":
        return cls(
            case_id=case.case_id,
            action_type=case.action_type.value,
            user_id=str(case.subject_user_id),
            moderator_id=str(case.actor_id),
            reason=case.reason,
            evidence=list(case.evidence),
            created_at=_iso(case.created_at),
            duration_ms=case.duration_ms,
            expires_at=_iso(case.expires_at),
            metadata=dict(case.metadata),
        )


class CaseListData(BaseModel):
    cases: List[CaseItem]
    total: int = Field(ge=0, description="Number of cases returned")


class CaseStatsData(BaseModel):
    total_cases: int = Field(ge=0)
    counts_by_type: Dict[str, int]
    most_recent_case: Optional[CaseItem] = None

    @classmethod
    def from_stats(cls, stats: CaseStats) -> "CaseStatsData":
        return cls(
            total_cases=stats.total_cases,
            counts_by_type=dict(stats.counts_by_type),
            most_recent_case=CaseItem.from_case(stats.most_recent_case) if stats.most_recent_case else None,
        )


__all__ = ["CaseItem", "CaseListData", "CaseStatsData"]
