"""
Warden - Cases Router
=====================

Read-only access to a user's moderation history.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from warden.api.dependencies import get_core
from warden.api.models.base import APIResponse
from warden.api.models.cases import CaseItem, CaseListData, CaseStatsData
from warden.services.container import ModerationCore


router = APIRouter(prefix="/cases", tags=["Cases"])


@router.get("/{community_id}/{user_id}", response_model=APIResponse[CaseListData])
async def list_user_cases(
    community_id: int,
    user_id: int,
    case_type: Optional[str] = Query(None, alias="type", description="Filter by action type"),
    limit: Optional[int] = Query(None, ge=0, le=1000, description="Maximum cases to return"),
    core: ModerationCore = Depends(get_core),
) -> APIResponse[CaseListData]:
    """Cases for one user, newest first. Numbered and unnumbered cases are both included."""
    cases = await core.query_cases(community_id, user_id, case_type, limit)
    items = [CaseItem.from_case(case) for case in cases]
    return APIResponse(data=CaseListData(cases=items, total=len(items)))


@router.get("/{community_id}/{user_id}/stats", response_model=APIResponse[CaseStatsData])
async def user_case_stats(
    community_id: int,
    user_id: int,
    core: ModerationCore = Depends(get_core),
) -> APIResponse[CaseStatsData]:
    """Per-type case counts and the most recent case for one user."""
    stats = await core.query_stats(community_id, user_id)
    return APIResponse(data=CaseStatsData.from_stats(stats))
