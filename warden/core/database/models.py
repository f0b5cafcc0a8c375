"""
Warden - Database Type Definitions
==================================

TypedDict definitions for database records.
"""

from typing import Any, Dict, List, Optional, TypedDict


class CaseRecord(TypedDict, total=False):
    """Type for moderation case records."""
    id: int
    guild_id: int
    case_id: Optional[int]
    user_id: int
    moderator_id: int
    action_type: str
    reason: str
    evidence: List[str]
    duration_ms: Optional[int]
    expires_at: Optional[float]
    metadata: Dict[str, Any]
    created_at: float


class ScheduledSanctionRecord(TypedDict, total=False):
    """Type for persisted pending reversals."""
    guild_id: int
    user_id: int
    kind: str
    expires_at: float
    reason: str
    role_id: Optional[int]
    issued_by: Optional[int]
    created_at: float


class TicketRecord(TypedDict, total=False):
    """Type for ticket records."""
    id: int
    guild_id: int
    user_id: int
    channel_id: Optional[int]
    category: str
    status: str
    assigned_staff_id: Optional[int]
    opened_at: float
    taken_at: Optional[float]
    closed_at: Optional[float]
    closed_by: Optional[int]
    close_reason: Optional[str]
    channel_reclaimed: int


class ReportRecord(TypedDict, total=False):
    """Type for report records."""
    id: int
    guild_id: int
    case_id: int
    reporter_id: int
    reported_id: int
    reason: str
    evidence: List[str]
    status: str
    assigned_staff_id: Optional[int]
    verdict_text: Optional[str]
    verdict_by: Optional[int]
    private_channel_id: Optional[int]
    private_channel_state: str
    created_at: float
    taken_at: Optional[float]
    verdict_at: Optional[float]


class GuildSettingsRecord(TypedDict, total=False):
    """Type for per-guild settings."""
    guild_id: int
    mute_role_id: Optional[int]
    mod_log_channel_id: Optional[int]
    ticket_category_id: Optional[int]
    ticket_log_channel_id: Optional[int]
    transcript_channel_id: Optional[int]
    report_channel_id: Optional[int]
    report_log_channel_id: Optional[int]
    report_category_id: Optional[int]
    welcome_channel_id: Optional[int]
    welcome_role_id: Optional[int]
    welcome_message: Optional[str]
    updated_at: float
