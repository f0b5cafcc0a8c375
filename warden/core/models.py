"""
Warden - Domain Models
======================

Enums and dataclasses shared by the ledger, scheduler and workflows.

DESIGN:
    Identifiers are carried explicitly on every model. Nothing in the
    core re-derives a reporter, subject or case number from rendered
    message text.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from warden.core.database.models import (
    CaseRecord,
    GuildSettingsRecord,
    ReportRecord,
    ScheduledSanctionRecord,
    TicketRecord,
)


# =============================================================================
# Enums
# =============================================================================

class ActionType(str, Enum):
    """Kinds of moderation action recorded in the ledger."""
    WARN = "warn"
    MUTE = "mute"
    UNMUTE = "unmute"
    KICK = "kick"
    BAN = "ban"
    UNBAN = "unban"
    NOTE = "note"


class SanctionKind(str, Enum):
    """Time-bound sanctions that can expire and auto-reverse."""
    MUTE = "mute"
    BAN = "ban"

    @property
    def reversal_action(self) -> ActionType:
        return ActionType.UNMUTE if self is SanctionKind.MUTE else ActionType.UNBAN

    @property
    def expiry_reason(self) -> str:
        return f"{self.value.capitalize()} expired automatically."


class TicketStatus(str, Enum):
    OPEN = "open"
    TAKEN = "taken"
    CLOSED = "closed"


class TicketCategory(str, Enum):
    GENERAL = "general"
    SUPPORT = "support"
    OTHER = "other"


class ReportStatus(str, Enum):
    SUBMITTED = "submitted"
    TAKEN = "taken"
    VERDICT_GIVEN = "verdict_given"


class PrivateChannelState(str, Enum):
    NONE = "none"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


# =============================================================================
# Cases
# =============================================================================

@dataclass
class CaseDraft:
    """Input for CaseLedger.record_case."""
    community_id: int
    subject_user_id: int
    actor_id: int
    action_type: ActionType
    reason: str
    evidence: List[str] = field(default_factory=list)
    duration_ms: Optional[int] = None
    expires_at: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ModerationCase:
    """An immutable, optionally numbered record of a moderation action."""
    community_id: int
    subject_user_id: int
    actor_id: int
    action_type: ActionType
    reason: str
    evidence: List[str]
    created_at: float
    duration_ms: Optional[int] = None
    expires_at: Optional[float] = None
    case_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    row_id: Optional[int] = None

    @classmethod
    def from_record(cls, record: CaseRecord) -> "ModerationCase":
        return cls(
            community_id=record["guild_id"],
            subject_user_id=record["user_id"],
            actor_id=record["moderator_id"],
            action_type=ActionType(record["action_type"]),
            reason=record["reason"],
            evidence=list(record.get("evidence") or []),
            created_at=record["created_at"],
            duration_ms=record.get("duration_ms"),
            expires_at=record.get("expires_at"),
            case_id=record.get("case_id"),
            metadata=dict(record.get("metadata") or {}),
            row_id=record.get("id"),
        )


@dataclass(frozen=True)
class CaseStats:
    total_cases: int
    counts_by_type: Dict[str, int]
    most_recent_case: Optional[ModerationCase] = None


# =============================================================================
# Scheduled Sanctions
# =============================================================================

@dataclass(frozen=True)
class ScheduledSanction:
    """A pending automatic reversal of a temporary mute or ban."""
    community_id: int
    subject_user_id: int
    sanction_kind: SanctionKind
    expires_at: float
    reversal_reason: str
    role_id: Optional[int] = None
    issued_by: Optional[int] = None

    @property
    def key(self) -> "tuple":
        return (self.community_id, self.subject_user_id, self.sanction_kind)

    @classmethod
    def from_record(cls, record: ScheduledSanctionRecord) -> "ScheduledSanction":
        return cls(
            community_id=record["guild_id"],
            subject_user_id=record["user_id"],
            sanction_kind=SanctionKind(record["kind"]),
            expires_at=record["expires_at"],
            reversal_reason=record["reason"],
            role_id=record.get("role_id"),
            issued_by=record.get("issued_by"),
        )


# =============================================================================
# Tickets
# =============================================================================

@dataclass(frozen=True)
class Ticket:
    ticket_id: int
    community_id: int
    opener_user_id: int
    category: TicketCategory
    status: TicketStatus
    opened_at: float
    channel_ref: Optional[int] = None
    assigned_staff_id: Optional[int] = None
    closed_at: Optional[float] = None
    closed_by: Optional[int] = None
    close_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status is not TicketStatus.CLOSED

    @classmethod
    def from_record(cls, record: TicketRecord) -> "Ticket":
        return cls(
            ticket_id=record["id"],
            community_id=record["guild_id"],
            opener_user_id=record["user_id"],
            category=TicketCategory(record["category"]),
            status=TicketStatus(record["status"]),
            opened_at=record["opened_at"],
            channel_ref=record.get("channel_id"),
            assigned_staff_id=record.get("assigned_staff_id"),
            closed_at=record.get("closed_at"),
            closed_by=record.get("closed_by"),
            close_reason=record.get("close_reason"),
        )


@dataclass(frozen=True)
class TranscriptReceipt:
    """Result of delivering a transcript to the archive channel."""
    ticket_id: int
    destination_ref: int
    message_count: int
    parts: int


# =============================================================================
# Reports
# =============================================================================

@dataclass(frozen=True)
class Report:
    report_id: int
    case_id: int
    community_id: int
    reporter_id: int
    reported_user_id: int
    reason: str
    evidence: List[str]
    status: ReportStatus
    created_at: float
    assigned_staff_id: Optional[int] = None
    verdict_text: Optional[str] = None
    private_channel_ref: Optional[int] = None
    private_channel_state: PrivateChannelState = PrivateChannelState.NONE

    @property
    def is_terminal(self) -> bool:
        return self.status is ReportStatus.VERDICT_GIVEN

    @classmethod
    def from_record(cls, record: ReportRecord) -> "Report":
        return cls(
            report_id=record["id"],
            case_id=record["case_id"],
            community_id=record["guild_id"],
            reporter_id=record["reporter_id"],
            reported_user_id=record["reported_id"],
            reason=record["reason"],
            evidence=list(record.get("evidence") or []),
            status=ReportStatus(record["status"]),
            created_at=record["created_at"],
            assigned_staff_id=record.get("assigned_staff_id"),
            verdict_text=record.get("verdict_text"),
            private_channel_ref=record.get("private_channel_id"),
            private_channel_state=PrivateChannelState(
                record.get("private_channel_state") or PrivateChannelState.NONE.value
            ),
        )


# =============================================================================
# Guild Settings
# =============================================================================

@dataclass(frozen=True)
class GuildSettings:
    """Per-community destinations and roles. Every field is optional."""
    community_id: int
    mute_role_id: Optional[int] = None
    mod_log_channel_id: Optional[int] = None
    ticket_category_id: Optional[int] = None
    ticket_log_channel_id: Optional[int] = None
    transcript_channel_id: Optional[int] = None
    report_channel_id: Optional[int] = None
    report_log_channel_id: Optional[int] = None
    report_category_id: Optional[int] = None
    welcome_channel_id: Optional[int] = None
    welcome_role_id: Optional[int] = None
    welcome_message: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls) if f.name != "community_id"]

    @classmethod
    def from_record(cls, community_id: int, record: Optional[GuildSettingsRecord]) -> "GuildSettings":
        if not record:
            return cls(community_id=community_id)
        return cls(
            community_id=community_id,
            **{name: record.get(name) for name in cls.field_names()},
        )
