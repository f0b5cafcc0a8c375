"""
Warden - Moderation Service
===========================

Entry point for direct moderation actions (warn, mute, unmute, kick,
ban, unban, note).

DESIGN:
    invoke_sanction validates input and rank before anything is touched,
    then hands the request to a handler picked from a dispatch table
    keyed by ActionType. Every handler enforces (if needed), records the
    case, and registers or cancels the matching reversal.

    Case numbering for direct actions follows Config.number_sanction_cases.
    Reports are always numbered (see ReportWorkflow).
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

from warden.core.config import Config
from warden.core.errors import (
    HierarchyViolation,
    NotConfiguredError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from warden.core.logger import logger
from warden.core.models import ActionType, CaseDraft, GuildSettings, ModerationCase, SanctionKind
from warden.gateway.base import CommunityGateway, MemberInfo
from warden.services.case_ledger import CaseLedger
from warden.services.notifier import (
    Notifier,
    render_action_dm,
    render_audit_entry,
    render_sanction_dm,
)
from warden.services.sanction_scheduler import SanctionScheduler
from warden.services.settings import GuildSettingsStore
from warden.utils.async_utils import gather_with_logging, safe_async_operation
from warden.utils.clock import Clock, SYSTEM_CLOCK
from warden.utils.duration import format_duration, is_valid_duration_ms
from warden.utils.validators import Validators, parse_evidence


DURATED_ACTIONS = frozenset({ActionType.MUTE, ActionType.BAN})
MEMBER_REQUIRED_ACTIONS = frozenset({ActionType.MUTE, ActionType.UNMUTE, ActionType.KICK})
PRIVATE_ACTIONS = frozenset({ActionType.NOTE})

# The subject is DMed before enforcement for these, since they lose access after
NOTIFY_FIRST_ACTIONS = frozenset({ActionType.KICK, ActionType.BAN})


@dataclass(frozen=True)
class SanctionRequest:
    action: ActionType
    community_id: int
    subject_id: int
    actor_id: int
    reason: str
    evidence: List[str] = field(default_factory=list)
    duration_ms: Optional[int] = None


Handler = Callable[[SanctionRequest, Optional[MemberInfo], GuildSettings], Awaitable[ModerationCase]]


class ModerationService:
    """Validates, enforces and records direct moderation actions."""

    def __init__(
        self,
        ledger: CaseLedger,
        scheduler: SanctionScheduler,
        gateway: CommunityGateway,
        notifier: Notifier,
        settings: GuildSettingsStore,
        config: Config,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self._ledger = ledger
        self._scheduler = scheduler
        self._gateway = gateway
        self._notifier = notifier
        self._settings = settings
        self._config = config
        self._clock = clock

        self._handlers: Dict[ActionType, Handler] = {
            ActionType.WARN: self._handle_record_only,
            ActionType.NOTE: self._handle_record_only,
            ActionType.MUTE: self._handle_mute,
            ActionType.UNMUTE: self._handle_unmute,
            ActionType.KICK: self._handle_kick,
            ActionType.BAN: self._handle_ban,
            ActionType.UNBAN: self._handle_unban,
        }

    # =========================================================================
    # Public API
    # =========================================================================

    async def invoke_sanction(
        self,
        action: Union[ActionType, str],
        community_id: int,
        subject_id: int,
        actor_id: int,
        reason: str,
        evidence: Union[Iterable[str], str, None] = None,
        duration_ms: Optional[int] = None,
    ) -> ModerationCase:
        """
        Apply and record a moderation action.

        Evidence may be a list of links or free text separated by commas
        or whitespace.

        Raises:
            ValidationError: Bad reason, evidence, duration or action type.
            HierarchyViolation: Self-targeting, targeting the owner, or
                the actor does not outrank the subject.
            NotFoundError: Subject must be a member for this action.
            NotConfiguredError: Mute requested without a mute role.
            StateError: Subject already (or not) carrying the sanction.
            PersistenceError: The case could not be recorded.
        """
        try:
            action = ActionType(action)
        except ValueError:
            raise ValidationError(f"Unknown action type: {action}")

        if isinstance(evidence, str):
            evidence = parse_evidence(evidence)

        request = SanctionRequest(
            action=action,
            community_id=community_id,
            subject_id=subject_id,
            actor_id=actor_id,
            reason=Validators.validate_reason(reason),
            evidence=Validators.validate_evidence(evidence),
            duration_ms=self._validate_duration(action, duration_ms),
        )

        subject = await self._check_hierarchy(request)
        settings = await self._settings.get(community_id)

        case = await self._handlers[action](request, subject, settings)
        await self._announce(case, settings)
        return case

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_duration(self, action: ActionType, duration_ms: Optional[int]) -> Optional[int]:
        if duration_ms is None:
            return None
        if action not in DURATED_ACTIONS:
            raise ValidationError(
                f"{action.value} does not take a duration",
                "Only mutes and bans can have a duration.",
            )
        if not is_valid_duration_ms(duration_ms):
            raise ValidationError(
                f"Invalid duration: {duration_ms}ms",
                "Duration must be positive and at most 30 days.",
            )
        return duration_ms

    async def _check_hierarchy(self, request: SanctionRequest) -> Optional[MemberInfo]:
        if request.subject_id == request.actor_id:
            raise HierarchyViolation("Actor targeted themselves", "You cannot moderate yourself.")

        subject = await self._gateway.resolve_member(request.community_id, request.subject_id)
        if subject is None:
            if request.action in MEMBER_REQUIRED_ACTIONS:
                raise NotFoundError(
                    f"User {request.subject_id} is not a member of {request.community_id}",
                    "That user is not in this server.",
                )
            return None

        if subject.is_owner:
            raise HierarchyViolation("Subject is the community owner", "You cannot moderate the server owner.")
        if subject.is_bot:
            raise ValidationError("Subject is a bot account", "You cannot moderate bots.")

        actor = await self._gateway.resolve_member(request.community_id, request.actor_id)
        if actor is None:
            raise NotFoundError(f"Actor {request.actor_id} is not a member of {request.community_id}")
        if not actor.is_owner and actor.top_role_position <= subject.top_role_position:
            raise HierarchyViolation(
                f"Actor role position {actor.top_role_position} does not outrank "
                f"subject position {subject.top_role_position}",
                "You cannot moderate someone with an equal or higher role.",
            )
        return subject

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _record(
        self,
        request: SanctionRequest,
        metadata: Optional[dict] = None,
    ) -> ModerationCase:
        expires_at = None
        if request.duration_ms:
            expires_at = self._clock.now() + request.duration_ms / 1000
        return await self._ledger.record_case(
            CaseDraft(
                community_id=request.community_id,
                subject_user_id=request.subject_id,
                actor_id=request.actor_id,
                action_type=request.action,
                reason=request.reason,
                evidence=request.evidence,
                duration_ms=request.duration_ms,
                expires_at=expires_at,
                metadata=metadata or {},
            ),
            assign_case_id=self._config.number_sanction_cases,
        )

    def _mute_role(self, settings: GuildSettings) -> int:
        if not settings.mute_role_id:
            raise NotConfiguredError(
                f"No mute role configured for {settings.community_id}",
                "No mute role is configured for this server.",
            )
        return settings.mute_role_id

    async def _handle_record_only(
        self,
        request: SanctionRequest,
        subject: Optional[MemberInfo],
        settings: GuildSettings,
    ) -> ModerationCase:
        return await self._record(request)

    async def _record_enforced(
        self,
        request: SanctionRequest,
        kind: SanctionKind,
        metadata: dict,
        role_id: Optional[int] = None,
    ) -> ModerationCase:
        """Record an enforced sanction, lifting it again if the write fails."""
        try:
            return await self._record(request, metadata)
        except PersistenceError:
            logger.error("Sanction Rolled Back", [
                ("Type", request.action.value),
                ("Guild ID", str(request.community_id)),
                ("Subject ID", str(request.subject_id)),
            ])
            await safe_async_operation(
                f"Lift {kind.value}",
                self._gateway.lift_sanction(
                    request.community_id,
                    request.subject_id,
                    kind,
                    "Case could not be recorded",
                    role_id,
                ),
                log_level="error",
            )
            raise

    async def _sync_reversal(
        self,
        request: SanctionRequest,
        kind: SanctionKind,
        role_id: Optional[int] = None,
    ) -> None:
        # A permanent sanction must not inherit an older timer for the same key
        if not request.duration_ms:
            await self._scheduler.cancel_reversal(request.community_id, request.subject_id, kind)
            return
        await self._scheduler.schedule_reversal(
            request.community_id,
            request.subject_id,
            kind,
            request.duration_ms,
            role_id=role_id,
            issued_by=request.actor_id,
        )

    async def _handle_mute(
        self,
        request: SanctionRequest,
        subject: Optional[MemberInfo],
        settings: GuildSettings,
    ) -> ModerationCase:
        role_id = self._mute_role(settings)
        if await self._gateway.has_sanction(request.community_id, request.subject_id, SanctionKind.MUTE, role_id):
            raise StateError("Subject is already muted", "That user is already muted.")

        await self._gateway.apply_sanction(
            request.community_id, request.subject_id, ActionType.MUTE, request.reason, role_id
        )
        case = await self._record_enforced(request, SanctionKind.MUTE, {"mute_role_id": role_id}, role_id)
        await self._sync_reversal(request, SanctionKind.MUTE, role_id)
        return case

    async def _handle_unmute(
        self,
        request: SanctionRequest,
        subject: Optional[MemberInfo],
        settings: GuildSettings,
    ) -> ModerationCase:
        role_id = self._mute_role(settings)
        if not await self._gateway.has_sanction(request.community_id, request.subject_id, SanctionKind.MUTE, role_id):
            raise StateError("Subject is not muted", "That user is not muted.")

        await self._gateway.lift_sanction(
            request.community_id, request.subject_id, SanctionKind.MUTE, request.reason, role_id
        )
        await self._scheduler.cancel_reversal(request.community_id, request.subject_id, SanctionKind.MUTE)
        return await self._record(request, {"mute_role_id": role_id})

    async def _handle_kick(
        self,
        request: SanctionRequest,
        subject: Optional[MemberInfo],
        settings: GuildSettings,
    ) -> ModerationCase:
        await self._notifier.direct(request.subject_id, render_action_dm(request.action, request.reason))
        await self._gateway.apply_sanction(
            request.community_id, request.subject_id, ActionType.KICK, request.reason
        )
        return await self._record(request)

    async def _handle_ban(
        self,
        request: SanctionRequest,
        subject: Optional[MemberInfo],
        settings: GuildSettings,
    ) -> ModerationCase:
        if await self._gateway.has_sanction(request.community_id, request.subject_id, SanctionKind.BAN):
            raise StateError("Subject is already banned", "That user is already banned.")

        if subject is not None:
            await self._notifier.direct(
                request.subject_id,
                render_action_dm(request.action, request.reason, request.duration_ms),
            )
        await self._gateway.apply_sanction(
            request.community_id, request.subject_id, ActionType.BAN, request.reason
        )
        case = await self._record_enforced(request, SanctionKind.BAN, {"was_member": subject is not None})
        await self._sync_reversal(request, SanctionKind.BAN)
        return case

    async def _handle_unban(
        self,
        request: SanctionRequest,
        subject: Optional[MemberInfo],
        settings: GuildSettings,
    ) -> ModerationCase:
        if not await self._gateway.has_sanction(request.community_id, request.subject_id, SanctionKind.BAN):
            raise StateError("Subject is not banned", "That user is not banned.")

        await self._gateway.lift_sanction(
            request.community_id, request.subject_id, SanctionKind.BAN, request.reason
        )
        await self._scheduler.cancel_reversal(request.community_id, request.subject_id, SanctionKind.BAN)
        return await self._record(request)

    # =========================================================================
    # Notifications
    # =========================================================================

    async def _announce(self, case: ModerationCase, settings: GuildSettings) -> None:
        operations = [
            ("Mod Log", self._notifier.channel(settings.mod_log_channel_id, render_audit_entry(case))),
        ]
        if case.action_type not in PRIVATE_ACTIONS and case.action_type not in NOTIFY_FIRST_ACTIONS:
            operations.append(
                ("DM Subject", self._notifier.direct(case.subject_user_id, render_sanction_dm(case)))
            )
        await gather_with_logging(*operations, context=case.action_type.value.capitalize())

        logger.tree("Moderation Action", [
            ("Type", case.action_type.value),
            ("Guild ID", str(case.community_id)),
            ("Subject ID", str(case.subject_user_id)),
            ("Actor ID", str(case.actor_id)),
            ("Duration", format_duration(case.duration_ms) if case.duration_ms else "None"),
            ("Case", f"#{case.case_id}" if case.case_id else "Unnumbered"),
        ], emoji="🔨")


__all__ = ["ModerationService", "SanctionRequest"]
