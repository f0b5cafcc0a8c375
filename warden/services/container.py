"""
Warden - Moderation Core
========================

Process-scoped container for every stateful service.

DESIGN:
    Built once at startup and torn down on shutdown. All timer and
    deletion bookkeeping lives on the objects owned here, never in
    module globals, so tests build their own core with a fake gateway
    and clock.
"""

from typing import Iterable, List, Optional, Union

from warden.core.config import Config
from warden.core.database import DatabaseManager, get_db
from warden.core.logger import logger
from warden.core.models import ActionType, CaseStats, ModerationCase
from warden.gateway.base import CommunityGateway
from warden.services.case_ledger import CaseLedger
from warden.services.channel_cleaner import ChannelCleaner
from warden.services.moderation import ModerationService
from warden.services.notifier import Notifier
from warden.services.reclaimer import ChannelReclaimer
from warden.services.reports import ReportWorkflow
from warden.services.sanction_scheduler import SanctionScheduler
from warden.services.settings import GuildSettingsStore
from warden.services.tickets import TicketWorkflow
from warden.services.welcome import WelcomeService
from warden.utils.clock import Clock, SYSTEM_CLOCK


class ModerationCore:
    """
    Owns the ledger, scheduler, workflows and their collaborators.

    Attributes:
        tickets: Ticket workflow (open, take, close, transcript).
        reports: Report workflow (submit, take, channels, verdict).
        scheduler: Pending sanction reversals.
        welcome: Join greetings and their configuration.
        cleaner: Owner-only channel clearing.
    """

    def __init__(
        self,
        config: Config,
        gateway: CommunityGateway,
        db: Optional[DatabaseManager] = None,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.config = config
        self.db = db or get_db()
        self.gateway = gateway
        self.clock = clock

        self.settings = GuildSettingsStore(self.db)
        self.notifier = Notifier(gateway)
        self.ledger = CaseLedger(self.db, clock)
        self.reclaimer = ChannelReclaimer(gateway, config.channel_grace_seconds, clock)
        self.scheduler = SanctionScheduler(
            self.ledger, gateway, self.notifier, self.settings, config, self.db, clock
        )
        self.moderation = ModerationService(
            self.ledger, self.scheduler, gateway, self.notifier, self.settings, config, clock
        )
        self.tickets = TicketWorkflow(
            gateway, self.notifier, self.settings, self.reclaimer, config, self.db, clock
        )
        self.reports = ReportWorkflow(
            self.ledger, gateway, self.notifier, self.settings, self.reclaimer, config, self.db, clock
        )
        self.welcome = WelcomeService(gateway, self.notifier, self.settings, clock)
        self.cleaner = ChannelCleaner(gateway, clock)
        self._started = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, system_actor_id: Optional[int] = None) -> None:
        """Recover persisted reversals and interrupted channel deletions."""
        if self._started:
            return
        if system_actor_id is not None:
            self.scheduler.system_actor_id = system_actor_id

        reversals = await self.scheduler.recover()
        tickets = await self.tickets.recover()
        reports = await self.reports.recover()
        self._started = True

        logger.tree("Moderation Core Started", [
            ("Reversals", str(reversals)),
            ("Ticket Channels", str(tickets)),
            ("Report Channels", str(reports)),
            ("Numbered Sanctions", "Yes" if self.config.number_sanction_cases else "No"),
        ], emoji="🛡️")

    @property
    def started(self) -> bool:
        return self._started

    async def stop(self) -> None:
        await self.scheduler.shutdown()
        await self.reclaimer.stop()
        self._started = False
        logger.info("Moderation Core Stopped")

    # =========================================================================
    # Produced Interface
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
        return await self.moderation.invoke_sanction(
            action, community_id, subject_id, actor_id, reason, evidence, duration_ms
        )

    async def query_cases(
        self,
        community_id: int,
        user_id: int,
        action_type: Union[ActionType, str, None] = None,
        limit: Optional[int] = None,
    ) -> List[ModerationCase]:
        return await self.ledger.query_cases(community_id, user_id, action_type, limit)

    async def query_stats(self, community_id: int, user_id: int) -> CaseStats:
        return await self.ledger.aggregate_stats(community_id, user_id)


__all__ = ["ModerationCore"]
