"""
Warden - Services Package
=========================

Stateful moderation services built on the database and the community
gateway.

DESIGN:
    Services take their collaborators in the constructor and never
    reach for module globals, so ModerationCore wires one of each per
    process and tests wire their own with a fake gateway and clock.

Available Services:
    ModerationCore: Container that owns every service below
    CaseLedger: Numbered and unnumbered case records
    SanctionScheduler: Timed reversal of mutes and bans
    ModerationService: Direct actions (warn, mute, kick, ban, ...)
    TicketWorkflow: Support tickets and transcripts
    ReportWorkflow: Member reports and private discussion channels
    WelcomeService: Join greetings in a configured channel
    ChannelCleaner: Owner-only deletion of a channel's messages
    ChannelReclaimer: Delayed deletion of closed channels
    Notifier: Best-effort DMs and log entries
    GuildSettingsStore: Per-community configuration
"""

# =============================================================================
# Service Imports
# =============================================================================

from .settings import GuildSettingsStore
from .notifier import Notifier
from .case_ledger import CaseLedger
from .reclaimer import ChannelReclaimer
from .sanction_scheduler import SanctionScheduler
from .moderation import ModerationService
from .tickets import TicketWorkflow
from .reports import ReportWorkflow
from .welcome import WelcomeService
from .channel_cleaner import ChannelCleaner
from .container import ModerationCore


__all__ = [
    "ModerationCore",
    "CaseLedger",
    "SanctionScheduler",
    "ModerationService",
    "TicketWorkflow",
    "ReportWorkflow",
    "WelcomeService",
    "ChannelCleaner",
    "ChannelReclaimer",
    "Notifier",
    "GuildSettingsStore",
]
