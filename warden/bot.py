"""
Warden - Main Bot Class
=======================

Discord client that hosts the moderation core.

DESIGN:
    setup_hook builds the gateway and ModerationCore before the first
    connect. Recovery runs in on_ready, once the bot's own user ID (the
    actor on automated reversals) and the guild cache are available.
    close() stops timers, the API and the database in that order.
"""

import sys
from datetime import datetime
from typing import Any, Optional

import discord
from discord.ext import commands

from warden.core.config import Config, get_config
from warden.core.database import get_db
from warden.core.logger import logger
from warden.gateway.discord_gateway import DiscordGateway
from warden.services.container import ModerationCore
from warden.utils.error_handler import ErrorHandler


class WardenBot(commands.Bot):
    """
    Moderation bot.

    Attributes:
        core: The moderation core, available after setup_hook.
        api_service: Read-only HTTP API, when API_ENABLED is set.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or get_config()

        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.db = get_db()
        self.start_time: datetime = datetime.now()
        self.core: Optional[ModerationCore] = None
        self.api_service = None
        self._ready_initialized: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Build the moderation core before on_ready."""
        self.core = ModerationCore(self.config, DiscordGateway(self), self.db)

        if self.config.api_enabled:
            from warden.api import APIService
            self.api_service = APIService(self.core, self.config)

        logger.tree("Services Built", [
            ("Moderation Core", "Ready"),
            ("API", "Enabled" if self.api_service else "Disabled"),
        ], emoji="🧩")

    # =========================================================================
    # Events
    # =========================================================================

    async def on_ready(self) -> None:
        """Run recovery once per process."""
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return
        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
        ], emoji="🚀")

        await self.core.start(system_actor_id=self.user.id)
        if self.api_service:
            await self.api_service.start()

        logger.tree("WARDEN READY", [
            ("Pending Reversals", str(self.core.scheduler.pending_count)),
            ("API", "Running" if self.api_service else "Disabled"),
        ], emoji="🛡️")

    async def on_member_join(self, member: discord.Member) -> None:
        """Greet new members when the guild has a welcome channel."""
        if self.core is None:
            return
        try:
            await self.core.welcome.greet(member.guild.id, member.id)
        except Exception as e:
            ErrorHandler.handle(e, location="event.on_member_join", guild_id=member.guild.id, user_id=member.id)

    async def on_error(self, event_method: str, *args: Any, **kwargs: Any) -> None:
        error = sys.exc_info()[1]
        if error is not None:
            ErrorHandler.handle(error, location=f"event.{event_method}")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Graceful shutdown with proper cleanup."""
        logger.info("Initiating Graceful Shutdown")

        if self.core:
            await self.core.stop()
        if self.api_service:
            await self.api_service.stop()

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")


__all__ = ["WardenBot"]
