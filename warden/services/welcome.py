"""
Warden - Welcome Service
========================

Greets new members in a configured channel and optionally gives them a
join role.

DESIGN:
    Configuration lives in guild_settings (welcome_channel_id,
    welcome_role_id, welcome_message). A member is greeted at most once
    per WELCOME_DEDUP_SECONDS. The key is marked before anything is
    sent, so a join event delivered twice posts once.
"""

from typing import Dict, Optional, Tuple

from warden.core.constants import WELCOME_DEDUP_SECONDS, WELCOME_MESSAGE_MAX_LENGTH
from warden.core.errors import NotFoundError, ValidationError
from warden.core.logger import logger
from warden.core.models import GuildSettings
from warden.gateway.base import CommunityGateway
from warden.services.notifier import Notifier
from warden.services.settings import GuildSettingsStore
from warden.utils.async_utils import safe_async_operation
from warden.utils.clock import Clock, SYSTEM_CLOCK
from warden.utils.placeholders import DEFAULT_WELCOME_TEMPLATE, WelcomeContext, render_welcome_template


class WelcomeService:
    """Per-community welcome greeting."""

    def __init__(
        self,
        gateway: CommunityGateway,
        notifier: Notifier,
        settings: GuildSettingsStore,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier
        self._settings = settings
        self._clock = clock
        self._recent: Dict[Tuple[int, int], float] = {}

    # =========================================================================
    # Configuration
    # =========================================================================

    async def configure(
        self,
        community_id: int,
        channel_ref: int,
        role_id: Optional[int] = None,
        message: Optional[str] = None,
    ) -> GuildSettings:
        """
        Turn greetings on, or change where and how they are sent.

        Raises:
            ValidationError: Not a text channel, or the message is too long.
        """
        if not await self._gateway.is_text_channel(channel_ref):
            raise ValidationError(
                f"Channel {channel_ref} is not a text channel",
                "Welcome messages need a text channel.",
            )

        message = message.strip() if message else None
        if message and len(message) > WELCOME_MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Welcome message is {len(message)} characters",
                f"Welcome message must be at most {WELCOME_MESSAGE_MAX_LENGTH} characters.",
            )

        settings = await self._settings.update(
            community_id,
            welcome_channel_id=channel_ref,
            welcome_role_id=role_id,
            welcome_message=message or None,
        )
        logger.tree("Welcome Configured", [
            ("Guild ID", str(community_id)),
            ("Channel ID", str(channel_ref)),
            ("Role ID", str(role_id) if role_id else "None"),
            ("Custom Message", "Yes" if message else "No"),
        ], emoji="👋")
        return settings

    async def clear(self, community_id: int) -> bool:
        """Turn greetings off. Returns False if they were not configured."""
        settings = await self._settings.get(community_id)
        if not settings.welcome_channel_id:
            return False

        await self._settings.update(
            community_id,
            welcome_channel_id=None,
            welcome_role_id=None,
            welcome_message=None,
        )
        logger.info("Welcome Cleared", [("Guild ID", str(community_id))])
        return True

    # =========================================================================
    # Greeting
    # =========================================================================

    async def preview(self, community_id: int, user_id: int, message: Optional[str] = None) -> str:
        """Render a message as the given member would see it."""
        member = await self._gateway.resolve_member(community_id, user_id)
        if member is None:
            raise NotFoundError(f"User {user_id} is not a member of {community_id}")
        context = WelcomeContext.for_member(member, await self._gateway.community_name(community_id))
        return render_welcome_template(message or DEFAULT_WELCOME_TEMPLATE, context)

    async def greet(self, community_id: int, user_id: int) -> bool:
        """
        Post the welcome message for a member who just joined.

        Returns:
            True if a greeting was posted.
        """
        if self._seen_recently(community_id, user_id):
            logger.debug("Duplicate Welcome Skipped", [
                ("Guild ID", str(community_id)),
                ("User ID", str(user_id)),
            ])
            return False

        settings = await self._settings.get(community_id)
        channel_ref = settings.welcome_channel_id
        if not channel_ref:
            return False

        member = await self._gateway.resolve_member(community_id, user_id)
        if member is None or member.is_bot:
            return False

        if not await self._gateway.is_text_channel(channel_ref):
            logger.warning("Welcome Channel Invalid", [
                ("Guild ID", str(community_id)),
                ("Channel ID", str(channel_ref)),
            ])
            return False

        context = WelcomeContext.for_member(member, await self._gateway.community_name(community_id))
        text = render_welcome_template(settings.welcome_message or DEFAULT_WELCOME_TEMPLATE, context)
        if context.user_mention not in text:
            text = f"{context.user_mention}\n{text}"

        posted = await self._notifier.channel(channel_ref, text)

        if settings.welcome_role_id:
            await safe_async_operation(
                "Welcome Role",
                self._gateway.assign_role(community_id, user_id, settings.welcome_role_id, "Welcome role"),
            )

        logger.tree("Member Welcomed", [
            ("Guild ID", str(community_id)),
            ("User", f"{member.username} ({user_id})"),
            ("Posted", "Yes" if posted else "No"),
        ], emoji="👋")
        return posted

    def _seen_recently(self, community_id: int, user_id: int) -> bool:
        now = self._clock.now()
        self._recent = {key: expiry for key, expiry in self._recent.items() if expiry > now}

        key = (community_id, user_id)
        if key in self._recent:
            return True
        self._recent[key] = now + WELCOME_DEDUP_SECONDS
        return False


__all__ = ["WelcomeService"]
