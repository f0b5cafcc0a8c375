"""
Warden - Channel Cleaner
========================

Deletes every message in a channel. Owner only.

DESIGN:
    History is walked oldest first with a message-ID cursor, so messages
    that cannot be deleted are skipped instead of being fetched again.
    Messages younger than BULK_DELETE_MAX_AGE_SECONDS go out in one bulk
    call per page; older ones must be deleted one at a time.
"""

from dataclasses import dataclass
from typing import Optional

from warden.core.constants import BULK_DELETE_MAX_AGE_SECONDS, HISTORY_PAGE_SIZE
from warden.core.errors import HierarchyViolation, ValidationError
from warden.core.logger import logger
from warden.gateway.base import CommunityGateway
from warden.utils.clock import Clock, SYSTEM_CLOCK


@dataclass(frozen=True)
class ClearResult:
    channel_ref: int
    deleted: int
    failed: int


class ChannelCleaner:

    def __init__(self, gateway: CommunityGateway, clock: Clock = SYSTEM_CLOCK) -> None:
        self._gateway = gateway
        self._clock = clock

    async def clear_channel(self, community_id: int, channel_ref: int, actor_id: int) -> ClearResult:
        """
        Delete all messages in a text channel.

        Raises:
            HierarchyViolation: The actor is not the community owner.
            ValidationError: Not a text channel.
        """
        actor = await self._gateway.resolve_member(community_id, actor_id)
        if actor is None or not actor.is_owner:
            raise HierarchyViolation(
                f"User {actor_id} is not the owner of {community_id}",
                "Only the server owner can clear a channel.",
            )
        if not await self._gateway.is_text_channel(channel_ref):
            raise ValidationError(
                f"Channel {channel_ref} is not a text channel",
                "The specified channel is not valid.",
            )

        deleted = 0
        failed = 0
        cursor: Optional[int] = None

        while True:
            page = await self._gateway.fetch_channel_history(channel_ref, after=cursor, limit=HISTORY_PAGE_SIZE)
            if not page:
                break
            cursor = page[-1].message_id

            cutoff = self._clock.now() - BULK_DELETE_MAX_AGE_SECONDS
            recent = [m.message_id for m in page if m.created_at > cutoff]
            old = [m.message_id for m in page if m.created_at <= cutoff]

            if recent:
                try:
                    deleted += await self._gateway.bulk_delete_messages(channel_ref, recent)
                except Exception as e:
                    logger.warning("Bulk Delete Failed", [
                        ("Channel ID", str(channel_ref)),
                        ("Messages", str(len(recent))),
                        ("Error", str(e)[:100]),
                    ])
                    failed += len(recent)

            for message_id in old:
                try:
                    await self._gateway.delete_message(channel_ref, message_id)
                    deleted += 1
                except Exception as e:
                    logger.debug("Message Not Deleted", [
                        ("Message ID", str(message_id)),
                        ("Error", str(e)[:100]),
                    ])
                    failed += 1

            if len(page) < HISTORY_PAGE_SIZE:
                break

        logger.tree("Channel Cleared", [
            ("Guild ID", str(community_id)),
            ("Channel ID", str(channel_ref)),
            ("Deleted", str(deleted)),
            ("Failed", str(failed)),
            ("By", str(actor_id)),
        ], emoji="🗑️")
        return ClearResult(channel_ref=channel_ref, deleted=deleted, failed=failed)


__all__ = ["ChannelCleaner", "ClearResult"]
