"""
Warden - Discord Gateway
========================

discord.py implementation of the community gateway.

DESIGN:
    Guild and channel lookups try the cache first and fall back to the
    API. discord.NotFound on a lookup becomes NotFoundError so the core
    never has to import discord.
"""

from typing import Iterable, List, Optional, Union, TYPE_CHECKING

import discord

from warden.core.errors import NotFoundError, NotificationError, ValidationError
from warden.core.models import ActionType, SanctionKind
from warden.gateway.base import CommunityGateway, HistoryMessage, MemberInfo

if TYPE_CHECKING:
    from discord.ext import commands


MessageableChannel = Union[discord.TextChannel, discord.Thread]

MEMBER_OVERWRITE = discord.PermissionOverwrite(
    view_channel=True,
    send_messages=True,
    read_message_history=True,
    attach_files=True,
    embed_links=True,
)


class DiscordGateway(CommunityGateway):
    """Gateway backed by a connected discord.py client."""

    def __init__(self, bot: "commands.Bot") -> None:
        self._bot = bot

    # =========================================================================
    # Lookups
    # =========================================================================

    def _guild(self, community_id: int) -> discord.Guild:
        guild = self._bot.get_guild(community_id)
        if guild is None:
            raise NotFoundError(f"Guild {community_id} is not available")
        return guild

    async def _member(self, guild: discord.Guild, user_id: int) -> Optional[discord.Member]:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.NotFound:
            return None

    async def _require_member(self, guild: discord.Guild, user_id: int) -> discord.Member:
        member = await self._member(guild, user_id)
        if member is None:
            raise NotFoundError(f"User {user_id} is not a member of {guild.id}", "That user is not in this server.")
        return member

    def _role(self, guild: discord.Guild, role_id: Optional[int]) -> discord.Role:
        role = guild.get_role(role_id) if role_id else None
        if role is None:
            raise NotFoundError(f"Role {role_id} not found in {guild.id}", "The configured mute role no longer exists.")
        return role

    async def _channel(self, channel_ref: int) -> Optional[discord.abc.GuildChannel]:
        channel = self._bot.get_channel(channel_ref)
        if channel is not None:
            return channel
        try:
            return await self._bot.fetch_channel(channel_ref)
        except discord.NotFound:
            return None

    async def _messageable(self, channel_ref: int) -> MessageableChannel:
        channel = await self._channel(channel_ref)
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise NotFoundError(f"Channel {channel_ref} not found or not a text channel")
        return channel

    # =========================================================================
    # Directory
    # =========================================================================

    async def resolve_member(self, community_id: int, user_id: int) -> Optional[MemberInfo]:
        guild = self._guild(community_id)
        member = await self._member(guild, user_id)
        if member is None:
            return None
        return MemberInfo(
            user_id=member.id,
            username=member.name,
            display_name=member.display_name,
            is_bot=member.bot,
            is_owner=member.id == guild.owner_id,
            top_role_position=member.top_role.position,
        )

    async def community_name(self, community_id: int) -> str:
        return self._guild(community_id).name

    # =========================================================================
    # Enforcement
    # =========================================================================

    async def has_sanction(
        self,
        community_id: int,
        user_id: int,
        kind: SanctionKind,
        role_id: Optional[int] = None,
    ) -> bool:
        guild = self._guild(community_id)
        if kind is SanctionKind.MUTE:
            member = await self._member(guild, user_id)
            if member is None:
                return False
            return any(role.id == role_id for role in member.roles)

        try:
            await guild.fetch_ban(discord.Object(id=user_id))
        except discord.NotFound:
            return False
        return True

    async def apply_sanction(
        self,
        community_id: int,
        user_id: int,
        action: ActionType,
        reason: str,
        role_id: Optional[int] = None,
    ) -> None:
        guild = self._guild(community_id)

        if action is ActionType.MUTE:
            member = await self._require_member(guild, user_id)
            await member.add_roles(self._role(guild, role_id), reason=reason)
        elif action is ActionType.KICK:
            member = await self._require_member(guild, user_id)
            await guild.kick(member, reason=reason)
        elif action is ActionType.BAN:
            await guild.ban(discord.Object(id=user_id), reason=reason, delete_message_seconds=0)
        else:
            raise ValidationError(f"{action.value} is not an enforceable sanction")

    async def lift_sanction(
        self,
        community_id: int,
        user_id: int,
        kind: SanctionKind,
        reason: str,
        role_id: Optional[int] = None,
    ) -> None:
        guild = self._guild(community_id)

        if kind is SanctionKind.MUTE:
            member = await self._require_member(guild, user_id)
            await member.remove_roles(self._role(guild, role_id), reason=reason)
            return

        try:
            await guild.unban(discord.Object(id=user_id), reason=reason)
        except discord.NotFound:
            raise NotFoundError(f"User {user_id} is not banned in {community_id}")

    async def assign_role(
        self,
        community_id: int,
        user_id: int,
        role_id: int,
        reason: str,
    ) -> None:
        guild = self._guild(community_id)
        member = await self._require_member(guild, user_id)
        role = guild.get_role(role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found in {guild.id}", "The configured role no longer exists.")
        await member.add_roles(role, reason=reason)

    # =========================================================================
    # Channels
    # =========================================================================

    async def create_restricted_channel(
        self,
        community_id: int,
        name: str,
        parent_id: int,
        allow_user_ids: Iterable[int],
        allow_role_ids: Iterable[int] = (),
        topic: Optional[str] = None,
    ) -> int:
        guild = self._guild(community_id)
        category = guild.get_channel(parent_id)
        if not isinstance(category, discord.CategoryChannel):
            raise NotFoundError(f"Category {parent_id} not found in {community_id}")

        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            guild.me: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                manage_channels=True,
                read_message_history=True,
            ),
        }
        for user_id in allow_user_ids:
            member = await self._member(guild, user_id)
            if member is not None:
                overwrites[member] = MEMBER_OVERWRITE
        for role_id in allow_role_ids:
            role = guild.get_role(role_id)
            if role is not None:
                overwrites[role] = MEMBER_OVERWRITE

        channel = await guild.create_text_channel(
            name=name,
            category=category,
            overwrites=overwrites,
            topic=topic,
        )
        return channel.id

    async def delete_channel(self, channel_ref: int, reason: Optional[str] = None) -> None:
        channel = await self._channel(channel_ref)
        if channel is None:
            raise NotFoundError(f"Channel {channel_ref} already deleted")
        try:
            await channel.delete(reason=reason)
        except discord.NotFound:
            raise NotFoundError(f"Channel {channel_ref} already deleted")

    async def is_text_channel(self, channel_ref: int) -> bool:
        channel = await self._channel(channel_ref)
        return isinstance(channel, (discord.TextChannel, discord.Thread))

    async def fetch_channel_history(
        self,
        channel_ref: int,
        after: Optional[int] = None,
        limit: int = 100,
    ) -> List[HistoryMessage]:
        channel = await self._messageable(channel_ref)
        after_obj = discord.Object(id=after) if after else None

        page: List[HistoryMessage] = []
        async for message in channel.history(limit=limit, after=after_obj, oldest_first=True):
            page.append(HistoryMessage(
                message_id=message.id,
                author_id=message.author.id,
                author_name=message.author.name,
                content=message.content,
                created_at=message.created_at.timestamp(),
                embed_titles=[e.title for e in message.embeds if e.title],
                embed_descriptions=[e.description for e in message.embeds if e.description],
                attachment_urls=[a.url for a in message.attachments],
            ))
        return page

    async def bulk_delete_messages(self, channel_ref: int, message_ids: List[int]) -> int:
        channel = await self._messageable(channel_ref)
        await channel.delete_messages([discord.Object(id=message_id) for message_id in message_ids])
        return len(message_ids)

    async def delete_message(self, channel_ref: int, message_id: int) -> None:
        channel = await self._messageable(channel_ref)
        try:
            await channel.get_partial_message(message_id).delete()
        except discord.NotFound:
            raise NotFoundError(f"Message {message_id} already deleted")

    # =========================================================================
    # Messaging
    # =========================================================================

    async def send_channel_message(self, channel_ref: int, content: str) -> None:
        channel = await self._messageable(channel_ref)
        try:
            await channel.send(
                content,
                allowed_mentions=discord.AllowedMentions(users=True, roles=False, everyone=False),
            )
        except discord.HTTPException as e:
            raise NotificationError(f"Could not post to channel {channel_ref}: {e}") from e

    async def send_direct_message(self, user_id: int, content: str) -> None:
        user = self._bot.get_user(user_id)
        if user is None:
            try:
                user = await self._bot.fetch_user(user_id)
            except discord.NotFound:
                raise NotFoundError(f"User {user_id} not found")
        try:
            await user.send(content)
        except discord.HTTPException as e:
            raise NotificationError(f"Could not DM user {user_id}: {e}") from e


__all__ = ["DiscordGateway"]
