"""
Warden - Community Gateway Interface
====================================

The directory/enforcement collaborator the moderation core talks to.

DESIGN:
    The ledger, scheduler and workflows only ever see this interface and
    the small value types below. The discord.py implementation lives in
    warden.gateway.discord_gateway; tests supply an in-memory fake.

Subclasses must implement every abstract coroutine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from warden.core.models import ActionType, SanctionKind


# =============================================================================
# Value Types
# =============================================================================

@dataclass(frozen=True)
class MemberInfo:
    """What the core needs to know about a community member."""
    user_id: int
    username: str
    display_name: str
    is_bot: bool = False
    is_owner: bool = False
    top_role_position: int = 0


@dataclass(frozen=True)
class HistoryMessage:
    """One message from a channel's history, as used by transcripts."""
    message_id: int
    author_id: int
    author_name: str
    content: str
    created_at: float
    embed_titles: List[str] = field(default_factory=list)
    embed_descriptions: List[str] = field(default_factory=list)
    attachment_urls: List[str] = field(default_factory=list)


# =============================================================================
# Gateway
# =============================================================================

class CommunityGateway(ABC):
    """Directory, enforcement and messaging operations for one platform."""

    # -------------------------------------------------------------------------
    # Directory
    # -------------------------------------------------------------------------

    @abstractmethod
    async def resolve_member(self, community_id: int, user_id: int) -> Optional[MemberInfo]:
        """Return the member, or None if the user is not in the community."""

    @abstractmethod
    async def community_name(self, community_id: int) -> str:
        """Display name of the community."""

    # -------------------------------------------------------------------------
    # Enforcement
    # -------------------------------------------------------------------------

    @abstractmethod
    async def has_sanction(
        self,
        community_id: int,
        user_id: int,
        kind: SanctionKind,
        role_id: Optional[int] = None,
    ) -> bool:
        """Whether the user currently carries the sanction."""

    @abstractmethod
    async def apply_sanction(
        self,
        community_id: int,
        user_id: int,
        action: ActionType,
        reason: str,
        role_id: Optional[int] = None,
    ) -> None:
        """Apply a mute (role), kick or ban."""

    @abstractmethod
    async def lift_sanction(
        self,
        community_id: int,
        user_id: int,
        kind: SanctionKind,
        reason: str,
        role_id: Optional[int] = None,
    ) -> None:
        """Remove a mute role or unban."""

    @abstractmethod
    async def assign_role(
        self,
        community_id: int,
        user_id: int,
        role_id: int,
        reason: str,
    ) -> None:
        """Give a member a role outside of any sanction (e.g. a join role)."""

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_restricted_channel(
        self,
        community_id: int,
        name: str,
        parent_id: int,
        allow_user_ids: Iterable[int],
        allow_role_ids: Iterable[int] = (),
        topic: Optional[str] = None,
    ) -> int:
        """Create a text channel visible only to the allow-list. Returns its ID."""

    @abstractmethod
    async def delete_channel(self, channel_ref: int, reason: Optional[str] = None) -> None:
        """Delete a channel. Raises NotFoundError if it no longer exists."""

    @abstractmethod
    async def is_text_channel(self, channel_ref: int) -> bool:
        """Whether the reference points at an existing channel messages can be sent to."""

    @abstractmethod
    async def fetch_channel_history(
        self,
        channel_ref: int,
        after: Optional[int] = None,
        limit: int = 100,
    ) -> List[HistoryMessage]:
        """
        Return up to `limit` messages posted after message ID `after`,
        oldest first. An empty list means the history is exhausted.
        """

    @abstractmethod
    async def bulk_delete_messages(self, channel_ref: int, message_ids: List[int]) -> int:
        """
        Delete up to 100 messages younger than 14 days in one call.

        Returns:
            Number of messages deleted.
        """

    @abstractmethod
    async def delete_message(self, channel_ref: int, message_id: int) -> None:
        """Delete one message. Raises NotFoundError if it is already gone."""

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    @abstractmethod
    async def send_channel_message(self, channel_ref: int, content: str) -> None:
        ...

    @abstractmethod
    async def send_direct_message(self, user_id: int, content: str) -> None:
        ...


__all__ = ["CommunityGateway", "MemberInfo", "HistoryMessage"]
