"""
Warden - Test Fixtures
======================

Shared fixtures for all tests: an isolated database, a manual clock and
an in-memory community gateway.
"""

import asyncio
import os
import tempfile
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pytest

# Keep log files out of the working tree
os.environ.setdefault("WARDEN_LOG_DIR", os.path.join(tempfile.gettempdir(), "warden-test-logs"))

from warden.core.config import Config
from warden.core.errors import NotFoundError, NotificationError
from warden.core.models import ActionType, SanctionKind
from warden.gateway.base import CommunityGateway, HistoryMessage, MemberInfo
from warden.utils.clock import Clock


GUILD_ID = 1000
OWNER_ID = 1
MOD_ID = 10
USER_ID = 20
OTHER_USER_ID = 21
BOT_USER_ID = 30
STAFF_ROLE_ID = 900
MUTE_ROLE_ID = 700


# =============================================================================
# Clock
# =============================================================================

class FakeClock(Clock):
    """Clock whose time only moves when a test calls advance()."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self._sleepers: List[Tuple[float, asyncio.Future]] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self._now + seconds, future))
        await future

    @property
    def sleeper_count(self) -> int:
        return sum(1 for _, future in self._sleepers if not future.done())

    async def advance(self, seconds: float) -> None:
        """Let pending tasks reach their sleep, then move time and wake the due ones."""
        await settle()
        self._now += seconds
        due = [(deadline, f) for deadline, f in self._sleepers if deadline <= self._now]
        self._sleepers = [(deadline, f) for deadline, f in self._sleepers if deadline > self._now]
        for _, future in due:
            if not future.done():
                future.set_result(None)
        await settle()


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


# =============================================================================
# Gateway
# =============================================================================

class FakeGateway(CommunityGateway):
    """In-memory community that records every call made against it."""

    def __init__(self) -> None:
        self.members: Dict[Tuple[int, int], MemberInfo] = {}
        self.sanctions: Set[Tuple[int, int, SanctionKind]] = set()
        self.applied: List[Tuple[int, int, ActionType]] = []
        self.lifted: List[Tuple[int, int, SanctionKind]] = []
        self.channels: Dict[int, dict] = {}
        self.deleted_channels: List[int] = []
        self.channel_messages: List[Tuple[int, str]] = []
        self.direct_messages: List[Tuple[int, str]] = []
        self.history: Dict[int, List[HistoryMessage]] = {}
        self.history_calls: List[Tuple[int, Optional[int], int]] = []
        self.text_channels: Set[int] = set()
        self.assigned_roles: List[Tuple[int, int, int]] = []
        self.bulk_deletes: List[Tuple[int, List[int]]] = []
        self.deleted_messages: List[Tuple[int, int]] = []
        self.undeletable_messages: Set[int] = set()

        self.fail_dm = False
        self.fail_lift = False
        self.fail_create_channel = False
        self.fail_bulk_delete = False
        self._next_channel = 5000

    def add_member(
        self,
        user_id: int,
        username: Optional[str] = None,
        position: int = 1,
        is_bot: bool = False,
        is_owner: bool = False,
        community_id: int = GUILD_ID,
    ) -> MemberInfo:
        member = MemberInfo(
            user_id=user_id,
            username=username or f"user{user_id}",
            display_name=username or f"User {user_id}",
            is_bot=is_bot,
            is_owner=is_owner,
            top_role_position=position,
        )
        self.members[(community_id, user_id)] = member
        return member

    # -------------------------------------------------------------------------
    # Directory / enforcement
    # -------------------------------------------------------------------------

    async def resolve_member(self, community_id: int, user_id: int) -> Optional[MemberInfo]:
        return self.members.get((community_id, user_id))

    async def community_name(self, community_id: int) -> str:
        return "Test Server"

    async def has_sanction(self, community_id, user_id, kind, role_id=None) -> bool:
        return (community_id, user_id, SanctionKind(kind)) in self.sanctions

    async def apply_sanction(self, community_id, user_id, action, reason, role_id=None) -> None:
        self.applied.append((community_id, user_id, action))
        if action is ActionType.MUTE:
            self.sanctions.add((community_id, user_id, SanctionKind.MUTE))
        elif action is ActionType.BAN:
            self.sanctions.add((community_id, user_id, SanctionKind.BAN))
            self.members.pop((community_id, user_id), None)
        elif action is ActionType.KICK:
            self.members.pop((community_id, user_id), None)

    async def lift_sanction(self, community_id, user_id, kind, reason, role_id=None) -> None:
        if self.fail_lift:
            raise RuntimeError("lift failed")
        self.lifted.append((community_id, user_id, kind))
        self.sanctions.discard((community_id, user_id, kind))

    async def assign_role(self, community_id, user_id, role_id, reason) -> None:
        if (community_id, user_id) not in self.members:
            raise NotFoundError(f"User {user_id} is not a member")
        self.assigned_roles.append((community_id, user_id, role_id))

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    async def create_restricted_channel(
        self,
        community_id: int,
        name: str,
        parent_id: int,
        allow_user_ids: Iterable[int],
        allow_role_ids: Iterable[int] = (),
        topic: Optional[str] = None,
    ) -> int:
        if self.fail_create_channel:
            raise RuntimeError("channel creation failed")
        self._next_channel += 1
        ref = self._next_channel
        self.channels[ref] = {
            "community_id": community_id,
            "name": name,
            "parent_id": parent_id,
            "users": set(allow_user_ids),
            "roles": set(allow_role_ids),
            "topic": topic,
        }
        self.text_channels.add(ref)
        return ref

    async def delete_channel(self, channel_ref: int, reason: Optional[str] = None) -> None:
        if channel_ref not in self.channels:
            raise NotFoundError(f"Channel {channel_ref} not found")
        del self.channels[channel_ref]
        self.text_channels.discard(channel_ref)
        self.deleted_channels.append(channel_ref)

    async def is_text_channel(self, channel_ref: int) -> bool:
        return channel_ref in self.text_channels

    async def fetch_channel_history(self, channel_ref, after=None, limit=100) -> List[HistoryMessage]:
        self.history_calls.append((channel_ref, after, limit))
        messages = self.history.get(channel_ref, [])
        if after is not None:
            messages = [m for m in messages if m.message_id > after]
        return messages[:limit]

    async def bulk_delete_messages(self, channel_ref: int, message_ids: List[int]) -> int:
        if self.fail_bulk_delete:
            raise RuntimeError("bulk delete failed")
        self.bulk_deletes.append((channel_ref, list(message_ids)))
        self._drop_messages(channel_ref, message_ids)
        return len(message_ids)

    async def delete_message(self, channel_ref: int, message_id: int) -> None:
        if message_id in self.undeletable_messages:
            raise RuntimeError(f"cannot delete {message_id}")
        self.deleted_messages.append((channel_ref, message_id))
        self._drop_messages(channel_ref, [message_id])

    def _drop_messages(self, channel_ref: int, message_ids: List[int]) -> None:
        gone = set(message_ids)
        self.history[channel_ref] = [m for m in self.history.get(channel_ref, []) if m.message_id not in gone]

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    async def send_channel_message(self, channel_ref: int, content: str) -> None:
        self.channel_messages.append((channel_ref, content))

    async def send_direct_message(self, user_id: int, content: str) -> None:
        if self.fail_dm:
            raise NotificationError(f"Cannot DM {user_id}")
        self.direct_messages.append((user_id, content))

    def messages_to(self, channel_ref: int) -> List[str]:
        return [content for ref, content in self.channel_messages if ref == channel_ref]

    def dms_to(self, user_id: int) -> List[str]:
        return [content for uid, content in self.direct_messages if uid == user_id]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def test_db(temp_db_path, monkeypatch):
    """Create a fresh test database instance."""
    from warden.core.database import manager as db_module

    db_module.DatabaseManager._instance = None
    monkeypatch.setattr(db_module, "DB_PATH", temp_db_path)
    monkeypatch.setattr(db_module, "DATA_DIR", temp_db_path.parent)

    db = db_module.DatabaseManager()

    yield db

    db.close()
    db_module.DatabaseManager._instance = None


@pytest.fixture
def test_config():
    return Config(
        discord_token="test-token",
        staff_role_ids={STAFF_ROLE_ID},
        number_sanction_cases=True,
        channel_grace_seconds=2,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    gw = FakeGateway()
    gw.add_member(OWNER_ID, "owner", position=100, is_owner=True)
    gw.add_member(MOD_ID, "moderator", position=50)
    gw.add_member(USER_ID, "Some User", position=1)
    gw.add_member(OTHER_USER_ID, "other", position=1)
    gw.add_member(BOT_USER_ID, "helperbot", position=5, is_bot=True)
    return gw


@pytest.fixture
def configured_guild(test_db):
    """Guild with every destination and role configured."""
    test_db.update_guild_settings(
        GUILD_ID,
        mute_role_id=MUTE_ROLE_ID,
        mod_log_channel_id=8001,
        ticket_category_id=8002,
        ticket_log_channel_id=8003,
        transcript_channel_id=8004,
        report_channel_id=8005,
        report_log_channel_id=8006,
        report_category_id=8007,
    )
    return GUILD_ID


@pytest.fixture
def core(test_db, test_config, gateway, clock, configured_guild):
    from warden.services.container import ModerationCore
    return ModerationCore(test_config, gateway, test_db, clock)
