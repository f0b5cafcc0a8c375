"""
Warden - Welcome Tests
======================

Placeholder rendering, greeting configuration and the join greeting.
"""

import pytest
import pytest_asyncio

from conftest import BOT_USER_ID, GUILD_ID, USER_ID
from warden.core.constants import WELCOME_MESSAGE_MAX_LENGTH
from warden.core.errors import NotFoundError, ValidationError
from warden.gateway.base import MemberInfo
from warden.utils.placeholders import WelcomeContext, render_welcome_template


WELCOME_CHANNEL = 8010
WELCOME_ROLE = 600


@pytest_asyncio.fixture
async def welcome(core, gateway):
    gateway.text_channels.add(WELCOME_CHANNEL)
    yield core.welcome
    await core.stop()


def _context() -> WelcomeContext:
    member = MemberInfo(user_id=USER_ID, username="someuser", display_name="Some User")
    return WelcomeContext.for_member(member, "Test Server")


class TestPlaceholders:

    def test_aliases_and_spacing(self):
        text = render_welcome_template("Hi {{user}} ({{ Display_Name }}) to {{server}}", _context())
        assert text == "Hi <@20> (Some User) to Test Server"

    def test_key_normalization(self):
        assert render_welcome_template("{{User-Name}} / {{userTag}}", _context()) == "someuser / someuser"

    def test_unknown_placeholder_kept(self):
        assert render_welcome_template("{{favourite_colour}}", _context()) == "{{favourite_colour}}"


class TestConfigure:

    @pytest.mark.asyncio
    async def test_configure_and_clear(self, core, welcome):
        settings = await welcome.configure(GUILD_ID, WELCOME_CHANNEL, WELCOME_ROLE, "  Hello {{user}}  ")

        assert settings.welcome_channel_id == WELCOME_CHANNEL
        assert settings.welcome_role_id == WELCOME_ROLE
        assert settings.welcome_message == "Hello {{user}}"
        # Other settings are untouched
        assert settings.mod_log_channel_id == 8001

        assert await welcome.clear(GUILD_ID) is True
        cleared = await core.settings.get(GUILD_ID)
        assert cleared.welcome_channel_id is None
        assert cleared.welcome_message is None
        assert await welcome.clear(GUILD_ID) is False

    @pytest.mark.asyncio
    async def test_rejects_non_text_channel(self, welcome):
        with pytest.raises(ValidationError):
            await welcome.configure(GUILD_ID, 424242)

    @pytest.mark.asyncio
    async def test_rejects_long_message(self, welcome):
        with pytest.raises(ValidationError):
            await welcome.configure(GUILD_ID, WELCOME_CHANNEL, message="x" * (WELCOME_MESSAGE_MAX_LENGTH + 1))

    @pytest.mark.asyncio
    async def test_settings_store_rejects_unknown_field(self, core):
        with pytest.raises(ValidationError):
            await core.settings.update(GUILD_ID, welcome_colour="blue")

    @pytest.mark.asyncio
    async def test_preview(self, welcome):
        assert await welcome.preview(GUILD_ID, USER_ID, "Hey {{username}}") == "Hey Some User"
        assert (await welcome.preview(GUILD_ID, USER_ID)).startswith("Welcome <@20>!")
        with pytest.raises(NotFoundError):
            await welcome.preview(GUILD_ID, 999)


class TestGreet:

    @pytest.mark.asyncio
    async def test_default_greeting_and_role(self, welcome, gateway):
        await welcome.configure(GUILD_ID, WELCOME_CHANNEL, WELCOME_ROLE)

        assert await welcome.greet(GUILD_ID, USER_ID) is True

        posted = gateway.messages_to(WELCOME_CHANNEL)
        assert posted == ["Welcome <@20>! Take a look at the rules and enjoy your stay in Test Server."]
        assert gateway.assigned_roles == [(GUILD_ID, USER_ID, WELCOME_ROLE)]

    @pytest.mark.asyncio
    async def test_mention_prepended_when_missing(self, welcome, gateway):
        await welcome.configure(GUILD_ID, WELCOME_CHANNEL, message="Welcome to {{guild}}!")
        await welcome.greet(GUILD_ID, USER_ID)
        assert gateway.messages_to(WELCOME_CHANNEL) == ["<@20>\nWelcome to Test Server!"]

    @pytest.mark.asyncio
    async def test_duplicate_join_greeted_once(self, welcome, gateway, clock):
        await welcome.configure(GUILD_ID, WELCOME_CHANNEL)

        assert await welcome.greet(GUILD_ID, USER_ID) is True
        assert await welcome.greet(GUILD_ID, USER_ID) is False
        assert len(gateway.messages_to(WELCOME_CHANNEL)) == 1

        await clock.advance(61)
        assert await welcome.greet(GUILD_ID, USER_ID) is True
        assert len(gateway.messages_to(WELCOME_CHANNEL)) == 2

    @pytest.mark.asyncio
    async def test_not_configured(self, welcome, gateway):
        assert await welcome.greet(GUILD_ID, USER_ID) is False
        assert gateway.channel_messages == []

    @pytest.mark.asyncio
    async def test_bots_and_departed_members_skipped(self, welcome, gateway):
        await welcome.configure(GUILD_ID, WELCOME_CHANNEL)
        assert await welcome.greet(GUILD_ID, BOT_USER_ID) is False
        assert await welcome.greet(GUILD_ID, 999) is False
        assert gateway.messages_to(WELCOME_CHANNEL) == []

    @pytest.mark.asyncio
    async def test_deleted_channel(self, welcome, gateway):
        await welcome.configure(GUILD_ID, WELCOME_CHANNEL)
        gateway.text_channels.discard(WELCOME_CHANNEL)

        assert await welcome.greet(GUILD_ID, USER_ID) is False
        assert gateway.channel_messages == []

    @pytest.mark.asyncio
    async def test_role_failure_still_greets(self, welcome, gateway, monkeypatch):
        await welcome.configure(GUILD_ID, WELCOME_CHANNEL, WELCOME_ROLE)

        async def failing_assign(*args, **kwargs):
            raise RuntimeError("missing permissions")

        monkeypatch.setattr(gateway, "assign_role", failing_assign)
        assert await welcome.greet(GUILD_ID, USER_ID) is True
        assert len(gateway.messages_to(WELCOME_CHANNEL)) == 1
