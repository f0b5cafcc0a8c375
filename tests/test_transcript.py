"""
Warden - Transcript Tests
=========================

History paging, line rendering, chunking and delivery of ticket
transcripts.
"""

import pytest
import pytest_asyncio

from conftest import GUILD_ID, MOD_ID, USER_ID
from warden.core.errors import InvalidDestinationError, NotConfiguredError
from warden.core.models import Ticket, TicketCategory, TicketStatus
from warden.gateway.base import HistoryMessage
from warden.services.tickets import chunk_lines, iter_history
from warden.services.tickets.transcript import render_header, render_message


def _messages(count, start=1_700_000_000.0):
    return [
        HistoryMessage(
            message_id=i + 1,
            author_id=USER_ID,
            author_name="Some User",
            content=f"message {i + 1}",
            created_at=start + i,
        )
        for i in range(count)
    ]


@pytest_asyncio.fixture
async def tickets(core, gateway):
    gateway.text_channels.add(8004)
    yield core.tickets
    await core.stop()


class TestHistory:

    @pytest.mark.asyncio
    async def test_pages_until_short_page(self, gateway):
        gateway.history[77] = _messages(150)

        collected = [m async for m in iter_history(gateway, 77)]

        assert [m.message_id for m in collected] == list(range(1, 151))
        assert gateway.history_calls == [(77, None, 100), (77, 100, 100)]

    @pytest.mark.asyncio
    async def test_exact_page_needs_one_more_fetch(self, gateway):
        gateway.history[77] = _messages(100)

        collected = [m async for m in iter_history(gateway, 77)]

        assert len(collected) == 100
        assert len(gateway.history_calls) == 2

    @pytest.mark.asyncio
    async def test_empty_channel(self, gateway):
        assert [m async for m in iter_history(gateway, 77)] == []


class TestRendering:

    def test_header(self):
        ticket = Ticket(
            ticket_id=7,
            community_id=GUILD_ID,
            opener_user_id=USER_ID,
            category=TicketCategory.SUPPORT,
            status=TicketStatus.CLOSED,
            opened_at=0.0,
            channel_ref=5001,
        )
        header = render_header(ticket, MOD_ID, 1_700_000_000.0)

        assert header[0] == "=" * 50
        assert "TICKET TRANSCRIPT #7" in header
        assert "Channel: 5001" in header
        assert "Category: support" in header
        assert "User: 20" in header
        assert "Generated by: 10" in header
        assert "Date: 2023-11-14T22:13:20+00:00" in header

    def test_message_with_embeds_and_attachments(self):
        message = HistoryMessage(
            message_id=1,
            author_id=USER_ID,
            author_name="Some User",
            content="see attached",
            created_at=1_700_000_000.0,
            embed_titles=["Error Report"],
            embed_descriptions=["Traceback attached.\n\nStep 2 failed."],
            attachment_urls=["https://cdn.example/log.txt"],
        )

        assert render_message(message) == [
            "[2023-11-14T22:13:20+00:00] Some User: see attached",
            "  [EMBED] Error Report",
            "    Traceback attached.",
            "    Step 2 failed.",
            "  [ATTACHMENT] https://cdn.example/log.txt",
        ]


class TestChunking:

    def test_parts_are_fenced_and_bounded(self):
        lines = [f"line {i} " + "x" * 80 for i in range(200)]
        parts = chunk_lines(lines)

        assert len(parts) > 1
        for part in parts:
            assert len(part) <= 1900
            assert part.startswith("```\n")
            assert part.endswith("\n```")

        bodies = [part[4:-4] for part in parts]
        assert "\n".join(bodies).split("\n") == lines

    def test_long_line_is_wrapped(self):
        parts = chunk_lines(["y" * 5000])

        assert len(parts) == 3
        assert all(len(part) <= 1900 for part in parts)
        assert "".join(part[4:-4] for part in parts) == "y" * 5000

    def test_small_input_is_single_part(self):
        assert chunk_lines(["a", "b"]) == ["```\na\nb\n```"]


class TestGenerateTranscript:

    @pytest.mark.asyncio
    async def test_transcript_is_posted_in_parts(self, tickets, gateway):
        ticket = (await tickets.open(GUILD_ID, USER_ID, "support")).ticket
        gateway.history[ticket.channel_ref] = _messages(150)

        receipt = await tickets.generate_transcript(ticket.ticket_id, MOD_ID)

        posted = gateway.messages_to(8004)
        assert receipt.ticket_id == ticket.ticket_id
        assert receipt.destination_ref == 8004
        assert receipt.message_count == 150
        assert receipt.parts == len(posted)
        assert all(len(part) <= 1900 for part in posted)

        text = "\n".join(posted)
        assert f"TICKET TRANSCRIPT #{ticket.ticket_id}" in text
        assert "Some User: message 150" in text
        assert "END OF TRANSCRIPT" in text

    @pytest.mark.asyncio
    async def test_closed_ticket_still_has_transcript(self, tickets, gateway):
        ticket = (await tickets.open(GUILD_ID, USER_ID, "support")).ticket
        gateway.history[ticket.channel_ref] = _messages(3)
        await tickets.close(ticket.ticket_id, MOD_ID)

        receipt = await tickets.generate_transcript(ticket.ticket_id, MOD_ID)
        assert receipt.message_count == 3

    @pytest.mark.asyncio
    async def test_not_configured(self, tickets, test_db):
        ticket = (await tickets.open(GUILD_ID, USER_ID, "support")).ticket
        test_db.update_guild_settings(GUILD_ID, transcript_channel_id=None)

        with pytest.raises(NotConfiguredError):
            await tickets.generate_transcript(ticket.ticket_id, MOD_ID)

    @pytest.mark.asyncio
    async def test_destination_not_text(self, tickets, gateway):
        ticket = (await tickets.open(GUILD_ID, USER_ID, "support")).ticket
        gateway.text_channels.discard(8004)

        with pytest.raises(InvalidDestinationError):
            await tickets.generate_transcript(ticket.ticket_id, MOD_ID)
        assert gateway.messages_to(8004) == []
