"""
Warden - Ticket Transcript
==========================

Plain-text transcript rendering for ticket channels.

DESIGN:
    iter_history pages a channel's history oldest-first and yields
    messages lazily. Each call starts a fresh walk from the beginning,
    so a transcript can be regenerated at any time.

    The rendered text is split on line boundaries into parts that fit a
    single message once wrapped in a code fence.
"""

from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from warden.core.constants import (
    HISTORY_PAGE_SIZE,
    TRANSCRIPT_CHUNK_SIZE,
    TRANSCRIPT_RULE_WIDTH,
)
from warden.core.models import Ticket
from warden.gateway.base import CommunityGateway, HistoryMessage


FENCE = "```"

# Opening fence + newline, closing newline + fence
FENCE_OVERHEAD = len(FENCE) * 2 + 2


# =============================================================================
# History
# =============================================================================

async def iter_history(
    gateway: CommunityGateway,
    channel_ref: int,
    page_size: int = HISTORY_PAGE_SIZE,
) -> AsyncIterator[HistoryMessage]:
    """Yield every message in a channel, oldest first, one page at a time."""
    after: Optional[int] = None
    while True:
        page = await gateway.fetch_channel_history(channel_ref, after=after, limit=page_size)
        if not page:
            return
        for message in page:
            yield message
        if len(page) < page_size:
            return
        after = page[-1].message_id


# =============================================================================
# Rendering
# =============================================================================

def _iso(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat(timespec="seconds")


def render_header(ticket: Ticket, generated_by: int, generated_at: float) -> List[str]:
    rule = "=" * TRANSCRIPT_RULE_WIDTH
    return [
        rule,
        f"TICKET TRANSCRIPT #{ticket.ticket_id}",
        rule,
        f"Channel: {ticket.channel_ref}",
        f"Category: {ticket.category.value}",
        f"User: {ticket.opener_user_id}",
        f"Generated by: {generated_by}",
        f"Date: {_iso(generated_at)}",
        rule,
        "",
    ]


def render_message(message: HistoryMessage) -> List[str]:
    lines = [f"[{_iso(message.created_at)}] {message.author_name}: {message.content}"]
    for title in message.embed_titles:
        lines.append(f"  [EMBED] {title}")
    for description in message.embed_descriptions:
        lines.extend(f"    {text}" for text in description.splitlines() if text.strip())
    for url in message.attachment_urls:
        lines.append(f"  [ATTACHMENT] {url}")
    return lines


def render_footer() -> List[str]:
    rule = "=" * TRANSCRIPT_RULE_WIDTH
    return ["", rule, "END OF TRANSCRIPT", rule]


# =============================================================================
# Chunking
# =============================================================================

def _split_long_line(line: str, width: int) -> List[str]:
    if len(line) <= width:
        return [line]
    return [line[i:i + width] for i in range(0, len(line), width)]


def chunk_lines(lines: Iterable[str], max_size: int = TRANSCRIPT_CHUNK_SIZE) -> List[str]:
    """
    Pack lines into fenced parts of at most max_size characters each.

    Lines longer than a part are hard-wrapped.
    """
    body_limit = max_size - FENCE_OVERHEAD
    parts: List[str] = []
    current: List[str] = []
    current_len = 0

    for raw in lines:
        for line in _split_long_line(raw, body_limit):
            added = len(line) + (1 if current else 0)
            if current and current_len + added > body_limit:
                parts.append("\n".join(current))
                current, current_len = [], 0
                added = len(line)
            current.append(line)
            current_len += added

    if current:
        parts.append("\n".join(current))
    return [f"{FENCE}\n{part}\n{FENCE}" for part in parts]


async def build_transcript(
    ticket: Ticket,
    generated_by: int,
    generated_at: float,
    messages: AsyncIterator[HistoryMessage],
) -> Tuple[List[str], int]:
    """
    Render a full transcript.

    Returns:
        (parts, message_count)
    """
    lines = render_header(ticket, generated_by, generated_at)
    count = 0
    async for message in messages:
        lines.extend(render_message(message))
        count += 1
    lines.extend(render_footer())
    return chunk_lines(lines), count


__all__ = [
    "iter_history",
    "render_header",
    "render_message",
    "render_footer",
    "chunk_lines",
    "build_transcript",
]
