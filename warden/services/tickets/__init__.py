"""
Warden - Ticket System
======================

Support-ticket workflow and transcript rendering.
"""

from .service import OpenTicketResult, TicketWorkflow, ticket_channel_name
from .transcript import build_transcript, chunk_lines, iter_history

__all__ = [
    "TicketWorkflow",
    "OpenTicketResult",
    "ticket_channel_name",
    "build_transcript",
    "chunk_lines",
    "iter_history",
]
