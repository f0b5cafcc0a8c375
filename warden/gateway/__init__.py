"""
Warden - Gateway Package
========================

Collaborator interface between the moderation core and the chat platform.
The discord.py implementation is imported from
warden.gateway.discord_gateway where needed.
"""

from warden.gateway.base import CommunityGateway, HistoryMessage, MemberInfo

__all__ = ["CommunityGateway", "HistoryMessage", "MemberInfo"]
