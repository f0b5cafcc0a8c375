"""
Warden - Welcome Placeholders
=============================

Fills {{placeholder}} tokens in a welcome message.

Keys are matched case-insensitively with spaces, underscores and dashes
ignored, so {{User_Name}} and {{username}} are the same token. Unknown
tokens are left in place.
"""

import re
from dataclasses import dataclass
from typing import Dict

from warden.gateway.base import MemberInfo


DEFAULT_WELCOME_TEMPLATE = (
    "Welcome {{userMention}}! Take a look at the rules and enjoy your stay in {{guildName}}."
)

PLACEHOLDER_PATTERN = re.compile(r"{{\s*([\w-]+)\s*}}")

PLACEHOLDER_ALIASES: Dict[str, str] = {
    "user": "user_mention",
    "usermention": "user_mention",
    "mention": "user_mention",
    "username": "user_name",
    "userdisplayname": "user_display_name",
    "displayname": "user_display_name",
    "nickname": "user_display_name",
    "usertag": "user_tag",
    "tag": "user_tag",
    "guild": "guild_name",
    "guildname": "guild_name",
    "server": "guild_name",
    "servername": "guild_name",
}


@dataclass(frozen=True)
class WelcomeContext:
    user_mention: str
    user_name: str
    user_display_name: str
    user_tag: str
    guild_name: str

    @classmethod
    def for_member(cls, member: MemberInfo, guild_name: str) -> "WelcomeContext":
        return cls(
            user_mention=f"<@{member.user_id}>",
            user_name=member.username,
            user_display_name=member.display_name or member.username,
            user_tag=member.username,
            guild_name=guild_name,
        )


def _normalize_key(raw: str) -> str:
    return re.sub(r"[\s_-]", "", raw).lower()


def render_welcome_template(template: str, context: WelcomeContext) -> str:
    """Replace known placeholders with values from the context."""
    def substitute(match: "re.Match[str]") -> str:
        attribute = PLACEHOLDER_ALIASES.get(_normalize_key(match.group(1)))
        if attribute is None:
            return match.group(0)
        return getattr(context, attribute)

    return PLACEHOLDER_PATTERN.sub(substitute, template)


__all__ = [
    "DEFAULT_WELCOME_TEMPLATE",
    "WelcomeContext",
    "render_welcome_template",
]
