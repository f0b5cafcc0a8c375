"""
Warden - Database Guild Settings
================================

Per-guild configuration: mute role, log destinations, categories and
the welcome greeting.
"""

import time
from typing import Optional, TYPE_CHECKING, Union

from warden.core.logger import logger
from warden.core.database.models import GuildSettingsRecord

if TYPE_CHECKING:
    from warden.core.database.manager import DatabaseManager


SETTINGS_COLUMNS = (
    "mute_role_id",
    "mod_log_channel_id",
    "ticket_category_id",
    "ticket_log_channel_id",
    "transcript_channel_id",
    "report_channel_id",
    "report_log_channel_id",
    "report_category_id",
    "welcome_channel_id",
    "welcome_role_id",
    "welcome_message",
)


class SettingsMixin:
    """Mixin for guild settings operations."""

    def get_guild_settings(self: "DatabaseManager", guild_id: int) -> Optional[GuildSettingsRecord]:
        row = self.fetchone("SELECT * FROM guild_settings WHERE guild_id = ?", (guild_id,))
        return dict(row) if row else None

    def update_guild_settings(
        self: "DatabaseManager",
        guild_id: int,
        **fields: Union[int, str, None],
    ) -> GuildSettingsRecord:
        """
        Set one or more settings for a guild, creating the row if needed.

        Raises:
            KeyError: If a field name is not a known setting.
        """
        unknown = [name for name in fields if name not in SETTINGS_COLUMNS]
        if unknown:
            raise KeyError(", ".join(unknown))

        now = time.time()
        with self.transaction() as tx:
            tx.execute(
                "INSERT OR IGNORE INTO guild_settings (guild_id, updated_at) VALUES (?, ?)",
                (guild_id, now)
            )
            for name, value in fields.items():
                # Column names come from SETTINGS_COLUMNS only
                tx.execute(
                    f"UPDATE guild_settings SET {name} = ?, updated_at = ? WHERE guild_id = ?",
                    (value, now, guild_id)
                )
            tx.execute("SELECT * FROM guild_settings WHERE guild_id = ?", (guild_id,))
            row = tx.fetchone()

        logger.tree("Guild Settings Updated", [
            ("Guild ID", str(guild_id)),
            *[(name, str(value)) for name, value in fields.items()],
        ], emoji="⚙️")
        return dict(row)
