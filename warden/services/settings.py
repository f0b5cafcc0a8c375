"""
Warden - Guild Settings Store
=============================

Async access to per-community settings (mute role, log destinations,
ticket and report categories).
"""

import asyncio
import sqlite3
from typing import Optional, Union

from warden.core.errors import PersistenceError, ValidationError
from warden.core.database import DatabaseManager, get_db
from warden.core.models import GuildSettings


class GuildSettingsStore:
    """Reads and updates GuildSettings rows."""

    def __init__(self, db: Optional[DatabaseManager] = None) -> None:
        self.db = db or get_db()

    async def get(self, community_id: int) -> GuildSettings:
        try:
            record = await asyncio.to_thread(self.db.get_guild_settings, community_id)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read settings for {community_id}: {e}") from e
        return GuildSettings.from_record(community_id, record)

    async def update(self, community_id: int, **fields: Union[int, str, None]) -> GuildSettings:
        """
        Update one or more settings.

        Raises:
            ValidationError: If a field name is not a known setting.
        """
        unknown = sorted(set(fields) - set(GuildSettings.field_names()))
        if unknown:
            raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}")
        try:
            record = await asyncio.to_thread(
                lambda: self.db.update_guild_settings(community_id, **fields)
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not update settings for {community_id}: {e}") from e
        return GuildSettings.from_record(community_id, record)


__all__ = ["GuildSettingsStore"]
