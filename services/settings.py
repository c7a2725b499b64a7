from dataclasses import fields
from typing import Any, Dict, Optional

import json

from models.settings import ChannelSettings, ServerSettings
from services.database import Database


BOOLEAN_FIELDS = {
    "anti_spam",
    "anti_raid",
    "ghost_ping",
    "level_system",
    "economy_system",
    "verification_enabled",
    "auto_mod_enabled",
}

SERVER_FIELDS = {f.name for f in fields(ServerSettings)} - {"guild_id"}


class SettingsStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_settings(self, row) -> ServerSettings:
        values: Dict[str, Any] = {"guild_id": row["guild_id"]}
        for name in SERVER_FIELDS:
            value = row[name]
            if name in BOOLEAN_FIELDS:
                value = bool(value)
            elif name == "auto_mod_actions":
                value = json.loads(value) if value else {}
            values[name] = value
        return ServerSettings(**values)

    def get_server_settings(self, guild_id: int) -> Optional[ServerSettings]:
        row = self._db.query_one(
            "SELECT * FROM server_settings WHERE guild_id = ?",
            (guild_id,),
        )
        if row is None:
            return None
        return self._row_to_settings(row)

    def get_or_default(self, guild_id: int) -> ServerSettings:
        return self.get_server_settings(guild_id) or ServerSettings(guild_id=guild_id)

    def update_server_settings(self, guild_id: int, **changes: Any) -> ServerSettings:
        """Upsert the guild's row with ``changes``; last writer wins."""
        unknown = set(changes) - SERVER_FIELDS
        if unknown:
            raise ValueError(f"Unknown server settings: {', '.join(sorted(unknown))}")
        self._db.execute(
            "INSERT INTO server_settings (guild_id) VALUES (?) ON CONFLICT(guild_id) DO NOTHING",
            (guild_id,),
        )
        if changes:
            columns = sorted(changes)
            params = []
            for name in columns:
                value = changes[name]
                if name == "auto_mod_actions":
                    value = json.dumps(value or {})
                elif name in BOOLEAN_FIELDS:
                    value = int(bool(value))
                params.append(value)
            assignments = ", ".join(f"{name} = ?" for name in columns)
            self._db.execute(
                f"UPDATE server_settings SET {assignments} WHERE guild_id = ?",
                (*params, guild_id),
            )
        return self.get_or_default(guild_id)

    def add_mod_role(self, guild_id: int, role_id: int) -> ServerSettings:
        settings = self.get_or_default(guild_id)
        role_ids = settings.mod_role_ids
        if role_id in role_ids:
            return settings
        role_ids.append(role_id)
        return self.update_server_settings(guild_id, mod_roles=",".join(str(r) for r in role_ids))

    def remove_mod_role(self, guild_id: int, role_id: int) -> ServerSettings:
        settings = self.get_or_default(guild_id)
        role_ids = [r for r in settings.mod_role_ids if r != role_id]
        return self.update_server_settings(guild_id, mod_roles=",".join(str(r) for r in role_ids) or None)

    def get_channel_settings(self, channel_id: int) -> Optional[ChannelSettings]:
        row = self._db.query_one(
            "SELECT * FROM channel_settings WHERE channel_id = ?",
            (channel_id,),
        )
        if row is None:
            return None
        return ChannelSettings(
            channel_id=row["channel_id"],
            guild_id=row["guild_id"],
            slow_mode=row["slow_mode"],
            locked=bool(row["locked"]),
        )

    def update_channel_settings(
        self,
        guild_id: int,
        channel_id: int,
        *,
        slow_mode: Optional[int] = None,
        locked: Optional[bool] = None,
    ) -> ChannelSettings:
        current = self.get_channel_settings(channel_id) or ChannelSettings(channel_id=channel_id, guild_id=guild_id)
        if slow_mode is not None:
            current.slow_mode = slow_mode
        if locked is not None:
            current.locked = locked
        self._db.execute(
            """
            INSERT INTO channel_settings (channel_id, guild_id, slow_mode, locked)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(channel_id) DO UPDATE SET
                slow_mode = excluded.slow_mode,
                locked = excluded.locked
            """,
            (channel_id, guild_id, current.slow_mode, int(current.locked)),
        )
        return current
