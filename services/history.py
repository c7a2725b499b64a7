from typing import List, Optional

import datetime

from models.records import ModLogEntry, MuteRecord, WarningRecord
from services.database import Database


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class HistoryStore:
    """Warnings, mutes and the moderation log for every guild."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_warning(self, user_id: int, guild_id: int, reason: str, moderator_id: int) -> WarningRecord:
        now = utcnow()
        cur = self._db.execute(
            """
            INSERT INTO warnings (user_id, guild_id, reason, moderator_id, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, guild_id, reason, moderator_id, now.isoformat()),
        )
        return WarningRecord(
            id=int(cur.lastrowid),
            user_id=user_id,
            guild_id=guild_id,
            reason=reason,
            moderator_id=moderator_id,
            created_at=now,
        )

    def create_mute(self, user_id: int, guild_id: int, moderator_id: int, expires_at: datetime.datetime) -> MuteRecord:
        cur = self._db.execute(
            """
            INSERT INTO mutes (user_id, guild_id, moderator_id, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, guild_id, moderator_id, expires_at.isoformat()),
        )
        return MuteRecord(
            id=int(cur.lastrowid),
            user_id=user_id,
            guild_id=guild_id,
            moderator_id=moderator_id,
            expires_at=expires_at,
        )

    def create_mod_log(
        self,
        guild_id: int,
        user_id: int,
        moderator_id: int,
        action: str,
        reason: Optional[str] = None,
    ) -> ModLogEntry:
        now = utcnow()
        cur = self._db.execute(
            """
            INSERT INTO mod_logs (guild_id, user_id, moderator_id, action, reason, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (guild_id, user_id, moderator_id, action, reason, now.isoformat()),
        )
        return ModLogEntry(
            id=int(cur.lastrowid),
            guild_id=guild_id,
            user_id=user_id,
            moderator_id=moderator_id,
            action=action,
            reason=reason,
            created_at=now,
        )

    def _row_to_warning(self, row) -> WarningRecord:
        return WarningRecord(
            id=row["id"],
            user_id=row["user_id"],
            guild_id=row["guild_id"],
            reason=row["reason"],
            moderator_id=row["moderator_id"],
            created_at=datetime.datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_mute(self, row) -> MuteRecord:
        return MuteRecord(
            id=row["id"],
            user_id=row["user_id"],
            guild_id=row["guild_id"],
            moderator_id=row["moderator_id"],
            expires_at=datetime.datetime.fromisoformat(row["expires_at"]),
        )

    def _row_to_mod_log(self, row) -> ModLogEntry:
        return ModLogEntry(
            id=row["id"],
            guild_id=row["guild_id"],
            user_id=row["user_id"],
            moderator_id=row["moderator_id"],
            action=row["action"],
            reason=row["reason"],
            created_at=datetime.datetime.fromisoformat(row["created_at"]),
        )

    def get_warnings(self, user_id: int, guild_id: int) -> List[WarningRecord]:
        rows = self._db.query_all(
            """
            SELECT * FROM warnings
            WHERE user_id = ? AND guild_id = ?
            ORDER BY id ASC
            """,
            (user_id, guild_id),
        )
        return [self._row_to_warning(row) for row in rows]

    def count_warnings(self, user_id: int, guild_id: int) -> int:
        row = self._db.query_one(
            "SELECT COUNT(*) AS total FROM warnings WHERE user_id = ? AND guild_id = ?",
            (user_id, guild_id),
        )
        return int(row["total"]) if row is not None else 0

    def get_mutes(self, user_id: int, guild_id: int) -> List[MuteRecord]:
        rows = self._db.query_all(
            """
            SELECT * FROM mutes
            WHERE user_id = ? AND guild_id = ?
            ORDER BY id ASC
            """,
            (user_id, guild_id),
        )
        return [self._row_to_mute(row) for row in rows]

    def get_mod_logs(self, guild_id: int, limit: Optional[int] = None) -> List[ModLogEntry]:
        sql = "SELECT * FROM mod_logs WHERE guild_id = ? ORDER BY id DESC"
        params: tuple = (guild_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (guild_id, limit)
        rows = self._db.query_all(sql, params)
        return [self._row_to_mod_log(row) for row in rows]

    def clear_warnings(self, user_id: int, guild_id: int) -> int:
        cur = self._db.execute(
            "DELETE FROM warnings WHERE user_id = ? AND guild_id = ?",
            (user_id, guild_id),
        )
        return cur.rowcount
