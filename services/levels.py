from typing import List, Optional, Tuple

import datetime

from models.economy import LevelEntry
from services.database import Database
from services.history import utcnow


def xp_needed_for_level(level: int) -> int:
    """XP required to advance from ``level`` to ``level + 1``."""
    return 100 * (level + 1)


class LevelStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_entry(self, row) -> LevelEntry:
        return LevelEntry(
            user_id=row["user_id"],
            guild_id=row["guild_id"],
            xp=row["xp"],
            level=row["level"],
            last_message=datetime.datetime.fromisoformat(row["last_message"]),
        )

    def get_level(self, user_id: int, guild_id: int) -> Optional[LevelEntry]:
        row = self._db.query_one(
            "SELECT * FROM levels WHERE user_id = ? AND guild_id = ?",
            (user_id, guild_id),
        )
        if row is None:
            return None
        return self._row_to_entry(row)

    def create_level(self, user_id: int, guild_id: int, xp: int = 0, level: int = 0) -> LevelEntry:
        self._db.execute(
            """
            INSERT INTO levels (user_id, guild_id, xp, level, last_message)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id, guild_id) DO NOTHING
            """,
            (user_id, guild_id, xp, level, utcnow().isoformat()),
        )
        return self.get_level(user_id, guild_id)  # type: ignore[return-value]

    def _save(self, user_id: int, guild_id: int, xp: int, level: int) -> LevelEntry:
        self._db.execute(
            "UPDATE levels SET xp = ?, level = ?, last_message = ? WHERE user_id = ? AND guild_id = ?",
            (xp, level, utcnow().isoformat(), user_id, guild_id),
        )
        return self.get_level(user_id, guild_id)  # type: ignore[return-value]

    def add_xp(self, user_id: int, guild_id: int, amount: int) -> Tuple[LevelEntry, bool]:
        """Add XP and roll over levels; returns the entry and whether it levelled up."""
        entry = self.get_level(user_id, guild_id) or self.create_level(user_id, guild_id)
        xp = entry.xp + amount
        level = entry.level
        leveled = False
        while xp >= xp_needed_for_level(level):
            xp -= xp_needed_for_level(level)
            level += 1
            leveled = True
        return self._save(user_id, guild_id, xp, level), leveled

    def set_level(self, user_id: int, guild_id: int, level: int) -> LevelEntry:
        entry = self.get_level(user_id, guild_id) or self.create_level(user_id, guild_id)
        return self._save(user_id, guild_id, entry.xp, max(level, 0))

    def get_leaderboard(self, guild_id: int, limit: int = 10) -> List[LevelEntry]:
        rows = self._db.query_all(
            """
            SELECT * FROM levels
            WHERE guild_id = ?
            ORDER BY level DESC, xp DESC
            LIMIT ?
            """,
            (guild_id, limit),
        )
        return [self._row_to_entry(row) for row in rows]
