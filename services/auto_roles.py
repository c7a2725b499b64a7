from typing import List, Optional

from models.economy import AutoRole
from services.database import Database


class AutoRoleStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_auto_role(self, row) -> AutoRole:
        return AutoRole(
            id=row["id"],
            guild_id=row["guild_id"],
            role_id=row["role_id"],
            enabled=bool(row["enabled"]),
        )

    def create_auto_role(self, guild_id: int, role_id: int, enabled: bool = True) -> AutoRole:
        self._db.execute(
            """
            INSERT INTO auto_roles (guild_id, role_id, enabled)
            VALUES (?, ?, ?)
            ON CONFLICT(guild_id, role_id) DO UPDATE SET enabled = excluded.enabled
            """,
            (guild_id, role_id, int(enabled)),
        )
        return self.get_auto_role(guild_id, role_id)  # type: ignore[return-value]

    def get_auto_role(self, guild_id: int, role_id: int) -> Optional[AutoRole]:
        row = self._db.query_one(
            "SELECT * FROM auto_roles WHERE guild_id = ? AND role_id = ?",
            (guild_id, role_id),
        )
        if row is None:
            return None
        return self._row_to_auto_role(row)

    def get_auto_roles(self, guild_id: int, enabled_only: bool = False) -> List[AutoRole]:
        sql = "SELECT * FROM auto_roles WHERE guild_id = ?"
        if enabled_only:
            sql += " AND enabled = 1"
        rows = self._db.query_all(sql + " ORDER BY id ASC", (guild_id,))
        return [self._row_to_auto_role(row) for row in rows]

    def toggle(self, guild_id: int, role_id: int) -> AutoRole:
        existing = self.get_auto_role(guild_id, role_id)
        enabled = True if existing is None else not existing.enabled
        return self.create_auto_role(guild_id, role_id, enabled=enabled)
