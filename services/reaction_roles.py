from typing import Dict, List

from models.economy import ReactionRole
from services.database import Database


class ReactionRoleStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_reaction_role(
        self,
        guild_id: int,
        channel_id: int,
        message_id: int,
        emoji: str,
        role_id: int,
    ) -> ReactionRole:
        self._db.execute(
            """
            INSERT INTO reaction_roles (guild_id, channel_id, message_id, role_id, emoji)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(guild_id, message_id, emoji) DO UPDATE SET
                role_id = excluded.role_id,
                channel_id = excluded.channel_id
            """,
            (guild_id, channel_id, message_id, role_id, emoji),
        )
        row = self._db.query_one(
            "SELECT * FROM reaction_roles WHERE guild_id = ? AND message_id = ? AND emoji = ?",
            (guild_id, message_id, emoji),
        )
        return self._row_to_reaction_role(row)

    def _row_to_reaction_role(self, row) -> ReactionRole:
        return ReactionRole(
            id=row["id"],
            guild_id=row["guild_id"],
            channel_id=row["channel_id"],
            message_id=row["message_id"],
            role_id=row["role_id"],
            emoji=row["emoji"],
        )

    def get_reaction_roles(self, guild_id: int) -> List[ReactionRole]:
        rows = self._db.query_all(
            "SELECT * FROM reaction_roles WHERE guild_id = ? ORDER BY id ASC",
            (guild_id,),
        )
        return [self._row_to_reaction_role(row) for row in rows]

    def get_mappings_for_message(self, guild_id: int, message_id: int) -> Dict[str, int]:
        rows = self._db.query_all(
            "SELECT emoji, role_id FROM reaction_roles WHERE guild_id = ? AND message_id = ?",
            (guild_id, message_id),
        )
        return {str(row["emoji"]): int(row["role_id"]) for row in rows}

    def clear_message(self, guild_id: int, message_id: int) -> None:
        self._db.execute(
            "DELETE FROM reaction_roles WHERE guild_id = ? AND message_id = ?",
            (guild_id, message_id),
        )
