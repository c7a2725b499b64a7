import sqlite3
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union
from urllib.parse import urlparse
import threading


SCHEMA = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS warnings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    guild_id INTEGER NOT NULL,
    reason TEXT NOT NULL,
    moderator_id INTEGER NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mutes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    guild_id INTEGER NOT NULL,
    moderator_id INTEGER NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mod_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    moderator_id INTEGER NOT NULL,
    action TEXT NOT NULL,
    reason TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS server_settings (
    guild_id INTEGER PRIMARY KEY,
    anti_spam INTEGER NOT NULL DEFAULT 0,
    anti_raid INTEGER NOT NULL DEFAULT 0,
    ghost_ping INTEGER NOT NULL DEFAULT 0,
    mod_log_channel INTEGER,
    suggest_channel INTEGER,
    level_system INTEGER NOT NULL DEFAULT 1,
    economy_system INTEGER NOT NULL DEFAULT 1,
    mod_roles TEXT,
    verification_enabled INTEGER NOT NULL DEFAULT 0,
    verification_channel INTEGER,
    verification_role INTEGER,
    verification_message TEXT NOT NULL DEFAULT 'React to verify',
    max_warnings INTEGER NOT NULL DEFAULT 3,
    auto_mod_enabled INTEGER NOT NULL DEFAULT 0,
    auto_mod_actions TEXT NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS channel_settings (
    channel_id INTEGER PRIMARY KEY,
    guild_id INTEGER NOT NULL,
    slow_mode INTEGER,
    locked INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS economy (
    user_id INTEGER NOT NULL,
    guild_id INTEGER NOT NULL,
    balance TEXT NOT NULL DEFAULT '0.00',
    bank TEXT NOT NULL DEFAULT '0.00',
    last_daily TEXT,
    last_work TEXT,
    inventory TEXT NOT NULL DEFAULT '{}',
    PRIMARY KEY (user_id, guild_id)
);

CREATE TABLE IF NOT EXISTS levels (
    user_id INTEGER NOT NULL,
    guild_id INTEGER NOT NULL,
    xp INTEGER NOT NULL DEFAULT 0,
    level INTEGER NOT NULL DEFAULT 0,
    last_message TEXT NOT NULL,
    PRIMARY KEY (user_id, guild_id)
);

CREATE TABLE IF NOT EXISTS shop_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    price TEXT NOT NULL,
    role_id INTEGER,
    stock INTEGER NOT NULL DEFAULT -1
);

CREATE TABLE IF NOT EXISTS auto_roles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id INTEGER NOT NULL,
    role_id INTEGER NOT NULL,
    enabled INTEGER NOT NULL DEFAULT 1,
    UNIQUE (guild_id, role_id)
);

CREATE TABLE IF NOT EXISTS reaction_roles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id INTEGER NOT NULL,
    channel_id INTEGER NOT NULL,
    message_id INTEGER NOT NULL,
    role_id INTEGER NOT NULL,
    emoji TEXT NOT NULL,
    UNIQUE (guild_id, message_id, emoji)
);

CREATE INDEX IF NOT EXISTS idx_warnings_guild_user ON warnings (guild_id, user_id);
CREATE INDEX IF NOT EXISTS idx_mutes_guild_user ON mutes (guild_id, user_id);
CREATE INDEX IF NOT EXISTS idx_mod_logs_guild ON mod_logs (guild_id);
CREATE INDEX IF NOT EXISTS idx_shop_items_guild ON shop_items (guild_id);
"""


def resolve_database_path(url: str) -> str:
    """Turn ``sqlite:///bot.db``, ``sqlite:///:memory:`` or a bare path into
    something ``sqlite3.connect`` accepts."""
    if "://" not in url:
        return url
    parsed = urlparse(url)
    if parsed.scheme != "sqlite":
        raise RuntimeError(f"Unsupported database URL scheme: {parsed.scheme}")
    path = url[len("sqlite://"):]
    if path.startswith("/"):
        path = path[1:]
    if not path:
        raise RuntimeError("DATABASE_URL does not name a database file")
    return path


class Database:
    def __init__(self, path: Union[Path, str]) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    @classmethod
    def from_url(cls, url: str) -> "Database":
        return cls(resolve_database_path(url))

    def _ensure_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.executescript(SCHEMA)
            self._conn.commit()

    def execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            cur = self._conn.execute(sql, tuple(params))
            self._conn.commit()
            return cur

    def query_all(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(sql, tuple(params))
            return cur.fetchall()

    def query_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(sql, tuple(params))
            return cur.fetchone()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
