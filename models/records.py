from dataclasses import dataclass
from typing import Optional
import datetime


@dataclass
class WarningRecord:
    id: int
    user_id: int
    guild_id: int
    reason: str
    moderator_id: int
    created_at: datetime.datetime


@dataclass
class MuteRecord:
    id: int
    user_id: int
    guild_id: int
    moderator_id: int
    expires_at: datetime.datetime


@dataclass
class ModLogEntry:
    id: int
    guild_id: int
    user_id: int
    moderator_id: int
    action: str
    reason: Optional[str]
    created_at: datetime.datetime
