from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ServerSettings:
    guild_id: int
    anti_spam: bool = False
    anti_raid: bool = False
    ghost_ping: bool = False
    mod_log_channel: Optional[int] = None
    suggest_channel: Optional[int] = None
    level_system: bool = True
    economy_system: bool = True
    mod_roles: Optional[str] = None
    verification_enabled: bool = False
    verification_channel: Optional[int] = None
    verification_role: Optional[int] = None
    verification_message: str = "React to verify"
    max_warnings: int = 3
    auto_mod_enabled: bool = False
    auto_mod_actions: Dict[str, Any] = field(default_factory=dict)

    @property
    def mod_role_ids(self) -> List[int]:
        if not self.mod_roles:
            return []
        values: List[int] = []
        for part in self.mod_roles.split(","):
            part = part.strip()
            if part.isdecimal():
                values.append(int(part))
        return values


@dataclass
class ChannelSettings:
    channel_id: int
    guild_id: int
    slow_mode: Optional[int] = None
    locked: bool = False
