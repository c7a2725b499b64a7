from dataclasses import dataclass, field
from typing import Optional

import time

from core.config import BotConfig
from services.auto_roles import AutoRoleStore
from services.cooldowns import CooldownTracker
from services.database import Database
from services.economy import EconomyStore, ShopStore
from services.history import HistoryStore
from services.levels import LevelStore
from services.reaction_roles import ReactionRoleStore
from services.registry import CommandRegistry
from services.settings import SettingsStore


@dataclass
class BotContext:
    """Everything a handler needs, built once at startup and passed explicitly."""

    config: BotConfig
    db: Database
    registry: CommandRegistry
    cooldowns: CooldownTracker
    history: HistoryStore
    settings: SettingsStore
    economy: EconomyStore
    shop: ShopStore
    levels: LevelStore
    auto_roles: AutoRoleStore
    reaction_roles: ReactionRoleStore
    started_at: float = field(default_factory=time.time)
    client: Optional[object] = None

    @classmethod
    def create(cls, config: BotConfig, db: Optional[Database] = None) -> "BotContext":
        if db is None:
            db = Database.from_url(config.database_url)
        return cls(
            config=config,
            db=db,
            registry=CommandRegistry(),
            cooldowns=CooldownTracker(window_ms=config.cooldown_ms),
            history=HistoryStore(db),
            settings=SettingsStore(db),
            economy=EconomyStore(db),
            shop=ShopStore(db),
            levels=LevelStore(db),
            auto_roles=AutoRoleStore(db),
            reaction_roles=ReactionRoleStore(db),
        )
