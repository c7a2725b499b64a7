from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional
import datetime


@dataclass
class EconomyAccount:
    user_id: int
    guild_id: int
    balance: Decimal = Decimal("0.00")
    bank: Decimal = Decimal("0.00")
    last_daily: Optional[datetime.datetime] = None
    last_work: Optional[datetime.datetime] = None
    inventory: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return self.balance + self.bank


@dataclass
class LevelEntry:
    user_id: int
    guild_id: int
    xp: int
    level: int
    last_message: datetime.datetime


@dataclass
class ShopItem:
    id: int
    guild_id: int
    name: str
    description: Optional[str]
    price: Decimal
    role_id: Optional[int]
    stock: int = -1

    @property
    def unlimited(self) -> bool:
        return self.stock < 0


@dataclass
class AutoRole:
    id: int
    guild_id: int
    role_id: int
    enabled: bool


@dataclass
class ReactionRole:
    id: int
    guild_id: int
    channel_id: int
    message_id: int
    role_id: int
    emoji: str
