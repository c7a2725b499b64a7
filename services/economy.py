from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

import datetime
import json

from models.economy import EconomyAccount, ShopItem
from services.database import Database


CENT = Decimal("0.01")

Amount = Union[Decimal, int, str]


def to_money(value: Amount) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _parse_dt(raw: Optional[str]) -> Optional[datetime.datetime]:
    return datetime.datetime.fromisoformat(raw) if raw else None


class EconomyStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_account(self, row) -> EconomyAccount:
        return EconomyAccount(
            user_id=row["user_id"],
            guild_id=row["guild_id"],
            balance=to_money(row["balance"]),
            bank=to_money(row["bank"]),
            last_daily=_parse_dt(row["last_daily"]),
            last_work=_parse_dt(row["last_work"]),
            inventory=json.loads(row["inventory"] or "{}"),
        )

    def get_account(self, user_id: int, guild_id: int) -> Optional[EconomyAccount]:
        row = self._db.query_one(
            "SELECT * FROM economy WHERE user_id = ? AND guild_id = ?",
            (user_id, guild_id),
        )
        if row is None:
            return None
        return self._row_to_account(row)

    def create_account(
        self,
        user_id: int,
        guild_id: int,
        balance: Amount = 0,
        bank: Amount = 0,
    ) -> EconomyAccount:
        self._db.execute(
            """
            INSERT INTO economy (user_id, guild_id, balance, bank)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id, guild_id) DO NOTHING
            """,
            (user_id, guild_id, str(to_money(balance)), str(to_money(bank))),
        )
        return self.get_account(user_id, guild_id)  # type: ignore[return-value]

    def get_or_create(self, user_id: int, guild_id: int) -> EconomyAccount:
        account = self.get_account(user_id, guild_id)
        if account is None:
            account = self.create_account(user_id, guild_id)
        return account

    def set_funds(self, user_id: int, guild_id: int, balance: Amount, bank: Amount) -> EconomyAccount:
        self.get_or_create(user_id, guild_id)
        self._db.execute(
            "UPDATE economy SET balance = ?, bank = ? WHERE user_id = ? AND guild_id = ?",
            (str(to_money(balance)), str(to_money(bank)), user_id, guild_id),
        )
        return self.get_account(user_id, guild_id)  # type: ignore[return-value]

    def update_balance(self, user_id: int, guild_id: int, amount: Amount) -> EconomyAccount:
        account = self.get_or_create(user_id, guild_id)
        return self.set_funds(user_id, guild_id, account.balance + to_money(amount), account.bank)

    def update_bank(self, user_id: int, guild_id: int, amount: Amount) -> EconomyAccount:
        account = self.get_or_create(user_id, guild_id)
        return self.set_funds(user_id, guild_id, account.balance, account.bank + to_money(amount))

    def debit(self, user_id: int, guild_id: int, amount: Amount) -> Optional[EconomyAccount]:
        """Take ``amount`` from the wallet; ``None`` when the wallet is short."""
        account = self.get_or_create(user_id, guild_id)
        amount = to_money(amount)
        if account.balance < amount:
            return None
        return self.set_funds(user_id, guild_id, account.balance - amount, account.bank)

    def claim_daily(
        self,
        user_id: int,
        guild_id: int,
        amount: Amount,
        claimed_at: datetime.datetime,
    ) -> EconomyAccount:
        account = self.get_or_create(user_id, guild_id)
        self._db.execute(
            "UPDATE economy SET balance = ?, last_daily = ? WHERE user_id = ? AND guild_id = ?",
            (str(account.balance + to_money(amount)), claimed_at.isoformat(), user_id, guild_id),
        )
        return self.get_account(user_id, guild_id)  # type: ignore[return-value]

    def set_inventory(self, user_id: int, guild_id: int, inventory: Dict[str, int]) -> None:
        self._db.execute(
            "UPDATE economy SET inventory = ? WHERE user_id = ? AND guild_id = ?",
            (json.dumps(inventory), user_id, guild_id),
        )

    def get_leaderboard(self, guild_id: int, limit: int = 10) -> List[EconomyAccount]:
        rows = self._db.query_all(
            "SELECT * FROM economy WHERE guild_id = ?",
            (guild_id,),
        )
        accounts = [self._row_to_account(row) for row in rows]
        accounts.sort(key=lambda account: account.total, reverse=True)
        return accounts[:limit]


class ShopStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_item(self, row) -> ShopItem:
        return ShopItem(
            id=row["id"],
            guild_id=row["guild_id"],
            name=row["name"],
            description=row["description"],
            price=to_money(row["price"]),
            role_id=row["role_id"],
            stock=row["stock"],
        )

    def create_item(
        self,
        guild_id: int,
        name: str,
        price: Amount,
        description: Optional[str] = None,
        role_id: Optional[int] = None,
        stock: int = -1,
    ) -> ShopItem:
        cur = self._db.execute(
            """
            INSERT INTO shop_items (guild_id, name, description, price, role_id, stock)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (guild_id, name, description, str(to_money(price)), role_id, stock),
        )
        return self.get_item(int(cur.lastrowid))  # type: ignore[return-value]

    def get_item(self, item_id: int) -> Optional[ShopItem]:
        row = self._db.query_one("SELECT * FROM shop_items WHERE id = ?", (item_id,))
        if row is None:
            return None
        return self._row_to_item(row)

    def get_items(self, guild_id: int) -> List[ShopItem]:
        rows = self._db.query_all(
            "SELECT * FROM shop_items WHERE guild_id = ? ORDER BY id ASC",
            (guild_id,),
        )
        return [self._row_to_item(row) for row in rows]

    def find_item(self, guild_id: int, name: str) -> Optional[ShopItem]:
        row = self._db.query_one(
            "SELECT * FROM shop_items WHERE guild_id = ? AND lower(name) = lower(?)",
            (guild_id, name.strip()),
        )
        if row is None:
            return None
        return self._row_to_item(row)

    def update_item(self, item_id: int, **changes: Any) -> Optional[ShopItem]:
        allowed = {"name", "description", "price", "role_id", "stock"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown shop item fields: {', '.join(sorted(unknown))}")
        if changes:
            columns = sorted(changes)
            params = [str(to_money(changes[c])) if c == "price" else changes[c] for c in columns]
            assignments = ", ".join(f"{c} = ?" for c in columns)
            self._db.execute(
                f"UPDATE shop_items SET {assignments} WHERE id = ?",
                (*params, item_id),
            )
        return self.get_item(item_id)

    def delete_item(self, item_id: int) -> bool:
        cur = self._db.execute("DELETE FROM shop_items WHERE id = ?", (item_id,))
        return cur.rowcount > 0

    def take_stock(self, item_id: int) -> bool:
        """Reserve one unit of a limited item; ``False`` when none are left."""
        cur = self._db.execute(
            "UPDATE shop_items SET stock = stock - 1 WHERE id = ? AND stock > 0",
            (item_id,),
        )
        return cur.rowcount > 0

    def restock(self, item_id: int) -> None:
        self._db.execute(
            "UPDATE shop_items SET stock = stock + 1 WHERE id = ? AND stock >= 0",
            (item_id,),
        )
