from decimal import Decimal, InvalidOperation
from typing import Optional

import datetime
import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed
from core.invocation import Invocation
from services.economy import to_money
from services.history import utcnow
from services.permissions import check_permissions
from services.registry import CommandRegistry


log = logging.getLogger(__name__)

DAILY_AMOUNT = 100
DAILY_WINDOW = datetime.timedelta(hours=24)


def money(value: Decimal) -> str:
    return f"${value:,.2f}"


def parse_amount(raw: Optional[str], available: Decimal) -> Optional[Decimal]:
    """Parse a positive amount or ``all``; ``None`` when the input is unusable."""
    if raw is None:
        return None
    if raw.lower() == "all":
        return available if available > 0 else None
    try:
        amount = to_money(raw.lstrip("$").replace(",", ""))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


async def _economy_enabled(ctx: BotContext, invocation: Invocation) -> bool:
    if ctx.settings.get_or_default(invocation.guild_id).economy_system:
        return True
    await invocation.fail("The economy system is disabled on this server.")
    return False


async def balance(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    member = invocation.member("user", 0) or invocation.author
    account = ctx.economy.get_or_create(member.id, invocation.guild_id)
    description = "Your current balance" if member.id == invocation.user_id else f"Balance of {member}"
    await invocation.reply(
        embed=create_embed(
            "💰 Balance",
            description,
            colour=discord.Colour.green(),
            fields=[
                ("Wallet", money(account.balance), True),
                ("Bank", money(account.bank), True),
                ("Total", money(account.total), True),
            ],
            timestamp=True,
        )
    )


async def daily(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    account = ctx.economy.get_or_create(invocation.user_id, invocation.guild_id)
    now = utcnow()
    if account.last_daily is not None and now - account.last_daily < DAILY_WINDOW:
        left = account.last_daily + DAILY_WINDOW - now
        hours, remainder = divmod(int(left.total_seconds()), 3600)
        minutes = remainder // 60
        await invocation.reply(
            embed=create_embed(
                "⏰ Daily Reward",
                f"You can claim your next daily reward in {hours}h {minutes}m",
                colour=discord.Colour.red(),
            )
        )
        return
    account = ctx.economy.claim_daily(invocation.user_id, invocation.guild_id, DAILY_AMOUNT, now)
    await invocation.reply(
        embed=create_embed(
            "💰 Daily Reward",
            f"You received your daily reward of {money(to_money(DAILY_AMOUNT))}!",
            colour=discord.Colour.green(),
            fields=[("New Balance", money(account.balance), True)],
            timestamp=True,
        )
    )


async def deposit(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    account = ctx.economy.get_or_create(invocation.user_id, invocation.guild_id)
    amount = parse_amount(invocation.word("amount", 0), account.balance)
    if amount is None:
        await invocation.fail("Please provide a positive amount or `all`")
        return
    if amount > account.balance:
        await invocation.fail(f"You only have {money(account.balance)} in your wallet")
        return
    account = ctx.economy.set_funds(
        invocation.user_id, invocation.guild_id, account.balance - amount, account.bank + amount
    )
    await invocation.reply(
        embed=create_embed(
            "🏦 Deposit",
            f"Deposited {money(amount)} into your bank",
            colour=discord.Colour.green(),
            fields=[("Wallet", money(account.balance), True), ("Bank", money(account.bank), True)],
        )
    )


async def withdraw(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    account = ctx.economy.get_or_create(invocation.user_id, invocation.guild_id)
    amount = parse_amount(invocation.word("amount", 0), account.bank)
    if amount is None:
        await invocation.fail("Please provide a positive amount or `all`")
        return
    if amount > account.bank:
        await invocation.fail(f"You only have {money(account.bank)} in your bank")
        return
    account = ctx.economy.set_funds(
        invocation.user_id, invocation.guild_id, account.balance + amount, account.bank - amount
    )
    await invocation.reply(
        embed=create_embed(
            "🏦 Withdrawal",
            f"Withdrew {money(amount)} from your bank",
            colour=discord.Colour.green(),
            fields=[("Wallet", money(account.balance), True), ("Bank", money(account.bank), True)],
        )
    )


async def leaderboard(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    accounts = ctx.economy.get_leaderboard(invocation.guild_id, limit=10)
    if not accounts:
        await invocation.reply(embed=create_embed("🏆 Richest Members", "Nobody has any money yet."))
        return
    lines = [
        f"**{rank}.** <@{account.user_id}> {money(account.total)}"
        for rank, account in enumerate(accounts, start=1)
    ]
    await invocation.reply(
        embed=create_embed("🏆 Richest Members", "\n".join(lines), colour=discord.Colour.gold())
    )


async def shop(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    items = ctx.shop.get_items(invocation.guild_id)
    if not items:
        await invocation.reply(embed=create_embed("🛒 Shop", "The shop is empty."))
        return
    fields = []
    for item in items[:25]:
        details = [money(item.price)]
        if item.description:
            details.append(item.description)
        if item.role_id:
            details.append(f"Grants <@&{item.role_id}>")
        details.append("Unlimited stock" if item.unlimited else f"{item.stock} left")
        fields.append((item.name, "\n".join(details), True))
    await invocation.reply(
        embed=create_embed(
            "🛒 Shop",
            f"Use `{ctx.config.prefix}buy <item name>` to purchase",
            colour=discord.Colour.blue(),
            fields=fields,
        )
    )


async def buy(ctx: BotContext, invocation: Invocation) -> None:
    if not await _economy_enabled(ctx, invocation):
        return
    name = invocation.text("item", 0)
    if name is None:
        await invocation.fail("Please specify the item to buy")
        return
    item = ctx.shop.find_item(invocation.guild_id, name)
    if item is None:
        await invocation.fail(f"There is no item called `{name}` in the shop")
        return
    # Stock and funds are reserved before the first await.
    if not item.unlimited and not ctx.shop.take_stock(item.id):
        await invocation.fail(f"{item.name} is sold out")
        return
    account = ctx.economy.debit(invocation.user_id, invocation.guild_id, item.price)
    if account is None:
        if not item.unlimited:
            ctx.shop.restock(item.id)
        balance = ctx.economy.get_or_create(invocation.user_id, invocation.guild_id).balance
        await invocation.fail(f"You need {money(item.price)} but only have {money(balance)}")
        return
    role = invocation.guild.get_role(item.role_id) if item.role_id else None
    if role is not None:
        try:
            await invocation.author.add_roles(role, reason=f"Bought {item.name}")
        except discord.HTTPException:
            log.warning("Could not grant shop role %s to %s", role.id, invocation.user_id)
            ctx.economy.update_balance(invocation.user_id, invocation.guild_id, item.price)
            if not item.unlimited:
                ctx.shop.restock(item.id)
            await invocation.fail("Failed to grant the item's role. Check my permissions and role hierarchy.")
            return
        account = ctx.economy.get_or_create(invocation.user_id, invocation.guild_id)
    inventory = dict(account.inventory)
    inventory[item.name] = inventory.get(item.name, 0) + 1
    ctx.economy.set_inventory(invocation.user_id, invocation.guild_id, inventory)
    fields = [("Price", money(item.price), True), ("Wallet", money(account.balance), True)]
    if role is not None:
        fields.append(("Role", role.mention, True))
    await invocation.reply(
        embed=create_embed(
            "🛍️ Purchase Complete",
            f"You bought **{item.name}**",
            colour=discord.Colour.green(),
            fields=fields,
            timestamp=True,
        )
    )


async def additem(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_guild=True):
        return
    if not await _economy_enabled(ctx, invocation):
        return
    price = parse_amount(invocation.word("price", 0), Decimal("0"))
    name = invocation.text("name", 1)
    if price is None or name is None:
        await invocation.fail("Usage: additem <price> <name>")
        return
    description = None
    role_id = None
    stock = -1
    if not invocation.is_text:
        description = invocation.options.get("description")
        role = invocation.role("role")
        role_id = role.id if role is not None else None
        stock = invocation.options.get("stock", -1)
    if ctx.shop.find_item(invocation.guild_id, name) is not None:
        await invocation.fail(f"An item called `{name}` already exists")
        return
    item = ctx.shop.create_item(invocation.guild_id, name, price, description=description, role_id=role_id, stock=stock)
    await invocation.reply(
        embed=create_embed(
            "🛒 Item Added",
            f"**{item.name}** is now for sale at {money(item.price)}",
            colour=discord.Colour.green(),
        )
    )


def register_commands(registry: CommandRegistry) -> None:
    category = "Economy"
    registry.register("balance", balance, description="Show a wallet and bank balance", usage="balance [@user]", category=category)
    registry.register("daily", daily, description="Claim your daily reward", usage="daily", category=category)
    registry.register("deposit", deposit, description="Move money into your bank", usage="deposit <amount|all>", category=category)
    registry.register("withdraw", withdraw, description="Move money out of your bank", usage="withdraw <amount|all>", category=category)
    registry.register("leaderboard", leaderboard, description="Show the richest members", usage="leaderboard", category=category)
    registry.register("shop", shop, description="List items for sale", usage="shop", category=category)
    registry.register("buy", buy, description="Buy an item from the shop", usage="buy <item name>", category=category)
    registry.register("additem", additem, description="Add an item to the shop", usage="additem <price> <name>", category=category)


class Economy(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    @app_commands.command(name="balance", description="Show a wallet and bank balance")
    @app_commands.describe(user="Whose balance to show")
    async def balance_command(self, interaction: discord.Interaction, user: Optional[discord.Member] = None) -> None:
        await self.bot.run_slash_command(interaction, "balance", user=user)

    @app_commands.command(name="daily", description="Claim your daily reward")
    async def daily_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "daily")

    @app_commands.command(name="deposit", description="Move money into your bank")
    @app_commands.describe(amount="Amount to deposit, or all")
    async def deposit_command(self, interaction: discord.Interaction, amount: str) -> None:
        await self.bot.run_slash_command(interaction, "deposit", amount=amount)

    @app_commands.command(name="withdraw", description="Move money out of your bank")
    @app_commands.describe(amount="Amount to withdraw, or all")
    async def withdraw_command(self, interaction: discord.Interaction, amount: str) -> None:
        await self.bot.run_slash_command(interaction, "withdraw", amount=amount)

    @app_commands.command(name="leaderboard", description="Show the richest members")
    async def leaderboard_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "leaderboard")

    @app_commands.command(name="shop", description="List items for sale")
    async def shop_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "shop")

    @app_commands.command(name="buy", description="Buy an item from the shop")
    @app_commands.describe(item="Name of the item")
    async def buy_command(self, interaction: discord.Interaction, item: str) -> None:
        await self.bot.run_slash_command(interaction, "buy", item=item)

    @app_commands.command(name="additem", description="Add an item to the shop")
    @app_commands.describe(
        name="Item name",
        price="Item price",
        description="Short description",
        role="Role granted on purchase",
        stock="Number available, omit for unlimited",
    )
    async def additem_command(
        self,
        interaction: discord.Interaction,
        name: str,
        price: str,
        description: Optional[str] = None,
        role: Optional[discord.Role] = None,
        stock: Optional[app_commands.Range[int, 0]] = None,
    ) -> None:
        await self.bot.run_slash_command(
            interaction, "additem", name=name, price=price, description=description, role=role, stock=stock
        )


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Economy(bot))
