from typing import Optional

import math
import platform
import time

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed
from core.invocation import Invocation
from core.views import ResponseView
from services.permissions import check_permissions
from services.registry import CommandRegistry


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{days}d {hours}h {minutes}m {seconds}s"


async def help_(ctx: BotContext, invocation: Invocation) -> None:
    prefix = ctx.config.prefix
    name = invocation.word("command", 0)
    if name is not None:
        entry = ctx.registry.get(name.lower().lstrip(prefix))
        if entry is None:
            await invocation.fail(f"Unknown command `{name}`")
            return
        fields = [("Usage", f"`{prefix}{entry.usage}` or `/{entry.name}`", False), ("Category", entry.category, True)]
        if entry.mod_only:
            fields.append(("Access", "Moderator roles only", True))
        await invocation.reply(
            embed=create_embed(f"📖 {entry.name}", entry.description or None, colour=discord.Colour.blue(), fields=fields)
        )
        return
    fields = []
    for category, entries in sorted(ctx.registry.by_category().items()):
        names = " ".join(f"`{entry.name}`" for entry in entries)
        fields.append((category, names, False))
    await invocation.reply(
        embed=create_embed(
            "📖 Commands",
            f"Use `{prefix}help <command>` for details. Every command also works as a slash command.",
            colour=discord.Colour.blue(),
            fields=fields,
        ),
        view=ResponseView(author_id=invocation.user_id),
    )


async def botinfo(ctx: BotContext, invocation: Invocation) -> None:
    client = ctx.client
    guild_count = len(client.guilds) if client is not None else 0
    latency = client.latency if client is not None else float("nan")
    ping = f"{round(latency * 1000)}ms" if math.isfinite(latency) else "n/a"
    await invocation.reply(
        embed=create_embed(
            "🤖 Bot Information",
            "Statistics and information about the bot",
            colour=discord.Colour.blue(),
            fields=[
                ("📊 Statistics", f"Commands: {len(ctx.registry)}\nServers: {guild_count}", True),
                ("⏱️ Uptime", format_uptime(time.time() - ctx.started_at), True),
                (
                    "💻 System",
                    f"Python: {platform.python_version()}\ndiscord.py: v{discord.__version__}\nPlatform: {platform.system()}",
                    True,
                ),
                ("🔧 Technical", f"Ping: {ping}", True),
            ],
            timestamp=True,
        )
    )


async def modpanel(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, moderate_members=True):
        return
    prefix = ctx.config.prefix
    fields = []
    for category, entries in sorted(ctx.registry.by_category().items()):
        lines = [f"`{prefix}{entry.usage}` {entry.description}" for entry in entries if entry.mod_only]
        if lines:
            fields.append((category, "\n".join(lines), False))
    await invocation.reply(
        embed=create_embed(
            "🛡️ Moderation Panel",
            "Quick access to all moderation commands",
            colour=discord.Colour.blue(),
            fields=fields,
            footer="Use these commands responsibly!",
        ),
        ephemeral=True,
        view=ResponseView(author_id=invocation.user_id),
    )


def register_commands(registry: CommandRegistry) -> None:
    registry.register("help", help_, description="List commands or describe one", usage="help [command]", category="Utility")
    registry.register("botinfo", botinfo, description="Show bot statistics", usage="botinfo", category="Utility")
    registry.register("modpanel", modpanel, description="Show the moderation command panel", usage="modpanel", category="Utility")


class Utility(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    @app_commands.command(name="help", description="List commands or describe one")
    @app_commands.describe(command="Command to describe")
    async def help_command(self, interaction: discord.Interaction, command: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "help", command=command)

    @app_commands.command(name="botinfo", description="Show bot statistics")
    async def botinfo_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "botinfo")

    @app_commands.command(name="modpanel", description="Show the moderation command panel")
    async def modpanel_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "modpanel")


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Utility(bot))
