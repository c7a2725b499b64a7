from typing import Optional

import logging
import random

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed
from core.invocation import Invocation
from services.cooldowns import CooldownTracker
from services.levels import xp_needed_for_level
from services.registry import CommandRegistry


log = logging.getLogger(__name__)

XP_MIN = 15
XP_MAX = 25
XP_COOLDOWN_MS = 60_000
LEVEL_UP_NOTICE_SECONDS = 8.0


async def _levels_enabled(ctx: BotContext, invocation: Invocation) -> bool:
    if ctx.settings.get_or_default(invocation.guild_id).level_system:
        return True
    await invocation.fail("The level system is disabled on this server.")
    return False


async def rank(ctx: BotContext, invocation: Invocation) -> None:
    if not await _levels_enabled(ctx, invocation):
        return
    member = invocation.member("user", 0) or invocation.author
    entry = ctx.levels.get_level(member.id, invocation.guild_id)
    level = entry.level if entry is not None else 0
    xp = entry.xp if entry is not None else 0
    await invocation.reply(
        embed=create_embed(
            f"Rank: {member.display_name}",
            colour=discord.Colour.blurple(),
            fields=[
                ("Level", str(level), True),
                ("XP", f"{xp}/{xp_needed_for_level(level)}", True),
            ],
        )
    )


async def levels(ctx: BotContext, invocation: Invocation) -> None:
    if not await _levels_enabled(ctx, invocation):
        return
    entries = ctx.levels.get_leaderboard(invocation.guild_id, limit=10)
    lines = []
    for position, entry in enumerate(entries, start=1):
        member = invocation.guild.get_member(entry.user_id)
        name = member.display_name if member else str(entry.user_id)
        lines.append(f"**{position}.** {name}: Level {entry.level} ({entry.xp}xp)")
    await invocation.reply(
        embed=create_embed("🏆 Level Leaderboard", "\n".join(lines) or "No data yet.", colour=discord.Colour.gold())
    )


def register_commands(registry: CommandRegistry) -> None:
    registry.register("rank", rank, description="Show a member's level and XP", usage="rank [@user]", category="Levels")
    registry.register("levels", levels, description="Show the top 10 levels in this server", usage="levels", category="Levels")


class Levels(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot
        self.xp_cooldowns = CooldownTracker(window_ms=XP_COOLDOWN_MS)

    async def award_xp(self, message: discord.Message) -> Optional[int]:
        """Grant message XP; returns the new level when the member levelled up."""
        ctx = self.bot.context
        guild = message.guild
        if guild is None or message.author.bot or not isinstance(message.author, discord.Member):
            return None
        if not ctx.settings.get_or_default(guild.id).level_system:
            return None
        if self.xp_cooldowns.hit(f"xp:{guild.id}", message.author.id) is not None:
            return None
        entry, leveled = ctx.levels.add_xp(message.author.id, guild.id, random.randint(XP_MIN, XP_MAX))
        return entry.level if leveled else None

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        new_level = await self.award_xp(message)
        if new_level is None:
            return
        try:
            await message.channel.send(
                f"✨ {message.author.mention} leveled up to **Level {new_level}**!",
                delete_after=LEVEL_UP_NOTICE_SECONDS,
            )
        except discord.HTTPException:
            log.warning("Could not announce level up for %s", message.author.id)

    @app_commands.command(name="rank", description="Show a member's level and XP")
    @app_commands.describe(user="Whose rank to show")
    async def rank_command(self, interaction: discord.Interaction, user: Optional[discord.Member] = None) -> None:
        await self.bot.run_slash_command(interaction, "rank", user=user)

    @app_commands.command(name="levels", description="Show the top 10 levels in this server")
    async def levels_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "levels")


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Levels(bot))
