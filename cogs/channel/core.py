from typing import Optional

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed
from core.invocation import Invocation
from services.audit import persist_or_warn
from services.permissions import check_permissions
from services.registry import CommandRegistry


log = logging.getLogger(__name__)

MAX_SLOWMODE_SECONDS = 21600
CHANNEL_SETTINGS = "the channel settings"


async def _text_channel(invocation: Invocation) -> Optional[discord.TextChannel]:
    channel = invocation.channel
    if not isinstance(channel, discord.TextChannel):
        await invocation.fail("This command can only be used in text channels.")
        return None
    return channel


async def _set_send_messages(ctx: BotContext, invocation: Invocation, locked: bool) -> None:
    if not await check_permissions(invocation, manage_channels=True):
        return
    channel = await _text_channel(invocation)
    if channel is None:
        return
    action = "lock" if locked else "unlock"
    reason = invocation.text("reason", 0) or f"Channel {channel.name} {action}ed"
    default_role = invocation.guild.default_role
    overwrite = channel.overwrites_for(default_role)
    overwrite.send_messages = False if locked else None
    try:
        await channel.set_permissions(default_role, overwrite=overwrite, reason=reason)
    except discord.HTTPException:
        log.warning("Failed to %s channel %s", action, channel.id)
        await invocation.fail(f"Failed to {action} channel. Check my permissions and role hierarchy.")
        return

    if not await persist_or_warn(
        invocation,
        action,
        lambda: ctx.history.create_mod_log(invocation.guild_id, invocation.user_id, invocation.user_id, action, reason),
    ):
        return
    if not await persist_or_warn(
        invocation,
        action,
        lambda: ctx.settings.update_channel_settings(invocation.guild_id, channel.id, locked=locked),
        store=CHANNEL_SETTINGS,
    ):
        return
    if locked:
        embed = create_embed(
            "🔒 Channel Locked", f"Successfully locked {channel.mention}", colour=discord.Colour.red(), timestamp=True
        )
    else:
        embed = create_embed(
            "🔓 Channel Unlocked", f"Successfully unlocked {channel.mention}", colour=discord.Colour.green(), timestamp=True
        )
    await invocation.reply(embed=embed)


async def lock(ctx: BotContext, invocation: Invocation) -> None:
    await _set_send_messages(ctx, invocation, locked=True)


async def unlock(ctx: BotContext, invocation: Invocation) -> None:
    await _set_send_messages(ctx, invocation, locked=False)


async def slowmode(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_channels=True):
        return
    seconds = invocation.integer("seconds", 0)
    if seconds is None or seconds < 0 or seconds > MAX_SLOWMODE_SECONDS:
        await invocation.fail(f"Please provide a valid slowmode duration (0-{MAX_SLOWMODE_SECONDS} seconds)")
        return
    channel = await _text_channel(invocation)
    if channel is None:
        return
    try:
        await channel.edit(slowmode_delay=seconds, reason=f"Slowmode set by {invocation.author}")
    except discord.HTTPException:
        log.warning("Failed to set slowmode in channel %s", channel.id)
        await invocation.fail("Failed to set slowmode. Check my permissions and role hierarchy.")
        return
    if seconds == 0:
        summary = f"Slowmode disabled in {channel.mention}"
    else:
        summary = f"Slowmode set to {seconds} seconds in {channel.mention}"

    if not await persist_or_warn(
        invocation,
        "slowmode change",
        lambda: ctx.history.create_mod_log(invocation.guild_id, invocation.user_id, invocation.user_id, "slowmode", summary),
    ):
        return
    if not await persist_or_warn(
        invocation,
        "slowmode change",
        lambda: ctx.settings.update_channel_settings(invocation.guild_id, channel.id, slow_mode=seconds),
        store=CHANNEL_SETTINGS,
    ):
        return
    await invocation.reply(
        embed=create_embed("⏱️ Slowmode Updated", summary, colour=discord.Colour.blue(), timestamp=True)
    )


def register_commands(registry: CommandRegistry) -> None:
    registry.register("lock", lock, mod_only=True, description="Stop @everyone from sending messages here", usage="lock [reason]", category="Channel")
    registry.register("unlock", unlock, mod_only=True, description="Allow @everyone to send messages here again", usage="unlock [reason]", category="Channel")
    registry.register("slowmode", slowmode, mod_only=True, description="Set this channel's slowmode (0 disables)", usage="slowmode <0-21600>", category="Channel")


class Channel(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    @app_commands.command(name="lock", description="Stop @everyone from sending messages here")
    @app_commands.describe(reason="Reason for locking the channel")
    async def lock_command(self, interaction: discord.Interaction, reason: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "lock", reason=reason)

    @app_commands.command(name="unlock", description="Allow @everyone to send messages here again")
    @app_commands.describe(reason="Reason for unlocking the channel")
    async def unlock_command(self, interaction: discord.Interaction, reason: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "unlock", reason=reason)

    @app_commands.command(name="slowmode", description="Set this channel's slowmode")
    @app_commands.describe(seconds="Seconds between messages, 0 to disable")
    async def slowmode_command(
        self,
        interaction: discord.Interaction,
        seconds: app_commands.Range[int, 0, MAX_SLOWMODE_SECONDS],
    ) -> None:
        await self.bot.run_slash_command(interaction, "slowmode", seconds=seconds)


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Channel(bot))
