from typing import Literal, Optional

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed
from core.invocation import Invocation, parse_int
from models.settings import ServerSettings
from services.permissions import check_permissions
from services.registry import CommandRegistry


TOGGLES = {
    "levels": "level_system",
    "economy": "economy_system",
}
ON_WORDS = {"on", "enable", "enabled", "true", "yes"}
OFF_WORDS = {"off", "disable", "disabled", "false", "no"}


def _on_off(flag: bool) -> str:
    return "On" if flag else "Off"


def _clears_log_channel(invocation: Invocation) -> bool:
    if not invocation.is_text:
        return "channel" not in invocation.options
    return (invocation.word("channel", 0) or "").lower() in OFF_WORDS


def settings_embed(guild: discord.Guild, settings: ServerSettings) -> discord.Embed:
    log_channel = f"<#{settings.mod_log_channel}>" if settings.mod_log_channel else "Not set"
    mod_roles = [f"<@&{role_id}>" for role_id in settings.mod_role_ids]
    return create_embed(
        "⚙️ Server Settings",
        f"Configuration for {guild.name}",
        colour=discord.Colour.blue(),
        fields=[
            ("Log Channel", log_channel, True),
            ("Moderator Roles", ", ".join(mod_roles) if mod_roles else "Not set", True),
            ("Max Warnings", str(settings.max_warnings), True),
            ("Levels", _on_off(settings.level_system), True),
            ("Economy", _on_off(settings.economy_system), True),
        ],
    )


async def setlogchannel(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, administrator=True):
        return
    channel = invocation.channel_option("channel", 0)
    if channel is None and _clears_log_channel(invocation):
        ctx.settings.update_server_settings(invocation.guild_id, mod_log_channel=None)
        await invocation.reply(
            embed=create_embed("📋 Log Channel Cleared", "Audit events will no longer be mirrored.", colour=discord.Colour.green())
        )
        return
    if channel is None:
        await invocation.fail("Please specify a text channel, or `off` to disable logging")
        return
    ctx.settings.update_server_settings(invocation.guild_id, mod_log_channel=channel.id)
    await invocation.reply(
        embed=create_embed(
            "📋 Log Channel Set",
            f"Audit events will be mirrored to {channel.mention}",
            colour=discord.Colour.green(),
            timestamp=True,
        )
    )


async def settings(ctx: BotContext, invocation: Invocation) -> None:
    """Show the guild's settings, or change one with ``settings <name> <value>``."""
    if not await check_permissions(invocation, administrator=True):
        return
    name = invocation.word("setting", 0)
    value = invocation.word("value", 1)
    if name is None:
        await invocation.reply(embed=settings_embed(invocation.guild, ctx.settings.get_or_default(invocation.guild_id)))
        return
    name = name.lower()
    if value is None:
        await invocation.fail(f"Please provide a value for `{name}`")
        return
    if name == "maxwarnings":
        count = parse_int(value)
        if count is None or count < 1:
            await invocation.fail("Max warnings must be a positive whole number")
            return
        updated = ctx.settings.update_server_settings(invocation.guild_id, max_warnings=count)
    elif name in TOGGLES:
        value = value.lower()
        if value not in ON_WORDS | OFF_WORDS:
            await invocation.fail("Use `on` or `off`")
            return
        updated = ctx.settings.update_server_settings(invocation.guild_id, **{TOGGLES[name]: value in ON_WORDS})
    else:
        known = ", ".join(sorted([*TOGGLES, "maxwarnings"]))
        await invocation.fail(f"Unknown setting `{name}`. Known settings: {known}")
        return
    await invocation.reply(embed=settings_embed(invocation.guild, updated))


def register_commands(registry: CommandRegistry) -> None:
    registry.register("setlogchannel", setlogchannel, description="Set the channel audit events are mirrored to", usage="setlogchannel <#channel|off>", category="Settings")
    registry.register("settings", settings, description="Show or change server settings", usage="settings [levels|economy|maxwarnings] [value]", category="Settings")


class Settings(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    @app_commands.command(name="setlogchannel", description="Set the channel audit events are mirrored to")
    @app_commands.describe(channel="Channel for audit messages; leave empty to disable")
    async def setlogchannel_command(self, interaction: discord.Interaction, channel: Optional[discord.TextChannel] = None) -> None:
        await self.bot.run_slash_command(interaction, "setlogchannel", channel=channel)

    @app_commands.command(name="settings", description="Show or change server settings")
    @app_commands.describe(setting="Setting to change", value="New value such as on, off or a number")
    async def settings_command(
        self,
        interaction: discord.Interaction,
        setting: Optional[Literal["levels", "economy", "maxwarnings"]] = None,
        value: Optional[str] = None,
    ) -> None:
        await self.bot.run_slash_command(interaction, "settings", setting=setting, value=value)


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Settings(bot))
