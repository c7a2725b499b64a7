from typing import Any, Optional

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.config import BotConfig
from core.context import BotContext
from core.invocation import Invocation
from services.dispatcher import Dispatcher, parse_prefix_command


log = logging.getLogger(__name__)

COG_EXTENSIONS = [
    "cogs.moderation.core",
    "cogs.channel.core",
    "cogs.roles.core",
    "cogs.settings.core",
    "cogs.economy.core",
    "cogs.levels.core",
    "cogs.community.core",
    "cogs.utility.core",
    "cogs.audit.core",
]

GUILD_ONLY_REPLY = "This command can only be used in a guild."


class ModKeeper(commands.Bot):
    def __init__(self, config: BotConfig, context: Optional[BotContext] = None) -> None:
        intents = discord.Intents.default()
        intents.members = True
        intents.guilds = True
        intents.message_content = True
        intents.moderation = True
        super().__init__(
            command_prefix=config.prefix,
            intents=intents,
            help_command=None,
        )
        self.config = config
        self.context = context if context is not None else BotContext.create(config)
        self.context.client = self
        self.dispatcher = Dispatcher(self.context)
        self.tree.on_error = self.on_app_command_error

    async def setup_hook(self) -> None:
        for ext in COG_EXTENSIONS:
            await self.load_extension(ext)
            log.debug("Loaded extension %s", ext)
        if self.config.guild_ids:
            for guild_id in self.config.guild_ids:
                guild = discord.Object(id=guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
            log.info("Synced slash commands to %d guild(s)", len(self.config.guild_ids))
        else:
            await self.tree.sync()
            log.info("Synced slash commands globally")

    async def on_ready(self) -> None:
        if self.user is None:
            return
        log.info("Logged in as %s (%s)", self.user, self.user.id)
        log.info("Serving %d commands in %d guild(s)", len(self.context.registry), len(self.guilds))

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return
        parsed = parse_prefix_command(message.content, self.config.prefix)
        if parsed is None:
            return
        name, args = parsed
        await self.dispatcher.dispatch(Invocation.from_message(message, name, args))

    async def run_slash_command(self, interaction: discord.Interaction, command: str, **options: Any) -> None:
        """Entry point for every slash command callback."""
        if interaction.guild is None or not isinstance(interaction.user, discord.Member):
            await interaction.response.send_message(GUILD_ONLY_REPLY, ephemeral=True)
            return
        await self.dispatcher.dispatch(Invocation.from_interaction(interaction, command, options))

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        if interaction.response.is_done():
            sender = interaction.followup.send
        else:
            sender = interaction.response.send_message
        if isinstance(error, app_commands.CheckFailure):
            message = str(error) or "You do not have permission to use this command."
        else:
            log.error("Unhandled app command error", exc_info=error)
            message = "There was an error executing this command!"
        try:
            await sender(message, ephemeral=True)
        except discord.HTTPException:
            log.warning("Could not report app command error to %s", interaction.user)

    def get_log_channel(self, guild: Optional[discord.Guild]) -> Optional[discord.TextChannel]:
        if guild is None:
            return None
        settings = self.context.settings.get_server_settings(guild.id)
        if settings is None or not settings.mod_log_channel:
            return None
        channel = guild.get_channel(settings.mod_log_channel)
        if isinstance(channel, discord.TextChannel):
            return channel
        return None

    async def close(self) -> None:
        await super().close()
        self.context.db.close()
