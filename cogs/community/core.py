from typing import Optional

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed
from core.invocation import Invocation, parse_int
from services.permissions import check_permissions, role_hierarchy_error
from services.registry import CommandRegistry


log = logging.getLogger(__name__)


async def autorole(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_roles=True):
        return
    role = invocation.role("role", 0)
    if role is None:
        await invocation.fail("Please specify a role to toggle as an auto role")
        return
    problem = role_hierarchy_error(invocation, role)
    if problem is not None:
        await invocation.fail(problem)
        return
    entry = ctx.auto_roles.toggle(invocation.guild_id, role.id)
    state = "will now be given to new members" if entry.enabled else "will no longer be given to new members"
    await invocation.reply(
        embed=create_embed("🎭 Auto Role Updated", f"{role.mention} {state}", colour=discord.Colour.green())
    )


async def autoroles(ctx: BotContext, invocation: Invocation) -> None:
    entries = ctx.auto_roles.get_auto_roles(invocation.guild_id, enabled_only=True)
    lines = []
    for entry in entries:
        role = invocation.guild.get_role(entry.role_id)
        lines.append(role.mention if role is not None else f"Missing role {entry.role_id}")
    await invocation.reply(
        embed=create_embed(
            "🎭 Auto Roles",
            "\n".join(lines) if lines else "No auto roles configured",
            colour=discord.Colour.blue(),
        )
    )


async def reactionrole(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_roles=True):
        return
    message_id = parse_int(invocation.word("message_id", 0))
    emoji = invocation.word("emoji", 1)
    role = invocation.role("role", 2)
    if message_id is None or emoji is None or role is None:
        await invocation.fail("Usage: reactionrole <message_id> <emoji> @role")
        return
    problem = role_hierarchy_error(invocation, role)
    if problem is not None:
        await invocation.fail(problem)
        return
    channel = invocation.channel
    try:
        message = await channel.fetch_message(message_id)
    except discord.HTTPException:
        await invocation.fail("Could not find that message in this channel.")
        return
    try:
        await message.add_reaction(emoji)
    except discord.HTTPException:
        log.warning("Could not react with %s on message %s", emoji, message.id)
        await invocation.fail("Failed to add the reaction. Check the emoji and my permissions.")
        return
    ctx.reaction_roles.create_reaction_role(invocation.guild_id, channel.id, message.id, emoji, role.id)
    await invocation.reply(
        embed=create_embed(
            "🎭 Reaction Role Added",
            f"Reacting with {emoji} on [this message]({message.jump_url}) now grants {role.mention}",
            colour=discord.Colour.green(),
        )
    )


def register_commands(registry: CommandRegistry) -> None:
    category = "Community"
    registry.register("autorole", autorole, description="Toggle a role given to new members", usage="autorole @role", category=category)
    registry.register("autoroles", autoroles, description="List roles given to new members", usage="autoroles", category=category)
    registry.register("reactionrole", reactionrole, description="Grant a role when members react to a message", usage="reactionrole <message_id> <emoji> @role", category=category)


class Community(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    def _reaction_role(self, payload: discord.RawReactionActionEvent) -> Optional[discord.Role]:
        if payload.guild_id is None or payload.user_id == getattr(self.bot.user, "id", None):
            return None
        mappings = self.bot.context.reaction_roles.get_mappings_for_message(payload.guild_id, payload.message_id)
        role_id = mappings.get(str(payload.emoji))
        if not role_id:
            return None
        guild = self.bot.get_guild(payload.guild_id)
        if guild is None:
            return None
        return guild.get_role(role_id)

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        entries = self.bot.context.auto_roles.get_auto_roles(member.guild.id, enabled_only=True)
        roles = [role for role in (member.guild.get_role(entry.role_id) for entry in entries) if role is not None]
        if not roles:
            return
        try:
            await member.add_roles(*roles, reason="Auto role")
        except discord.HTTPException:
            log.warning("Could not grant auto roles to %s in guild %s", member.id, member.guild.id)

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        role = self._reaction_role(payload)
        if role is None:
            return
        member = payload.member or role.guild.get_member(payload.user_id)
        if member is None or member.bot:
            return
        try:
            await member.add_roles(role, reason="Reaction role opt-in")
        except discord.HTTPException:
            log.warning("Could not add reaction role %s to %s", role.id, member.id)

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        role = self._reaction_role(payload)
        if role is None:
            return
        member = role.guild.get_member(payload.user_id)
        if member is None:
            return
        try:
            await member.remove_roles(role, reason="Reaction role removal")
        except discord.HTTPException:
            log.warning("Could not remove reaction role %s from %s", role.id, member.id)

    @app_commands.command(name="autorole", description="Toggle a role given to new members")
    @app_commands.describe(role="Role to give on join")
    async def autorole_command(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "autorole", role=role)

    @app_commands.command(name="autoroles", description="List roles given to new members")
    async def autoroles_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "autoroles")

    @app_commands.command(name="reactionrole", description="Grant a role when members react to a message")
    @app_commands.describe(message_id="ID of a message in this channel", emoji="Emoji to react with", role="Role to grant")
    async def reactionrole_command(self, interaction: discord.Interaction, message_id: str, emoji: str, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "reactionrole", message_id=message_id, emoji=emoji, role=role)


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Community(bot))
