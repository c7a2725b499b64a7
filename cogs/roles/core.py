from typing import Optional, Tuple

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed, relative_timestamp
from core.invocation import Invocation
from services.audit import persist_or_warn
from services.permissions import check_permissions, role_hierarchy_error
from services.registry import CommandRegistry


log = logging.getLogger(__name__)


async def _member_and_role(invocation: Invocation) -> Tuple[Optional[discord.Member], Optional[discord.Role]]:
    member = invocation.member("user", 0)
    role = invocation.role("role", 1)
    if member is None or role is None:
        await invocation.fail("Please specify both a member and a role")
        return None, None
    problem = role_hierarchy_error(invocation, role)
    if problem is not None:
        await invocation.fail(problem)
        return None, None
    return member, role


async def giverole(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_roles=True):
        return
    member, role = await _member_and_role(invocation)
    if member is None or role is None:
        return
    try:
        await member.add_roles(role, reason=f"Role given by {invocation.author}")
    except discord.HTTPException:
        log.warning("Failed to add role %s to %s", role.id, member.id)
        await invocation.fail("Failed to add role. Check my permissions and role hierarchy.")
        return
    recorded = await persist_or_warn(
        invocation,
        "role change",
        lambda: ctx.history.create_mod_log(
            invocation.guild_id, member.id, invocation.user_id, "giverole", f"Added role {role.name}"
        ),
    )
    if recorded:
        await invocation.reply(
            embed=create_embed(
                "✅ Role Added",
                f"Successfully added {role.mention} to {member}",
                colour=discord.Colour.green(),
                timestamp=True,
            )
        )


async def removerole(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_roles=True):
        return
    member, role = await _member_and_role(invocation)
    if member is None or role is None:
        return
    try:
        await member.remove_roles(role, reason=f"Role removed by {invocation.author}")
    except discord.HTTPException:
        log.warning("Failed to remove role %s from %s", role.id, member.id)
        await invocation.fail("Failed to remove role. Check my permissions and role hierarchy.")
        return
    recorded = await persist_or_warn(
        invocation,
        "role change",
        lambda: ctx.history.create_mod_log(
            invocation.guild_id, member.id, invocation.user_id, "removerole", f"Removed role {role.name}"
        ),
    )
    if recorded:
        await invocation.reply(
            embed=create_embed(
                "✅ Role Removed",
                f"Successfully removed {role.mention} from {member}",
                colour=discord.Colour.green(),
                timestamp=True,
            )
        )


async def roleinfo(ctx: BotContext, invocation: Invocation) -> None:
    role = invocation.role("role", 0)
    if role is None:
        await invocation.fail("Please specify a role")
        return

    def yes_no(flag: bool) -> str:
        return "Yes" if flag else "No"

    fields = [
        ("ID", str(role.id), True),
        ("Color", str(role.colour), True),
        ("Position", str(role.position), True),
        ("Mentionable", yes_no(role.mentionable), True),
        ("Hoisted", yes_no(role.hoist), True),
        ("Created", relative_timestamp(role.created_at), True),
        ("Members", str(len(role.members)), True),
    ]
    colour = role.colour if role.colour.value else discord.Colour.blue()
    await invocation.reply(
        embed=create_embed(
            "📝 Role Information",
            f"Information about {role.mention}",
            colour=colour,
            fields=fields,
            timestamp=True,
        )
    )


async def setmodrole(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, administrator=True):
        return
    role = invocation.role("role", 0)
    if role is None:
        await invocation.fail("Please specify a role to set as moderator role")
        return
    ctx.settings.add_mod_role(invocation.guild_id, role.id)
    await invocation.reply(
        embed=create_embed(
            "🛡️ Mod Role Set",
            f"Successfully set {role.mention} as a moderator role",
            colour=discord.Colour.green(),
            timestamp=True,
        )
    )


async def removemodrole(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, administrator=True):
        return
    role = invocation.role("role", 0)
    if role is None:
        await invocation.fail("Please specify a moderator role to remove")
        return
    current = ctx.settings.get_or_default(invocation.guild_id).mod_role_ids
    if role.id not in current:
        await invocation.fail(f"{role.mention} is not a moderator role")
        return
    ctx.settings.remove_mod_role(invocation.guild_id, role.id)
    await invocation.reply(
        embed=create_embed(
            "🛡️ Mod Role Removed",
            f"{role.mention} is no longer a moderator role",
            colour=discord.Colour.green(),
            timestamp=True,
        )
    )


async def listmodroles(ctx: BotContext, invocation: Invocation) -> None:
    role_ids = ctx.settings.get_or_default(invocation.guild_id).mod_role_ids
    lines = []
    for role_id in role_ids:
        role = invocation.guild.get_role(role_id)
        if role is not None:
            lines.append(f"• {role.name}")
    await invocation.reply(
        embed=create_embed(
            "🛡️ Moderator Roles",
            "\n".join(lines) if lines else "No moderator roles set",
            colour=discord.Colour.blue(),
            timestamp=True,
        )
    )


def register_commands(registry: CommandRegistry) -> None:
    category = "Roles"
    registry.register("giverole", giverole, mod_only=True, description="Give a role to a member", usage="giverole @user @role", category=category)
    registry.register("removerole", removerole, mod_only=True, description="Remove a role from a member", usage="removerole @user @role", category=category)
    registry.register("roleinfo", roleinfo, description="Show information about a role", usage="roleinfo @role", category=category)
    registry.register("setmodrole", setmodrole, description="Add a moderator role", usage="setmodrole @role", category=category)
    registry.register("removemodrole", removemodrole, description="Remove a moderator role", usage="removemodrole @role", category=category)
    registry.register("listmodroles", listmodroles, description="List moderator roles", usage="listmodroles", category=category)


class Roles(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    @app_commands.command(name="giverole", description="Give a role to a member")
    @app_commands.describe(user="The member to give the role to", role="The role to give")
    async def giverole_command(self, interaction: discord.Interaction, user: discord.Member, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "giverole", user=user, role=role)

    @app_commands.command(name="removerole", description="Remove a role from a member")
    @app_commands.describe(user="The member to remove the role from", role="The role to remove")
    async def removerole_command(self, interaction: discord.Interaction, user: discord.Member, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "removerole", user=user, role=role)

    @app_commands.command(name="roleinfo", description="Show information about a role")
    @app_commands.describe(role="The role to describe")
    async def roleinfo_command(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "roleinfo", role=role)

    @app_commands.command(name="setmodrole", description="Add a moderator role")
    @app_commands.describe(role="The role allowed to run moderator commands")
    async def setmodrole_command(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "setmodrole", role=role)

    @app_commands.command(name="removemodrole", description="Remove a moderator role")
    @app_commands.describe(role="The moderator role to remove")
    async def removemodrole_command(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await self.bot.run_slash_command(interaction, "removemodrole", role=role)

    @app_commands.command(name="listmodroles", description="List moderator roles")
    async def listmodroles_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "listmodroles")


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Roles(bot))
