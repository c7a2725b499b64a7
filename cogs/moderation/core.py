from typing import Optional

import datetime
import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import ModKeeper
from core.context import BotContext
from core.embeds import create_embed, relative_timestamp
from core.invocation import Invocation
from services.audit import persist_or_warn
from services.durations import parse_duration
from services.history import utcnow
from services.permissions import check_permissions, hierarchy_error
from services.registry import CommandRegistry


log = logging.getLogger(__name__)

DEFAULT_REASON = "No reason provided"
SOFTBAN_DELETE_SECONDS = 7 * 24 * 60 * 60
MAX_TIMEOUT = datetime.timedelta(days=28)
PURGE_LIMIT = 100
PURGE_NOTICE_SECONDS = 3.0
MUTE_USAGE = "Please specify a member and duration (!mute @user 1h reason)"


async def _target(invocation: Invocation, verb: str) -> Optional[discord.Member]:
    member = invocation.member("user", 0)
    if member is None:
        await invocation.fail(f"Please specify a member to {verb}")
        return None
    problem = hierarchy_error(invocation, member)
    if problem is not None:
        await invocation.fail(problem)
        return None
    return member


def _action_embed(title: str, description: str, colour: discord.Colour, member: discord.abc.User, reason: str, *extra) -> discord.Embed:
    fields = [("Member", str(member), True), ("Reason", reason, True)]
    fields.extend(extra)
    return create_embed(title, description, colour=colour, fields=fields, timestamp=True)


async def ban(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, ban_members=True):
        return
    member = await _target(invocation, "ban")
    if member is None:
        return
    reason = invocation.text("reason", 1) or DEFAULT_REASON
    try:
        await invocation.guild.ban(member, reason=reason)
    except discord.HTTPException:
        log.warning("Ban of %s failed in guild %s", member.id, invocation.guild_id)
        await invocation.fail("Failed to ban member. Check my permissions and role hierarchy.")
        return
    recorded = await persist_or_warn(
        invocation,
        "ban",
        lambda: ctx.history.create_mod_log(invocation.guild_id, member.id, invocation.user_id, "ban", reason),
    )
    if recorded:
        await invocation.reply(
            embed=_action_embed("🔨 Member Banned", f"Successfully banned {member}", discord.Colour.red(), member, reason)
        )


async def kick(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, kick_members=True):
        return
    member = await _target(invocation, "kick")
    if member is None:
        return
    reason = invocation.text("reason", 1) or DEFAULT_REASON
    try:
        await invocation.guild.kick(member, reason=reason)
    except discord.HTTPException:
        log.warning("Kick of %s failed in guild %s", member.id, invocation.guild_id)
        await invocation.fail("Failed to kick member. Check my permissions and role hierarchy.")
        return
    recorded = await persist_or_warn(
        invocation,
        "kick",
        lambda: ctx.history.create_mod_log(invocation.guild_id, member.id, invocation.user_id, "kick", reason),
    )
    if recorded:
        await invocation.reply(
            embed=_action_embed("👢 Member Kicked", f"Successfully kicked {member}", discord.Colour.orange(), member, reason)
        )


async def softban(ctx: BotContext, invocation: Invocation) -> None:
    """Ban with a week of message deletion, then lift the ban straight away."""
    if not await check_permissions(invocation, ban_members=True):
        return
    member = await _target(invocation, "softban")
    if member is None:
        return
    reason = invocation.text("reason", 1) or DEFAULT_REASON
    try:
        await invocation.guild.ban(member, reason=reason, delete_message_seconds=SOFTBAN_DELETE_SECONDS)
    except discord.HTTPException:
        log.warning("Softban of %s failed at the ban step in guild %s", member.id, invocation.guild_id)
        await invocation.fail("Failed to softban member. Check my permissions and role hierarchy.")
        return
    try:
        await invocation.guild.unban(member, reason="Softban completed")
    except discord.HTTPException:
        log.warning("Softban of %s failed at the unban step in guild %s", member.id, invocation.guild_id)
        await invocation.fail(f"{member} was banned but could not be unbanned. They are still banned.")
        return
    recorded = await persist_or_warn(
        invocation,
        "softban",
        lambda: ctx.history.create_mod_log(invocation.guild_id, member.id, invocation.user_id, "softban", reason),
    )
    if recorded:
        await invocation.reply(
            embed=_action_embed(
                "🔨 Member Softbanned", f"Successfully softbanned {member}", discord.Colour.orange(), member, reason
            )
        )


async def warn(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, moderate_members=True):
        return
    member = await _target(invocation, "warn")
    if member is None:
        return
    reason = invocation.text("reason", 1) or DEFAULT_REASON
    ctx.history.create_warning(member.id, invocation.guild_id, reason, invocation.user_id)
    total = ctx.history.count_warnings(member.id, invocation.guild_id)
    max_warnings = ctx.settings.get_or_default(invocation.guild_id).max_warnings
    try:
        await member.send(f"You have been warned in {invocation.guild.name}: {reason}")
    except discord.HTTPException:
        log.debug("Could not DM warning to %s", member.id)
    await invocation.reply(
        embed=_action_embed(
            "⚠️ Member Warned",
            f"Successfully warned {member}",
            discord.Colour.gold(),
            member,
            reason,
            ("Total Warnings", f"{total}/{max_warnings}", True),
        )
    )


async def warnings(ctx: BotContext, invocation: Invocation) -> None:
    member = invocation.member("user", 0)
    if member is None:
        await invocation.fail("Please specify a member to view warnings")
        return
    records = ctx.history.get_warnings(member.id, invocation.guild_id)
    if not records:
        await invocation.reply(
            embed=create_embed("⚠️ Warning History", f"{member} has no warnings.", colour=discord.Colour.green())
        )
        return
    fields = []
    for index, record in enumerate(records[:10], start=1):
        fields.append(
            (
                f"Warning #{index}",
                f"{record.reason}\nBy <@{record.moderator_id}> {relative_timestamp(record.created_at)}",
                False,
            )
        )
    footer = f"Showing 10 of {len(records)} warnings" if len(records) > 10 else None
    await invocation.reply(
        embed=create_embed(
            "⚠️ Warning History",
            f"Warnings for {member}",
            colour=discord.Colour.gold(),
            fields=fields,
            footer=footer,
        )
    )


async def clearwarns(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, moderate_members=True):
        return
    member = invocation.member("user", 0)
    if member is None:
        await invocation.fail("Please specify a member to clear warnings")
        return
    removed = ctx.history.clear_warnings(member.id, invocation.guild_id)
    ctx.history.create_mod_log(invocation.guild_id, member.id, invocation.user_id, "clearwarns", "Warnings cleared")
    await invocation.reply(
        embed=create_embed(
            "🧹 Warnings Cleared",
            f"Successfully cleared all warnings for {member}",
            colour=discord.Colour.green(),
            fields=[("Removed", str(removed), True)],
            timestamp=True,
        )
    )


async def mute(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, moderate_members=True):
        return
    member = invocation.member("user", 0)
    raw_duration = invocation.word("duration", 1)
    if member is None or raw_duration is None:
        await invocation.fail(MUTE_USAGE)
        return
    duration = parse_duration(raw_duration)
    if duration is None:
        await invocation.reply(
            embed=create_embed(
                "❌ Invalid Duration",
                "Invalid duration format. Use 1m, 1h, 1d etc.",
                colour=discord.Colour.red(),
            ),
            ephemeral=True,
        )
        return
    delta = duration.as_timedelta()
    if delta > MAX_TIMEOUT:
        await invocation.fail("Timeouts cannot be longer than 28 days.")
        return
    problem = hierarchy_error(invocation, member)
    if problem is not None:
        await invocation.fail(problem)
        return
    reason = invocation.text("reason", 2) or DEFAULT_REASON
    try:
        await member.timeout(delta, reason=reason)
    except discord.HTTPException:
        log.warning("Timeout of %s failed in guild %s", member.id, invocation.guild_id)
        await invocation.fail("Failed to mute member. Check my permissions and role hierarchy.")
        return
    expires_at = utcnow() + delta
    recorded = await persist_or_warn(
        invocation,
        "mute",
        lambda: ctx.history.create_mute(member.id, invocation.guild_id, invocation.user_id, expires_at),
    )
    if recorded:
        await invocation.reply(
            embed=_action_embed(
                "🔇 Member Muted",
                f"Successfully muted {member}",
                discord.Colour.orange(),
                member,
                reason,
                ("Duration", str(duration), True),
                ("Expires", relative_timestamp(expires_at), True),
            )
        )


async def unmute(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, moderate_members=True):
        return
    member = invocation.member("user", 0)
    if member is None:
        await invocation.fail("Please specify a member to unmute")
        return
    try:
        await member.timeout(None, reason=f"Unmuted by {invocation.author}")
    except discord.HTTPException:
        log.warning("Clearing timeout of %s failed in guild %s", member.id, invocation.guild_id)
        await invocation.fail("Failed to unmute member. Check my permissions and role hierarchy.")
        return
    recorded = await persist_or_warn(
        invocation,
        "unmute",
        lambda: ctx.history.create_mod_log(invocation.guild_id, member.id, invocation.user_id, "unmute", "Timeout removed"),
    )
    if recorded:
        await invocation.reply(
            embed=create_embed(
                "🔊 Member Unmuted",
                f"Successfully unmuted {member}",
                colour=discord.Colour.green(),
                timestamp=True,
            )
        )


async def modlogs(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, view_audit_log=True):
        return
    entries = ctx.history.get_mod_logs(invocation.guild_id, limit=10)
    if not entries:
        await invocation.reply(embed=create_embed("📋 Moderation Logs", "No moderation actions recorded yet."))
        return
    lines = []
    for entry in entries:
        line = f"`{entry.action}` <@{entry.user_id}> by <@{entry.moderator_id}> {relative_timestamp(entry.created_at)}"
        if entry.reason:
            line += f"\n> {entry.reason}"
        lines.append(line)
    await invocation.reply(
        embed=create_embed(
            "📋 Moderation Logs",
            "\n".join(lines),
            colour=discord.Colour.blue(),
            footer=f"Last {len(entries)} actions",
        )
    )


async def purge(ctx: BotContext, invocation: Invocation) -> None:
    if not await check_permissions(invocation, manage_messages=True):
        return
    amount = invocation.integer("amount", 0)
    if amount is None or amount < 1:
        await invocation.fail("Please provide a valid number of messages to delete")
        return
    channel = invocation.channel
    if not isinstance(channel, (discord.TextChannel, discord.Thread)):
        await invocation.fail("This command can only be used in text channels.")
        return
    await invocation.defer(ephemeral=True)
    # The invoking message counts toward the same per-call bound.
    limit = min(amount + 1 if invocation.is_text else amount, PURGE_LIMIT)
    try:
        deleted = await channel.purge(limit=limit)
    except discord.HTTPException:
        log.warning("Purge failed in channel %s", channel.id)
        await invocation.fail("Failed to delete messages. Messages older than 14 days cannot be bulk deleted.")
        return
    if invocation.message is not None:
        count = sum(1 for message in deleted if message.id != invocation.message.id)
    else:
        count = len(deleted)
    recorded = await persist_or_warn(
        invocation,
        "purge",
        lambda: ctx.history.create_mod_log(
            invocation.guild_id,
            invocation.user_id,
            invocation.user_id,
            "purge",
            f"Deleted {count} messages in #{channel.name}",
        ),
    )
    if recorded:
        await invocation.announce(
            embed=create_embed("🗑️ Messages Purged", f"Deleted {count} messages", colour=discord.Colour.green()),
            ephemeral=True,
            delete_after=PURGE_NOTICE_SECONDS,
        )


def register_commands(registry: CommandRegistry) -> None:
    category = "Moderation"
    registry.register("ban", ban, mod_only=True, description="Ban a member from the server", usage="ban @user [reason]", category=category)
    registry.register("kick", kick, mod_only=True, description="Kick a member from the server", usage="kick @user [reason]", category=category)
    registry.register("softban", softban, mod_only=True, description="Ban and unban a member to clear their messages", usage="softban @user [reason]", category=category)
    registry.register("warn", warn, mod_only=True, description="Warn a member", usage="warn @user [reason]", category=category)
    registry.register("warnings", warnings, description="Show a member's warnings", usage="warnings @user", category=category)
    registry.register("clearwarns", clearwarns, mod_only=True, description="Clear all warnings for a member", usage="clearwarns @user", category=category)
    registry.register("mute", mute, mod_only=True, description="Time out a member", usage="mute @user <1m|1h|1d> [reason]", category=category)
    registry.register("unmute", unmute, mod_only=True, description="Remove a member's timeout", usage="unmute @user", category=category)
    registry.register("modlogs", modlogs, description="Show recent moderation actions", usage="modlogs", category=category)
    registry.register("purge", purge, mod_only=True, description="Bulk delete recent messages", usage="purge <amount>", category=category)


class Moderation(commands.Cog):
    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    @app_commands.command(name="ban", description="Ban a member from the server")
    @app_commands.describe(user="The member to ban", reason="Reason for the ban")
    async def ban_command(self, interaction: discord.Interaction, user: discord.Member, reason: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "ban", user=user, reason=reason)

    @app_commands.command(name="kick", description="Kick a member from the server")
    @app_commands.describe(user="The member to kick", reason="Reason for the kick")
    async def kick_command(self, interaction: discord.Interaction, user: discord.Member, reason: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "kick", user=user, reason=reason)

    @app_commands.command(name="softban", description="Ban and unban a member to clear their messages")
    @app_commands.describe(user="The member to softban", reason="Reason for the softban")
    async def softban_command(self, interaction: discord.Interaction, user: discord.Member, reason: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "softban", user=user, reason=reason)

    @app_commands.command(name="warn", description="Warn a member")
    @app_commands.describe(user="The member to warn", reason="Reason for the warning")
    async def warn_command(self, interaction: discord.Interaction, user: discord.Member, reason: Optional[str] = None) -> None:
        await self.bot.run_slash_command(interaction, "warn", user=user, reason=reason)

    @app_commands.command(name="warnings", description="Show a member's warnings")
    @app_commands.describe(user="The member to look up")
    async def warnings_command(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await self.bot.run_slash_command(interaction, "warnings", user=user)

    @app_commands.command(name="clearwarns", description="Clear all warnings for a member")
    @app_commands.describe(user="The member whose warnings to clear")
    async def clearwarns_command(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await self.bot.run_slash_command(interaction, "clearwarns", user=user)

    @app_commands.command(name="mute", description="Time out a member")
    @app_commands.describe(user="The member to mute", duration="Duration such as 10m, 1h or 1d", reason="Reason for the mute")
    async def mute_command(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        duration: str,
        reason: Optional[str] = None,
    ) -> None:
        await self.bot.run_slash_command(interaction, "mute", user=user, duration=duration, reason=reason)

    @app_commands.command(name="unmute", description="Remove a member's timeout")
    @app_commands.describe(user="The member to unmute")
    async def unmute_command(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await self.bot.run_slash_command(interaction, "unmute", user=user)

    @app_commands.command(name="modlogs", description="Show recent moderation actions")
    async def modlogs_command(self, interaction: discord.Interaction) -> None:
        await self.bot.run_slash_command(interaction, "modlogs")

    @app_commands.command(name="purge", description="Bulk delete recent messages")
    @app_commands.describe(amount="Number of messages to delete (up to 100)")
    async def purge_command(self, interaction: discord.Interaction, amount: int) -> None:
        await self.bot.run_slash_command(interaction, "purge", amount=amount)


async def setup(bot: ModKeeper) -> None:
    register_commands(bot.context.registry)
    await bot.add_cog(Moderation(bot))
