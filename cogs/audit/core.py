from typing import Optional

import logging

import discord
from discord.ext import commands

from core.bot import ModKeeper
from core.embeds import create_embed


log = logging.getLogger(__name__)

AUDIT_TITLE = "📋 Audit Log Entry"
CONTENT_LIMIT = 1000

AUDIT_HEADINGS = {
    discord.AuditLogAction.kick: "👢 **Member Kicked**",
    discord.AuditLogAction.ban: "🔨 **Member Banned**",
    discord.AuditLogAction.unban: "🔓 **Member Unbanned**",
    discord.AuditLogAction.member_update: "📝 **Member Updated**",
    discord.AuditLogAction.member_role_update: "👥 **Member Roles Updated**",
}


def _clip(text: Optional[str], fallback: str) -> str:
    if not text:
        return fallback
    if len(text) > CONTENT_LIMIT:
        return text[: CONTENT_LIMIT - 3] + "..."
    return text


def describe_audit_entry(entry: discord.AuditLogEntry) -> Optional[str]:
    heading = AUDIT_HEADINGS.get(entry.action)
    if heading is None:
        return None
    moderator = entry.user if entry.user is not None else f"<@{entry.user_id}>"
    target = entry.target
    member = f"<@{target.id}>" if target is not None else "Unknown"
    return f"{heading}\nModerator: {moderator}\nMember: {member}\nReason: {entry.reason or 'No reason provided'}"


def deleted_message_embed(message: discord.Message) -> discord.Embed:
    content = _clip(message.content, "No content (possibly embed or attachment)")
    return create_embed(
        "🗑️ Message Deleted",
        f"**Channel:** {message.channel.mention}\n**Author:** {message.author.mention}\n**Content:** {content}",
        colour=discord.Colour.red(),
        timestamp=True,
    )


def edited_message_embed(before: discord.Message, after: discord.Message) -> discord.Embed:
    return create_embed(
        "✏️ Message Edited",
        f"**Channel:** {after.channel.mention}\n**Author:** {after.author.mention}\n"
        f"**Before:** {_clip(before.content, '(empty)')}\n**After:** {_clip(after.content, '(empty)')}\n"
        f"[Jump to message]({after.jump_url})",
        colour=discord.Colour.blue(),
        timestamp=True,
    )


class AuditMirror(commands.Cog):
    """Republishes audit log entries and message edits/deletes to the log channel."""

    def __init__(self, bot: ModKeeper) -> None:
        self.bot = bot

    async def _send(self, guild: discord.Guild, embed: discord.Embed) -> None:
        channel = self.bot.get_log_channel(guild)
        if channel is None:
            log.debug("No log channel for guild %s; dropping audit event", guild.id)
            return
        try:
            await channel.send(embed=embed)
        except discord.HTTPException:
            log.debug("Could not mirror audit event to channel %s", channel.id)

    @commands.Cog.listener()
    async def on_audit_log_entry_create(self, entry: discord.AuditLogEntry) -> None:
        description = describe_audit_entry(entry)
        if description is None:
            return
        await self._send(
            entry.guild,
            create_embed(AUDIT_TITLE, description, colour=discord.Colour.blue(), timestamp=True),
        )

    @commands.Cog.listener()
    async def on_message_delete(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return
        await self._send(message.guild, deleted_message_embed(message))

    @commands.Cog.listener()
    async def on_message_edit(self, before: discord.Message, after: discord.Message) -> None:
        if after.guild is None or after.author.bot:
            return
        if (before.content or "") == (after.content or ""):
            return
        await self._send(after.guild, edited_message_embed(before, after))


async def setup(bot: ModKeeper) -> None:
    await bot.add_cog(AuditMirror(bot))
