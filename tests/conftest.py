"""
Shared fixtures: an in-memory context plus discord.py object doubles.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from core.config import BotConfig
from core.context import BotContext
from core.invocation import Invocation, InvocationSource
from services.database import Database


GUILD_ID = 1000
OWNER_ID = 999
MODERATOR_ID = 10
TARGET_ID = 20


def http_error(status: int = 403, message: str = "Missing Permissions") -> discord.HTTPException:
    response = MagicMock()
    response.status = status
    response.reason = message
    return discord.HTTPException(response, message)


def make_member(member_id: int, *, top_role: int = 1, permissions: Optional[discord.Permissions] = None, roles: Optional[List[Any]] = None, guild: Any = None) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.bot = False
    member.top_role = MagicMock(position=top_role)
    member.roles = roles or []
    member.guild_permissions = permissions if permissions is not None else discord.Permissions.none()
    member.display_name = f"member{member_id}"
    member.mention = f"<@{member_id}>"
    member.guild = guild
    return member


def make_role(role_id: int, *, position: int = 1, name: str = "role") -> MagicMock:
    role = MagicMock(spec=discord.Role)
    role.id = role_id
    role.name = name
    role.position = position
    role.managed = False
    role.mention = f"<@&{role_id}>"
    role.is_default.return_value = False
    return role


def make_guild() -> MagicMock:
    guild = MagicMock(spec=discord.Guild)
    guild.id = GUILD_ID
    guild.name = "Test Guild"
    guild.owner_id = OWNER_ID
    guild.me = make_member(1, top_role=100)
    guild.default_role = make_role(GUILD_ID, position=0, name="@everyone")
    guild.get_member.return_value = None
    guild.get_role.return_value = None
    return guild


def make_channel(channel_id: int = 500) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.name = "general"
    channel.mention = f"<#{channel_id}>"
    return channel


def text_invocation(command: str, args: List[str], *, guild: Any, author: Any, channel: Any = None, mentions: Optional[List[Any]] = None, role_mentions: Optional[List[Any]] = None) -> Invocation:
    message = MagicMock(spec=discord.Message)
    message.id = 4242
    message.mentions = mentions or []
    message.role_mentions = role_mentions or []
    message.reply = AsyncMock()
    return Invocation(
        source=InvocationSource.TEXT,
        command=command,
        guild=guild,
        author=author,
        channel=channel if channel is not None else make_channel(),
        args=args,
        message=message,
    )


def slash_invocation(command: str, options: Dict[str, Any], *, guild: Any, author: Any, channel: Any = None) -> Invocation:
    interaction = MagicMock()
    interaction.response.is_done.return_value = False
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    return Invocation(
        source=InvocationSource.SLASH,
        command=command,
        guild=guild,
        author=author,
        channel=channel if channel is not None else make_channel(),
        options={key: value for key, value in options.items() if value is not None},
        interaction=interaction,
    )


def last_reply(invocation: Invocation) -> Dict[str, Any]:
    """Keyword arguments of the most recent reply sent for ``invocation``."""
    if invocation.message is not None:
        return invocation.message.reply.await_args.kwargs
    if invocation.interaction.followup.send.await_count:
        return invocation.interaction.followup.send.await_args.kwargs
    return invocation.interaction.response.send_message.await_args.kwargs


@pytest.fixture
def config() -> BotConfig:
    return BotConfig(token="test-token", database_url="sqlite:///:memory:")


@pytest.fixture
def ctx(config):
    context = BotContext.create(config, db=Database(":memory:"))
    yield context
    context.db.close()


@pytest.fixture
def guild():
    return make_guild()


@pytest.fixture
def moderator(guild):
    return make_member(
        MODERATOR_ID,
        top_role=10,
        permissions=discord.Permissions(administrator=True),
        guild=guild,
    )


@pytest.fixture
def target(guild):
    return make_member(TARGET_ID, top_role=1, guild=guild)
