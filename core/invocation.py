from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import enum
import re

import discord

from core.embeds import error_embed


MENTION_PATTERN = re.compile(r"^<(?:@!?|@&|#)(\d+)>$")


class InvocationSource(enum.Enum):
    TEXT = "text"
    SLASH = "slash"


def parse_int(token: Optional[str]) -> Optional[int]:
    """Plain decimal digits as an int; anything else is ``None``."""
    if not token or not token.isdecimal():
        return None
    try:
        return int(token)
    except ValueError:
        return None


def parse_snowflake(token: Optional[str]) -> Optional[int]:
    """Extract an id from a raw id, a user/role mention or a channel mention."""
    if not token:
        return None
    match = MENTION_PATTERN.match(token)
    if match is not None:
        return int(match.group(1))
    return parse_int(token)


@dataclass
class Invocation:
    """One command request, regardless of whether it came from a prefix
    message or a slash command.

    Handlers read arguments through the typed accessors below. A text
    invocation resolves them from positional ``args``; a slash invocation
    reads them from ``options`` by name.
    """

    source: InvocationSource
    command: str
    guild: discord.Guild
    author: discord.Member
    channel: Any
    args: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    message: Optional[discord.Message] = None
    interaction: Optional[discord.Interaction] = None

    @classmethod
    def from_message(cls, message: discord.Message, command: str, args: List[str]) -> "Invocation":
        return cls(
            source=InvocationSource.TEXT,
            command=command,
            guild=message.guild,  # type: ignore[arg-type]
            author=message.author,  # type: ignore[arg-type]
            channel=message.channel,
            args=list(args),
            message=message,
        )

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction, command: str, options: Dict[str, Any]) -> "Invocation":
        return cls(
            source=InvocationSource.SLASH,
            command=command,
            guild=interaction.guild,  # type: ignore[arg-type]
            author=interaction.user,  # type: ignore[arg-type]
            channel=interaction.channel,
            options={key: value for key, value in options.items() if value is not None},
            interaction=interaction,
        )

    @property
    def is_text(self) -> bool:
        return self.source is InvocationSource.TEXT

    @property
    def user_id(self) -> int:
        return self.author.id

    @property
    def guild_id(self) -> int:
        return self.guild.id

    def _token(self, position: int) -> Optional[str]:
        if 0 <= position < len(self.args):
            return self.args[position]
        return None

    def member(self, name: str = "user", position: int = 0) -> Optional[discord.Member]:
        if not self.is_text:
            value = self.options.get(name)
            return value if isinstance(value, discord.Member) else None
        member_id = parse_snowflake(self._token(position))
        if member_id is None:
            return None
        if self.message is not None:
            for mentioned in self.message.mentions:
                if mentioned.id == member_id and isinstance(mentioned, discord.Member):
                    return mentioned
        return self.guild.get_member(member_id)

    def role(self, name: str = "role", position: int = 0) -> Optional[discord.Role]:
        if not self.is_text:
            value = self.options.get(name)
            return value if isinstance(value, discord.Role) else None
        role_id = parse_snowflake(self._token(position))
        if role_id is None:
            return None
        if self.message is not None:
            for mentioned in self.message.role_mentions:
                if mentioned.id == role_id:
                    return mentioned
        return self.guild.get_role(role_id)

    def channel_option(self, name: str = "channel", position: int = 0) -> Optional[discord.TextChannel]:
        if not self.is_text:
            value = self.options.get(name)
            return value if isinstance(value, discord.TextChannel) else None
        channel_id = parse_snowflake(self._token(position))
        if channel_id is None:
            return None
        channel = self.guild.get_channel(channel_id)
        return channel if isinstance(channel, discord.TextChannel) else None

    def word(self, name: str, position: int = 0) -> Optional[str]:
        if not self.is_text:
            value = self.options.get(name)
            return str(value) if value is not None else None
        return self._token(position)

    def text(self, name: str, start: int = 0) -> Optional[str]:
        """Free text: a named option, or every positional argument from ``start`` on."""
        if not self.is_text:
            value = self.options.get(name)
            return str(value) if value else None
        rest = " ".join(self.args[start:]).strip()
        return rest or None

    def integer(self, name: str, position: int = 0) -> Optional[int]:
        if not self.is_text:
            value = self.options.get(name)
            return value if isinstance(value, int) else None
        token = self._token(position)
        if token is None:
            return None
        try:
            return int(token)
        except ValueError:
            return None

    async def defer(self, *, ephemeral: bool = False) -> None:
        if self.interaction is not None and not self.interaction.response.is_done():
            await self.interaction.response.defer(ephemeral=ephemeral)

    async def reply(
        self,
        content: Optional[str] = None,
        *,
        embed: Optional[discord.Embed] = None,
        ephemeral: bool = False,
        delete_after: Optional[float] = None,
        view: Optional[discord.ui.View] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed
        if view is not None:
            kwargs["view"] = view
        if self.interaction is None:
            if delete_after is not None:
                kwargs["delete_after"] = delete_after
            await self.message.reply(**kwargs)  # type: ignore[union-attr]
            return
        if self.interaction.response.is_done():
            await self.interaction.followup.send(ephemeral=ephemeral, **kwargs)
        else:
            await self.interaction.response.send_message(ephemeral=ephemeral, **kwargs)

    async def announce(
        self,
        content: Optional[str] = None,
        *,
        embed: Optional[discord.Embed] = None,
        ephemeral: bool = False,
        delete_after: Optional[float] = None,
    ) -> None:
        """Like ``reply`` but posts to the channel for text invocations.

        Used when the invoking message may no longer exist.
        """
        if self.interaction is not None:
            await self.reply(content, embed=embed, ephemeral=ephemeral)
            return
        kwargs: Dict[str, Any] = {}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed
        if delete_after is not None:
            kwargs["delete_after"] = delete_after
        await self.channel.send(**kwargs)

    async def fail(self, description: str) -> None:
        """Reply with the standard red error embed."""
        await self.reply(embed=error_embed(description), ephemeral=True)
