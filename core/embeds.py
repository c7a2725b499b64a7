from typing import Iterable, Optional, Tuple, Union

import datetime

import discord


DEFAULT_COLOUR = discord.Colour(0x2B2D31)

Field = Tuple[str, str, bool]


def create_embed(
    title: str,
    description: Optional[str] = None,
    colour: Union[discord.Colour, int, None] = None,
    fields: Iterable[Field] = (),
    footer: Optional[str] = None,
    timestamp: bool = False,
) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=description,
        colour=colour if colour is not None else DEFAULT_COLOUR,
    )
    for name, value, inline in fields:
        embed.add_field(name=name, value=value, inline=inline)
    if footer:
        embed.set_footer(text=footer)
    if timestamp:
        embed.timestamp = datetime.datetime.now(datetime.timezone.utc)
    return embed


def error_embed(description: str, title: str = "❌ Error") -> discord.Embed:
    return create_embed(title, description, colour=discord.Colour.red())


def permission_denied_embed(description: str = "You do not have permission to use this command.") -> discord.Embed:
    return create_embed("❌ Permission Denied", description, colour=discord.Colour.red())


def unrecorded_action_embed(action: str, store: str = "the moderation log") -> discord.Embed:
    return create_embed(
        "⚠️ Action completed",
        f"The {action} went through, but it could not be recorded in {store}.",
        colour=discord.Colour.gold(),
    )


def relative_timestamp(value: datetime.datetime) -> str:
    return discord.utils.format_dt(value, style="R")
