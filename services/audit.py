from typing import Any, Callable

import logging
import sqlite3

from core.embeds import unrecorded_action_embed
from core.invocation import Invocation


log = logging.getLogger(__name__)


async def persist_or_warn(
    invocation: Invocation,
    action: str,
    write: Callable[[], Any],
    store: str = "the moderation log",
) -> bool:
    """Write the record for an action that already succeeded on Discord.

    The action cannot be rolled back at that point, so a database failure is
    reported to the moderator as "done but not recorded" instead of as a
    generic command error.
    """
    try:
        write()
    except sqlite3.Error:
        log.exception("Failed to record %s in guild %s", action, invocation.guild_id)
        await invocation.reply(embed=unrecorded_action_embed(action, store), ephemeral=True)
        return False
    return True
