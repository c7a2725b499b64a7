from typing import List, Optional, Tuple

import logging

import discord

from core.context import BotContext
from core.embeds import permission_denied_embed
from core.invocation import Invocation
from services.permissions import has_moderator_role


log = logging.getLogger(__name__)

ERROR_REPLY = "There was an error executing that command."


def parse_prefix_command(content: str, prefix: str) -> Optional[Tuple[str, List[str]]]:
    """Split ``!name arg1 arg2`` into ``("name", ["arg1", "arg2"])``."""
    if not prefix or not content.startswith(prefix):
        return None
    parts = content[len(prefix):].split()
    if not parts:
        return None
    return parts[0].lower(), parts[1:]


class Dispatcher:
    def __init__(self, context: BotContext) -> None:
        self.context = context

    async def dispatch(self, invocation: Invocation) -> bool:
        """Run one invocation through the gates and its handler.

        Returns ``True`` when the handler ran to completion. Faults never
        escape; they are logged and answered with a generic error reply.
        """
        entry = self.context.registry.get(invocation.command)
        if entry is None:
            log.debug("Ignoring unknown command %s", invocation.command)
            return False
        try:
            if invocation.is_text:
                remaining = self.context.cooldowns.hit(entry.name, invocation.user_id)
                if remaining is not None:
                    await invocation.reply(
                        f"Please wait {remaining:.1f} more seconds before using the `{entry.name}` command."
                    )
                    return False
            if entry.mod_only and not await self._passes_moderator_gate(invocation):
                return False
            log.info(
                "Executing %s command %s for user %s in guild %s",
                invocation.source.value,
                entry.name,
                invocation.user_id,
                invocation.guild_id,
            )
            await entry.handler(self.context, invocation)
            return True
        except Exception:
            log.exception("Error executing command %s", entry.name)
            try:
                await invocation.reply(ERROR_REPLY, ephemeral=True)
            except discord.HTTPException:
                log.warning("Could not report failure of command %s", entry.name)
            return False

    async def _passes_moderator_gate(self, invocation: Invocation) -> bool:
        if invocation.user_id in (self.context.config.owner_ids or ()):
            return True
        settings = self.context.settings.get_server_settings(invocation.guild_id)
        if settings is None or not settings.mod_role_ids:
            return True
        if has_moderator_role(invocation.author, settings.mod_role_ids):
            return True
        await invocation.reply(
            embed=permission_denied_embed("You need a moderator role to use this command."),
            ephemeral=True,
        )
        return False
