from typing import Collection, List, Optional

import discord

from core.embeds import permission_denied_embed
from core.invocation import Invocation


def missing_permissions(member: discord.Member, **perms: bool) -> List[str]:
    permissions = member.guild_permissions
    if permissions.administrator:
        return []
    missing = []
    for name, value in perms.items():
        if getattr(permissions, name, False) != value:
            missing.append(name)
    return missing


async def check_permissions(invocation: Invocation, **perms: bool) -> bool:
    """Return ``True`` when the invoker holds every permission in ``perms``.

    On denial the standard permission embed is sent to the invoker and the
    caller must stop processing.
    """
    if not missing_permissions(invocation.author, **perms):
        return True
    await invocation.reply(embed=permission_denied_embed(), ephemeral=True)
    return False


def has_moderator_role(member: discord.Member, role_ids: Collection[int]) -> bool:
    member_role_ids = {role.id for role in member.roles}
    return any(role_id in member_role_ids for role_id in role_ids)


def hierarchy_error(invocation: Invocation, target: discord.Member) -> Optional[str]:
    actor = invocation.author
    guild = invocation.guild
    if actor.id == target.id:
        return "You cannot target yourself."
    if guild.owner_id == target.id:
        return "You cannot target the server owner."
    if guild.owner_id != actor.id and target.top_role.position >= actor.top_role.position:
        return "The target member has a higher or equal role."
    me = guild.me
    if me is not None and target.top_role.position >= me.top_role.position:
        return "The target member has a higher or equal role to the bot."
    return None


def role_hierarchy_error(invocation: Invocation, role: discord.Role) -> Optional[str]:
    """Reason the invoker (or the bot) cannot hand out ``role``, if any."""
    actor = invocation.author
    guild = invocation.guild
    if role.is_default() or role.managed:
        return "That role cannot be assigned manually."
    if guild.owner_id != actor.id and role.position >= actor.top_role.position:
        return "You cannot manage a role higher than or equal to your own."
    me = guild.me
    if me is not None and role.position >= me.top_role.position:
        return "That role is higher than or equal to my highest role."
    return None
