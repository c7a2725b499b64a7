import pytest

from cogs.roles import core as roles_cog
from conftest import GUILD_ID, TARGET_ID, http_error, last_reply, make_role, text_invocation


def role_invocation(command, guild, moderator, target, role):
    return text_invocation(
        command,
        [f"<@{TARGET_ID}>", f"<@&{role.id}>"],
        guild=guild,
        author=moderator,
        mentions=[target],
        role_mentions=[role],
    )


@pytest.mark.asyncio
async def test_giverole_adds_role_and_records(ctx, guild, moderator, target):
    role = make_role(77, position=2, name="Helper")
    invocation = role_invocation("giverole", guild, moderator, target, role)

    await roles_cog.giverole(ctx, invocation)

    target.add_roles.assert_awaited_once()
    assert target.add_roles.await_args.args == (role,)
    assert [log.action for log in ctx.history.get_mod_logs(GUILD_ID)] == ["giverole"]


@pytest.mark.asyncio
async def test_removerole_failure_writes_no_record(ctx, guild, moderator, target):
    role = make_role(77, position=2)
    target.remove_roles.side_effect = http_error()
    invocation = role_invocation("removerole", guild, moderator, target, role)

    await roles_cog.removerole(ctx, invocation)

    assert ctx.history.get_mod_logs(GUILD_ID) == []
    assert last_reply(invocation)["embed"].description.startswith("Failed to remove role.")


@pytest.mark.asyncio
async def test_giverole_refuses_roles_above_invoker(ctx, guild, moderator, target):
    role = make_role(77, position=10)
    invocation = role_invocation("giverole", guild, moderator, target, role)

    await roles_cog.giverole(ctx, invocation)

    target.add_roles.assert_not_awaited()


@pytest.mark.asyncio
async def test_giverole_needs_member_and_role(ctx, guild, moderator, target):
    invocation = text_invocation("giverole", [f"<@{TARGET_ID}>"], guild=guild, author=moderator, mentions=[target])

    await roles_cog.giverole(ctx, invocation)

    assert last_reply(invocation)["embed"].description == "Please specify both a member and a role"


@pytest.mark.asyncio
async def test_setmodrole_and_removemodrole(ctx, guild, moderator):
    role = make_role(55)
    add = text_invocation("setmodrole", ["<@&55>"], guild=guild, author=moderator, role_mentions=[role])
    await roles_cog.setmodrole(ctx, add)
    await roles_cog.setmodrole(ctx, add)
    assert ctx.settings.get_server_settings(GUILD_ID).mod_role_ids == [55]

    remove = text_invocation("removemodrole", ["<@&55>"], guild=guild, author=moderator, role_mentions=[role])
    await roles_cog.removemodrole(ctx, remove)
    assert ctx.settings.get_server_settings(GUILD_ID).mod_roles is None


@pytest.mark.asyncio
async def test_listmodroles_skips_deleted_roles(ctx, guild, moderator):
    ctx.settings.add_mod_role(GUILD_ID, 55)
    ctx.settings.add_mod_role(GUILD_ID, 56)
    guild.get_role.side_effect = lambda role_id: make_role(55, name="Mods") if role_id == 55 else None
    invocation = text_invocation("listmodroles", [], guild=guild, author=moderator)

    await roles_cog.listmodroles(ctx, invocation)

    assert last_reply(invocation)["embed"].description == "• Mods"


@pytest.mark.asyncio
async def test_giverole_failure_writes_no_record(ctx, guild, moderator, target):
    role = make_role(77, position=2)
    target.add_roles.side_effect = http_error()
    invocation = role_invocation("giverole", guild, moderator, target, role)

    await roles_cog.giverole(ctx, invocation)

    assert ctx.history.get_mod_logs(GUILD_ID) == []
    assert "Check my permissions and role hierarchy." in last_reply(invocation)["embed"].description
