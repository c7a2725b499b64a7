from unittest.mock import AsyncMock

import pytest

from cogs.moderation.core import register_commands as register_moderation
from services.dispatcher import ERROR_REPLY, Dispatcher, parse_prefix_command
from conftest import GUILD_ID, http_error, last_reply, make_role, slash_invocation, text_invocation


def test_parse_prefix_command():
    assert parse_prefix_command("!Ban <@1>  spamming", "!") == ("ban", ["<@1>", "spamming"])
    assert parse_prefix_command("hello", "!") is None
    assert parse_prefix_command("!", "!") is None
    assert parse_prefix_command("?ping", "?") == ("ping", [])


@pytest.mark.asyncio
async def test_unknown_command_is_ignored(ctx, guild, moderator):
    invocation = text_invocation("frobnicate", [], guild=guild, author=moderator)
    assert await Dispatcher(ctx).dispatch(invocation) is False
    invocation.message.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_text_cooldown_blocks_second_run(ctx, guild, moderator):
    handler = AsyncMock()
    ctx.registry.register("ping", handler)
    dispatcher = Dispatcher(ctx)

    first = text_invocation("ping", [], guild=guild, author=moderator)
    second = text_invocation("ping", [], guild=guild, author=moderator)
    assert await dispatcher.dispatch(first) is True
    assert await dispatcher.dispatch(second) is False

    assert handler.await_count == 1
    content = last_reply(second)["content"]
    assert content.startswith("Please wait ")
    assert content.endswith("more seconds before using the `ping` command.")


@pytest.mark.asyncio
async def test_slash_commands_skip_cooldown(ctx, guild, moderator):
    handler = AsyncMock()
    ctx.registry.register("ping", handler)
    dispatcher = Dispatcher(ctx)
    for _ in range(2):
        await dispatcher.dispatch(slash_invocation("ping", {}, guild=guild, author=moderator))
    assert handler.await_count == 2


@pytest.mark.asyncio
async def test_moderator_gate_blocks_members_without_role(ctx, guild, moderator):
    handler = AsyncMock()
    ctx.registry.register("ban", handler, mod_only=True)
    ctx.settings.add_mod_role(GUILD_ID, 555)

    invocation = text_invocation("ban", [], guild=guild, author=moderator)
    assert await Dispatcher(ctx).dispatch(invocation) is False

    handler.assert_not_awaited()
    embed = last_reply(invocation)["embed"]
    assert embed.description == "You need a moderator role to use this command."


@pytest.mark.asyncio
async def test_moderator_gate_admits_role_holders(ctx, guild, moderator):
    handler = AsyncMock()
    ctx.registry.register("ban", handler, mod_only=True)
    ctx.settings.add_mod_role(GUILD_ID, 555)
    moderator.roles = [make_role(555)]

    invocation = text_invocation("ban", [], guild=guild, author=moderator)
    assert await Dispatcher(ctx).dispatch(invocation) is True
    handler.assert_awaited_once_with(ctx, invocation)


@pytest.mark.asyncio
async def test_moderator_gate_open_when_no_roles_configured(ctx, guild, moderator):
    handler = AsyncMock()
    ctx.registry.register("ban", handler, mod_only=True)
    invocation = text_invocation("ban", [], guild=guild, author=moderator)
    assert await Dispatcher(ctx).dispatch(invocation) is True


@pytest.mark.asyncio
async def test_handler_fault_is_contained(ctx, guild, moderator):
    ctx.registry.register("boom", AsyncMock(side_effect=RuntimeError("kaboom")))
    invocation = text_invocation("boom", [], guild=guild, author=moderator)
    assert await Dispatcher(ctx).dispatch(invocation) is False
    assert last_reply(invocation)["content"] == ERROR_REPLY


@pytest.mark.asyncio
async def test_failed_error_reply_is_swallowed(ctx, guild, moderator):
    ctx.registry.register("boom", AsyncMock(side_effect=RuntimeError("kaboom")))
    invocation = text_invocation("boom", [], guild=guild, author=moderator)
    invocation.message.reply.side_effect = http_error()
    assert await Dispatcher(ctx).dispatch(invocation) is False


@pytest.mark.asyncio
async def test_superscript_digits_are_a_user_error(ctx, guild, moderator):
    register_moderation(ctx.registry)
    invocation = text_invocation("ban", ["²"], guild=guild, author=moderator)

    assert await Dispatcher(ctx).dispatch(invocation) is True

    assert last_reply(invocation)["embed"].description == "Please specify a member to ban"
    guild.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_configured_owner_skips_moderator_gate(ctx, guild, moderator):
    handler = AsyncMock()
    ctx.registry.register("ban", handler, mod_only=True)
    ctx.settings.add_mod_role(GUILD_ID, 555)
    ctx.config.owner_ids = [moderator.id]

    invocation = text_invocation("ban", [], guild=guild, author=moderator)
    assert await Dispatcher(ctx).dispatch(invocation) is True

    handler.assert_awaited_once()
