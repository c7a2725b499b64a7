import pytest

from cogs.moderation import core as moderation_cog
from cogs.utility import core as utility_cog
from conftest import last_reply, make_member, text_invocation
from core.views import ResponseView


@pytest.fixture
def registry(ctx):
    moderation_cog.register_commands(ctx.registry)
    utility_cog.register_commands(ctx.registry)
    return ctx.registry


def test_format_uptime():
    assert utility_cog.format_uptime(0) == "0d 0h 0m 0s"
    assert utility_cog.format_uptime(90061.9) == "1d 1h 1m 1s"


@pytest.mark.asyncio
async def test_help_lists_categories(ctx, registry, guild, moderator):
    invocation = text_invocation("help", [], guild=guild, author=moderator)

    await utility_cog.help_(ctx, invocation)

    reply = last_reply(invocation)
    names = [field.name for field in reply["embed"].fields]
    assert names == sorted(registry.by_category())
    assert "`ban`" in reply["embed"].fields[names.index("Moderation")].value
    assert isinstance(reply["view"], ResponseView)
    assert reply["view"].author_id == moderator.id


@pytest.mark.asyncio
async def test_help_describes_one_command(ctx, registry, guild, moderator):
    invocation = text_invocation("help", ["!ban"], guild=guild, author=moderator)

    await utility_cog.help_(ctx, invocation)

    embed = last_reply(invocation)["embed"]
    assert embed.title == "📖 ban"
    fields = {field.name: field.value for field in embed.fields}
    assert fields["Access"] == "Moderator roles only"
    assert fields["Usage"].startswith("`!ban")


@pytest.mark.asyncio
async def test_help_unknown_command(ctx, registry, guild, moderator):
    invocation = text_invocation("help", ["nope"], guild=guild, author=moderator)

    await utility_cog.help_(ctx, invocation)

    assert "Unknown command `nope`" in last_reply(invocation)["embed"].description


@pytest.mark.asyncio
async def test_botinfo_without_client(ctx, registry, guild, moderator):
    invocation = text_invocation("botinfo", [], guild=guild, author=moderator)

    await utility_cog.botinfo(ctx, invocation)

    fields = {field.name: field.value for field in last_reply(invocation)["embed"].fields}
    assert fields["📊 Statistics"] == f"Commands: {len(registry)}\nServers: 0"
    assert fields["🔧 Technical"] == "Ping: n/a"


@pytest.mark.asyncio
async def test_modpanel_lists_only_moderator_commands(ctx, registry, guild, moderator):
    invocation = text_invocation("modpanel", [], guild=guild, author=moderator)

    await utility_cog.modpanel(ctx, invocation)

    body = "\n".join(field.value for field in last_reply(invocation)["embed"].fields)
    assert "`!ban" in body
    assert "`!help" not in body


@pytest.mark.asyncio
async def test_modpanel_requires_moderate_members(ctx, registry, guild):
    invocation = text_invocation("modpanel", [], guild=guild, author=make_member(30, guild=guild))

    await utility_cog.modpanel(ctx, invocation)

    assert last_reply(invocation)["embed"].title != "🛡️ Moderation Panel"


def test_help_is_registered_under_its_command_name(registry):
    assert registry.get("help").handler is utility_cog.help_
