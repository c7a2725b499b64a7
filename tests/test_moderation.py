import datetime
import sqlite3
from unittest.mock import MagicMock

import discord
import pytest

from cogs.moderation import core as moderation
from conftest import (
    GUILD_ID,
    MODERATOR_ID,
    OWNER_ID,
    TARGET_ID,
    http_error,
    last_reply,
    make_member,
    slash_invocation,
    text_invocation,
)


def invoke(command, args, guild, moderator, target):
    return text_invocation(command, args, guild=guild, author=moderator, mentions=[target])


@pytest.mark.asyncio
async def test_ban_records_and_reports(ctx, guild, moderator, target):
    invocation = invoke("ban", [f"<@{TARGET_ID}>", "spamming", "links"], guild, moderator, target)
    await moderation.ban(ctx, invocation)

    guild.ban.assert_awaited_once_with(target, reason="spamming links")
    logs = ctx.history.get_mod_logs(GUILD_ID)
    assert [(log.action, log.user_id, log.moderator_id, log.reason) for log in logs] == [
        ("ban", TARGET_ID, MODERATOR_ID, "spamming links")
    ]
    assert last_reply(invocation)["embed"].title == "🔨 Member Banned"


@pytest.mark.asyncio
async def test_reason_defaults_when_missing(ctx, guild, moderator, target):
    invocation = slash_invocation("kick", {"user": target, "reason": None}, guild=guild, author=moderator)
    await moderation.kick(ctx, invocation)

    guild.kick.assert_awaited_once_with(target, reason="No reason provided")
    assert ctx.history.get_mod_logs(GUILD_ID)[0].reason == "No reason provided"


@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["ban", "kick", "softban"])
async def test_platform_failure_writes_no_record(ctx, guild, moderator, target, command):
    guild.ban.side_effect = http_error()
    guild.kick.side_effect = http_error()
    invocation = invoke(command, [f"<@{TARGET_ID}>"], guild, moderator, target)

    await getattr(moderation, command)(ctx, invocation)

    assert ctx.history.get_mod_logs(GUILD_ID) == []
    assert "Check my permissions and role hierarchy." in last_reply(invocation)["embed"].description


@pytest.mark.asyncio
async def test_mute_platform_failure_writes_no_record(ctx, guild, moderator, target):
    target.timeout.side_effect = http_error()
    invocation = invoke("mute", [f"<@{TARGET_ID}>", "1h"], guild, moderator, target)

    await moderation.mute(ctx, invocation)

    assert ctx.history.get_mutes(TARGET_ID, GUILD_ID) == []


@pytest.mark.asyncio
async def test_missing_permission_stops_before_platform(ctx, guild, target):
    member = make_member(MODERATOR_ID, top_role=10, guild=guild)
    invocation = invoke("ban", [f"<@{TARGET_ID}>"], guild, member, target)

    await moderation.ban(ctx, invocation)

    guild.ban.assert_not_awaited()
    assert last_reply(invocation)["embed"].title == "❌ Permission Denied"


@pytest.mark.asyncio
async def test_missing_member_is_user_error(ctx, guild, moderator, target):
    invocation = invoke("ban", [], guild, moderator, target)
    await moderation.ban(ctx, invocation)

    guild.ban.assert_not_awaited()
    assert last_reply(invocation)["embed"].description == "Please specify a member to ban"


@pytest.mark.asyncio
async def test_cannot_target_higher_role(ctx, guild, moderator):
    senior = make_member(TARGET_ID, top_role=50, guild=guild)
    invocation = invoke("kick", [f"<@{TARGET_ID}>"], guild, moderator, senior)

    await moderation.kick(ctx, invocation)

    guild.kick.assert_not_awaited()
    assert last_reply(invocation)["embed"].description == "The target member has a higher or equal role."


@pytest.mark.asyncio
async def test_cannot_target_owner(ctx, guild, moderator):
    owner = make_member(OWNER_ID, top_role=1, guild=guild)
    invocation = invoke("ban", [f"<@{OWNER_ID}>"], guild, moderator, owner)

    await moderation.ban(ctx, invocation)

    guild.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_softban_bans_then_unbans_then_records(ctx, guild, moderator, target):
    calls = []

    async def ban(member, **kwargs):
        calls.append(("ban", kwargs))

    async def unban(member, **kwargs):
        calls.append(("unban", kwargs))

    guild.ban.side_effect = ban
    guild.unban.side_effect = unban
    invocation = invoke("softban", [f"<@{TARGET_ID}>", "raid"], guild, moderator, target)

    await moderation.softban(ctx, invocation)

    assert [name for name, _ in calls] == ["ban", "unban"]
    assert calls[0][1]["delete_message_seconds"] == 7 * 24 * 60 * 60
    assert [log.action for log in ctx.history.get_mod_logs(GUILD_ID)] == ["softban"]


@pytest.mark.asyncio
async def test_softban_ban_failure_skips_unban(ctx, guild, moderator, target):
    guild.ban.side_effect = http_error()
    invocation = invoke("softban", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.softban(ctx, invocation)

    guild.unban.assert_not_awaited()
    assert ctx.history.get_mod_logs(GUILD_ID) == []


@pytest.mark.asyncio
async def test_softban_unban_failure_reports_still_banned(ctx, guild, moderator, target):
    guild.unban.side_effect = http_error()
    invocation = invoke("softban", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.softban(ctx, invocation)

    assert ctx.history.get_mod_logs(GUILD_ID) == []
    assert "still banned" in last_reply(invocation)["embed"].description


@pytest.mark.asyncio
async def test_record_failure_after_ban_warns_moderator(ctx, guild, moderator, target, monkeypatch):
    monkeypatch.setattr(ctx.history, "create_mod_log", MagicMock(side_effect=sqlite3.OperationalError("database is locked")))
    invocation = invoke("ban", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.ban(ctx, invocation)

    guild.ban.assert_awaited_once()
    embed = last_reply(invocation)["embed"]
    assert embed.title == "⚠️ Action completed"
    assert "could not be recorded" in embed.description


@pytest.mark.asyncio
async def test_warn_counts_against_max_and_dms(ctx, guild, moderator, target):
    ctx.settings.update_server_settings(GUILD_ID, max_warnings=5)
    ctx.history.create_warning(TARGET_ID, GUILD_ID, "earlier", MODERATOR_ID)
    invocation = invoke("warn", [f"<@{TARGET_ID}>", "rude"], guild, moderator, target)

    await moderation.warn(ctx, invocation)

    assert [w.reason for w in ctx.history.get_warnings(TARGET_ID, GUILD_ID)] == ["earlier", "rude"]
    fields = {field.name: field.value for field in last_reply(invocation)["embed"].fields}
    assert fields["Total Warnings"] == "2/5"
    target.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_warn_survives_closed_dms(ctx, guild, moderator, target):
    target.send.side_effect = http_error()
    invocation = invoke("warn", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.warn(ctx, invocation)

    assert ctx.history.count_warnings(TARGET_ID, GUILD_ID) == 1
    assert last_reply(invocation)["embed"].title == "⚠️ Member Warned"


@pytest.mark.asyncio
async def test_clearwarns_is_unconditional(ctx, guild, moderator, target):
    invocation = invoke("clearwarns", [f"<@{TARGET_ID}>"], guild, moderator, target)
    await moderation.clearwarns(ctx, invocation)

    assert [log.action for log in ctx.history.get_mod_logs(GUILD_ID)] == ["clearwarns"]


@pytest.mark.asyncio
async def test_warnings_lists_history(ctx, guild, moderator, target):
    ctx.history.create_warning(TARGET_ID, GUILD_ID, "first", MODERATOR_ID)
    invocation = invoke("warnings", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.warnings(ctx, invocation)

    embed = last_reply(invocation)["embed"]
    assert embed.fields[0].name == "Warning #1"
    assert embed.fields[0].value.startswith("first")


@pytest.mark.asyncio
async def test_mute_without_duration_asks_for_both(ctx, guild, moderator, target):
    invocation = invoke("mute", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.mute(ctx, invocation)

    target.timeout.assert_not_awaited()
    assert last_reply(invocation)["embed"].description == moderation.MUTE_USAGE


@pytest.mark.asyncio
async def test_mute_rejects_malformed_duration(ctx, guild, moderator, target):
    invocation = invoke("mute", [f"<@{TARGET_ID}>", "soon"], guild, moderator, target)

    await moderation.mute(ctx, invocation)

    target.timeout.assert_not_awaited()
    assert last_reply(invocation)["embed"].description == "Invalid duration format. Use 1m, 1h, 1d etc."


@pytest.mark.asyncio
async def test_mute_rejects_timeouts_over_28_days(ctx, guild, moderator, target):
    invocation = invoke("mute", [f"<@{TARGET_ID}>", "29d"], guild, moderator, target)

    await moderation.mute(ctx, invocation)

    target.timeout.assert_not_awaited()
    assert last_reply(invocation)["embed"].description == "Timeouts cannot be longer than 28 days."


@pytest.mark.asyncio
async def test_mute_applies_timeout_and_stores_expiry(ctx, guild, moderator, target):
    invocation = invoke("mute", [f"<@{TARGET_ID}>", "2h", "flooding"], guild, moderator, target)
    before = datetime.datetime.now(datetime.timezone.utc)

    await moderation.mute(ctx, invocation)

    target.timeout.assert_awaited_once_with(datetime.timedelta(hours=2), reason="flooding")
    [mute] = ctx.history.get_mutes(TARGET_ID, GUILD_ID)
    assert mute.moderator_id == MODERATOR_ID
    assert datetime.timedelta(hours=2) <= mute.expires_at - before < datetime.timedelta(hours=2, minutes=1)


@pytest.mark.asyncio
async def test_unmute_clears_timeout(ctx, guild, moderator, target):
    invocation = invoke("unmute", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.unmute(ctx, invocation)

    assert target.timeout.await_args.args == (None,)
    assert [log.action for log in ctx.history.get_mod_logs(GUILD_ID)] == ["unmute"]


@pytest.mark.asyncio
async def test_modlogs_shows_latest_first(ctx, guild, moderator, target):
    for action in ("kick", "ban"):
        ctx.history.create_mod_log(GUILD_ID, TARGET_ID, MODERATOR_ID, action, None)
    invocation = invoke("modlogs", [], guild, moderator, target)

    await moderation.modlogs(ctx, invocation)

    description = last_reply(invocation)["embed"].description
    assert description.index("`ban`") < description.index("`kick`")


def deleted_messages(count, include_id=None):
    messages = [MagicMock(id=index) for index in range(count)]
    if include_id is not None:
        messages[0].id = include_id
    return messages


@pytest.mark.asyncio
async def test_purge_clamps_to_platform_limit(ctx, guild, moderator, target):
    invocation = invoke("purge", ["150"], guild, moderator, target)
    channel = invocation.channel
    channel.purge.return_value = deleted_messages(100, include_id=invocation.message.id)

    await moderation.purge(ctx, invocation)

    assert channel.purge.await_args.kwargs["limit"] <= 100
    sent = channel.send.await_args.kwargs
    assert sent["embed"].description == "Deleted 99 messages"
    assert sent["delete_after"] == moderation.PURGE_NOTICE_SECONDS
    assert ctx.history.get_mod_logs(GUILD_ID)[0].action == "purge"


@pytest.mark.asyncio
async def test_purge_reports_actual_count(ctx, guild, moderator, target):
    invocation = slash_invocation("purge", {"amount": 10}, guild=guild, author=moderator)
    invocation.channel.purge.return_value = deleted_messages(4)

    await moderation.purge(ctx, invocation)

    invocation.interaction.response.defer.assert_awaited_once_with(ephemeral=True)
    assert invocation.channel.purge.await_args.kwargs["limit"] == 10


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-3", "lots"])
async def test_purge_rejects_bad_amounts(ctx, guild, moderator, target, amount):
    invocation = invoke("purge", [amount], guild, moderator, target)

    await moderation.purge(ctx, invocation)

    invocation.channel.purge.assert_not_awaited()
    assert ctx.history.get_mod_logs(GUILD_ID) == []


@pytest.mark.asyncio
async def test_purge_failure_writes_no_record(ctx, guild, moderator, target):
    invocation = invoke("purge", ["5"], guild, moderator, target)
    invocation.channel.purge.side_effect = http_error(400, "too old")

    await moderation.purge(ctx, invocation)

    assert ctx.history.get_mod_logs(GUILD_ID) == []
    assert isinstance(last_reply(invocation)["embed"], discord.Embed)


@pytest.mark.asyncio
async def test_unmute_platform_failure_writes_no_record(ctx, guild, moderator, target):
    target.timeout.side_effect = http_error()
    invocation = invoke("unmute", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.unmute(ctx, invocation)

    assert ctx.history.get_mod_logs(GUILD_ID) == []
    assert "Check my permissions and role hierarchy." in last_reply(invocation)["embed"].description


@pytest.mark.asyncio
async def test_softban_record_failure_warns_after_both_calls(ctx, guild, moderator, target, monkeypatch):
    monkeypatch.setattr(ctx.history, "create_mod_log", MagicMock(side_effect=sqlite3.OperationalError("disk I/O error")))
    invocation = invoke("softban", [f"<@{TARGET_ID}>"], guild, moderator, target)

    await moderation.softban(ctx, invocation)

    guild.ban.assert_awaited_once()
    guild.unban.assert_awaited_once()
    embed = last_reply(invocation)["embed"]
    assert embed.title == "⚠️ Action completed"
    assert "moderation log" in embed.description
