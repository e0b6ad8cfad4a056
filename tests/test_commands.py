import pytest

from translatebot.errors import RefreshError, TranslationError
from translatebot.shared.models.message import MessageMeta

MOD = MessageMeta(username="mod", is_moderator=True)
VIEWER = MessageMeta(username="viewer")
BROADCASTER = MessageMeta(username="chan", is_broadcaster=True)
OWNER = MessageMeta(username="owner")


async def run(env, text, meta=VIEWER, channel="chan"):
    await env.pipeline.handle_message(channel, meta.username, text, meta)
    return env.transport.sent[-1][1] if env.transport.sent else None


@pytest.mark.asyncio
async def test_translate_command_uses_given_source_language(bot_env):
    bot_env.backend.result = "good morning"

    reply = await run(bot_env, "!translate es buenos dias")

    assert reply == "@viewer [es→en]: good morning"
    assert bot_env.backend.calls == [("buenos dias", "es", "en")]


@pytest.mark.asyncio
async def test_translate_command_usage_and_errors(bot_env):
    assert await run(bot_env, "!translate es") == "@viewer Usage: !translate <language> <text>"

    bot_env.backend.error = TranslationError("backend down")
    reply = await run(bot_env, "!translate es hola amigos")
    assert reply == "@viewer Error translating: backend down"


@pytest.mark.asyncio
async def test_config_requires_moderator(bot_env):
    await run(bot_env, "!config autotranslate off")

    assert bot_env.transport.sent == []
    assert bot_env.config_store.get("chan").auto_translate is True


@pytest.mark.asyncio
async def test_config_updates_typed_values(bot_env):
    assert await run(bot_env, "!config autoTranslate off", MOD) == "@mod Updated: autotranslate = false"
    assert await run(bot_env, "!config moderatoronly true", MOD) == "@mod Updated: moderatoronly = true"
    assert (
        await run(bot_env, "!config languagefilter FR, es", MOD)
        == "@mod Updated: languagefilter = es, fr"
    )

    config = bot_env.config_store.get("chan")
    assert config.auto_translate is False
    assert config.moderator_only is True
    assert config.language_filter == {"fr", "es"}

    assert await run(bot_env, "!config languagefilter all", MOD) == "@mod Updated: languagefilter = all"
    assert bot_env.config_store.get("chan").language_filter == set()


@pytest.mark.asyncio
async def test_config_lists_shows_and_rejects_settings(bot_env):
    assert (await run(bot_env, "!config", MOD)).startswith("@mod Available settings: autoTranslate")
    assert await run(bot_env, "!config prefix", MOD) == "@mod prefix = !"
    assert await run(bot_env, "!config volume 11", MOD) == "@mod Unknown setting: volume"


@pytest.mark.asyncio
async def test_exclude_and_include(bot_env):
    assert await run(bot_env, "!exclude @Spammer", MOD) == "@mod Added spammer to excluded users."
    assert await run(bot_env, "!exclude spammer", MOD) == "@mod spammer is already excluded."
    assert bot_env.repository.records["chan"]["excludedUsers"] == ["spammer"]

    assert await run(bot_env, "!include spammer", MOD) == "@mod Removed spammer from excluded users."
    assert await run(bot_env, "!include spammer", MOD) == "@mod spammer is not excluded."


@pytest.mark.asyncio
async def test_exclude_is_silent_for_viewers(bot_env):
    await run(bot_env, "!exclude someone")

    assert bot_env.transport.sent == []
    assert bot_env.config_store.get("chan").excluded_users == set()


@pytest.mark.asyncio
async def test_global_ignore_is_owner_only(bot_env):
    await run(bot_env, "!globalignore add someone", MOD)

    assert bot_env.transport.sent == []
    assert not bot_env.ignore_list.is_ignored("someone")


@pytest.mark.asyncio
async def test_global_ignore_add_remove_list(bot_env):
    assert await run(bot_env, "!gignore add Someone", OWNER) == (
        "@owner Added someone to global ignore list."
    )
    assert await run(bot_env, "!globalignore add someone", OWNER) == (
        "@owner someone is already in the global ignore list."
    )
    assert await run(bot_env, "!globalignore list", OWNER) == (
        "@owner Global ignore list (1-2/2): nightbot, someone"
    )
    assert await run(bot_env, "!globalignore remove someone", OWNER) == (
        "@owner Removed someone from global ignore list."
    )
    assert await run(bot_env, "!globalignore remove someone", OWNER) == (
        "@owner someone is not in the global ignore list."
    )
    assert await run(bot_env, "!globalignore purge", OWNER) == (
        "@owner Unknown action: purge. Use add, remove, or list."
    )


@pytest.mark.asyncio
async def test_global_ignore_list_pages(bot_env):
    for i in range(12):
        bot_env.ignore_list.add(f"user{i:02d}")

    first = await run(bot_env, "!globalignore list", OWNER)
    second = await run(bot_env, "!globalignore list 2", OWNER)

    assert first.startswith("@owner Global ignore list (1-10/13): nightbot, user00")
    assert second == "@owner Global ignore list (11-13/13): user09, user10, user11"


@pytest.mark.asyncio
async def test_help_lists_owner_command_only_for_owner(bot_env):
    viewer_reply = await run(bot_env, "!help")
    owner_reply = await run(bot_env, "!help", OWNER)

    assert viewer_reply == "@viewer Available commands: !translate, !config, !exclude, !include, !help"
    assert "!globalignore" in owner_reply


@pytest.mark.asyncio
async def test_refresh_token_for_channel_owner(bot_env):
    await run(bot_env, "!refreshtoken", MOD)
    assert bot_env.credentials.refresh_calls == 0

    await run(bot_env, "!refreshtoken", BROADCASTER)
    assert bot_env.credentials.refresh_calls == 1
    assert [text for _, text in bot_env.transport.sent] == [
        "@chan Manually refreshing token...",
        "@chan Token successfully refreshed!",
    ]


@pytest.mark.asyncio
async def test_refresh_token_reports_failure(bot_env):
    bot_env.credentials.error = RefreshError(3, RuntimeError("invalid grant"))

    reply = await run(bot_env, "!refreshtoken", BROADCASTER)

    assert reply == "@chan Error refreshing token: invalid grant"
