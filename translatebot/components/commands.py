"""Chat commands: translate, config, exclude, include, globalignore, help, refreshtoken."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

from translatebot.core.guards import is_bot_owner, is_channel_owner, is_moderator
from translatebot.errors import RefreshError, StorageError, TranslationError
from translatebot.shared.models.channel_config import ChannelConfig
from translatebot.shared.models.message import MessageMeta

if TYPE_CHECKING:
    from translatebot.core.monitoring import Metrics
    from translatebot.services.credentials import CredentialManager
    from translatebot.services.translation import CachedTranslator
    from translatebot.shared.repositories import ConfigStore, IgnoreList


LOGGER: logging.Logger = logging.getLogger("Bot.Commands")

IGNORE_LIST_PAGE_SIZE = 10
MIN_TRANSLATE_COMMAND_LENGTH = 2

# Setting name as typed in chat -> ChannelConfig attribute
SETTINGS: dict[str, str] = {
    "autotranslate": "auto_translate",
    "respondtocommands": "respond_to_commands",
    "prefix": "prefix",
    "moderatoronly": "moderator_only",
    "languagefilter": "language_filter",
}
SETTING_DISPLAY_NAMES = "autoTranslate, respondToCommands, prefix, moderatorOnly, languageFilter"

_CLEAR_FILTER_VALUES = {"none", "off", "all", "clear"}


class ChatTransport(Protocol):
    async def say(self, channel: str, text: str) -> None: ...


Handler = Callable[[str, MessageMeta, list[str], ChannelConfig], Awaitable[None]]


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "on", "yes", "1")


def _parse_language_filter(value: str) -> set[str]:
    if value.lower() in _CLEAR_FILTER_VALUES:
        return set()
    return {code.strip().lower() for code in value.split(",") if code.strip()}


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, set):
        return ", ".join(sorted(value)) if value else "all"
    return str(value)


def _strip_mention(name: str) -> str:
    return name.lstrip("@").lower()


class CommandHandler:
    """Dispatches prefixed chat commands for one bot instance.

    Authorization failures are silent. Every other outcome is answered with a
    reply addressed to the requester.
    """

    def __init__(
        self,
        *,
        transport: ChatTransport,
        config_store: ConfigStore,
        ignore_list: IgnoreList,
        translator: CachedTranslator,
        credentials: CredentialManager,
        metrics: Metrics | None = None,
        target_language: str = "en",
        bot_owner: str | None = None,
    ) -> None:
        self.transport = transport
        self.config_store = config_store
        self.ignore_list = ignore_list
        self.translator = translator
        self.credentials = credentials
        self.metrics = metrics
        self.target_language = target_language
        self.bot_owner = bot_owner

        self._handlers: dict[str, Handler] = {
            "translate": self.translate,
            "config": self.config,
            "exclude": self.exclude,
            "include": self.include,
            "globalignore": self.global_ignore,
            "gignore": self.global_ignore,
            "help": self.help,
            "refreshtoken": self.refresh_token,
        }

    async def reply(self, channel: str, meta: MessageMeta, text: str) -> None:
        await self.transport.say(channel, f"@{meta.username} {text}")

    async def dispatch(
        self,
        channel: str,
        meta: MessageMeta,
        command: str,
        args: list[str],
        config: ChannelConfig,
    ) -> bool:
        """Run ``command``; ``False`` if it is not a known command."""
        handler = self._handlers.get(command.lower())
        if handler is None:
            LOGGER.debug(f"Unknown command '{command}' in {channel}")
            return False

        LOGGER.debug(f"Command '{command}' from {meta.username} in {channel}")
        await handler(channel, meta, args, config)
        return True

    # ==================== translate ====================

    async def translate(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        """Usage: !translate <lang> <text>"""
        if len(args) < 2:
            await self.reply(channel, meta, f"Usage: {config.prefix}translate <language> <text>")
            return

        source_lang = args[0].lower()
        text = " ".join(args[1:]).strip()
        if len(text) < MIN_TRANSLATE_COMMAND_LENGTH:
            await self.reply(channel, meta, "Text too short to translate.")
            return

        try:
            translated, cached = await self.translator.translate(
                text, source_lang, self.target_language
            )
        except TranslationError as e:
            LOGGER.warning(f"Translate command failed in {channel}: {e}")
            if self.metrics:
                self.metrics.track_translation(success=False)
            await self.reply(channel, meta, f"Error translating: {e}")
            return

        if self.metrics:
            self.metrics.track_translation(success=True, cached=cached)
        await self.reply(channel, meta, f"[{source_lang}→{self.target_language}]: {translated}")

    # ==================== config ====================

    async def config(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        """Usage: !config <setting> [value]"""
        if not is_moderator(channel, meta):
            return

        if not args:
            await self.reply(channel, meta, f"Available settings: {SETTING_DISPLAY_NAMES}")
            return

        setting = args[0].lower()
        attr = SETTINGS.get(setting)
        if attr is None:
            await self.reply(channel, meta, f"Unknown setting: {args[0]}")
            return

        if len(args) < 2:
            await self.reply(channel, meta, f"{setting} = {_display(getattr(config, attr))}")
            return

        raw = " ".join(args[1:])
        if attr == "prefix":
            value: Any = raw
        elif attr == "language_filter":
            value = _parse_language_filter(raw)
        else:
            value = _parse_bool(raw)

        try:
            updated = self.config_store.update(channel, **{attr: value})
        except StorageError as e:
            LOGGER.error(f"Failed to save setting {setting} for {channel}: {e}")
            await self.reply(channel, meta, f"Failed to save setting: {setting}")
            return

        await self.reply(channel, meta, f"Updated: {setting} = {_display(getattr(updated, attr))}")

    # ==================== exclude / include ====================

    async def exclude(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        """Usage: !exclude <username>"""
        if not is_moderator(channel, meta):
            return
        if not args:
            await self.reply(channel, meta, f"Usage: {config.prefix}exclude <username>")
            return

        username = _strip_mention(args[0])
        if username in config.excluded_users:
            await self.reply(channel, meta, f"{username} is already excluded.")
            return

        try:
            self.config_store.update(channel, excluded_users=config.excluded_users | {username})
        except StorageError as e:
            LOGGER.error(f"Failed to exclude {username} in {channel}: {e}")
            await self.reply(channel, meta, f"Failed to exclude {username}.")
            return
        await self.reply(channel, meta, f"Added {username} to excluded users.")

    async def include(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        """Usage: !include <username>"""
        if not is_moderator(channel, meta):
            return
        if not args:
            await self.reply(channel, meta, f"Usage: {config.prefix}include <username>")
            return

        username = _strip_mention(args[0])
        if username not in config.excluded_users:
            await self.reply(channel, meta, f"{username} is not excluded.")
            return

        try:
            self.config_store.update(channel, excluded_users=config.excluded_users - {username})
        except StorageError as e:
            LOGGER.error(f"Failed to include {username} in {channel}: {e}")
            await self.reply(channel, meta, f"Failed to include {username}.")
            return
        await self.reply(channel, meta, f"Removed {username} from excluded users.")

    # ==================== globalignore ====================

    async def global_ignore(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        """Usage: !globalignore <add|remove|list> [username|page]"""
        if not is_bot_owner(channel, meta, self.bot_owner):
            return

        usage = f"Usage: {config.prefix}globalignore <add|remove|list> [username]"
        if not args:
            await self.reply(channel, meta, usage)
            return

        action = args[0].lower()
        if action == "list":
            page = 1
            if len(args) > 1 and args[1].isdigit():
                page = max(1, int(args[1]))
            await self.reply(channel, meta, self._format_ignore_page(page))
            return

        if action not in ("add", "remove"):
            await self.reply(channel, meta, f"Unknown action: {args[0]}. Use add, remove, or list.")
            return

        if len(args) < 2:
            await self.reply(channel, meta, usage)
            return

        username = _strip_mention(args[1])
        try:
            if action == "add":
                if self.ignore_list.add(username):
                    text = f"Added {username} to global ignore list."
                else:
                    text = f"{username} is already in the global ignore list."
            elif self.ignore_list.remove(username):
                text = f"Removed {username} from global ignore list."
            else:
                text = f"{username} is not in the global ignore list."
        except StorageError as e:
            LOGGER.error(f"Failed to update global ignore list: {e}")
            text = "Failed to update global ignore list."
        await self.reply(channel, meta, text)

    def _format_ignore_page(self, page: int) -> str:
        users = self.ignore_list.users()
        if not users:
            return "Global ignore list is empty."

        start = (page - 1) * IGNORE_LIST_PAGE_SIZE
        if start >= len(users):
            start = max(0, len(users) - IGNORE_LIST_PAGE_SIZE)
        chunk = users[start : start + IGNORE_LIST_PAGE_SIZE]
        end = start + len(chunk)
        return f"Global ignore list ({start + 1}-{end}/{len(users)}): {', '.join(chunk)}"

    # ==================== help / refreshtoken ====================

    async def help(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        names = ["translate", "config", "exclude", "include"]
        if is_bot_owner(channel, meta, self.bot_owner):
            names.append("globalignore")
        names.append("help")
        commands_list = ", ".join(f"{config.prefix}{name}" for name in names)
        await self.reply(channel, meta, f"Available commands: {commands_list}")

    async def refresh_token(
        self, channel: str, meta: MessageMeta, args: list[str], config: ChannelConfig
    ) -> None:
        if not is_channel_owner(channel, meta):
            return

        await self.reply(channel, meta, "Manually refreshing token...")
        try:
            await self.credentials.refresh()
        except RefreshError as e:
            LOGGER.error(f"Manual token refresh failed: {e}")
            await self.reply(channel, meta, f"Error refreshing token: {e.cause or e}")
            return
        await self.reply(channel, meta, "Token successfully refreshed!")
