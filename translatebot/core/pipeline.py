"""Per-message decision flow: command dispatch or auto-translation."""

from __future__ import annotations

import logging
import time

from translatebot.components.commands import ChatTransport, CommandHandler
from translatebot.core.guards import can_use_commands
from translatebot.core.monitoring import Metrics
from translatebot.errors import TranslationError
from translatebot.services.translation import CachedTranslator, LanguageDetector
from translatebot.shared.models.channel_config import ChannelConfig
from translatebot.shared.models.message import MessageMeta
from translatebot.shared.rate_limiter import RateLimiter
from translatebot.shared.repositories import ConfigStore, IgnoreList
from translatebot.shared.text import (
    ModerationFilter,
    extract_emotes,
    restore_emotes,
    sanitize_text,
)

LOGGER: logging.Logger = logging.getLogger("Bot.Pipeline")


class MessagePipeline:
    """Routes each inbound chat message.

    A message that starts with the channel prefix is a command. Anything else
    passes through the translation gates in a fixed order and is dropped
    silently at the first gate that fails. Only the final step speaks.
    """

    def __init__(
        self,
        *,
        transport: ChatTransport,
        config_store: ConfigStore,
        ignore_list: IgnoreList,
        rate_limiter: RateLimiter,
        translator: CachedTranslator,
        detector: LanguageDetector,
        commands: CommandHandler,
        moderation: ModerationFilter | None = None,
        metrics: Metrics | None = None,
        max_message_length: int = 500,
        min_message_length: int = 5,
        min_confidence: float = 0.5,
        target_language: str = "en",
    ) -> None:
        self.transport = transport
        self.config_store = config_store
        self.ignore_list = ignore_list
        self.rate_limiter = rate_limiter
        self.translator = translator
        self.detector = detector
        self.commands = commands
        self.moderation = moderation or ModerationFilter()
        self.metrics = metrics or Metrics()
        self.max_message_length = max_message_length
        self.min_message_length = min_message_length
        self.min_confidence = min_confidence
        self.target_language = target_language

    async def handle_message(self, channel: str, user: str, text: str, meta: MessageMeta) -> None:
        """Process one message. Never raises; failures are logged and counted."""
        try:
            processed, is_command = await self._handle(channel, user, text, meta)
        except Exception as e:
            LOGGER.exception(f"Error processing message in {channel} from {user}: {e}")
            self.metrics.track_error("message_processing")
            processed, is_command = False, False
        self.metrics.track_message(processed=processed, is_command=is_command)

    async def _handle(
        self, channel: str, user: str, text: str, meta: MessageMeta
    ) -> tuple[bool, bool]:
        if not text or len(text) > self.max_message_length:
            LOGGER.debug(f"Dropping oversized or empty message from {user} in {channel}")
            return False, False

        config = self.config_store.get(channel)
        trimmed = text.strip()

        if trimmed.startswith(config.prefix):
            ran = await self._handle_command(channel, trimmed, meta, config)
            return ran, True

        translated = await self._handle_translation(channel, user, trimmed, config)
        return translated, False

    # ==================== Commands ====================

    async def _handle_command(
        self, channel: str, trimmed: str, meta: MessageMeta, config: ChannelConfig
    ) -> bool:
        if not config.respond_to_commands:
            return False
        if not can_use_commands(channel, meta, config):
            LOGGER.debug(f"{meta.username} blocked by moderatorOnly in {channel}")
            return False

        parts = trimmed[len(config.prefix) :].split()
        if not parts:
            return False
        return await self.commands.dispatch(channel, meta, parts[0], parts[1:], config)

    # ==================== Translation ====================

    async def _handle_translation(
        self, channel: str, user: str, trimmed: str, config: ChannelConfig
    ) -> bool:
        if not config.auto_translate:
            return False

        login = user.lower()
        if login in config.excluded_users or self.ignore_list.is_ignored(login):
            LOGGER.debug(f"Skipping ignored user {login} in {channel}")
            return False

        if len(trimmed) < self.min_message_length:
            return False

        split = extract_emotes(sanitize_text(trimmed))
        if len(split.natural_text) < self.min_message_length:
            # Nothing but emotes
            return False

        if self.moderation.is_inappropriate(split.processed):
            LOGGER.debug(f"Message from {login} in {channel} failed moderation")
            return False

        if not self.rate_limiter.admit(channel):
            LOGGER.debug(f"Rate limit reached for {channel}")
            return False

        detections = self.detector.detect(split.natural_text)
        if not detections:
            return False
        best = detections[0]
        if best.prob < self.min_confidence or best.lang == self.target_language:
            return False

        if config.language_filter and best.lang not in config.language_filter:
            LOGGER.debug(f"Language {best.lang} filtered out in {channel}")
            return False

        started = time.perf_counter()
        try:
            translated, cached = await self.translator.translate(
                split.processed, best.lang, self.target_language
            )
        except TranslationError as e:
            LOGGER.warning(f"Translation failed in {channel} ({best.lang}→{self.target_language}): {e}")
            self.metrics.track_translation(success=False)
            self.metrics.track_error("translation")
            return False

        duration_ms = (time.perf_counter() - started) * 1000
        self.metrics.track_translation(success=True, cached=cached, duration_ms=duration_ms)

        final_text = restore_emotes(translated, split.emotes) if split.has_emotes else translated
        if not final_text:
            return False

        await self.transport.say(channel, f"[{user}, {best.lang}→{self.target_language}]: {final_text}")
        LOGGER.info(
            f"Translated {best.lang}→{self.target_language} for {user} in {channel}"
            f"{' (cached)' if cached else ''}"
        )
        return True
