import asyncio
import logging
import signal
import sys

from translatebot.components.commands import CommandHandler
from translatebot.core.bot import TwitchChatTransport
from translatebot.core.config import TranslateBotSettings, validate_env_vars
from translatebot.core.logging import setup_logging
from translatebot.core.monitoring import Metrics
from translatebot.core.pipeline import MessagePipeline
from translatebot.errors import RefreshError
from translatebot.services.credentials import CredentialManager
from translatebot.services.translation import (
    CachedTranslator,
    GoogleTranslator,
    LangDetectDetector,
)
from translatebot.services.twitch_auth import TwitchAuthClient
from translatebot.shared.cache import TranslationCache
from translatebot.shared.models.credential import CredentialState
from translatebot.shared.rate_limiter import RateLimiter
from translatebot.shared.repositories import ConfigStore, IgnoreList, JsonFileRepository
from translatebot.shared.text import ModerationFilter

LOGGER: logging.Logger = logging.getLogger("Bot")


async def _cache_sweep_loop(cache: TranslationCache, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            removed = cache.sweep_expired()
            if removed:
                LOGGER.debug(f"Cleaned up {removed} expired cache entries")
        except Exception as e:
            LOGGER.warning(f"Cache sweep error: {type(e).__name__}: {e}")


async def _metrics_loop(
    metrics: Metrics, rate_limiter: RateLimiter, cache: TranslationCache, interval: float
) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            metrics.log_metrics()
            rate_limiter.log_stats()
            cache.log_stats()
        except Exception as e:
            LOGGER.warning(f"Metrics report error: {type(e).__name__}: {e}")


async def run(settings: TranslateBotSettings) -> None:
    repository = JsonFileRepository(settings.config_dir)

    ignore_list = IgnoreList(repository, initial=settings.global_ignore_list)
    ignore_list.init()

    config_store = ConfigStore(repository)
    config_store.load_all(settings.twitch_channels)

    auth = TwitchAuthClient(settings.twitch_client_id, settings.twitch_client_secret)
    credentials = CredentialManager(
        auth,
        repository,
        bootstrap=CredentialState(
            access_token=settings.twitch_access_token,
            refresh_token=settings.twitch_refresh_token,
        ),
        refresh_margin=settings.refresh_before_expiry,
    )

    try:
        validated = await credentials.initialize()
    except RefreshError as e:
        LOGGER.critical(f"Could not obtain a valid token, shutting down: {e}")
        await auth.close()
        raise

    bot_id = settings.twitch_bot_id or validated.user_id
    metrics = Metrics()
    cache = TranslationCache(capacity=settings.cache_size, ttl=settings.cache_ttl)
    rate_limiter = RateLimiter(
        global_limit=settings.rate_limit_messages,
        channel_limit=settings.rate_limit_translations,
    )
    translator = CachedTranslator(GoogleTranslator(), cache, timeout=settings.translation_timeout)

    transport = TwitchChatTransport(
        client_id=settings.twitch_client_id,
        client_secret=settings.twitch_client_secret,
        bot_id=bot_id,
        channels=settings.twitch_channels,
        credentials=credentials,
    )
    credentials.add_listener(transport.on_credentials_refreshed)

    commands = CommandHandler(
        transport=transport,
        config_store=config_store,
        ignore_list=ignore_list,
        translator=translator,
        credentials=credentials,
        metrics=metrics,
        target_language=settings.target_language,
        bot_owner=settings.twitch_bot_owner or None,
    )
    pipeline = MessagePipeline(
        transport=transport,
        config_store=config_store,
        ignore_list=ignore_list,
        rate_limiter=rate_limiter,
        translator=translator,
        detector=LangDetectDetector(),
        commands=commands,
        moderation=ModerationFilter(settings.moderation_patterns),
        metrics=metrics,
        max_message_length=settings.max_message_length,
        min_message_length=settings.min_message_length,
        min_confidence=settings.min_confidence,
        target_language=settings.target_language,
    )
    transport.set_message_handler(pipeline.handle_message)

    background = [
        asyncio.create_task(_cache_sweep_loop(cache, settings.cache_sweep_interval)),
        asyncio.create_task(credentials.run_refresh_loop(settings.token_check_interval)),
        asyncio.create_task(_metrics_loop(metrics, rate_limiter, cache, settings.metrics_interval)),
    ]

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            pass

    await transport.start()
    LOGGER.info(f"Bot started for channels: {', '.join(settings.twitch_channels)}")

    waiter = asyncio.create_task(transport.wait())
    stopper = asyncio.create_task(stop.wait())
    try:
        await asyncio.wait({waiter, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        LOGGER.info("Shutting down...")
        for task in (*background, waiter, stopper):
            task.cancel()
        await asyncio.gather(*background, waiter, stopper, return_exceptions=True)
        await transport.close()
        await auth.close()
        metrics.log_metrics()


def main() -> None:
    setup_logging()
    try:
        settings = validate_env_vars()
    except ValueError:
        sys.exit(1)

    if settings.log_level != "INFO":
        setup_logging(settings.log_level)

    try:
        asyncio.run(run(settings))
    except RefreshError:
        sys.exit(1)
    except KeyboardInterrupt:
        LOGGER.warning("Shutting down due to KeyboardInterrupt...")


if __name__ == "__main__":
    main()
