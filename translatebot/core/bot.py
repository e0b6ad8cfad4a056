"""Twitch chat bot and its connection supervisor."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import twitchio
from twitchio import eventsub
from twitchio.ext import commands

from translatebot.services.credentials import CredentialManager
from translatebot.shared.models.channel_config import normalize_channel_name
from translatebot.shared.models.credential import CredentialState
from translatebot.shared.models.message import MessageMeta

LOGGER: logging.Logger = logging.getLogger("Bot")

MAX_OUTBOUND_LENGTH = 500

MessageHandler = Callable[[str, str, str, MessageMeta], Awaitable[None]]


class TranslatorBot(commands.Bot):
    """EventSub chat client. Messages are handed to ``handler``, never to twitchio commands."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        channels: list[str],
        credentials: CredentialManager,
        handler: MessageHandler | None = None,
    ) -> None:
        self.credentials = credentials
        self.handler = handler
        self._channel_names = [normalize_channel_name(c) for c in channels]
        # channel login -> broadcaster user id
        self._channel_ids: dict[str, str] = {}

        super().__init__(
            client_id=client_id,
            client_secret=client_secret,
            bot_id=bot_id,
            prefix="!",
        )

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def setup_hook(self) -> None:
        users = await self.fetch_users(logins=self._channel_names)
        for user in users:
            if not user.name:
                continue
            self._channel_ids[user.name.lower()] = user.id
            await self.subscribe_channel(user.id)

        missing = set(self._channel_names) - set(self._channel_ids)
        if missing:
            LOGGER.warning(f"Could not resolve channels: {', '.join(sorted(missing))}")

    async def subscribe_channel(self, broadcaster_user_id: str) -> None:
        try:
            subscription = eventsub.ChatMessageSubscription(
                broadcaster_user_id=broadcaster_user_id, user_id=self.bot_id
            )
            await self.subscribe_websocket(payload=subscription)
            LOGGER.info(f"Subscribed to chat for channel: {broadcaster_user_id}")
        except Exception as e:
            LOGGER.exception(f"Failed to subscribe channel {broadcaster_user_id}: {e}")

    # ------------------------------------------------------------------
    # Token management
    # ------------------------------------------------------------------

    async def load_tokens(self, path: str | None = None) -> None:
        state = self.credentials.state
        resp = await self.add_token(state.access_token, state.refresh_token)
        LOGGER.info(f"Loaded bot token: {resp.login or 'unknown'} ({resp.user_id})")

    async def save_tokens(self, path: str | None = None) -> None:
        # Persisted by CredentialManager
        return None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def event_ready(self) -> None:
        LOGGER.info("Successfully logged in as: %s", self.bot_id)

    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        chatter = payload.chatter
        if chatter.id == self.bot_id or not payload.broadcaster:
            return

        channel = (payload.broadcaster.name or "").lower()
        LOGGER.debug(f"[{chatter.name}#{channel}]: {payload.text}")

        if self.handler is None:
            return

        meta = MessageMeta(
            username=chatter.name or "",
            display_name=chatter.display_name,
            is_moderator=bool(chatter.moderator),
            is_broadcaster=bool(chatter.broadcaster),
            message_id=str(payload.id) if payload.id else None,
        )
        await self.handler(channel, chatter.name or "", payload.text or "", meta)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(self, channel: str, text: str) -> None:
        name = normalize_channel_name(channel)
        broadcaster_id = self._channel_ids.get(name)
        if broadcaster_id is None:
            LOGGER.warning(f"Cannot send to unknown channel: {name}")
            return

        broadcaster = self.create_partialuser(user_id=broadcaster_id, user_login=name)
        await broadcaster.send_message(message=text, sender=self.bot_id, token_for=self.bot_id)


class TwitchChatTransport:
    """Owns the live bot connection and restarts it on demand."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        channels: list[str],
        credentials: CredentialManager,
        bot_factory: Callable[..., Any] = TranslatorBot,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.bot_id = bot_id
        self.channels = channels
        self.credentials = credentials
        self.bot_factory = bot_factory

        self.handler: MessageHandler | None = None
        self.bot: Any = None
        self._task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    def set_message_handler(self, handler: MessageHandler) -> None:
        self.handler = handler
        if self.bot is not None:
            self.bot.handler = handler

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Connect in the background. Returns once the client task is scheduled."""
        self.bot = self.bot_factory(
            client_id=self.client_id,
            client_secret=self.client_secret,
            bot_id=self.bot_id,
            channels=self.channels,
            credentials=self.credentials,
            handler=self.handler,
        )
        self._task = asyncio.create_task(self._run(self.bot))
        LOGGER.info(f"Connecting to {len(self.channels)} channels")

    async def _run(self, bot: Any) -> None:
        try:
            await bot.start(with_adapter=False)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            LOGGER.exception(f"Chat connection failed: {e}")

    async def _stop(self) -> None:
        bot, task = self.bot, self._task
        self.bot, self._task = None, None
        if bot is not None:
            try:
                await bot.close()
            except Exception as e:
                LOGGER.warning(f"Error closing chat connection: {e}")
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def reconnect(self) -> None:
        async with self._lock:
            LOGGER.info("Reconnecting chat with refreshed credentials")
            await self._stop()
            await self.start()

    async def on_credentials_refreshed(self, state: CredentialState) -> None:
        """Refresh listener: restart the connection without blocking the refresher."""
        self._reconnect_task = asyncio.create_task(self.reconnect())

    async def say(self, channel: str, text: str) -> None:
        if self.bot is None:
            LOGGER.warning(f"Not connected, dropping message for {channel}")
            return
        if len(text) > MAX_OUTBOUND_LENGTH:
            text = text[:MAX_OUTBOUND_LENGTH]
        try:
            await self.bot.send(channel, text)
        except Exception as e:
            LOGGER.error(f"Failed to send message to {channel}: {e}")

    async def wait(self) -> None:
        """Block until the connection ends for good.

        A reconnect swaps in a new connection task, and waiting carries on with
        it. Returns after ``close()`` or when a connection ends on its own.
        """
        while not self._closed:
            task = self._task
            if task is None:
                return
            await asyncio.wait({task})
            # A reconnect holds the lock until the new task is scheduled
            async with self._lock:
                pass
            if self._task is task:
                return

    async def close(self) -> None:
        self._closed = True
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        async with self._lock:
            await self._stop()
        LOGGER.info("Chat connection closed")
