"""Credential manager: keeps the bot's user access token valid.

State machine::

    FRESH ──(within margin of expiry)──► NEEDS_REFRESH ──► REFRESHING
      ▲                                        ▲                │
      └──────────────── success ───────────────┼────────────────┤
                                               └──── failure ───┘

A failed refresh never discards the current token: it may still be valid for
a while, so callers keep using it until a later refresh succeeds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

from translatebot.errors import CorruptRecordError, RefreshError, StorageError
from translatebot.services.twitch_auth import TokenExchange, ValidatedToken
from translatebot.shared.models.credential import CredentialState
from translatebot.shared.repositories.json_store import JsonRepository

LOGGER: logging.Logger = logging.getLogger("Bot.Credentials")

TOKEN_KEY = "token"

RefreshListener = Callable[[CredentialState], Awaitable[None]]


class TokenEndpoint(Protocol):
    async def refresh(self, refresh_token: str) -> TokenExchange: ...

    async def validate(self, access_token: str) -> ValidatedToken | None: ...


class CredentialStatus(str, Enum):
    FRESH = "fresh"
    NEEDS_REFRESH = "needs_refresh"
    REFRESHING = "refreshing"


class CredentialManager:
    """Owns the access/refresh token pair, refreshing and persisting it."""

    def __init__(
        self,
        endpoint: TokenEndpoint,
        repository: JsonRepository,
        *,
        bootstrap: CredentialState,
        refresh_margin: float = 900.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        key: str = TOKEN_KEY,
    ) -> None:
        self.endpoint = endpoint
        self.repository = repository
        self.refresh_margin = refresh_margin
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.key = key
        self._clock = clock
        self._sleep = sleep
        self._bootstrap = bootstrap
        self._state = CredentialState(
            access_token=bootstrap.access_token,
            refresh_token=bootstrap.refresh_token,
            expires_at=bootstrap.expires_at,
        )
        self._inflight: asyncio.Task[str] | None = None
        self._listeners: list[RefreshListener] = []
        self.unsaved = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> CredentialState:
        return self._state

    @property
    def access_token(self) -> str:
        return self._state.access_token

    @property
    def refresh_token(self) -> str:
        return self._state.refresh_token

    @property
    def status(self) -> CredentialStatus:
        if self._inflight is not None and not self._inflight.done():
            return CredentialStatus.REFRESHING
        if self.needs_refresh():
            return CredentialStatus.NEEDS_REFRESH
        return CredentialStatus.FRESH

    def seconds_until_expiry(self) -> float | None:
        if self._state.expires_at is None:
            return None
        return self._state.expires_at - self._clock()

    def needs_refresh(self) -> bool:
        """True when expiry is unknown or within ``refresh_margin`` seconds."""
        remaining = self.seconds_until_expiry()
        if remaining is None:
            return True
        should_refresh = remaining <= self.refresh_margin
        if should_refresh:
            LOGGER.debug(f"Token needs refresh. Time until expiry: {int(remaining)}s")
        return should_refresh

    def add_listener(self, listener: RefreshListener) -> None:
        """Register a coroutine called with the new state after each refresh."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Load the persisted credential. Returns ``False`` if none is usable."""
        try:
            data = self.repository.load(self.key)
            if data is None:
                return False
            loaded = CredentialState.from_dict(data)
        except (CorruptRecordError, ValueError, TypeError, AttributeError) as e:
            LOGGER.error(f"Error loading tokens: {e}")
            return False
        except StorageError as e:
            LOGGER.error(f"Error loading tokens: {e}")
            return False

        self._state = loaded
        return True

    def save(self) -> bool:
        """Persist the current state. On failure the state stays in memory and
        ``unsaved`` is set so the refresh loop retries the write."""
        try:
            self.repository.save(self.key, self._state.to_dict())
        except StorageError as e:
            self.unsaved = True
            LOGGER.error(f"Error saving tokens: {e}")
            return False
        self.unsaved = False
        LOGGER.debug("Saved tokens to file")
        return True

    async def initialize(self) -> ValidatedToken:
        """Load or bootstrap the credential and make sure it is usable.

        The token is validated against the endpoint; an invalid token is
        refreshed. Raises :class:`RefreshError` if no valid token can be
        obtained, which is fatal at startup.
        """
        if self.load():
            LOGGER.info("Loaded tokens from file")
        else:
            self._state = CredentialState(
                access_token=self._bootstrap.access_token,
                refresh_token=self._bootstrap.refresh_token,
                expires_at=None,
            )
            LOGGER.info("Using tokens from environment variables")

        validated = await self.endpoint.validate(self._state.access_token)
        if validated is None:
            LOGGER.info("Initial token validation failed, attempting refresh")
            await self.refresh()
            validated = await self.endpoint.validate(self._state.access_token)
            if validated is None:
                raise RefreshError(1, ValueError("refreshed token failed validation"))

        if validated.expires_in is not None:
            self._state.expires_at = self._clock() + validated.expires_in
        self.save()
        LOGGER.info(f"Token valid for {validated.login or 'unknown'} ({validated.user_id})")
        return validated

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> str:
        """Refresh the access token, returning the new one.

        Concurrent callers share the refresh already in flight.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh_with_retry())
        return await asyncio.shield(self._inflight)

    async def _refresh_with_retry(self) -> str:
        last_error: BaseException | None = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = self.base_delay * (2 ** (attempt - 1))
                LOGGER.debug(
                    f"Retrying token refresh after {delay:.1f}s "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                await self._sleep(delay)

            try:
                exchange = await self.endpoint.refresh(self._state.refresh_token)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                LOGGER.warning(f"Token refresh attempt {attempt} failed: {type(e).__name__}: {e}")
                continue

            await self._apply(exchange)
            return self._state.access_token

        self._state.consecutive_refresh_failures += 1
        LOGGER.error(
            f"Token refresh failed after {self.max_attempts} attempts "
            f"({self._state.consecutive_refresh_failures} consecutive failures)"
        )
        raise RefreshError(self.max_attempts, last_error)

    async def _apply(self, exchange: TokenExchange) -> None:
        now = self._clock()
        self._state = CredentialState(
            access_token=exchange.access_token,
            refresh_token=exchange.refresh_token or self._state.refresh_token,
            expires_at=now + exchange.expires_in,
            consecutive_refresh_failures=0,
        )
        if not self.save():
            LOGGER.error("Refreshed token is only held in memory until a save succeeds")
        LOGGER.info(f"Token refreshed successfully, expires in {exchange.expires_in}s")

        for listener in list(self._listeners):
            try:
                await listener(self._state)
            except Exception as e:
                LOGGER.exception(f"Token refresh listener failed: {e}")

    async def run_refresh_loop(self, interval: float) -> None:
        """Check every ``interval`` seconds and refresh when needed."""
        while True:
            await asyncio.sleep(interval)
            try:
                if self.unsaved:
                    self.save()
                if self.needs_refresh():
                    LOGGER.debug("Performing scheduled token refresh")
                    await self.refresh()
            except asyncio.CancelledError:
                break
            except RefreshError as e:
                LOGGER.error(f"Failed to refresh token: {e}")
            except Exception as e:
                LOGGER.warning(f"Token refresh loop error: {type(e).__name__}: {e}")
