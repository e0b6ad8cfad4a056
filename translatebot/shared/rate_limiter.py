"""
Sliding-window rate limiter for outgoing translations.

Two scopes are checked per admission: the process-wide ``global`` scope and
the channel's own scope. Each keeps the timestamps of admissions inside the
trailing window; there is no fixed-bucket reset.
"""

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from translatebot.shared.models.channel_config import normalize_channel_name

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
WINDOW_SECONDS = 60.0


@dataclass
class ScopeStats:
    """Counters for one scope"""

    total_requests: int = 0
    limited_requests: int = 0

    # Admission timestamps inside the window
    window: deque[float] = field(default_factory=deque)


class RateLimiter:
    """Per-minute admission control across global and per-channel scopes."""

    def __init__(
        self,
        global_limit: int = 20,
        channel_limit: int = 10,
        window: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.global_limit = global_limit
        self.channel_limit = channel_limit
        self.window = window
        self._clock = clock
        self._global = ScopeStats()
        self._channels: dict[str, ScopeStats] = {}

    def _channel(self, name: str) -> ScopeStats:
        stats = self._channels.get(name)
        if stats is None:
            stats = self._channels[name] = ScopeStats()
        return stats

    def _purge(self, stats: ScopeStats, now: float) -> None:
        threshold = now - self.window
        while stats.window and stats.window[0] <= threshold:
            stats.window.popleft()

    def admit(self, channel: str) -> bool:
        """Admit one translation for ``channel`` if both scopes have room.

        The global scope is evaluated first. A rejection records nothing in
        either scope.
        """
        now = self._clock()
        scope_name = normalize_channel_name(channel)
        global_stats = self._global
        channel_stats = self._channel(scope_name)

        global_stats.total_requests += 1
        channel_stats.total_requests += 1

        self._purge(global_stats, now)
        if len(global_stats.window) >= self.global_limit:
            global_stats.limited_requests += 1
            logger.debug("Global rate limit reached")
            return False

        self._purge(channel_stats, now)
        if len(channel_stats.window) >= self.channel_limit:
            channel_stats.limited_requests += 1
            logger.debug(f"Rate limit reached for channel {scope_name}")
            return False

        global_stats.window.append(now)
        channel_stats.window.append(now)
        return True

    def usage(self, scope: str = GLOBAL_SCOPE) -> int:
        """Admissions currently inside the window for ``scope``.

        ``scope`` is ``"global"`` or a channel name.
        """
        if scope == GLOBAL_SCOPE:
            stats: ScopeStats | None = self._global
        else:
            stats = self._channels.get(normalize_channel_name(scope))
        if stats is None:
            return 0
        self._purge(stats, self._clock())
        return len(stats.window)

    def _summary(self, stats: ScopeStats, limit: int) -> dict[str, Any]:
        self._purge(stats, self._clock())
        total = stats.total_requests
        return {
            "total_requests": total,
            "limited_requests": stats.limited_requests,
            "current_usage": len(stats.window),
            "limit": limit,
            "limited_percentage": round(stats.limited_requests / total * 100, 2) if total else 0.0,
        }

    def stats(self) -> dict[str, Any]:
        """Usage and rejection counters for the global scope and each channel."""
        return {
            "global": self._summary(self._global, self.global_limit),
            "channels": {
                name: self._summary(stats, self.channel_limit)
                for name, stats in self._channels.items()
            },
        }

    def log_stats(self) -> None:
        stats = self.stats()
        g = stats["global"]
        logger.info(
            f"Rate Stats [global] - Total: {g['total_requests']}, "
            f"Limited: {g['limited_requests']} ({g['limited_percentage']}%), "
            f"Current Usage: {g['current_usage']}/{g['limit']}"
        )
        for name, s in stats["channels"].items():
            logger.info(
                f"Rate Stats [{name}] - Total: {s['total_requests']}, "
                f"Limited: {s['limited_requests']} ({s['limited_percentage']}%), "
                f"Current Usage: {s['current_usage']}/{s['limit']}"
            )
