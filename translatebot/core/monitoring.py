"""In-process counters for messages, translations and errors."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

LOGGER = logging.getLogger("Bot.Metrics")


@dataclass
class Metrics:
    messages_total: int = 0
    messages_processed: int = 0
    messages_skipped: int = 0
    commands: int = 0

    translations_total: int = 0
    translations_successful: int = 0
    translations_failed: int = 0
    translations_cached: int = 0
    average_translation_ms: float = 0.0

    errors: Counter[str] = field(default_factory=Counter)
    started_at: float = field(default_factory=time.time)

    def track_message(self, processed: bool, is_command: bool = False) -> None:
        self.messages_total += 1
        if processed:
            self.messages_processed += 1
            if is_command:
                self.commands += 1
        else:
            self.messages_skipped += 1

    def track_translation(self, success: bool, cached: bool = False, duration_ms: float = 0.0) -> None:
        self.translations_total += 1
        if not success:
            self.translations_failed += 1
            return

        self.translations_successful += 1
        if cached:
            self.translations_cached += 1
        if duration_ms > 0:
            n = self.translations_successful
            self.average_translation_ms += (duration_ms - self.average_translation_ms) / n

    def track_error(self, error_type: str) -> None:
        self.errors[error_type] += 1

    def snapshot(self) -> dict[str, Any]:
        uptime = int(time.time() - self.started_at)
        hours, remainder = divmod(uptime, 3600)
        minutes = remainder // 60

        def pct(part: int, whole: int) -> float:
            return round(part / whole * 100, 2) if whole else 0.0

        return {
            "uptime": f"{hours}h {minutes}m",
            "messages": {
                "total": self.messages_total,
                "processed": self.messages_processed,
                "skipped": self.messages_skipped,
                "commands": self.commands,
                "processing_rate": pct(self.messages_processed, self.messages_total),
            },
            "translations": {
                "total": self.translations_total,
                "successful": self.translations_successful,
                "failed": self.translations_failed,
                "cached": self.translations_cached,
                "success_rate": pct(self.translations_successful, self.translations_total),
                "cache_hit_rate": pct(self.translations_cached, self.translations_successful),
                "average_ms": round(self.average_translation_ms, 2),
            },
            "errors": {"total": sum(self.errors.values()), "by_type": dict(self.errors)},
        }

    def log_metrics(self) -> None:
        m = self.snapshot()
        t = m["translations"]
        msg = m["messages"]
        LOGGER.info(
            f"Uptime: {m['uptime']} | Translations: {t['total']} total, "
            f"{t['successful']} successful ({t['success_rate']}%), "
            f"{t['cached']} cached ({t['cache_hit_rate']}%), avg {t['average_ms']}ms"
        )
        LOGGER.info(
            f"Messages: {msg['total']} total, {msg['processed']} processed "
            f"({msg['processing_rate']}%), {msg['commands']} commands | "
            f"Errors: {m['errors']['total']}"
        )
        for error_type, count in m["errors"]["by_type"].items():
            LOGGER.info(f"  {error_type}: {count}")
