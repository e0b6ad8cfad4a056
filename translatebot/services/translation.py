"""Translation backend and language detection adapters."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import langdetect
from googletrans import LANGUAGES, Translator
from langdetect import DetectorFactory, LangDetectException

from translatebot.errors import TranslationError
from translatebot.shared.cache import TranslationCache
from translatebot.shared.text import sanitize_text

logger = logging.getLogger(__name__)

# Deterministic detection results across runs
DetectorFactory.seed = 0


@dataclass
class Detection:
    """One ranked language guess."""

    lang: str
    prob: float


class TranslatorBackend(Protocol):
    async def translate(self, text: str, source_lang: str | None, target_lang: str) -> str: ...


class LanguageDetector(Protocol):
    def detect(self, text: str) -> list[Detection]: ...


class GoogleTranslator:
    """googletrans-backed translator."""

    def __init__(self, translator: Translator | None = None) -> None:
        self._translator = translator or Translator()

    async def translate(self, text: str, source_lang: str | None, target_lang: str) -> str:
        src = source_lang.lower() if source_lang else "auto"
        if src != "auto" and src not in LANGUAGES:
            logger.debug(f"Source language '{src}' not supported by googletrans, using auto")
            src = "auto"

        try:
            result = await self._translator.translate(text, src=src, dest=target_lang)
        except Exception as e:
            raise TranslationError(f"{type(e).__name__}: {e}") from e

        translated = getattr(result, "text", None)
        if not translated:
            raise TranslationError("Empty translation result")
        return translated


class LangDetectDetector:
    """langdetect-backed language identification."""

    def detect(self, text: str) -> list[Detection]:
        try:
            guesses = langdetect.detect_langs(text)
        except LangDetectException as e:
            logger.debug(f"Language detection failed: {e}")
            return []
        return [Detection(lang=g.lang, prob=g.prob) for g in guesses]


class CachedTranslator:
    """Translator backend fronted by the memo cache, with a bounded call time.

    A call slower than ``timeout`` counts as a failure. Only non-empty results
    are cached.
    """

    def __init__(
        self,
        backend: TranslatorBackend,
        cache: TranslationCache,
        timeout: float = 5.0,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.timeout = timeout

    async def _call_backend(self, text: str, source_lang: str, target_lang: str) -> str:
        try:
            result = await asyncio.wait_for(
                self.backend.translate(text, source_lang, target_lang), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise TranslationError("Translation timed out") from e
        except TranslationError:
            raise
        except Exception as e:
            raise TranslationError(f"{type(e).__name__}: {e}") from e

        translated = sanitize_text(result)
        if not translated:
            raise TranslationError("Empty translation result")
        return translated

    async def translate(self, text: str, source_lang: str, target_lang: str) -> tuple[str, bool]:
        """Return ``(translated, was_cached)``; raises :class:`TranslationError`."""
        return await self.cache.get_or_fill(
            text,
            source_lang,
            target_lang,
            lambda: self._call_backend(text, source_lang, target_lang),
        )
