"""Chat text helpers: sanitizing, emote handling and moderation screening."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

EMOTE_PLACEHOLDER = "{EMOTE}"

_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
# Leading "/me", ".ban" style chat commands
_TRANSPORT_COMMAND = re.compile(r"^[/.]\w+\s*")
# Whole-word emote tokens: ":name:" or "[name]"
_EMOTE_TOKEN = re.compile(r"^(?::[A-Za-z0-9_]+:|\[[A-Za-z0-9_]+\])$")
_URL = re.compile(r"https?://", re.IGNORECASE)
_REPEATED_CHAR = re.compile(r"(.)\1{15,}")

DEFAULT_MODERATION_PATTERNS: tuple[str, ...] = (
    r"\bn[i1l]gg[e3]r",
    r"\bf[a@]gg[o0]t",
    r"\bc[u\*]nt",
    r"\bk[i1]k[e3]",
    r"\br[e3]t[a@]rd",
)
MAX_URLS = 3


def sanitize_text(text: str | None) -> str:
    """Strip control characters, surrounding whitespace and a leading chat command."""
    if not text:
        return ""
    sanitized = _CONTROL_CHARS.sub("", text).strip()
    return _TRANSPORT_COMMAND.sub("", sanitized, count=1)


def is_emote(word: str) -> bool:
    return bool(_EMOTE_TOKEN.match(word))


@dataclass
class EmoteSplit:
    """A message with its emote tokens replaced by placeholders."""

    processed: str
    emotes: list[str] = field(default_factory=list)

    @property
    def has_emotes(self) -> bool:
        return bool(self.emotes)

    @property
    def natural_text(self) -> str:
        """Processed text with the placeholders removed."""
        return " ".join(self.processed.replace(EMOTE_PLACEHOLDER, " ").split())


def extract_emotes(message: str) -> EmoteSplit:
    """Replace each whole-word emote token with :data:`EMOTE_PLACEHOLDER`."""
    if not message:
        return EmoteSplit(processed="")

    emotes: list[str] = []
    words = []
    for word in message.split():
        if is_emote(word):
            emotes.append(word)
            words.append(EMOTE_PLACEHOLDER)
        else:
            words.append(word)
    return EmoteSplit(processed=" ".join(words), emotes=emotes)


def restore_emotes(translated: str, emotes: list[str]) -> str:
    """Put emotes back in place of the placeholders, in order.

    Emotes whose placeholder did not survive translation are appended.
    """
    if not emotes:
        return translated

    remaining = iter(emotes)
    restored = re.sub(
        re.escape(EMOTE_PLACEHOLDER), lambda _m: next(remaining, ""), translated
    )
    leftovers = list(remaining)
    if leftovers:
        restored = " ".join([restored.rstrip(), *leftovers])
    return " ".join(restored.split())


class ModerationFilter:
    """Screens text against slur patterns and simple spam heuristics."""

    def __init__(self, extra_patterns: Iterable[str] = ()) -> None:
        self.patterns = [
            re.compile(p, re.IGNORECASE)
            for p in (*DEFAULT_MODERATION_PATTERNS, *extra_patterns)
        ]

    def is_inappropriate(self, text: str | None) -> bool:
        if not text:
            return True
        if _REPEATED_CHAR.search(text):
            return True
        if len(_URL.findall(text)) > MAX_URLS:
            return True
        return any(p.search(text) for p in self.patterns)
