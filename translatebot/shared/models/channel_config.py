"""Per-channel settings model."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

# Persisted JSON name -> attribute name
_JSON_NAMES = {
    "autoTranslate": "auto_translate",
    "respondToCommands": "respond_to_commands",
    "excludedUsers": "excluded_users",
    "languageFilter": "language_filter",
    "prefix": "prefix",
    "moderatorOnly": "moderator_only",
}
_ATTR_NAMES = {attr: name for name, attr in _JSON_NAMES.items()}


def normalize_channel_name(channel: str) -> str:
    """Lower-case a channel name and strip a leading ``#``."""
    return channel.strip().lstrip("#").lower()


@dataclass
class ChannelConfig:
    """Settings for one channel."""

    auto_translate: bool = True
    respond_to_commands: bool = True
    excluded_users: set[str] = field(default_factory=set)
    language_filter: set[str] = field(default_factory=set)
    prefix: str = "!"
    moderator_only: bool = False

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def merged(self, **changes: Any) -> ChannelConfig:
        """Return a copy with ``changes`` applied (shallow merge)."""
        result = replace(
            self,
            excluded_users=set(self.excluded_users),
            language_filter=set(self.language_filter),
        )
        for key, value in changes.items():
            if key in ("excluded_users", "language_filter"):
                value = {str(v).lower() for v in value}
            setattr(result, key, value)
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, set):
                value = sorted(value)
            data[_ATTR_NAMES[f.name]] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChannelConfig:
        """Build from a persisted record. Missing keys fall back to defaults."""
        if not isinstance(data, dict):
            raise ValueError(f"Channel config must be an object, got {type(data).__name__}")

        kwargs: dict[str, Any] = {}
        for json_name, attr in _JSON_NAMES.items():
            if json_name not in data:
                continue
            value = data[json_name]
            if attr in ("excluded_users", "language_filter"):
                if not isinstance(value, list):
                    raise ValueError(f"{json_name} must be a list")
                value = {str(v).lower() for v in value}
            elif attr == "prefix":
                value = str(value) or "!"
            else:
                value = bool(value)
            kwargs[attr] = value
        return cls(**kwargs)
