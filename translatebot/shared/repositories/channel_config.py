"""Repository for per-channel settings."""

from __future__ import annotations

import logging
from typing import Any

from translatebot.errors import CorruptRecordError, StorageError, UnknownSettingError
from translatebot.shared.models.channel_config import ChannelConfig, normalize_channel_name
from translatebot.shared.repositories.json_store import JsonRepository

logger = logging.getLogger(__name__)


class ConfigStore:
    """In-memory channel settings with write-through persistence.

    Records are keyed by normalized channel name, so ``"#Foo"`` and ``"foo"``
    share one config. A corrupt record is backed up and replaced with defaults;
    it never affects other channels.
    """

    def __init__(self, repository: JsonRepository) -> None:
        self.repository = repository
        self._configs: dict[str, ChannelConfig] = {}

    # ==================== Loading ====================

    def load_all(self, channels: list[str]) -> int:
        """Rehydrate the configs for ``channels`` at startup."""
        for channel in channels:
            self.get(channel)
        logger.info(f"Loaded configs for {len(channels)} channels")
        return len(channels)

    def _load(self, key: str) -> ChannelConfig:
        try:
            data = self.repository.load(key)
            if data is not None:
                config = ChannelConfig.from_dict(data)
                logger.debug(f"Loaded config for {key}")
                return config
            logger.info(f"No config found for channel: {key}, creating default")
        except (CorruptRecordError, ValueError, TypeError) as e:
            logger.error(f"Corrupt config for {key}: {e}")
            self.repository.quarantine(key)
        except StorageError as e:
            # Unreadable but not known corrupt: serve defaults, leave the file alone
            logger.error(f"Error loading config for {key}: {e}")
            return ChannelConfig()

        config = ChannelConfig()
        try:
            self.repository.save(key, config.to_dict())
        except StorageError as e:
            logger.error(f"Error saving default config for {key}: {e}")
        return config

    # ==================== Access ====================

    def get(self, channel: str) -> ChannelConfig:
        """Return the config for ``channel``, creating a default if needed."""
        key = normalize_channel_name(channel)
        config = self._configs.get(key)
        if config is None:
            config = self._load(key)
            self._configs[key] = config
        return config

    def update(self, channel: str, **changes: Any) -> ChannelConfig:
        """Merge ``changes`` over the current config and persist the result.

        Raises :class:`UnknownSettingError` for names that are not
        ``ChannelConfig`` fields and :class:`StorageError` if the write fails,
        in which case the in-memory value is left unchanged.
        """
        unknown = set(changes) - ChannelConfig.field_names()
        if unknown:
            raise UnknownSettingError(sorted(unknown)[0])

        key = normalize_channel_name(channel)
        updated = self.get(key).merged(**changes)
        self.repository.save(key, updated.to_dict())
        self._configs[key] = updated
        logger.debug(f"Updated config for {key}: {sorted(changes)}")
        return updated

    @property
    def channels(self) -> list[str]:
        return sorted(self._configs)
