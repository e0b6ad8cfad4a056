"""Repository for the global ignore list."""

from __future__ import annotations

import logging

from translatebot.errors import CorruptRecordError, StorageError
from translatebot.shared.repositories.json_store import JsonRepository

logger = logging.getLogger(__name__)

IGNORE_LIST_KEY = "global_ignore"


class IgnoreList:
    """Usernames excluded from translation in every channel."""

    def __init__(
        self,
        repository: JsonRepository,
        initial: list[str] | None = None,
        key: str = IGNORE_LIST_KEY,
    ) -> None:
        self.repository = repository
        self.key = key
        self._initial = [name.lower() for name in (initial or [])]
        self._users: list[str] = []

    def init(self) -> None:
        """Load the persisted list, or seed it from the initial names."""
        try:
            data = self.repository.load(self.key)
            if data is not None:
                if not isinstance(data, list):
                    raise ValueError("ignore list must be a JSON array")
                self._users = []
                for name in data:
                    name = str(name).lower()
                    if name not in self._users:
                        self._users.append(name)
                logger.info(f"Loaded {len(self._users)} users from global ignore list")
                return
        except (CorruptRecordError, ValueError) as e:
            logger.error(f"Error loading global ignore list: {e}")
            self.repository.quarantine(self.key)
        except StorageError as e:
            logger.error(f"Error loading global ignore list: {e}")
            self._users = list(self._initial)
            return

        self._users = list(dict.fromkeys(self._initial))
        try:
            self._save()
        except StorageError:
            return
        logger.info(f"Created global ignore list with {len(self._users)} initial users")

    def _save(self) -> None:
        try:
            self.repository.save(self.key, self._users)
        except StorageError as e:
            logger.error(f"Error saving global ignore list: {e}")
            raise

    def add(self, username: str) -> bool:
        """Add ``username``; ``False`` if it was already listed."""
        name = username.lower()
        if name in self._users:
            return False
        self._users.append(name)
        try:
            self._save()
        except StorageError:
            self._users.remove(name)
            raise
        return True

    def remove(self, username: str) -> bool:
        """Remove ``username``; ``False`` if it was not listed."""
        name = username.lower()
        if name not in self._users:
            return False
        index = self._users.index(name)
        self._users.remove(name)
        try:
            self._save()
        except StorageError:
            self._users.insert(index, name)
            raise
        return True

    def is_ignored(self, username: str) -> bool:
        return username.lower() in self._users

    def users(self) -> list[str]:
        return list(self._users)

    def __len__(self) -> int:
        return len(self._users)
