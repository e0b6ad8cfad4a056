"""Keyed JSON record storage.

Every store owns one record per key. ``load`` returns ``None`` for a missing
record and raises :class:`CorruptRecordError` for one that cannot be parsed;
callers decide what to do with a corrupt record, usually ``quarantine`` it and
write a default in its place.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Protocol

from translatebot.errors import CorruptRecordError, StorageError

logger = logging.getLogger(__name__)


class JsonRepository(Protocol):
    def load(self, key: str) -> Any | None: ...

    def save(self, key: str, value: Any) -> None: ...

    def quarantine(self, key: str) -> None: ...


class JsonFileRepository:
    """One ``<key>.json`` file per record inside ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> Any | None:
        path = self.path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptRecordError(key, e) from e

    def save(self, key: str, value: Any) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(value, fh, indent=2, ensure_ascii=False)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved record {key} to {path}")

    def quarantine(self, key: str) -> None:
        """Copy the current record aside as ``<key>.json.bak``."""
        path = self.path_for(key)
        backup = path.with_name(f"{path.name}.bak")
        try:
            shutil.copyfile(path, backup)
            logger.warning(f"Backed up corrupt record {key} to {backup}")
        except OSError as e:
            logger.error(f"Failed to back up corrupt record {key}: {e}")


class MemoryRepository:
    """Dict-backed repository; ``raw`` values that are strings are parsed on load."""

    def __init__(self) -> None:
        self.records: dict[str, Any] = {}
        self.raw: dict[str, str] = {}
        self.quarantined: dict[str, str] = {}

    def load(self, key: str) -> Any | None:
        if key in self.raw:
            try:
                return json.loads(self.raw[key])
            except json.JSONDecodeError as e:
                raise CorruptRecordError(key, e) from e
        if key not in self.records:
            return None
        return json.loads(json.dumps(self.records[key]))

    def save(self, key: str, value: Any) -> None:
        self.raw.pop(key, None)
        self.records[key] = json.loads(json.dumps(value))

    def quarantine(self, key: str) -> None:
        if key in self.raw:
            self.quarantined[key] = self.raw[key]
