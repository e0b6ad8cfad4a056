"""File-backed repositories for the translate bot."""

from .channel_config import ConfigStore
from .ignore_list import IgnoreList
from .json_store import JsonFileRepository, JsonRepository, MemoryRepository

__all__ = [
    "ConfigStore",
    "IgnoreList",
    "JsonFileRepository",
    "JsonRepository",
    "MemoryRepository",
]
