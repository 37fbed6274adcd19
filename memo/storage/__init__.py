"""
Storage Module - What survives between games.

Only three things persist: player names, solo records and settings.
Sessions themselves are never saved.
"""

from .store import KeyValueStore, InMemoryStore, JsonFileStore
from .repository import (
    GameRepository,
    PLAYERS_KEY,
    STATS_KEY,
    SETTINGS_KEY,
    ALL_KEYS,
)

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "GameRepository",
    "PLAYERS_KEY",
    "STATS_KEY",
    "SETTINGS_KEY",
    "ALL_KEYS",
]
