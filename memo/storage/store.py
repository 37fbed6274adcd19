"""
Key-Value Stores - Async string storage for names, stats and settings.

The stores:
- Map string keys to string values (callers JSON-encode)
- Are async so a slow backend never stalls the game
- Raise StorageError for any backend failure

Design decisions:
- Simple file-based storage, one JSON file per key
- Directory is created on first write, not on construction
- Last write wins; there is no cancellation of in-flight writes
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable
import logging

from ..services.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, keys: Iterable[str]) -> None:
        """Remove several keys; absent keys are not an error."""
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Process-local store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Stores each key as `<directory>/<key>.json`.

    Usage:
        store = JsonFileStore("~/.memo")
        await store.set("memo-game-stats", '{"bestTime": 41250}')
    """

    def __init__(self, directory: str | Path | None = None):
        if directory is None:
            directory = Path.home() / ".memo"
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.debug("Wrote %s", path)

    async def remove(self, keys: Iterable[str]) -> None:
        try:
            for key in keys:
                self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove keys: {e}") from e

    def list_keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(f.stem for f in self.directory.glob("*.json"))
