"""
Game Repository - JSON encoding of what the game remembers.

Three slots, each one key in the store:
- player names   (list of {"id", "name", "score"})
- game stats     ({"bestTime", "lastGameTime"}, milliseconds)
- game settings  ({"playerCount", "cardTheme"})

Backend failures surface as StorageError. Values that exist but cannot
be decoded surface as GameStateError so the caller can fall back to
defaults for that slot alone.
"""

from __future__ import annotations
from typing import Any
import json

from ..engine_core.state import GameSettings, GameStats, Player, Theme, NAME_MAX_LENGTH
from ..services.errors import GameStateError, StorageError
from .store import KeyValueStore


PLAYERS_KEY = "memo-game-players"
STATS_KEY = "memo-game-stats"
SETTINGS_KEY = "memo-game-settings"
ALL_KEYS = (PLAYERS_KEY, STATS_KEY, SETTINGS_KEY)


class GameRepository:

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _read(self, key: str) -> Any | None:
        try:
            raw = await self.store.get(key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise GameStateError(f"Corrupt data under {key}: {e}") from e

    async def _write(self, key: str, value: Any) -> None:
        try:
            await self.store.set(key, json.dumps(value, ensure_ascii=False))
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    # -------------------------------------------------------------------------
    # Players
    # -------------------------------------------------------------------------

    async def load_player_names(self) -> dict[int, str]:
        """Saved names by player id (empty if none saved)."""
        data = await self._read(PLAYERS_KEY)
        if data is None:
            return {}
        if not isinstance(data, list):
            raise GameStateError("Saved players are not a list")

        names = {}
        for entry in data:
            if not isinstance(entry, dict):
                raise GameStateError(f"Saved player entry is not an object: {entry!r}")
            player_id, name = entry.get("id"), entry.get("name")
            if not isinstance(player_id, int) or not isinstance(name, str):
                continue
            if name.strip() and len(name) <= NAME_MAX_LENGTH:
                names[player_id] = name
        return names

    async def save_players(self, players: tuple[Player, ...] | list[Player]) -> None:
        await self._write(
            PLAYERS_KEY,
            [{"id": p.id, "name": p.name, "score": p.score} for p in players],
        )

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    async def load_stats(self) -> GameStats:
        data = await self._read(STATS_KEY)
        if data is None:
            return GameStats()
        if not isinstance(data, dict):
            raise GameStateError("Saved stats are not an object")

        best, last = data.get("bestTime"), data.get("lastGameTime")
        for value in (best, last):
            if value is not None and (not isinstance(value, (int, float)) or isinstance(value, bool)):
                raise GameStateError(f"Saved time is not a number: {value!r}")
        return GameStats(
            best_time=int(best) if best is not None else None,
            last_game_time=int(last) if last is not None else None,
        )

    async def save_stats(self, stats: GameStats) -> None:
        await self._write(
            STATS_KEY,
            {"bestTime": stats.best_time, "lastGameTime": stats.last_game_time},
        )

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def load_settings(self) -> GameSettings | None:
        """
        Saved settings, or None if never saved.

        The player count is returned as stored; range checks belong to
        the settings controller. Unknown themes read as Animals.
        """
        data = await self._read(SETTINGS_KEY)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise GameStateError("Saved settings are not an object")

        count = data.get("playerCount")
        if not isinstance(count, int) or isinstance(count, bool):
            raise GameStateError(f"Saved player count is not an integer: {count!r}")
        theme = Theme.parse(data.get("cardTheme")) or Theme.ANIMALS
        return GameSettings(player_count=count, theme=theme)

    async def save_settings(self, settings: GameSettings) -> None:
        await self._write(
            SETTINGS_KEY,
            {"playerCount": settings.player_count, "cardTheme": settings.theme.value},
        )

    async def clear_all(self) -> None:
        try:
            await self.store.remove(ALL_KEYS)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear saved data: {e}") from e
