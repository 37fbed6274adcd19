"""
Session Module - Runs a table of the memory game.

A session represents one deal of the deck:
- Created on first load, on "play again", and on settings changes
- Replaced wholesale, never revived once over
- Tagged with a generation so stale timers cannot touch it

The engine owns the live session; the settings controller builds new ones.
"""

from .engine import GameEngine, EngineSnapshot, CompletionReport
from .settings import SettingsController, DEFAULT_SETTINGS
from .scheduler import (
    Scheduler,
    ManualScheduler,
    ManualClock,
    AsyncioScheduler,
    system_clock,
)

__all__ = [
    "GameEngine",
    "EngineSnapshot",
    "CompletionReport",
    "SettingsController",
    "DEFAULT_SETTINGS",
    "Scheduler",
    "ManualScheduler",
    "ManualClock",
    "AsyncioScheduler",
    "system_clock",
]
