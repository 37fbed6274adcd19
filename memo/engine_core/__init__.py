"""
Engine Core - Deterministic rules for the memory-matching game.

The engine is the runtime that:
1. Generates a shuffled deck for a theme
2. Accepts or ignores flips
3. Resolves full selections into matches or mismatches
4. Tracks turns, scores and play time
5. Applies every change via the reducer
"""

from .state import (
    Card,
    CardFace,
    Player,
    GameSession,
    GameSettings,
    GameStats,
    SessionStatus,
    Theme,
    default_players,
    PAIR_COUNT,
    MIN_PLAYERS,
    MAX_PLAYERS,
    NAME_MAX_LENGTH,
)
from .action import (
    Action,
    ActionType,
    ActionResult,
    GameEvent,
    ScheduledAction,
    MISMATCH_DELAY_MS,
    MATCH_HIGHLIGHT_MS,
)
from .deck import DeckGenerator, EMOJI_SETS
from .flip import FlipStateMachine
from .resolver import MatchResolver
from .turns import TurnManager
from .scoring import ScoreTracker, WinnerReport, OutcomeKind
from .timer import TimerService, BestTimeOutcome, format_duration
from .reducer import Reducer, apply_action

__all__ = [
    "Card",
    "CardFace",
    "Player",
    "GameSession",
    "GameSettings",
    "GameStats",
    "SessionStatus",
    "Theme",
    "default_players",
    "PAIR_COUNT",
    "MIN_PLAYERS",
    "MAX_PLAYERS",
    "NAME_MAX_LENGTH",
    "Action",
    "ActionType",
    "ActionResult",
    "GameEvent",
    "ScheduledAction",
    "MISMATCH_DELAY_MS",
    "MATCH_HIGHLIGHT_MS",
    "DeckGenerator",
    "EMOJI_SETS",
    "FlipStateMachine",
    "MatchResolver",
    "TurnManager",
    "ScoreTracker",
    "WinnerReport",
    "OutcomeKind",
    "TimerService",
    "BestTimeOutcome",
    "format_duration",
    "Reducer",
    "apply_action",
]
