"""
Action System - Actions, events, and results.

Actions represent:
1. Player intents (flip a card)
2. Deferred system actions (resolve a mismatch, clear a highlight)
3. Session bookkeeping (start a session, start its timer)

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


MISMATCH_DELAY_MS = 1000
MATCH_HIGHLIGHT_MS = 500


class ActionType(Enum):
    """Types of actions in the system."""
    # Player actions
    FLIP_CARD = "flip_card"

    # Deferred actions (scheduled by the reducer)
    RESOLVE_MISMATCH = "resolve_mismatch"
    CLEAR_HIGHLIGHT = "clear_highlight"

    # Session actions
    START_SESSION = "start_session"
    START_TIMER = "start_timer"


class GameEvent(Enum):
    """Side-effect signals for sound, haptics and the UI."""
    FLIPPED = "flipped"
    MATCHED = "matched"
    MISMATCHED = "mismatched"
    TURN_PASSED = "turn_passed"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class Action:
    """
    A complete action to be applied to the game session.

    `timestamp` is the engine clock reading in milliseconds.
    `generation` is set on deferred actions and must match the live
    session for them to take effect.
    """
    action_type: ActionType
    card_index: int | None = None
    generation: int | None = None
    timestamp: int | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def flip(cls, index: int, timestamp: int | None = None) -> Action:
        """Factory for a card flip."""
        return cls(action_type=ActionType.FLIP_CARD, card_index=index, timestamp=timestamp)

    @classmethod
    def resolve_mismatch(cls, generation: int) -> Action:
        """Factory for the deferred mismatch rollback."""
        return cls(action_type=ActionType.RESOLVE_MISMATCH, generation=generation)

    @classmethod
    def clear_highlight(cls, generation: int, pair: tuple[int, ...] = ()) -> Action:
        """Factory for clearing the cosmetic match highlight."""
        return cls(
            action_type=ActionType.CLEAR_HIGHLIGHT,
            generation=generation,
            params={"pair": tuple(pair)},
        )

    @classmethod
    def start_timer(cls, timestamp: int) -> Action:
        return cls(action_type=ActionType.START_TIMER, timestamp=timestamp)

    @classmethod
    def start_session(cls, session: Any) -> Action:
        """Factory for replacing the whole session."""
        return cls(action_type=ActionType.START_SESSION, params={"session": session})


@dataclass(frozen=True)
class ScheduledAction:
    """An action the engine must dispatch after `delay_ms`."""
    delay_ms: int
    action: Action


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether the action succeeded, or was silently ignored
    - New state (unchanged state when ignored)
    - Events and follow-up actions for the engine to carry out
    """
    success: bool
    new_state: Any | None = None  # GameSession
    ignored: bool = False
    reason: str | None = None
    error: str | None = None
    error_code: str | None = None

    # For UI/presentation
    state_changes: list[str] = field(default_factory=list)
    events: list[GameEvent] = field(default_factory=list)

    # Deferred continuations
    scheduled: list[ScheduledAction] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def ignore(cls, state: Any, reason: str) -> ActionResult:
        """The action had no effect; this is not an error."""
        return cls(success=True, new_state=state, ignored=True, reason=reason)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
        events: list[GameEvent] | None = None,
        scheduled: list[ScheduledAction] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            events=events or [],
            scheduled=scheduled or [],
        )
