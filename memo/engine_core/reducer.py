"""
Reducer - Applies actions to the game session.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- Pure function: (session, action) -> new session
- Ignores, rather than rejects, flips the rules do not allow
- Drops deferred actions whose generation is no longer live
- Returns ActionResult with events and follow-up actions
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import GameSession
from .action import Action, ActionType, ActionResult, GameEvent
from .flip import FlipStateMachine
from .resolver import MatchResolver
from .timer import TimerService


DEFERRED_ACTIONS = {ActionType.RESOLVE_MISMATCH, ActionType.CLEAR_HIGHLIGHT}


@dataclass
class Reducer:
    """
    Reducer applies actions to game sessions.

    Stateless - all state is in GameSession.
    """
    flips: FlipStateMachine = field(default_factory=FlipStateMachine)
    resolver: MatchResolver = field(default_factory=MatchResolver)

    @property
    def timer(self) -> TimerService:
        return self.resolver.timer

    def apply(self, state: GameSession | None, action: Action) -> ActionResult:
        """
        Apply an action to the session.

        Returns ActionResult with new state or error.
        """
        if action.action_type == ActionType.START_SESSION:
            return self._handle_start_session(state, action)

        if state is None:
            return ActionResult.failure("No session in progress", error_code="NO_SESSION")

        stale = self._check_generation(state, action)
        if stale:
            return ActionResult.ignore(state, stale)

        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code="NO_HANDLER",
            )

        return handler(state, action)

    def _check_generation(self, state: GameSession, action: Action) -> str | None:
        """Deferred actions only apply to the session that scheduled them."""
        if action.action_type not in DEFERRED_ACTIONS:
            return None
        if action.generation != state.generation:
            return f"stale generation {action.generation} (live {state.generation})"
        return None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.FLIP_CARD: self._handle_flip,
            ActionType.RESOLVE_MISMATCH: self._handle_resolve_mismatch,
            ActionType.CLEAR_HIGHLIGHT: self._handle_clear_highlight,
            ActionType.START_TIMER: self._handle_start_timer,
        }
        return handlers.get(action_type)

    def _handle_start_session(self, state: GameSession | None, action: Action) -> ActionResult:
        """Install a brand-new session; it must be a newer generation."""
        session = action.params.get("session")
        if not isinstance(session, GameSession):
            return ActionResult.failure("START_SESSION requires a GameSession", error_code="INVALID_ACTION")
        if state is not None and session.generation <= state.generation:
            return ActionResult.failure(
                f"Generation {session.generation} does not supersede {state.generation}",
                error_code="STALE_SESSION",
            )

        return ActionResult.success_with_state(
            session,
            changes=[
                f"New session (generation {session.generation}): "
                f"{session.player_count} player(s), {session.theme.value}"
            ],
        )

    def _handle_start_timer(self, state: GameSession, action: Action) -> ActionResult:
        started = self.timer.start(state, action.timestamp or 0)
        if started is state:
            return ActionResult.ignore(state, "timer already running or session over")
        return ActionResult.success_with_state(started, changes=["Timer started"])

    def _handle_flip(self, state: GameSession, action: Action) -> ActionResult:
        """Flip a card; resolve in the same step if the selection fills."""
        index = action.card_index if action.card_index is not None else -1
        reason = self.flips.rejection_reason(state, index)
        if reason:
            return ActionResult.ignore(state, reason)

        now = action.timestamp or 0
        new_state = self.timer.start(state, now)
        new_state = self.flips.flip(new_state, index)
        events = [GameEvent.FLIPPED]

        if self.flips.is_full(new_state):
            result = self.resolver.resolve(new_state, now, events)
            result.state_changes.insert(0, f"Flipped card {index}")
            return result

        return ActionResult.success_with_state(
            new_state,
            changes=[f"Flipped card {index}"],
            events=events,
        )

    def _handle_resolve_mismatch(self, state: GameSession, action: Action) -> ActionResult:
        return self.resolver.rollback(state)

    def _handle_clear_highlight(self, state: GameSession, action: Action) -> ActionResult:
        if not state.highlighted:
            return ActionResult.ignore(state, "nothing highlighted")
        pair = action.params.get("pair")
        if pair and tuple(pair) != state.highlighted:
            return ActionResult.ignore(state, "a newer pair is highlighted")
        return ActionResult.success_with_state(state._copy_with(highlighted=()))


def apply_action(state: GameSession | None, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer with the default rules and applies the action.
    """
    return Reducer().apply(state, action)
