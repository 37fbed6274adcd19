"""
Match Resolver - Decides what a full selection means.

Runs exactly once per full selection:
- Match: cards locked in, current player scores, selection cleared
  at once, same player goes again. A cosmetic highlight is set and a
  clear is scheduled.
- Mismatch: nothing changes yet. A rollback tagged with the session
  generation is scheduled; when it fires the cards are hidden again,
  the selection clears and the turn passes.

After a match that completes the board the session is over and the
timer is frozen.
"""

from __future__ import annotations

from .state import GameSession, SessionStatus
from .action import (
    Action,
    ActionResult,
    GameEvent,
    ScheduledAction,
    MISMATCH_DELAY_MS,
    MATCH_HIGHLIGHT_MS,
)
from .scoring import ScoreTracker
from .turns import TurnManager
from .timer import TimerService


class MatchResolver:

    def __init__(
        self,
        scores: ScoreTracker | None = None,
        turns: TurnManager | None = None,
        timer: TimerService | None = None,
        mismatch_delay_ms: int = MISMATCH_DELAY_MS,
        highlight_ms: int = MATCH_HIGHLIGHT_MS,
    ):
        self.scores = scores or ScoreTracker()
        self.turns = turns or TurnManager()
        self.timer = timer or TimerService()
        self.mismatch_delay_ms = mismatch_delay_ms
        self.highlight_ms = highlight_ms

    def resolve(self, session: GameSession, now: int, events: list[GameEvent]) -> ActionResult:
        """Evaluate a full selection."""
        first, second = session.selection
        a, b = session.cards[first], session.cards[second]

        if a.emoji == b.emoji:
            return self._match(session, first, second, now, events)
        return self._mismatch(session, events)

    def _match(
        self,
        session: GameSession,
        first: int,
        second: int,
        now: int,
        events: list[GameEvent],
    ) -> ActionResult:
        scorer = session.current_player
        state = session.with_card(first, session.cards[first].matched())
        state = state.with_card(second, state.cards[second].matched())
        state = self.scores.award(state)
        state = state._copy_with(selection=(), highlighted=(first, second))

        events.append(GameEvent.MATCHED)
        changes = [f"{scorer.name} matched {state.cards[first].emoji} ({first} & {second})"]
        scheduled = [
            ScheduledAction(self.highlight_ms, Action.clear_highlight(state.generation, (first, second))),
        ]

        if state.all_matched:
            state = self.timer.freeze(state._copy_with(status=SessionStatus.OVER), now)
            events.append(GameEvent.GAME_OVER)
            changes.append(f"All pairs found in {state.frozen_duration}ms")

        return ActionResult.success_with_state(
            state, changes=changes, events=events, scheduled=scheduled,
        )

    def _mismatch(self, session: GameSession, events: list[GameEvent]) -> ActionResult:
        events.append(GameEvent.MISMATCHED)
        first, second = session.selection
        return ActionResult.success_with_state(
            session,
            changes=[f"No match ({first} & {second})"],
            events=events,
            scheduled=[
                ScheduledAction(
                    self.mismatch_delay_ms,
                    Action.resolve_mismatch(session.generation),
                ),
            ],
        )

    def rollback(self, session: GameSession) -> ActionResult:
        """
        Deferred half of a mismatch: hide both cards and pass the turn.

        The caller has already checked the generation.
        """
        if len(session.selection) < 2:
            return ActionResult.ignore(session, "no pending mismatch")

        state = session
        for index in session.selection:
            card = state.cards[index]
            if not card.is_matched:
                state = state.with_card(index, card.hidden())

        previous = state.current_player
        state = self.turns.advance(state._copy_with(selection=()))

        return ActionResult.success_with_state(
            state,
            changes=[f"Turn passes from {previous.name} to {state.current_player.name}"],
            events=[GameEvent.TURN_PASSED],
        )
