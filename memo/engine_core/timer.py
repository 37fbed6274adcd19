"""
Timer Service - Session start, elapsed time, and the best-time policy.

`started_at` is stamped lazily the first time an active session has no
start time. On game over the duration is frozen exactly once; nothing
recomputes it afterwards, even while completion bookkeeping is still
in flight.
"""

from __future__ import annotations
from dataclasses import dataclass

from .state import GameSession, GameStats, SessionStatus


@dataclass(frozen=True)
class BestTimeOutcome:
    """Result of folding one finished solo game into the records."""
    duration: int
    is_new_best: bool
    stats: GameStats


class TimerService:

    def start(self, session: GameSession, now: int) -> GameSession:
        """Stamp the start time if the session is active and unstamped."""
        if session.status != SessionStatus.ACTIVE or session.started_at is not None:
            return session
        return session._copy_with(started_at=now)

    def freeze(self, session: GameSession, now: int) -> GameSession:
        """
        Compute the final duration.

        A session that never got a start time counts as zero.
        Already-frozen sessions are returned unchanged.
        """
        if session.frozen_duration is not None:
            return session
        started = session.started_at if session.started_at is not None else now
        return session._copy_with(frozen_duration=max(0, now - started))

    def record(self, previous: GameStats, duration: int) -> BestTimeOutcome:
        """Apply the best-time rule: strictly faster (or first) is a new best."""
        is_new_best = previous.best_time is None or duration < previous.best_time
        stats = GameStats(
            best_time=duration if is_new_best else previous.best_time,
            last_game_time=duration,
        )
        return BestTimeOutcome(duration=duration, is_new_best=is_new_best, stats=stats)


def format_duration(ms: int | None) -> str:
    """Render milliseconds as m:ss.cc ("--" when unknown)."""
    if ms is None:
        return "--"
    total_seconds = ms // 1000
    minutes = total_seconds // 60
    seconds = total_seconds % 60
    centis = (ms % 1000) // 10
    return f"{minutes}:{seconds:02d}.{centis:02d}"
