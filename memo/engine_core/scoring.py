"""
Score Tracker - Per-player scores and the end-of-game verdict.

Scores are mutated only by the match path, for the player whose turn it
was when the pair was found.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from .state import GameSession, Player


class OutcomeKind(Enum):
    SOLO = "solo"  # Single player: no comparison, just pairs found
    WINNER = "winner"
    TIE = "tie"


@dataclass(frozen=True)
class WinnerReport:
    """
    Verdict for a finished (or in-progress) game.

    `winners` holds the single winner, every tied player, or the solo
    player. `standings` lists every player in seat order.
    """
    kind: OutcomeKind
    headline: str
    top_score: int
    winners: tuple[Player, ...] = field(default=())
    standings: tuple[Player, ...] = field(default=())

    @property
    def is_tie(self) -> bool:
        return self.kind == OutcomeKind.TIE

    @property
    def winner(self) -> Player | None:
        """The unique winner, if there is one."""
        if self.kind == OutcomeKind.WINNER:
            return self.winners[0]
        return None

    def summary_lines(self) -> list[str]:
        """Human-readable score lines, trophy on a unique winner."""
        if self.kind == OutcomeKind.SOLO:
            return [f"Pairs Found: {self.top_score}"]
        lines = []
        for player in self.standings:
            trophy = "🏆 " if self.winner is not None and player.id == self.winner.id else ""
            lines.append(f"{trophy}{player.name}: {player.score}")
        return lines


class ScoreTracker:

    def award(self, session: GameSession) -> GameSession:
        """Give the current player one point."""
        player = session.current_player
        return session.with_player(player.with_score(player.score + 1))

    def reset(self, session: GameSession) -> GameSession:
        players = tuple(p.with_score(0) for p in session.players)
        return session._copy_with(players=players)

    def winner(self, players: tuple[Player, ...] | list[Player]) -> WinnerReport:
        """
        Compute the verdict.

        Single player: report completion with the sole score.
        Multiplayer: unique max wins, otherwise everyone on the max ties.
        """
        players = tuple(players)
        if not players:
            raise ValueError("winner() needs at least one player")

        if len(players) == 1:
            solo = players[0]
            return WinnerReport(
                kind=OutcomeKind.SOLO,
                headline="Game Complete!",
                top_score=solo.score,
                winners=players,
                standings=players,
            )

        top_score = max(p.score for p in players)
        leaders = tuple(p for p in players if p.score == top_score)

        if len(leaders) > 1:
            return WinnerReport(
                kind=OutcomeKind.TIE,
                headline="It's a tie!",
                top_score=top_score,
                winners=leaders,
                standings=players,
            )

        return WinnerReport(
            kind=OutcomeKind.WINNER,
            headline=f"{leaders[0].name} wins!",
            top_score=top_score,
            winners=leaders,
            standings=players,
        )
