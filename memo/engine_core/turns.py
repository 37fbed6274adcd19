"""
Turn Manager - Whose turn it is.

The turn only passes on a mismatch; a player who finds a pair goes again.
"""

from __future__ import annotations

from .state import GameSession


class TurnManager:

    def advance(self, session: GameSession) -> GameSession:
        """Pass the turn to the next seat, wrapping around."""
        next_index = (session.current_player_index + 1) % session.player_count
        return session._copy_with(current_player_index=next_index)

    def reset(self, session: GameSession) -> GameSession:
        return session._copy_with(current_player_index=0)
