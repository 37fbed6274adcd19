"""
Flip State Machine - Per-card visibility and the selection buffer.

Card states:
    HIDDEN -> FLIPPED -> MATCHED   (terminal)
    FLIPPED -> HIDDEN              (mismatch rollback)

The selection buffer holds at most two indices. Once full it is locked
until the resolver clears it; flips arriving in the meantime are
dropped, never queued.
"""

from __future__ import annotations

from .state import GameSession, CardFace


SELECTION_CAPACITY = 2


class FlipStateMachine:
    """Stateless rules for accepting or rejecting a flip."""

    capacity = SELECTION_CAPACITY

    def rejection_reason(self, session: GameSession, index: int) -> str | None:
        """
        Why a flip at `index` would be ignored, or None if it is allowed.

        None of these are errors; the caller drops the request silently.
        """
        if session.is_over:
            return "session is over"
        if len(session.selection) >= self.capacity:
            return "selection is locked"
        if index < 0 or index >= len(session.cards):
            return f"no card at index {index}"

        face = session.cards[index].face
        if face == CardFace.MATCHED:
            return "card already matched"
        if face == CardFace.FLIPPED:
            return "card already flipped"
        return None

    def can_flip(self, session: GameSession, index: int) -> bool:
        return self.rejection_reason(session, index) is None

    def request_flip(self, session: GameSession, index: int) -> GameSession:
        """Flip if allowed; otherwise return `session` unchanged."""
        if not self.can_flip(session, index):
            return session
        return self.flip(session, index)

    def flip(self, session: GameSession, index: int) -> GameSession:
        """Turn the card face up and append it to the selection."""
        card = session.cards[index].flipped()
        return session.with_card(index, card)._copy_with(
            selection=session.selection + (index,),
        )

    def is_full(self, session: GameSession) -> bool:
        return len(session.selection) >= self.capacity
