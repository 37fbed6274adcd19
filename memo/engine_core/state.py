"""
Game State - Cards, players and the session they belong to.

Design principles:
- Immutable-friendly: all mutations return new state
- Serializable: settings and stats round-trip through the repository
- Generation-tagged: every full session replacement bumps `generation`
  so deferred callbacks can tell whether they are still current
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum


PAIR_COUNT = 10
MIN_PLAYERS = 1
MAX_PLAYERS = 4
NAME_MAX_LENGTH = 20


class SessionStatus(Enum):
    """Lifecycle of a single session. There is no OVER -> ACTIVE edge."""
    ACTIVE = "active"
    OVER = "over"


class CardFace(Enum):
    """Visibility state of one card."""
    HIDDEN = "hidden"
    FLIPPED = "flipped"
    MATCHED = "matched"


class Theme(Enum):
    """Named emoji pools a deck can be drawn from."""
    ANIMALS = "Animals"
    FOOD = "Food"
    RANDOM = "Random"
    MIXED = "Mixed"

    @classmethod
    def parse(cls, value: Theme | str | None) -> Theme | None:
        """Resolve a theme by value or name, case-insensitively. None if unknown."""
        if isinstance(value, Theme):
            return value
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for theme in cls:
            if theme.value.lower() == wanted or theme.name.lower() == wanted:
                return theme
        return None


@dataclass(frozen=True)
class Card:
    """
    A card on the table.

    `id` is the card's position-independent identity (0..2n-1), assigned
    after shuffling. Two cards per session share each emoji.
    """
    id: int
    emoji: str
    is_flipped: bool = False
    is_matched: bool = False

    @property
    def face(self) -> CardFace:
        if self.is_matched:
            return CardFace.MATCHED
        if self.is_flipped:
            return CardFace.FLIPPED
        return CardFace.HIDDEN

    def flipped(self) -> Card:
        return replace(self, is_flipped=True)

    def hidden(self) -> Card:
        return replace(self, is_flipped=False)

    def matched(self) -> Card:
        return replace(self, is_flipped=True, is_matched=True)


@dataclass(frozen=True)
class Player:
    """A seat at the table. Ids are 1-based, names are user-editable."""
    id: int
    name: str
    score: int = 0

    def with_score(self, score: int) -> Player:
        return replace(self, score=score)

    def renamed(self, name: str) -> Player:
        return replace(self, name=name)

    @classmethod
    def default(cls, seat: int) -> Player:
        """Default player for a 0-based seat index."""
        return cls(id=seat + 1, name=f"Player {seat + 1}")


def default_players(count: int) -> tuple[Player, ...]:
    return tuple(Player.default(i) for i in range(count))


@dataclass(frozen=True)
class GameSettings:
    """Player count and deck theme chosen by the user."""
    player_count: int = MIN_PLAYERS
    theme: Theme = Theme.ANIMALS


@dataclass(frozen=True)
class GameStats:
    """Solo-play records. Durations are milliseconds."""
    best_time: int | None = None
    last_game_time: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.best_time is None and self.last_game_time is None


@dataclass(frozen=True)
class GameSession:
    """
    Complete state of one game at a point in time.

    This is the canonical state the reducer operates on.
    `selection` is the ordered buffer of flipped-but-unresolved card
    indices (capacity 2). `highlighted` is the cosmetic "just matched"
    pair and has no bearing on the rules.
    """
    cards: tuple[Card, ...]
    players: tuple[Player, ...]
    theme: Theme = Theme.ANIMALS
    selection: tuple[int, ...] = ()
    current_player_index: int = 0
    started_at: int | None = None
    frozen_duration: int | None = None
    status: SessionStatus = SessionStatus.ACTIVE
    generation: int = 0
    highlighted: tuple[int, ...] = field(default=())

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def is_over(self) -> bool:
        return self.status == SessionStatus.OVER

    @property
    def is_locked(self) -> bool:
        """True while a full selection is awaiting resolution."""
        return len(self.selection) >= 2

    @property
    def all_matched(self) -> bool:
        return bool(self.cards) and all(c.is_matched for c in self.cards)

    @property
    def matched_pairs(self) -> int:
        return sum(1 for c in self.cards if c.is_matched) // 2

    @property
    def scores(self) -> tuple[int, ...]:
        return tuple(p.score for p in self.players)

    def face_up_count(self) -> int:
        """Cards that are flipped but not yet matched."""
        return sum(1 for c in self.cards if c.is_flipped and not c.is_matched)

    def elapsed(self, now: int) -> int:
        """Elapsed play time in ms; frozen once the session is over."""
        if self.frozen_duration is not None:
            return self.frozen_duration
        if self.started_at is None:
            return 0
        return max(0, now - self.started_at)

    def with_card(self, index: int, card: Card) -> GameSession:
        """Return new session with one card replaced."""
        cards = list(self.cards)
        cards[index] = card
        return self._copy_with(cards=tuple(cards))

    def with_player(self, player: Player) -> GameSession:
        """Return new session with updated player (matched by id)."""
        players = tuple(player if p.id == player.id else p for p in self.players)
        return self._copy_with(players=players)

    def _copy_with(self, **kwargs) -> GameSession:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)
