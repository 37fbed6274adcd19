"""
Pytest fixtures for Memo tests.
"""

import asyncio
import random
from collections import defaultdict
from typing import Any, Iterable

import pytest

from ..engine_core.state import Card, GameSession, Theme, default_players
from ..engine_core.deck import DeckGenerator
from ..services.audio import AudioBackend, SoundManager
from ..services.errors import ErrorHandler, StorageError
from ..services.haptics import HapticBackend, HapticFeedback, Pulse
from ..session import GameEngine, ManualClock, ManualScheduler
from ..storage import GameRepository, InMemoryStore, KeyValueStore


START_MS = 1_000_000


def run(coro):
    """Drive a coroutine to completion."""
    return asyncio.run(coro)


def pair_indices(cards: Iterable[Card]) -> list[tuple[int, int]]:
    """Index pairs sharing an emoji, in order of first appearance."""
    seen: dict[str, list[int]] = defaultdict(list)
    for i, card in enumerate(cards):
        seen[card.emoji].append(i)
    return [tuple(indices) for indices in seen.values()]


def mismatch_indices(cards: list[Card] | tuple[Card, ...]) -> tuple[int, int]:
    """Two unmatched indices holding different emoji."""
    first = next(i for i, c in enumerate(cards) if not c.is_matched)
    second = next(
        i for i, c in enumerate(cards)
        if not c.is_matched and c.emoji != cards[first].emoji
    )
    return first, second


def arrange_pair(cards: tuple[Card, ...], a: int, b: int) -> tuple[Card, ...]:
    """Swap cards so positions `a` and `b` hold the same emoji; ids stay positional."""
    cards = list(cards)
    twin = next(i for i, c in enumerate(cards) if c.emoji == cards[a].emoji and i != a)
    cards[b], cards[twin] = cards[twin], cards[b]
    return tuple(Card(id=i, emoji=c.emoji) for i, c in enumerate(cards))


def make_session(
    player_count: int = 1,
    theme: Theme = Theme.ANIMALS,
    seed: int = 7,
    generation: int = 1,
    started_at: int | None = START_MS,
) -> GameSession:
    return GameSession(
        cards=DeckGenerator(random.Random(seed)).generate(theme),
        players=default_players(player_count),
        theme=theme,
        generation=generation,
        started_at=started_at,
    )


class RecordingAudioBackend(AudioBackend):

    def __init__(self, missing: set[str] | None = None, fail_play: bool = False):
        self.missing = missing or set()
        self.fail_play = fail_play
        self.played: list[str] = []
        self.unloaded: list[str] = []

    def load(self, name: str, path: str) -> Any:
        if name in self.missing:
            raise FileNotFoundError(path)
        return name

    def play(self, handle: Any) -> None:
        if self.fail_play:
            raise RuntimeError("audio device gone")
        self.played.append(handle)

    def unload(self, handle: Any) -> None:
        self.unloaded.append(handle)


class RecordingHapticBackend(HapticBackend):

    def __init__(self):
        self.pulses: list[Pulse] = []

    def pulse(self, kind: Pulse) -> None:
        self.pulses.append(kind)


class FailingStore(KeyValueStore):
    """In-memory store whose operations can be made to fail."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.inner = InMemoryStore(initial)
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False

    @property
    def data(self) -> dict[str, str]:
        return self.inner.data

    async def get(self, key: str) -> str | None:
        if self.fail_get:
            raise StorageError(f"read {key} failed")
        return await self.inner.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_set:
            raise StorageError(f"write {key} failed")
        await self.inner.set(key, value)

    async def remove(self, keys) -> None:
        if self.fail_remove:
            raise StorageError("remove failed")
        await self.inner.remove(keys)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_MS)


@pytest.fixture
def scheduler(clock: ManualClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def audio() -> RecordingAudioBackend:
    return RecordingAudioBackend()


@pytest.fixture
def haptics() -> RecordingHapticBackend:
    return RecordingHapticBackend()


@pytest.fixture
def make_engine(clock, scheduler, store, audio, haptics):
    """Factory for engines wired to the shared fakes (not yet started)."""
    def factory(seed: int = 7) -> GameEngine:
        handler = ErrorHandler()
        return GameEngine(
            repository=GameRepository(store),
            scheduler=scheduler,
            clock=clock,
            rng=random.Random(seed),
            error_handler=handler,
            sounds=SoundManager(audio, handler),
            haptics=HapticFeedback(haptics),
        )
    return factory


@pytest.fixture
def engine(make_engine) -> GameEngine:
    """A started engine with default settings (1 player, Animals)."""
    engine = make_engine()
    run(engine.start())
    return engine


async def clear_board(engine: GameEngine, advance=None):
    """Flip every pair in order; returns the last flip result."""
    result = None
    for first, second in pair_indices(engine.state.cards):
        await engine.flip_card(first)
        if advance:
            advance()
        result = await engine.flip_card(second)
    return result
