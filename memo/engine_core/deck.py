"""
Deck Generator - Builds a shuffled deck of paired cards for a theme.

This module handles:
- Resolving a theme to an emoji pool
- Duplicating the pool into pairs
- Shuffling with a seeded RNG for determinism

The shuffle is Python's Fisher-Yates (`random.Random.shuffle`),
so every permutation of the deck is equally likely.
"""

from __future__ import annotations
import random

from .state import Card, Theme, PAIR_COUNT


EMOJI_SETS: dict[Theme, tuple[str, ...]] = {
    Theme.ANIMALS: ("🐶", "🐱", "🐭", "🐹", "🐰", "🦊", "🐻", "🐼", "🦁", "🐯"),
    Theme.FOOD: ("🍕", "🍔", "🌭", "🍟", "🌮", "🍜", "🍱", "🍎", "🍫", "🍦"),
}

# Themes backed by a fixed pool (the others pick from these)
FIXED_THEMES = tuple(EMOJI_SETS)


class DeckGenerator:
    """
    Generates decks from a seeded RNG.

    Usage:
        generator = DeckGenerator(random.Random(42))
        cards = generator.generate(Theme.FOOD)
    """

    def __init__(self, rng: random.Random | None = None, pair_count: int = PAIR_COUNT):
        self.rng = rng or random.Random()
        self.pair_count = pair_count

    def theme_pool(self, theme: Theme | str | None) -> list[str]:
        """
        Resolve a theme to the emoji that will be paired.

        Unknown themes fall back to Animals.
        """
        resolved = Theme.parse(theme) or Theme.ANIMALS

        if resolved == Theme.RANDOM:
            picked = self.rng.choice(FIXED_THEMES)
            return list(EMOJI_SETS[picked])

        if resolved == Theme.MIXED:
            union = [emoji for t in FIXED_THEMES for emoji in EMOJI_SETS[t]]
            return self.rng.sample(union, self.pair_count)

        return list(EMOJI_SETS[resolved])

    def generate(self, theme: Theme | str | None) -> tuple[Card, ...]:
        """Build a full deck: every emoji twice, shuffled, ids 0..2k-1."""
        return build_deck(self.theme_pool(theme), self.rng)


def build_deck(pool: list[str], rng: random.Random) -> tuple[Card, ...]:
    """Pair up `pool`, shuffle, then number the cards in their new order."""
    entries = pool + pool
    rng.shuffle(entries)
    return tuple(Card(id=i, emoji=emoji) for i, emoji in enumerate(entries))
