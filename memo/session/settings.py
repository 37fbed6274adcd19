"""
Settings Controller - Player count, theme, and wiping saved data.

Applying settings always produces a brand-new session:
- player count clamped to 1..4, unknown themes read as Animals
- fresh deck for the theme
- players rebuilt with default names if the count changed
  (custom names are dropped on a count change), otherwise kept
- turn, scores and timer reset, generation bumped

The new session never waits on persistence. Saving the settings happens
afterwards, and a failed save only produces a retryable notice.
"""

from __future__ import annotations
import logging

from ..engine_core.state import (
    GameSession,
    GameSettings,
    Player,
    Theme,
    default_players,
    MIN_PLAYERS,
    MAX_PLAYERS,
)
from ..engine_core.deck import DeckGenerator
from ..engine_core.scoring import ScoreTracker
from ..engine_core.turns import TurnManager
from ..services.errors import ErrorHandler, RetryAction, SettingsError, StorageError
from ..storage.repository import GameRepository

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS = GameSettings(player_count=1, theme=Theme.ANIMALS)
RESET_FAILED_MESSAGE = "Failed to reset game data. Please try again."


class SettingsController:

    def __init__(
        self,
        repository: GameRepository,
        deck: DeckGenerator | None = None,
        error_handler: ErrorHandler | None = None,
        scores: ScoreTracker | None = None,
        turns: TurnManager | None = None,
    ):
        self.repository = repository
        self.deck = deck or DeckGenerator()
        self.error_handler = error_handler or ErrorHandler()
        self.scores = scores or ScoreTracker()
        self.turns = turns or TurnManager()

    def normalize(self, player_count: int, theme: Theme | str | None) -> GameSettings:
        """Clamp and default at the boundary; never raises."""
        count = min(max(player_count, MIN_PLAYERS), MAX_PLAYERS)
        if count != player_count:
            self.error_handler.handle_settings_error(
                SettingsError(f"Player count {player_count} clamped to {count}")
            )

        resolved = Theme.parse(theme)
        if resolved is None:
            self.error_handler.handle_settings_error(
                SettingsError(f"Unknown theme {theme!r}, using {Theme.ANIMALS.value}")
            )
            resolved = Theme.ANIMALS

        return GameSettings(player_count=count, theme=resolved)

    def players_for(
        self,
        player_count: int,
        current: tuple[Player, ...] | None,
    ) -> tuple[Player, ...]:
        """Keep the current seats if the count is unchanged, else start over."""
        if current is not None and len(current) == player_count:
            return tuple(p.with_score(0) for p in current)
        return default_players(player_count)

    def new_session(
        self,
        settings: GameSettings,
        players: tuple[Player, ...],
        previous: GameSession | None = None,
    ) -> GameSession:
        """
        Build a fresh session: new deck, zero scores, player 0 to move.

        The timer is left unstamped; the engine starts it on install.
        """
        generation = previous.generation + 1 if previous is not None else 1
        session = GameSession(
            cards=self.deck.generate(settings.theme),
            players=tuple(players),
            theme=settings.theme,
            generation=generation,
        )
        return self.turns.reset(self.scores.reset(session))

    def apply_settings(
        self,
        current: GameSession | None,
        player_count: int,
        theme: Theme | str | None,
    ) -> tuple[GameSettings, GameSession]:
        settings = self.normalize(player_count, theme)
        players = self.players_for(
            settings.player_count,
            current.players if current is not None else None,
        )
        session = self.new_session(settings, players, previous=current)
        logger.info(
            "Applied settings: %d player(s), %s (generation %d)",
            settings.player_count, settings.theme.value, session.generation,
        )
        return settings, session

    async def persist_settings(self, settings: GameSettings) -> bool:
        """Save settings; on failure queue a retryable notice."""
        try:
            await self.repository.save_settings(settings)
        except StorageError as e:
            async def save_again():
                await self.repository.save_settings(settings)

            self.error_handler.handle_storage_error(e, retry_action=save_again)
            return False
        return True

    async def reset_all_data(self, retry_action: RetryAction | None = None) -> bool:
        """
        Remove every saved key. The caller resets in-memory state on success.

        `retry_action` defaults to clearing storage again; the engine
        passes its full reset so a successful retry also resets the game.
        """
        try:
            await self.repository.clear_all()
        except StorageError as e:
            self.error_handler.handle_storage_error(
                e,
                retry_action=retry_action or self.repository.clear_all,
                message=RESET_FAILED_MESSAGE,
            )
            return False
        logger.info("All saved game data removed")
        return True
