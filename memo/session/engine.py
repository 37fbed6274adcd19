"""
Game Engine - Drives one table of the memory game.

The engine:
1. Loads saved settings, names and records on start
2. Turns UI intents into reducer actions, one at a time
3. Hands deferred actions to the scheduler
4. Plays sounds and haptics for reducer events
5. Runs the completion sequence when the board is cleared
6. Publishes a snapshot to subscribers after every change

Persistence never holds up a state transition: the new state is
installed first and saving is awaited afterwards. A failed save leaves
cards, scores and turn untouched and queues a retryable notice.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import logging
import random

from ..engine_core.state import (
    Card,
    GameSession,
    GameSettings,
    GameStats,
    Player,
    SessionStatus,
    default_players,
    NAME_MAX_LENGTH,
)
from ..engine_core.action import Action, ActionResult, GameEvent
from ..engine_core.deck import DeckGenerator
from ..engine_core.reducer import Reducer
from ..engine_core.scoring import WinnerReport, OutcomeKind
from ..engine_core.timer import BestTimeOutcome
from ..services.audio import SoundManager
from ..services.errors import (
    ErrorHandler,
    GameStateError,
    StorageError,
    LOAD_MESSAGE,
)
from ..services.haptics import HapticFeedback, Pulse
from ..storage.repository import GameRepository
from ..storage.store import InMemoryStore
from .scheduler import Scheduler, AsyncioScheduler, system_clock
from .settings import SettingsController, DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionReport:
    """What the UI shows when the board is cleared."""
    generation: int
    duration_ms: int
    winner: WinnerReport
    is_new_best: bool = False
    stats: GameStats | None = None  # Solo games only


@dataclass(frozen=True)
class EngineSnapshot:
    """Everything a renderer needs, at one instant."""
    cards: tuple[Card, ...]
    players: tuple[Player, ...]
    current_player_index: int
    status: SessionStatus
    settings: GameSettings
    stats: GameStats
    generation: int
    selection: tuple[int, ...] = ()
    highlighted: tuple[int, ...] = ()
    elapsed_ms: int = 0
    completion: CompletionReport | None = None


Listener = Callable[[EngineSnapshot], None]


@dataclass
class GameEngine:
    """
    The main game driver.

    Usage:
        engine = GameEngine(repository=GameRepository(JsonFileStore()))
        await engine.start()

        await engine.flip_card(3)
        await engine.flip_card(11)

        await engine.apply_settings(player_count=2, theme="Food")

    Deferred actions run on the event loop by default. Tests and the CLI
    inject a ManualScheduler and advance it themselves.
    """
    repository: GameRepository = field(default_factory=lambda: GameRepository(InMemoryStore()))
    scheduler: Scheduler = field(default_factory=AsyncioScheduler)
    clock: Callable[[], int] = system_clock
    rng: random.Random = field(default_factory=random.Random)
    error_handler: ErrorHandler = field(default_factory=ErrorHandler)
    sounds: SoundManager | None = None
    haptics: HapticFeedback = field(default_factory=HapticFeedback)
    reducer: Reducer = field(default_factory=Reducer)

    state: GameSession | None = None
    settings: GameSettings = DEFAULT_SETTINGS
    stats: GameStats = field(default_factory=GameStats)
    last_completion: CompletionReport | None = None

    _listeners: list[Listener] = field(default_factory=list)
    _started: bool = False

    def __post_init__(self):
        if self.sounds is None:
            self.sounds = SoundManager(error_handler=self.error_handler)
        self.score_tracker = self.reducer.resolver.scores
        self.controller = SettingsController(
            repository=self.repository,
            deck=DeckGenerator(self.rng),
            error_handler=self.error_handler,
            scores=self.score_tracker,
            turns=self.reducer.resolver.turns,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> EngineSnapshot:
        """Load what was saved and deal the first session."""
        self.sounds.load_sounds()

        saved = await self._load_settings()
        self.settings = self.controller.normalize(saved.player_count, saved.theme)
        names = await self._load_player_names()
        self.stats = await self._load_stats()

        players = tuple(
            p.renamed(names.get(p.id, p.name))
            for p in default_players(self.settings.player_count)
        )
        self._install(self.controller.new_session(self.settings, players, self.state))
        self._started = True
        return self.snapshot()

    async def shutdown(self) -> None:
        self.sounds.unload_sounds()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def _load_settings(self) -> GameSettings:
        try:
            return await self.repository.load_settings() or DEFAULT_SETTINGS
        except GameStateError as e:
            self.error_handler.handle_game_state_error(e)
        except StorageError as e:
            self.error_handler.handle_storage_error(e, retry_action=self._reload_settings, message=LOAD_MESSAGE)
        return DEFAULT_SETTINGS

    async def _load_player_names(self) -> dict[int, str]:
        try:
            return await self.repository.load_player_names()
        except GameStateError as e:
            self.error_handler.handle_game_state_error(e)
        except StorageError as e:
            self.error_handler.handle_storage_error(e, retry_action=self._reload_player_names, message=LOAD_MESSAGE)
        return {}

    async def _load_stats(self) -> GameStats:
        try:
            return await self.repository.load_stats()
        except GameStateError as e:
            self.error_handler.handle_game_state_error(e)
        except StorageError as e:
            self.error_handler.handle_storage_error(e, retry_action=self._reload_stats, message=LOAD_MESSAGE)
        return GameStats()

    async def _reload_settings(self) -> None:
        saved = await self.repository.load_settings()
        if saved is not None and saved != self.settings:
            self._replace_session(*self.controller.apply_settings(self.state, saved.player_count, saved.theme))

    async def _reload_player_names(self) -> None:
        names = await self.repository.load_player_names()
        for player in self.state.players:
            if player.id in names:
                self._set_state(self.state.with_player(player.renamed(names[player.id])))

    async def _reload_stats(self) -> None:
        self.stats = await self.repository.load_stats()
        self._notify()

    # =========================================================================
    # Intents
    # =========================================================================

    async def flip_card(self, index: int) -> ActionResult:
        """Flip a card. Disallowed flips are ignored without error."""
        result = self.dispatch(Action.flip(index, timestamp=self.clock()))
        if result.success and GameEvent.GAME_OVER in result.events:
            await self._complete(result.new_state)
        return result

    async def reset_game(self) -> EngineSnapshot:
        """Play again with the same settings and names."""
        players = self.controller.players_for(self.settings.player_count, self.state.players if self.state else None)
        self._install(self.controller.new_session(self.settings, players, self.state))
        return self.snapshot()

    async def apply_settings(self, player_count: int, theme) -> EngineSnapshot:
        settings, session = self.controller.apply_settings(self.state, player_count, theme)
        self._replace_session(settings, session)
        await self.controller.persist_settings(settings)
        return self.snapshot()

    async def edit_player_name(self, player_id: int, name: str) -> bool:
        """
        Rename a player.

        The name is saved first and only then shown; a failed save
        leaves the old name in place and queues a retry. Empty names and
        names over NAME_MAX_LENGTH characters are refused.
        """
        name = (name or "").strip()
        if not name or len(name) > NAME_MAX_LENGTH or self.state is None:
            return False
        if not any(p.id == player_id for p in self.state.players):
            raise KeyError(player_id)

        async def save_and_apply():
            updated = tuple(p.renamed(name) if p.id == player_id else p for p in self.state.players)
            await self.repository.save_players(updated)
            player = next((p for p in self.state.players if p.id == player_id), None)
            if player is not None:
                self._set_state(self.state.with_player(player.renamed(name)))

        try:
            await save_and_apply()
        except StorageError as e:
            self.error_handler.handle_storage_error(e, retry_action=save_and_apply)
            return False
        return True

    async def reset_all_data(self) -> bool:
        """Wipe saved names, records and settings, then start over from defaults."""
        ok = await self.controller.reset_all_data(retry_action=self._clear_and_reset)
        if ok:
            self._reset_to_defaults()
        return ok

    async def _clear_and_reset(self) -> None:
        await self.repository.clear_all()
        self._reset_to_defaults()

    def _reset_to_defaults(self) -> None:
        self.stats = GameStats()
        self.last_completion = None
        self._replace_session(
            DEFAULT_SETTINGS,
            self.controller.new_session(DEFAULT_SETTINGS, default_players(DEFAULT_SETTINGS.player_count), self.state),
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, action: Action) -> ActionResult:
        """Apply one action and carry out its consequences."""
        result = self.reducer.apply(self.state, action)

        if not result.success:
            logger.warning("Action %s failed: %s", action.action_type.value, result.error)
            return result
        if result.ignored:
            logger.debug("Action %s ignored: %s", action.action_type.value, result.reason)
            return result

        self.state = result.new_state
        for change in result.state_changes:
            logger.debug(change)

        for scheduled in result.scheduled:
            self.scheduler.call_later(scheduled.delay_ms, self._deferred(scheduled.action))

        self._play_events(result.events)
        self._notify()
        return result

    def _deferred(self, action: Action) -> Callable[[], None]:
        def run():
            self.dispatch(action)
        return run

    def _install(self, session: GameSession) -> None:
        """Replace the session and start its clock."""
        self.dispatch(Action.start_session(session))
        self.dispatch(Action.start_timer(self.clock()))

    def _replace_session(self, settings: GameSettings, session: GameSession) -> None:
        self.settings = settings
        self._install(session)

    def _set_state(self, session: GameSession) -> None:
        self.state = session
        self._notify()

    def _play_events(self, events: list[GameEvent]) -> None:
        for event in events:
            if event == GameEvent.FLIPPED:
                self.sounds.play_sound("flip")
            elif event == GameEvent.MATCHED:
                self.sounds.play_sound("match")
                self.haptics.pulse(Pulse.SUCCESS)
            elif event == GameEvent.MISMATCHED:
                self.haptics.pulse(Pulse.ERROR)
            elif event == GameEvent.GAME_OVER:
                self.haptics.pulse(Pulse.CELEBRATION)

    # =========================================================================
    # Completion
    # =========================================================================

    async def _complete(self, session: GameSession) -> CompletionReport:
        """
        Run the end-of-game sequence for `session`.

        Uses the duration frozen by the reducer; nothing here recomputes it.
        """
        duration = session.frozen_duration or 0
        verdict = self.score_tracker.winner(session.players)
        logger.info("Session %d over in %dms: %s", session.generation, duration, verdict.headline)

        if session.player_count == 1:
            outcome = await self._record_best_time(duration)
            report = CompletionReport(
                generation=session.generation,
                duration_ms=duration,
                winner=verdict,
                is_new_best=outcome.is_new_best,
                stats=outcome.stats,
            )
            if outcome.is_new_best:
                self.sounds.play_sound("victory")
        else:
            report = CompletionReport(generation=session.generation, duration_ms=duration, winner=verdict)
            if verdict.kind == OutcomeKind.WINNER:
                self.sounds.play_sound("victory")

        self.last_completion = report
        self._notify()
        return report

    async def _record_best_time(self, duration: int) -> BestTimeOutcome:
        try:
            previous = await self.repository.load_stats()
        except GameStateError as e:
            self.error_handler.handle_game_state_error(e)
            previous = GameStats()
        except StorageError as e:
            logger.error("Could not read saved stats, using in-memory: %s", e)
            previous = self.stats

        outcome = self.reducer.timer.record(previous, duration)
        self.stats = outcome.stats

        try:
            await self.repository.save_stats(outcome.stats)
        except StorageError as e:
            async def save_again():
                await self.repository.save_stats(outcome.stats)

            self.error_handler.handle_storage_error(e, retry_action=save_again)
        return outcome

    # =========================================================================
    # Observation
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with a snapshot after every change. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        if self.state is None:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")

    def snapshot(self) -> EngineSnapshot:
        if self.state is None:
            raise RuntimeError("Engine not started")
        session = self.state
        completion = self.last_completion
        if completion is not None and completion.generation != session.generation:
            completion = None
        return EngineSnapshot(
            cards=session.cards,
            players=session.players,
            current_player_index=session.current_player_index,
            status=session.status,
            settings=self.settings,
            stats=self.stats,
            generation=session.generation,
            selection=session.selection,
            highlighted=session.highlighted,
            elapsed_ms=session.elapsed(self.clock()),
            completion=completion,
        )
