"""
Tests for the game engine.

Tests:
- Startup from saved data
- Deferred mismatch and highlight through the scheduler
- Completion, best times and victory sound
- Stale timers across session replacement
- Sound and haptic side effects
"""

import asyncio
import json
import random

from ..engine_core.action import MISMATCH_DELAY_MS, MATCH_HIGHLIGHT_MS
from ..engine_core.reducer import Reducer
from ..engine_core.resolver import MatchResolver
from ..engine_core.state import CardFace, SessionStatus, Theme
from ..services.audio import SoundManager
from ..services.errors import ErrorHandler, ErrorType, SoundError
from ..services.haptics import Pulse
from ..session import AsyncioScheduler, GameEngine
from ..storage import PLAYERS_KEY, SETTINGS_KEY, STATS_KEY
from .conftest import START_MS, RecordingAudioBackend, clear_board, mismatch_indices, pair_indices, run


class TestStartup:

    def test_defaults_without_saved_data(self, engine):
        snapshot = engine.snapshot()

        assert snapshot.settings.player_count == 1
        assert snapshot.settings.theme == Theme.ANIMALS
        assert [p.name for p in snapshot.players] == ["Player 1"]
        assert snapshot.status == SessionStatus.ACTIVE
        assert len(snapshot.cards) == 20
        assert engine.state.started_at == START_MS
        assert snapshot.stats.best_time is None

    def test_loads_settings_names_and_stats(self, make_engine, store):
        store.data[SETTINGS_KEY] = json.dumps({"playerCount": 3, "cardTheme": "Food"})
        store.data[PLAYERS_KEY] = json.dumps([{"id": 2, "name": "Bo", "score": 4}])
        store.data[STATS_KEY] = json.dumps({"bestTime": 40_000, "lastGameTime": 52_000})

        engine = make_engine()
        run(engine.start())
        snapshot = engine.snapshot()

        assert snapshot.settings.player_count == 3
        assert snapshot.settings.theme == Theme.FOOD
        assert [p.name for p in snapshot.players] == ["Player 1", "Bo", "Player 3"]
        assert all(p.score == 0 for p in snapshot.players)
        assert snapshot.stats.best_time == 40_000

    def test_corrupt_settings_fall_back(self, make_engine, store):
        store.data[SETTINGS_KEY] = "{not json"
        store.data[STATS_KEY] = json.dumps({"bestTime": 40_000, "lastGameTime": None})

        engine = make_engine()
        run(engine.start())

        assert engine.settings.player_count == 1
        assert engine.stats.best_time == 40_000
        types = [n.error_type for n in engine.error_handler.notices]
        assert types == [ErrorType.GAME_STATE]

    def test_saved_count_out_of_range_is_clamped(self, make_engine, store):
        store.data[SETTINGS_KEY] = json.dumps({"playerCount": 9, "cardTheme": "Mixed"})
        engine = make_engine()
        run(engine.start())
        assert engine.settings.player_count == 4
        assert engine.error_handler.notices == []

    def test_unreadable_store_starts_with_defaults(self, make_engine, store):
        store.fail_get = True
        engine = make_engine()
        run(engine.start())

        assert engine.state is not None
        assert engine.settings.player_count == 1
        notices = engine.error_handler.notices
        assert len(notices) == 3
        assert all(n.error_type == ErrorType.STORAGE and n.retryable for n in notices)

    def test_load_retry_applies_names(self, make_engine, store):
        store.fail_get = True
        engine = make_engine()
        run(engine.start())

        store.fail_get = False
        store.data[PLAYERS_KEY] = json.dumps([{"id": 1, "name": "Ada", "score": 0}])
        names_notice = engine.error_handler.notices[1]
        assert run(engine.error_handler.retry(names_notice.notice_id))
        assert engine.state.players[0].name == "Ada"

    def test_sounds_loaded_and_unloaded(self, engine, audio):
        assert set(engine.sounds.loaded) == {"flip", "match", "victory"}
        run(engine.shutdown())
        assert set(audio.unloaded) == {"flip", "match", "victory"}


class TestFlipFlow:

    def test_match_plays_sounds_and_pulses(self, engine, audio, haptics):
        a, b = pair_indices(engine.state.cards)[0]
        run(engine.flip_card(a))
        run(engine.flip_card(b))

        assert audio.played == ["flip", "flip", "match"]
        assert haptics.pulses == [Pulse.SUCCESS]
        assert engine.state.players[0].score == 1

    def test_highlight_clears_after_delay(self, engine, scheduler):
        a, b = pair_indices(engine.state.cards)[0]
        run(engine.flip_card(a))
        run(engine.flip_card(b))
        assert engine.snapshot().highlighted == (a, b)

        scheduler.advance(MATCH_HIGHLIGHT_MS - 1)
        assert engine.snapshot().highlighted == (a, b)
        scheduler.advance(1)
        assert engine.snapshot().highlighted == ()

    def test_mismatch_resolves_after_delay(self, make_engine, store, scheduler, haptics):
        store.data[SETTINGS_KEY] = json.dumps({"playerCount": 2, "cardTheme": "Animals"})
        engine = make_engine()
        run(engine.start())
        a, b = mismatch_indices(engine.state.cards)

        run(engine.flip_card(a))
        run(engine.flip_card(b))
        assert haptics.pulses == [Pulse.ERROR]

        scheduler.advance(MISMATCH_DELAY_MS - 1)
        assert engine.state.cards[a].face == CardFace.FLIPPED
        assert engine.state.current_player_index == 0

        scheduler.advance(1)
        assert engine.state.cards[a].face == CardFace.HIDDEN
        assert engine.state.cards[b].face == CardFace.HIDDEN
        assert engine.state.selection == ()
        assert engine.state.current_player_index == 1

    def test_flip_during_reveal_window_never_lands(self, engine, scheduler):
        a, b = mismatch_indices(engine.state.cards)
        third = next(i for i in range(20) if i not in (a, b))

        run(engine.flip_card(a))
        run(engine.flip_card(b))
        result = run(engine.flip_card(third))
        assert result.ignored

        scheduler.run_all()
        assert engine.state.cards[third].face == CardFace.HIDDEN
        assert engine.state.face_up_count() == 0

    def test_at_most_two_face_up(self, engine, scheduler):
        for index in range(20):
            run(engine.flip_card(index))
            assert engine.state.face_up_count() <= 2
            scheduler.advance(100)
            assert engine.state.face_up_count() <= 2

    def test_subscribers_see_each_change(self, engine):
        seen = []
        unsubscribe = engine.subscribe(seen.append)
        run(engine.flip_card(0))
        assert seen[-1].selection == (0,)

        unsubscribe()
        run(engine.flip_card(1))
        assert len(seen) == 1

    def test_broken_listener_does_not_stop_play(self, engine):
        def broken(snapshot):
            raise RuntimeError("renderer crashed")

        engine.subscribe(broken)
        result = run(engine.flip_card(0))
        assert result.success
        assert engine.state.selection == (0,)

    def test_failing_audio_is_harmless(self, engine, audio):
        audio.fail_play = True
        result = run(engine.flip_card(0))

        assert result.success
        assert engine.state.cards[0].is_flipped
        assert engine.error_handler.notices == []


class TestCompletion:

    def test_solo_first_game_sets_best(self, engine, clock, store, audio, haptics):
        clock.advance(30_000)
        run(clear_board(engine))
        snapshot = engine.snapshot()

        assert snapshot.status == SessionStatus.OVER
        report = snapshot.completion
        assert report.duration_ms == 30_000
        assert report.is_new_best
        assert report.winner.summary_lines() == ["Pairs Found: 10"]
        assert json.loads(store.data[STATS_KEY]) == {"bestTime": 30_000, "lastGameTime": 30_000}
        assert audio.played[-1] == "victory"
        assert haptics.pulses[-1] == Pulse.CELEBRATION

    def test_slower_game_keeps_best(self, engine, clock, store, audio):
        store.data[STATS_KEY] = json.dumps({"bestTime": 20_000, "lastGameTime": 20_000})
        clock.advance(25_000)
        run(clear_board(engine))

        report = engine.snapshot().completion
        assert not report.is_new_best
        assert report.stats.best_time == 20_000
        assert report.stats.last_game_time == 25_000
        assert "victory" not in audio.played

    def test_duration_frozen_before_stats_written(self, engine, clock):
        clock.advance(12_000)
        run(clear_board(engine))
        clock.advance(60_000)

        assert engine.state.frozen_duration == 12_000
        assert engine.snapshot().elapsed_ms == 12_000
        assert engine.snapshot().completion.duration_ms == 12_000

    def test_stats_write_failure_keeps_result(self, engine, clock, store):
        clock.advance(10_000)
        store.fail_set = True
        run(clear_board(engine))

        assert engine.snapshot().completion.is_new_best
        assert engine.stats.best_time == 10_000
        assert STATS_KEY not in store.data
        notice = engine.error_handler.notices[0]
        assert notice.error_type == ErrorType.STORAGE

        store.fail_set = False
        assert run(engine.error_handler.retry(notice.notice_id))
        assert json.loads(store.data[STATS_KEY])["bestTime"] == 10_000

    def test_multiplayer_skips_best_time(self, make_engine, store, clock, audio):
        store.data[SETTINGS_KEY] = json.dumps({"playerCount": 2, "cardTheme": "Food"})
        engine = make_engine()
        run(engine.start())
        run(clear_board(engine))

        report = engine.snapshot().completion
        assert report.stats is None
        assert not report.is_new_best
        assert report.winner.winner.name == "Player 1"
        assert STATS_KEY not in store.data
        assert audio.played[-1] == "victory"

    def test_flips_ignored_after_game_over(self, engine):
        run(clear_board(engine))
        result = run(engine.flip_card(0))
        assert result.ignored
        assert engine.state.status == SessionStatus.OVER

    def test_play_again_starts_fresh(self, engine, clock):
        run(clear_board(engine))
        generation = engine.state.generation
        run(engine.edit_player_name(1, "Ada"))

        clock.advance(5000)
        run(engine.reset_game())

        assert engine.state.generation == generation + 1
        assert engine.state.status == SessionStatus.ACTIVE
        assert engine.state.players[0].name == "Ada"
        assert engine.state.players[0].score == 0
        assert engine.state.started_at == clock()
        assert engine.snapshot().completion is None


class TestStaleTimers:

    def test_reset_during_mismatch_delay(self, make_engine, store, scheduler):
        store.data[SETTINGS_KEY] = json.dumps({"playerCount": 2, "cardTheme": "Animals"})
        engine = make_engine()
        run(engine.start())
        a, b = mismatch_indices(engine.state.cards)
        run(engine.flip_card(a))
        run(engine.flip_card(b))

        run(engine.reset_game())
        fresh = engine.state
        run(engine.flip_card(0))

        scheduler.run_all()
        assert engine.state.current_player_index == 0
        assert engine.state.selection == (0,)
        assert engine.state.cards[0].is_flipped
        assert engine.state.generation == fresh.generation

    def test_settings_change_during_highlight(self, engine, scheduler):
        a, b = pair_indices(engine.state.cards)[0]
        run(engine.flip_card(a))
        run(engine.flip_card(b))

        run(engine.apply_settings(2, "Food"))
        scheduler.run_all()
        assert engine.state.highlighted == ()
        assert engine.state.scores == (0, 0)


class TestManualScheduler:

    def test_fires_in_due_order(self, scheduler):
        fired = []
        scheduler.call_later(500, lambda: fired.append("b"))
        scheduler.call_later(100, lambda: fired.append("a"))

        assert scheduler.advance(99) == 0
        assert scheduler.advance(401) == 2
        assert fired == ["a", "b"]

    def test_cancelled_timer_skipped(self, scheduler):
        fired = []
        handle = scheduler.call_later(100, lambda: fired.append(1))
        scheduler.cancel(handle)

        assert scheduler.pending == 0
        scheduler.run_all()
        assert fired == []

    def test_run_all_includes_chained_callbacks(self, scheduler, clock):
        fired = []

        def first():
            fired.append(clock())
            scheduler.call_later(200, lambda: fired.append(clock()))

        scheduler.call_later(100, first)
        assert scheduler.run_all() == 2
        assert fired == [START_MS + 100, START_MS + 300]


class TestDefaultScheduler:

    def test_mismatch_flips_back_on_the_event_loop(self):
        engine = GameEngine(
            rng=random.Random(7),
            reducer=Reducer(resolver=MatchResolver(mismatch_delay_ms=50, highlight_ms=20)),
        )

        async def scenario():
            await engine.start()
            assert isinstance(engine.scheduler, AsyncioScheduler)

            a, b = mismatch_indices(engine.state.cards)
            await engine.flip_card(a)
            await engine.flip_card(b)
            assert engine.state.selection == (a, b)

            await asyncio.sleep(0.2)
            return a, b

        a, b = run(scenario())
        assert engine.state.selection == ()
        assert engine.state.cards[a].face == CardFace.HIDDEN
        assert engine.state.cards[b].face == CardFace.HIDDEN


class TestSoundFailures:

    def test_playback_error_reported_as_sound_error(self):
        class RecordingHandler(ErrorHandler):
            def __init__(self):
                super().__init__()
                self.sound_errors = []

            def handle_sound_error(self, error):
                self.sound_errors.append(error)
                return super().handle_sound_error(error)

        handler = RecordingHandler()
        sounds = SoundManager(RecordingAudioBackend(fail_play=True), handler)
        sounds.load_sounds()

        assert not sounds.play_sound("flip")
        assert len(handler.sound_errors) == 1
        error = handler.sound_errors[0]
        assert isinstance(error, SoundError)
        assert isinstance(error.__cause__, RuntimeError)
        assert handler.notices == []
