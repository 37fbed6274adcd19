"""
Tests for persistence and error handling.

Tests:
- Repository encoding of names, stats and settings
- Corrupt and missing values
- The JSON file store
- Notice queue, retry and the unrecoverable path
"""

import json

import pytest

from ..engine_core.state import GameSettings, GameStats, Player, Theme
from ..services.errors import (
    ErrorHandler,
    ErrorType,
    GameStateError,
    StorageError,
    STORAGE_MESSAGE,
    UNRECOVERABLE_MESSAGE,
)
from ..storage import (
    ALL_KEYS,
    GameRepository,
    InMemoryStore,
    JsonFileStore,
    PLAYERS_KEY,
    SETTINGS_KEY,
    STATS_KEY,
)
from .conftest import run


@pytest.fixture
def repo():
    return GameRepository(InMemoryStore())


class TestRepository:

    def test_empty_store_reads_defaults(self, repo):
        assert run(repo.load_player_names()) == {}
        assert run(repo.load_stats()) == GameStats()
        assert run(repo.load_settings()) is None

    def test_players_encoding(self, repo):
        run(repo.save_players([Player(1, "Ada", 2), Player(2, "Bo", 0)]))

        assert json.loads(repo.store.data[PLAYERS_KEY]) == [
            {"id": 1, "name": "Ada", "score": 2},
            {"id": 2, "name": "Bo", "score": 0},
        ]
        assert run(repo.load_player_names()) == {1: "Ada", 2: "Bo"}

    def test_blank_saved_names_skipped(self, repo):
        repo.store.data[PLAYERS_KEY] = json.dumps([{"id": 1, "name": " "}, {"id": 2, "name": "Bo"}])
        assert run(repo.load_player_names()) == {2: "Bo"}

    def test_overlong_saved_names_skipped(self, repo):
        repo.store.data[PLAYERS_KEY] = json.dumps([{"id": 1, "name": "z" * 21}, {"id": 2, "name": "Bo"}])
        assert run(repo.load_player_names()) == {2: "Bo"}

    def test_stats_encoding(self, repo):
        run(repo.save_stats(GameStats(best_time=41_250, last_game_time=50_000)))
        assert json.loads(repo.store.data[STATS_KEY]) == {"bestTime": 41_250, "lastGameTime": 50_000}
        assert run(repo.load_stats()).best_time == 41_250

    def test_settings_encoding(self, repo):
        run(repo.save_settings(GameSettings(3, Theme.MIXED)))
        assert json.loads(repo.store.data[SETTINGS_KEY]) == {"playerCount": 3, "cardTheme": "Mixed"}
        assert run(repo.load_settings()) == GameSettings(3, Theme.MIXED)

    def test_unknown_saved_theme_reads_as_animals(self, repo):
        repo.store.data[SETTINGS_KEY] = json.dumps({"playerCount": 2, "cardTheme": "Space"})
        assert run(repo.load_settings()).theme == Theme.ANIMALS

    @pytest.mark.parametrize("key, raw, loader", [
        (STATS_KEY, "{oops", "load_stats"),
        (STATS_KEY, json.dumps([1, 2]), "load_stats"),
        (STATS_KEY, json.dumps({"bestTime": "fast"}), "load_stats"),
        (SETTINGS_KEY, json.dumps({"playerCount": "two"}), "load_settings"),
        (PLAYERS_KEY, json.dumps({"id": 1}), "load_player_names"),
    ])
    def test_corrupt_values_raise_game_state_error(self, repo, key, raw, loader):
        repo.store.data[key] = raw
        with pytest.raises(GameStateError):
            run(getattr(repo, loader)())

    def test_backend_failures_raise_storage_error(self, store):
        repo = GameRepository(store)
        store.fail_get = True
        with pytest.raises(StorageError):
            run(repo.load_stats())

    def test_clear_all(self, repo):
        for key in ALL_KEYS:
            repo.store.data[key] = "{}"
        repo.store.data["unrelated"] = "1"

        run(repo.clear_all())
        assert repo.store.data == {"unrelated": "1"}


class TestJsonFileStore:

    def test_round_trip_and_missing(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        assert run(store.get(STATS_KEY)) is None

        run(store.set(STATS_KEY, '{"bestTime": 1}'))
        assert (tmp_path / "data" / f"{STATS_KEY}.json").exists()
        assert run(store.get(STATS_KEY)) == '{"bestTime": 1}'
        assert store.list_keys() == [STATS_KEY]

    def test_remove_ignores_absent_keys(self, tmp_path):
        store = JsonFileStore(tmp_path)
        run(store.set(PLAYERS_KEY, "[]"))
        run(store.remove(ALL_KEYS))
        assert store.list_keys() == []

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker)

        with pytest.raises(StorageError):
            run(store.set(STATS_KEY, "{}"))

    def test_settings_survive_a_new_store(self, tmp_path):
        run(GameRepository(JsonFileStore(tmp_path)).save_settings(GameSettings(2, Theme.FOOD)))
        loaded = run(GameRepository(JsonFileStore(tmp_path)).load_settings())
        assert loaded == GameSettings(2, Theme.FOOD)


class TestErrorHandler:

    def test_storage_error_queues_retryable_notice(self):
        handler = ErrorHandler()

        async def retry():
            pass

        notice = handler.handle_storage_error(StorageError("disk full"), retry_action=retry)
        assert notice.error_type == ErrorType.STORAGE
        assert notice.message == STORAGE_MESSAGE
        assert notice.retryable
        assert handler.notices == [notice]

    def test_sound_errors_are_silent(self):
        handler = ErrorHandler()
        assert handler.handle_sound_error(RuntimeError("no device")) is None
        assert handler.notices == []

    def test_successful_retry_removes_notice(self):
        handler = ErrorHandler()
        calls = []

        async def retry():
            calls.append(1)

        notice = handler.handle_storage_error(StorageError("x"), retry_action=retry)
        assert run(handler.retry(notice.notice_id))
        assert calls == [1]
        assert handler.notices == []

    def test_failed_retry_is_unrecoverable(self):
        handler = ErrorHandler()

        async def retry():
            raise StorageError("still broken")

        notice = handler.handle_storage_error(StorageError("x"), retry_action=retry)
        assert not run(handler.retry(notice.notice_id))

        [final] = handler.notices
        assert final.message == UNRECOVERABLE_MESSAGE
        assert not final.retryable

    def test_retry_without_action(self):
        handler = ErrorHandler()
        notice = handler.handle_game_state_error(GameStateError("bad"))
        assert not run(handler.retry(notice.notice_id))
        assert handler.notices == [notice]

    def test_unknown_notice(self):
        with pytest.raises(KeyError):
            run(ErrorHandler().retry(42))

    def test_dismiss_and_clear(self):
        handler = ErrorHandler()
        first = handler.handle_game_state_error(GameStateError("a"))
        handler.handle_game_state_error(GameStateError("b"))

        assert handler.dismiss(first.notice_id)
        assert not handler.dismiss(first.notice_id)
        assert len(handler.notices) == 1
        handler.clear()
        assert handler.notices == []
