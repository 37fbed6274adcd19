"""
Error Handling - Error taxonomy and the user-facing notice queue.

Nothing in the game is fatal to the process. Errors are:
- STORAGE: a persistence read/write failed; may be retried
- SOUND: asset load or playback failed; logged only
- GAME_STATE: persisted data is unreadable; defaults are used
- SETTINGS: invalid settings; corrected at the boundary

The ErrorHandler is constructed and injected, not a global. It logs
every error and keeps the notices the UI should show, each with an
optional retry of the exact operation that failed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable
import itertools
import logging

logger = logging.getLogger(__name__)


RetryAction = Callable[[], Awaitable[None]]

STORAGE_MESSAGE = "Unable to save game data. Your progress might be lost."
LOAD_MESSAGE = "Unable to load saved game data."
SOUND_MESSAGE = "Sound playback failed"
GAME_STATE_MESSAGE = "Game state corrupted. Try resetting the game."
UNRECOVERABLE_MESSAGE = "Unable to recover. Please restart the app."


class ErrorType(str, Enum):
    STORAGE = "STORAGE"
    SOUND = "SOUND"
    GAME_STATE = "GAME_STATE"
    SETTINGS = "SETTINGS"


class MemoError(Exception):
    """Base class for recoverable game errors."""
    error_type = ErrorType.GAME_STATE


class StorageError(MemoError):
    """A persistence backend call failed."""
    error_type = ErrorType.STORAGE


class SoundError(MemoError):
    error_type = ErrorType.SOUND


class GameStateError(MemoError):
    """Persisted data exists but cannot be decoded."""
    error_type = ErrorType.GAME_STATE


class SettingsError(MemoError):
    error_type = ErrorType.SETTINGS


@dataclass
class Notice:
    """A user-visible message, optionally retryable."""
    notice_id: int
    error_type: ErrorType
    message: str
    retry_action: RetryAction | None = field(default=None, repr=False)

    @property
    def retryable(self) -> bool:
        return self.retry_action is not None


class ErrorHandler:
    """
    Logs errors and queues notices.

    Usage:
        handler = ErrorHandler()
        try:
            await store.set(key, value)
        except StorageError as e:
            handler.handle_storage_error(e, retry_action=save_again)

        # Later, from the UI
        await handler.retry(notice.notice_id)
    """

    def __init__(self):
        self._notices: dict[int, Notice] = {}
        self._ids = itertools.count(1)

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices.values())

    def handle_error(
        self,
        error_type: ErrorType,
        message: str,
        error: BaseException | None = None,
        silent: bool = False,
        retry_action: RetryAction | None = None,
    ) -> Notice | None:
        """Log the error; unless silent, queue a notice for the user."""
        if error is not None:
            logger.error("[%s] %s: %s", error_type.value, message, error)
        else:
            logger.error("[%s] %s", error_type.value, message)

        if silent:
            return None

        notice = Notice(
            notice_id=next(self._ids),
            error_type=error_type,
            message=message,
            retry_action=retry_action,
        )
        self._notices[notice.notice_id] = notice
        return notice

    def handle_storage_error(
        self,
        error: BaseException,
        retry_action: RetryAction | None = None,
        message: str = STORAGE_MESSAGE,
    ) -> Notice | None:
        return self.handle_error(ErrorType.STORAGE, message, error, retry_action=retry_action)

    def handle_sound_error(self, error: BaseException, silent: bool = True) -> Notice | None:
        return self.handle_error(ErrorType.SOUND, SOUND_MESSAGE, error, silent=silent)

    def handle_game_state_error(
        self,
        error: BaseException,
        retry_action: RetryAction | None = None,
    ) -> Notice | None:
        return self.handle_error(ErrorType.GAME_STATE, GAME_STATE_MESSAGE, error, retry_action=retry_action)

    def handle_settings_error(self, error: SettingsError) -> None:
        """Settings problems are corrected silently; only logged."""
        logger.warning("[%s] %s", ErrorType.SETTINGS.value, error)

    def dismiss(self, notice_id: int) -> bool:
        return self._notices.pop(notice_id, None) is not None

    def clear(self) -> None:
        self._notices.clear()

    async def retry(self, notice_id: int) -> bool:
        """
        Run a notice's retry action.

        Returns True if the retry succeeded. A failed retry queues a
        final, non-retryable notice of the same type.
        """
        notice = self._notices.get(notice_id)
        if notice is None:
            raise KeyError(notice_id)
        if notice.retry_action is None:
            return False

        del self._notices[notice_id]
        try:
            await notice.retry_action()
        except MemoError as e:
            self.handle_error(notice.error_type, UNRECOVERABLE_MESSAGE, e)
            return False
        return True
