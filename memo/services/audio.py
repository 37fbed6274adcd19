"""
Audio - Best-effort sound effects.

The game never waits on, or fails because of, sound. Missing or
unready assets are logged and skipped; backend exceptions are routed to
the error handler as silent SOUND errors.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any
import logging

from .errors import ErrorHandler, SoundError

logger = logging.getLogger(__name__)


SOUND_FILES = {
    "flip": "card-flip.mp3",
    "match": "match.mp3",
    "victory": "victory.mp3",
}


class AudioBackend(ABC):
    """Audio backend interface to decouple game logic from a playback library.

    Implementations return an opaque handle from `load` that is passed back
    to `play` and `unload`.
    """

    @abstractmethod
    def load(self, name: str, path: str) -> Any:
        """Load a sound asset and return a handle."""
        raise NotImplementedError

    @abstractmethod
    def play(self, handle: Any) -> None:
        """Play a loaded sound from the start."""
        raise NotImplementedError

    @abstractmethod
    def unload(self, handle: Any) -> None:
        raise NotImplementedError

    def is_ready(self, handle: Any) -> bool:
        return handle is not None


class NullAudioBackend(AudioBackend):
    """Backend for headless play: loads nothing, plays nothing."""

    def load(self, name: str, path: str) -> Any:
        return name

    def play(self, handle: Any) -> None:
        pass

    def unload(self, handle: Any) -> None:
        pass


class SoundManager:
    """
    Owns the loaded sounds.

    Usage:
        sounds = SoundManager(backend, error_handler)
        sounds.load_sounds()
        sounds.play_sound("flip")
        sounds.unload_sounds()
    """

    def __init__(
        self,
        backend: AudioBackend | None = None,
        error_handler: ErrorHandler | None = None,
        asset_dir: str = "assets/sounds",
    ):
        self.backend = backend or NullAudioBackend()
        self.error_handler = error_handler or ErrorHandler()
        self.asset_dir = asset_dir
        self._sounds: dict[str, Any] = {}
        self._loading = False

    @property
    def loaded(self) -> list[str]:
        return [name for name, handle in self._sounds.items() if handle is not None]

    def load_sounds(self) -> None:
        if self._loading:
            return
        self._loading = True
        try:
            for name, filename in SOUND_FILES.items():
                try:
                    self._sounds[name] = self.backend.load(name, f"{self.asset_dir}/{filename}")
                except Exception as e:
                    logger.info("Sound %s not loaded yet: %s", name, e)
                    self._sounds[name] = None
        finally:
            self._loading = False

    def play_sound(self, name: str) -> bool:
        """Play a sound if it is available. Returns whether it played."""
        handle = self._sounds.get(name)
        if handle is None:
            logger.debug("Sound %s not available", name)
            return False

        try:
            return self._play(name, handle)
        except SoundError as e:
            self.error_handler.handle_sound_error(e)
            return False

    def _play(self, name: str, handle: Any) -> bool:
        try:
            if not self.backend.is_ready(handle):
                logger.info("Sound %s not properly loaded, reloading", name)
                self.load_sounds()
                return False
            self.backend.play(handle)
        except Exception as e:
            raise SoundError(f"Playing {name} failed: {e}") from e
        return True

    def unload_sounds(self) -> None:
        for name, handle in self._sounds.items():
            if handle is None:
                continue
            try:
                self.backend.unload(handle)
            except Exception:
                logger.exception("Error unloading sound %s", name)
        self._sounds = {}
