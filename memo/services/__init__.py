"""
Services - Collaborators injected into the engine.

Error handling, sound and haptics are constructed explicitly and
handed to the engine; none of them is a module-level singleton.
"""

from .errors import (
    ErrorType,
    ErrorHandler,
    Notice,
    MemoError,
    StorageError,
    SoundError,
    GameStateError,
    SettingsError,
)
from .audio import AudioBackend, NullAudioBackend, SoundManager, SOUND_FILES
from .haptics import HapticBackend, NullHapticBackend, HapticFeedback, Pulse

__all__ = [
    "ErrorType",
    "ErrorHandler",
    "Notice",
    "MemoError",
    "StorageError",
    "SoundError",
    "GameStateError",
    "SettingsError",
    "AudioBackend",
    "NullAudioBackend",
    "SoundManager",
    "SOUND_FILES",
    "HapticBackend",
    "NullHapticBackend",
    "HapticFeedback",
    "Pulse",
]
