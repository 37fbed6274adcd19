"""
Haptics - Fire-and-forget vibration pulses.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class Pulse(Enum):
    SUCCESS = "success"  # Pair found
    ERROR = "error"  # Mismatch
    CELEBRATION = "celebration"  # Board cleared


class HapticBackend(ABC):

    @abstractmethod
    def pulse(self, kind: Pulse) -> None:
        raise NotImplementedError


class NullHapticBackend(HapticBackend):

    def pulse(self, kind: Pulse) -> None:
        pass


class HapticFeedback:
    """Wraps a backend so a failing pulse never reaches the engine."""

    def __init__(self, backend: HapticBackend | None = None):
        self.backend = backend or NullHapticBackend()

    def pulse(self, kind: Pulse) -> None:
        try:
            self.backend.pulse(kind)
        except Exception:
            logger.warning("Haptic pulse %s failed", kind.value, exc_info=True)
