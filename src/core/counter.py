"""Peak counter for sampled online-user counts (core domain)."""

from __future__ import annotations

import logging
import threading

from core.errors import InvalidSample

LOGGER = logging.getLogger(__name__)


class PeakCounter:
    """Highest sample observed since the last report.

    ``take_and_reset`` reads and zeroes under the same lock as ``observe`` so
    an observation is either in this report or the next one, never lost.
    """

    def __init__(self, initial: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = 0
        self.load(initial)

    def observe(self, value: int) -> None:
        # bool is an int subclass but never a valid sample
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidSample(f"sample must be an integer, got {value!r}")
        if value < 0:
            raise InvalidSample(f"sample must be non-negative, got {value}")
        with self._lock:
            if value > self._value:
                self._value = value

    def take_and_reset(self) -> int:
        with self._lock:
            value = self._value
            self._value = 0
        return value

    def peek(self) -> int:
        with self._lock:
            return self._value

    def load(self, value: object) -> None:
        """Restore a persisted peak; invalid values start from zero."""

        if value is None:
            value = 0
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            LOGGER.warning("Ignoring invalid persisted peak %r", value)
            value = 0
        with self._lock:
            self._value = value
