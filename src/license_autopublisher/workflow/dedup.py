"""Time-windowed admission set for workflow triggers."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 300.0


class TriggerDeduplicator:
    """Admits each key once per window.

    Keys expire `window_seconds` after they were admitted. Admission is
    check-and-record under one lock, so concurrent callers with the same key see
    exactly one `True`.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._window = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # Insertion order is expiry order since every key gets the same window.
        self._expiry: OrderedDict[Hashable, float] = OrderedDict()

    def _prune_unlocked(self, now: float) -> None:
        while self._expiry:
            key, expires_at = next(iter(self._expiry.items()))
            if expires_at > now:
                break
            del self._expiry[key]

    def admit(self, key: Hashable) -> bool:
        with self._lock:
            now = self._clock()
            self._prune_unlocked(now)
            if key in self._expiry:
                logger.debug("Duplicate trigger suppressed", extra={"trigger_key": str(key)})
                return False
            self._expiry[key] = now + self._window
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            self._prune_unlocked(self._clock())
            return key in self._expiry

    def __len__(self) -> int:
        with self._lock:
            self._prune_unlocked(self._clock())
            return len(self._expiry)
