"""Per-playlist connection counting against configured limits."""

from __future__ import annotations

import logging
import os
import re
import threading
from collections import Counter

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ConcurrencyManager:
    """Counts open connections per playlist index."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count: Counter[str] = Counter()
        self.invalid: set[str] = set()

    @staticmethod
    def _max_concurrency(m3u_index: str) -> int:
        raw = os.environ.get(f"M3U_MAX_CONCURRENCY_{m3u_index}", "")
        return int(raw) if _INTEGER.fullmatch(raw) else 1

    def get_concurrency_status(self, m3u_index: str) -> tuple[int, int, int]:
        """Return ``(current, maximum, priority)``; higher priority means more free slots."""
        with self._lock:
            maximum = self._max_concurrency(m3u_index)
            current = self._count[m3u_index]
        return current, maximum, maximum - current

    def check_concurrency(self, m3u_index: str) -> bool:
        """Return True when the playlist has reached its connection limit."""
        current, maximum, _ = self.get_concurrency_status(m3u_index)
        logger.info("Current connections for M3U_%s: %d/%d", m3u_index, current, maximum)
        return current >= maximum

    def concurrency_priority_value(self, m3u_index: str) -> int:
        """Return the number of free slots (may be negative)."""
        return self.get_concurrency_status(m3u_index)[2]

    def update_concurrency(self, m3u_index: str, incr: bool) -> None:
        """Add or release one connection and log the new count."""
        with self._lock:
            if incr:
                self._count[m3u_index] += 1
            elif self._count[m3u_index] > 0:
                self._count[m3u_index] -= 1
            current = self._count[m3u_index]
            maximum = self._max_concurrency(m3u_index)
        logger.info("Updated connections for M3U_%s: %d/%d", m3u_index, current, maximum)

    def increment(self, m3u_index: str) -> None:
        """Add one connection."""
        with self._lock:
            self._count[m3u_index] += 1

    def decrement(self, m3u_index: str) -> None:
        """Release one connection, never going below zero."""
        with self._lock:
            if self._count[m3u_index] > 0:
                self._count[m3u_index] -= 1

    def get_count(self, m3u_index: str) -> int:
        """Return the current number of connections."""
        with self._lock:
            return self._count[m3u_index]