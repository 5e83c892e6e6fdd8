"""
Daily Prompt Cache

Memoizes generated daily prompts per category. The cache is shared across
enhancement invocations and threads; per-key locks make sure concurrent
callers for the same category trigger at most one computation.
"""

import logging
import threading
import time
import weakref
from typing import Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)


class DailyPromptCache:
    """Thread-safe category -> prompt cache with optional expiry.

    Attributes:
        ttl_seconds: Seconds an entry stays valid, or None for no expiry
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive or None")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        # a key lock lives only while some caller holds it
        self._key_locks = weakref.WeakValueDictionary()

    @staticmethod
    def _normalize_key(category: str) -> str:
        return (category or "").strip().upper()

    def get(self, category: str) -> Optional[str]:
        key = self._normalize_key(category)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self.ttl_seconds is not None and self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                logger.debug(f"Daily prompt for {key} expired")
                return None
            return value

    def set(self, category: str, prompt: str) -> None:
        key = self._normalize_key(category)
        with self._lock:
            self._entries[key] = (prompt, self._clock())

    def evict(self, category: str) -> bool:
        """Drop one category. Returns True if an entry was removed."""
        key = self._normalize_key(category)
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def get_or_compute(self, category: str, compute: Callable[[], Optional[str]]) -> Optional[str]:
        """Return the cached prompt or compute, store and return it.

        ``compute`` returning None means "no cacheable value"; nothing is
        stored and None is returned. Exceptions from ``compute`` propagate
        and leave the cache untouched.
        """
        cached = self.get(category)
        if cached is not None:
            return cached

        key = self._normalize_key(category)
        with self._key_lock(key):
            # another thread may have filled it while we waited
            cached = self.get(category)
            if cached is not None:
                return cached

            value = compute()
            if value is not None:
                self.set(category, value)
            return value
