"""
TTL cache for promotion lists and other loader results.

One cache object is created per application instance (see ``api.state``),
never at import time. The clock is injectable so expiry can be tested
without sleeping. Concurrent ``get_or_load`` calls for the same key share a
single loader call.
"""
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)


class TTLCache:
    """Thread-safe TTL + LRU cache with in-flight load de-duplication."""

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._in_flight: dict[Hashable, Future] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        """Return a fresh cached value, or ``default``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any):
        with self._lock:
            self._store(key, value)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value for ``key``, calling ``loader`` on a miss.

        While a load is running, other callers for the same key wait for it
        and receive its result (or its exception). Failed loads are not cached.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() < entry[0]:
                self._entries.move_to_end(key)
                return entry[1]

            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            return future.result()

        try:
            value = loader()
        except BaseException as e:
            with self._lock:
                del self._in_flight[key]
            logger.warning("Cache load for %r failed: %s", key, e)
            future.set_exception(e)
            raise

        with self._lock:
            self._store(key, value)
            del self._in_flight[key]
        future.set_result(value)
        return value

    def invalidate(self, key: Hashable):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def _store(self, key: Hashable, value: Any):
        # Caller holds the lock
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %r from cache", evicted)

    def _purge_expired(self):
        now = self._clock()
        for key in [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]:
            del self._entries[key]
