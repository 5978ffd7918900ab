"""Lookup cache and outbound request throttle for the routing provider."""

import threading
import time
from typing import Any, Callable, Optional

from django.core.cache import caches


class LookupCache:
    """
    TTL cache over a Django cache alias.

    Keys are normalised (lower-cased, trimmed) so that "MG Road " and
    "mg road" share an entry.
    """

    def __init__(self, alias: str = "routing", prefix: str = "routing"):
        self.alias = alias
        self.prefix = prefix

    @property
    def backend(self):
        return caches[self.alias]

    def make_key(self, namespace: str, *parts) -> str:
        normalised = "|".join(str(p).lower().strip() for p in parts)
        return f"{self.prefix}:{namespace}:{normalised}"

    def get(self, key: str) -> Optional[Any]:
        return self.backend.get(key)

    def set(self, key: str, value: Any, ttl: int) -> None:
        self.backend.set(key, value, ttl)


class RequestThrottle:
    """Keeps at least ``min_interval`` seconds between outbound requests."""

    def __init__(self, min_interval: float = 1.0, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request = None

    def wait(self) -> float:
        """Block until a request may be sent. Returns the time slept."""
        with self._lock:
            slept = 0.0
            now = self._clock()
            if self._last_request is not None:
                remaining = self.min_interval - (now - self._last_request)
                if remaining > 0:
                    self._sleep(remaining)
                    slept = remaining
                    now = self._clock()
            self._last_request = now
            return slept
