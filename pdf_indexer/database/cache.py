import time
from collections.abc import Callable
from typing import Any


class ReadThroughCache:
    """Caches loader results per key for a fixed number of seconds.

    Owners call ``invalidate()`` on every write to the data behind the cache.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value for key, calling loader on a miss or expiry."""
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and entry[0] > now:
            return entry[1]
        value = loader()
        if self._ttl_seconds > 0:
            self._entries[key] = (now + self._ttl_seconds, value)
        return value

    def invalidate(self) -> None:
        self._entries.clear()
