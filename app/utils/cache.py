import threading
import time
from typing import Any, Callable, Optional

DEFAULT_TTL_SECONDS = 300
_DEFAULT = object()


class TTLCache:
    """Process-local key/value cache with per-entry expiry.

    ``ttl_seconds=None`` stores an entry that never expires. Expired entries
    are dropped lazily on ``get`` or eagerly by ``cleanup``. There is no size
    bound.
    """

    def __init__(self, default_ttl: Optional[int] = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self._entries: dict[str, tuple[Any, Optional[float]]] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.RLock()

    def _expiry_for(self, ttl_seconds) -> Optional[float]:
        if ttl_seconds is _DEFAULT:
            ttl_seconds = self._default_ttl
        if ttl_seconds is None:
            return None
        return self._clock() + ttl_seconds

    def set(self, key: str, value, ttl_seconds=_DEFAULT) -> None:
        with self._lock:
            self._entries[key] = (value, self._expiry_for(ttl_seconds))

    def get(self, key: str):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at < self._clock():
                self._entries.pop(key, None)
                return None
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [
                key for key, (_, expires_at) in self._entries.items() if expires_at is not None and expires_at < now
            ]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def get_or_set(self, key: str, fetcher: Callable[[], Any], ttl_seconds=_DEFAULT):
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetcher()
        self.set(key, value, ttl_seconds)
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
