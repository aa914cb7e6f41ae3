"""In-memory state store for load_state/save_state steps."""

import threading
import time
from typing import Any, Dict, List, Optional

from .interfaces import StateStore


class InMemoryStateStore(StateStore):
    """Thread-safe in-memory key-value store with optional TTL."""

    def __init__(self, default_ttl_seconds: Optional[int] = None):
        self._store: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self.default_ttl_seconds = default_ttl_seconds

    @classmethod
    def from_settings(cls, settings) -> "InMemoryStateStore":
        """Create a store whose entries expire after settings.state_ttl_seconds."""
        return cls(default_ttl_seconds=settings.state_ttl_seconds)

    def _expired(self, entry: Dict[str, Any], now: float) -> bool:
        return entry["expiry"] is not None and now > entry["expiry"]

    async def get(self, key: str) -> Optional[Any]:
        """Get a value by key, returns None if key doesn't exist or has expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._expired(entry, time.time()):
                del self._store[key]
                return None
            return entry["value"]

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Set a key-value pair; falls back to the store's default TTL."""
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        with self._lock:
            self._store[key] = {
                "value": value,
                "expiry": time.time() + ttl if ttl is not None else None,
            }

    async def delete(self, key: str) -> bool:
        """Delete a key, returns True if key existed."""
        with self._lock:
            return self._store.pop(key, None) is not None

    def keys(self) -> List[str]:
        """Get all non-expired keys."""
        with self._lock:
            now = time.time()
            expired = [key for key, entry in self._store.items() if self._expired(entry, now)]
            for key in expired:
                del self._store[key]
            return sorted(self._store)

    def clear(self) -> int:
        """Clear all keys, returns number of keys cleared."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            return count
