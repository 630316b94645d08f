"""In-memory TTL cache for upstream market-data responses."""

from __future__ import annotations

import time
from typing import Any


class TTLCache:
    """Dict + monotonic clock cache with a per-entry TTL.

    Values are stored as given and replaced wholesale on refresh; callers
    store immutable values (tuples, frozen models). Failures are never
    cached.
    """

    def __init__(self, default_ttl_seconds: float = 30.0) -> None:
        self._default_ttl = default_ttl_seconds
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        """Return cached value or ``None`` if missing / expired."""
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store *value* under *key* for *ttl_seconds* (default TTL if omitted).

        Expired entries under any key are dropped first.
        """
        now = time.monotonic()
        self._purge(now)
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        self._store[key] = (now + ttl, value)

    def _purge(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._store.items() if now >= expires_at]
        for k in expired:
            del self._store[k]

    def invalidate(self, key: str) -> None:
        """Remove a single key (no-op if absent)."""
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
