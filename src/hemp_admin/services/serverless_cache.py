"""Tagless expiring cache for short-lived serverless instances."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TypeVar

from hemp_admin.domain.cache import CacheStats, CacheTTL
from hemp_admin.services.cache import Clock, utc_now

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _ServerlessItem:
    value: object
    expires_at: datetime


@dataclass
class ServerlessCache:
    """Expiring cache tuned for instances that may be frozen between requests.

    No background task is assumed to survive a suspended instance, so reads
    and writes re-arm the sweep through :meth:`maybe_cleanup`. The sweep only
    keeps memory in check; reads always check expiry themselves.
    """

    default_ttl_seconds: float = CacheTTL.MEDIUM
    cleanup_interval_seconds: float = CacheTTL.MEDIUM
    clock: Clock = utc_now
    _items: dict[str, _ServerlessItem] = field(default_factory=dict, init=False)
    _last_cleanup: datetime | None = field(default=None, init=False)

    def set(self, key: str, value: object, ttl_seconds: float | None = None) -> None:
        """Store a value that expires after ``ttl_seconds``."""
        self.maybe_cleanup()
        ttl = ttl_seconds or self.default_ttl_seconds
        self._items[key] = _ServerlessItem(
            value=value, expires_at=self.clock() + timedelta(seconds=ttl)
        )

    def get(self, key: str) -> object | None:
        """Return a live value or None."""
        self.maybe_cleanup()
        item = self._live_item(key)
        return item.value if item else None

    def has(self, key: str) -> bool:
        """Return true if a live entry exists for the key."""
        self.maybe_cleanup()
        return self._live_item(key) is not None

    def delete(self, key: str) -> bool:
        """Remove a key, returning true if it existed."""
        return self._items.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every item."""
        self._items.clear()

    def cleanup(self) -> int:
        """Remove expired items and return how many were dropped."""
        now = self.clock()
        expired = [key for key, item in self._items.items() if now >= item.expires_at]
        for key in expired:
            del self._items[key]
        self._last_cleanup = now
        return len(expired)

    def maybe_cleanup(self) -> int:
        """Sweep if the cleanup interval has elapsed since the last sweep."""
        now = self.clock()
        if self._last_cleanup is None:
            self._last_cleanup = now
            return 0
        elapsed = (now - self._last_cleanup).total_seconds()
        if elapsed < self.cleanup_interval_seconds:
            return 0
        removed = self.cleanup()
        if removed:
            _logger.debug("Serverless cache cleanup removed %s items", removed)
        return removed

    def stats(self) -> CacheStats:
        """Return the number of stored items and their keys."""
        return CacheStats(size=len(self._items), keys=list(self._items))

    def _live_item(self, key: str) -> _ServerlessItem | None:
        item = self._items.get(key)
        if item is None:
            return None
        if self.clock() >= item.expires_at:
            self._items.pop(key, None)
            return None
        return item


def generate_cache_key(prefix: str, *parts: str | int) -> str:
    """Build a namespaced cache key such as ``products:page:2``."""
    return ":".join([prefix, *(str(part) for part in parts)])


async def fetch_with_cache(
    cache: ServerlessCache,
    key: str,
    fetcher: Callable[[], Awaitable[T]],
    ttl_seconds: float | None = None,
) -> T:
    """Return a cached value or fetch and store it; failures are not cached."""
    cached = cache.get(key)
    if cached is not None:
        return cached  # type: ignore[return-value]
    result = await fetcher()
    cache.set(key, result, ttl_seconds)
    return result
