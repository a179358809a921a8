"""In-process cache with TTL expiry and tag-based invalidation."""

import asyncio
import contextlib
import functools
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ParamSpec, Protocol, TypeVar

from hemp_admin.domain.cache import CacheEntry, CacheStats, CacheTTL

_logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(tz=UTC)


class Cache(Protocol):
    """Cache interface for key-value data with tags."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(
        self,
        key: str,
        value: object,
        ttl_seconds: float | None = None,
        tags: Iterable[str] | None = None,
    ) -> None:
        """Store a cached value, replacing any previous entry for the key."""

    def delete(self, key: str) -> bool:
        """Remove a key and report whether it was present."""

    def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        """Remove every entry sharing at least one tag."""

    def clear(self) -> None:
        """Remove every entry."""


@dataclass
class MemoryCache(Cache):
    """Dict-backed cache owned by a single process.

    Expiry is checked lazily on every read, so a stale value is never
    returned. ``cleanup`` removes expired entries that are never read again
    and is driven by :class:`CacheSweeper`.
    """

    default_ttl_seconds: float = CacheTTL.MEDIUM
    clock: Clock = utc_now
    _entries: dict[str, CacheEntry] = field(default_factory=dict, init=False)

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_live(self.clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(
        self,
        key: str,
        value: object,
        ttl_seconds: float | None = None,
        tags: Iterable[str] | None = None,
    ) -> None:
        """Store a cached value with a TTL and optional tags."""
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=self.clock(),
            ttl_seconds=ttl_seconds or self.default_ttl_seconds,
            tags=frozenset(tags or ()),
        )

    def delete(self, key: str) -> bool:
        """Remove a key, returning true if it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        """Remove entries tagged with any of the given tags."""
        wanted = frozenset(tags)
        if not wanted:
            return 0
        stale = [key for key, entry in self._entries.items() if entry.tags & wanted]
        for key in stale:
            del self._entries[key]
        if stale:
            _logger.info(
                "Invalidated %s cache entries for tags %s", len(stale), sorted(wanted)
            )
        return len(stale)

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def stats(self) -> CacheStats:
        """Return size, keys and an approximate serialized size."""
        return CacheStats(
            size=len(self._entries),
            keys=list(self._entries),
            approx_memory=_approx_size(self._entries.values()),
        )

    def cleanup(self) -> int:
        """Remove all expired entries and return how many were dropped."""
        now = self.clock()
        expired = [
            key for key, entry in self._entries.items() if not entry.is_live(now)
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)


def _approx_size(entries: Iterable[CacheEntry]) -> int:
    payload = [
        [entry.key, entry.value, sorted(entry.tags), entry.ttl_seconds]
        for entry in entries
    ]
    try:
        return len(json.dumps(payload, default=str))
    except (TypeError, ValueError):
        # Non-string dict keys and circular values cannot be JSON encoded.
        return len(repr(payload))


async def cached_query(
    cache: Cache,
    key: str,
    query_fn: Callable[[], Awaitable[T]],
    ttl_seconds: float | None = None,
    tags: Iterable[str] | None = None,
) -> T:
    """Return the cached result for ``key`` or run ``query_fn`` and store it.

    Exceptions raised by ``query_fn`` propagate and nothing is cached.
    """
    cached = cache.get(key)
    if cached is not None:
        return cached  # type: ignore[return-value]
    result = await query_fn()
    cache.set(key, result, ttl_seconds=ttl_seconds, tags=tags)
    return result


def with_cache(
    cache: Cache,
    key_builder: Callable[P, str],
    ttl_seconds: float | None = None,
    tags: Iterable[str] | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorate an async function so its results are cached per key."""
    frozen_tags = tuple(tags or ())

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await cached_query(
                cache,
                key_builder(*args, **kwargs),
                lambda: func(*args, **kwargs),
                ttl_seconds=ttl_seconds,
                tags=frozen_tags,
            )

        return wrapper

    return decorator


@dataclass
class CacheSweeper:
    """Periodically removes expired entries from a :class:`MemoryCache`.

    The sweep bounds memory for keys that are written but never read again.
    An interval of zero disables it.
    """

    cache: MemoryCache
    interval_seconds: float = 600
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.interval_seconds <= 0 or self._task is not None:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def sweep_once(self) -> int:
        """Run a single cleanup pass."""
        removed = self.cache.cleanup()
        if removed:
            _logger.info("Cache cleanup: removed %s expired items", removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.sweep_once()
