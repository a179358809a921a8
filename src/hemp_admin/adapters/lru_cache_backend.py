"""Bounded in-process LRU backend for the page cache."""

import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from hemp_admin.domain.cache import CacheStats, PageCacheContext
from hemp_admin.services.cache import Clock, utc_now
from hemp_admin.services.page_cache import CacheBackend

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _LruItem:
    value: dict[str, object]
    tags: frozenset[str]
    expires_at: datetime | None


@dataclass
class LruCacheBackend(CacheBackend):
    """Least-recently-used store capped by item count.

    Both reads and writes refresh recency. Writing past ``capacity`` evicts
    the least recently used key. Payloads whose JSON encoding is larger than
    ``max_item_size_bytes`` are not stored.
    """

    capacity: int = 1000
    max_item_size_bytes: int = 10 * 1024 * 1024
    clock: Clock = utc_now
    name: str = "local"
    _items: OrderedDict[str, _LruItem] = field(default_factory=OrderedDict, init=False)

    async def get(self, key: str) -> dict[str, object] | None:
        item = self._items.get(key)
        if item is None:
            return None
        if item.expires_at is not None and self.clock() >= item.expires_at:
            del self._items[key]
            return None
        self._items.move_to_end(key)
        return item.value

    async def set(
        self, key: str, value: dict[str, object], context: PageCacheContext
    ) -> None:
        size = len(json.dumps(value, default=str).encode())
        if size > self.max_item_size_bytes:
            self._items.pop(key, None)
            _logger.warning(
                "Skipping page cache item %s: %s bytes exceeds limit of %s",
                key,
                size,
                self.max_item_size_bytes,
            )
            return
        expires_at = (
            self.clock() + timedelta(seconds=context.revalidate_seconds)
            if context.revalidate_seconds
            else None
        )
        self._items[key] = _LruItem(
            value=value, tags=frozenset(context.tags), expires_at=expires_at
        )
        self._items.move_to_end(key)
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    async def revalidate_tag(self, tag: str) -> None:
        stale = [key for key, item in self._items.items() if tag in item.tags]
        for key in stale:
            del self._items[key]

    async def stats(self) -> CacheStats:
        return CacheStats(size=len(self._items), keys=list(self._items))
