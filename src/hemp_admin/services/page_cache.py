"""Page revalidation cache handler with pluggable storage backends."""

import logging
from dataclasses import dataclass, replace
from typing import Protocol

from hemp_admin.domain.cache import CacheStats, PageCacheContext, path_tag
from hemp_admin.services.cache import Clock, utc_now

_logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Storage used by the page cache handler."""

    name: str

    async def get(self, key: str) -> dict[str, object] | None:
        """Return a stored payload or None."""

    async def set(
        self, key: str, value: dict[str, object], context: PageCacheContext
    ) -> None:
        """Store a payload with its revalidation context."""

    async def revalidate_tag(self, tag: str) -> None:
        """Drop every payload stored with the tag."""

    async def stats(self) -> CacheStats:
        """Return a snapshot of the backend contents."""


@dataclass
class PageCacheHandler:
    """Uniform get/set/revalidate contract over a cache backend.

    Backend failures never reach the caller: reads degrade to a miss and
    writes or invalidations report ``False``.
    """

    backend: CacheBackend
    clock: Clock = utc_now

    async def get(self, key: str) -> dict[str, object] | None:
        """Return the cached payload for a key, or None on miss or error."""
        try:
            result = await self.backend.get(key)
        except Exception:
            _logger.warning("Page cache get failed for key %s", key, exc_info=True)
            return None
        _logger.debug("Page cache %s for key: %s", "HIT" if result else "MISS", key)
        return result

    async def set(
        self, key: str, data: dict[str, object], context: PageCacheContext
    ) -> bool:
        """Store a payload annotated with cache metadata.

        The payload is also tagged with ``path_tag(key)`` so that revalidating
        the key as a path drops it.
        """
        enriched = {
            **data,
            "cached_at": self.clock().isoformat(),
            "cache_tags": list(context.tags),
            "revalidate": context.revalidate_seconds,
        }
        try:
            await self.backend.set(key, enriched, _with_path_tag(key, context))
        except Exception:
            _logger.warning("Page cache set failed for key %s", key, exc_info=True)
            return False
        _logger.debug(
            "Cached key: %s, revalidate: %s, tags: %s",
            key,
            context.revalidate_seconds or "never",
            context.tags or "none",
        )
        return True

    async def revalidate_tag(self, tag: str) -> bool:
        """Invalidate every payload stored with the tag."""
        try:
            await self.backend.revalidate_tag(tag)
        except Exception:
            _logger.warning(
                "Page cache revalidate failed for tag %s", tag, exc_info=True
            )
            return False
        _logger.info("Revalidated page cache tag: %s", tag)
        return True

    async def stats(self) -> dict[str, object]:
        """Return backend stats, flagging the backend unavailable on error."""
        try:
            snapshot = await self.backend.stats()
        except Exception:
            _logger.warning("Page cache stats failed", exc_info=True)
            return {"backend": self.backend.name, "available": False}
        return {
            "backend": self.backend.name,
            "available": True,
            "size": snapshot.size,
            "keys": snapshot.keys,
        }


def _with_path_tag(key: str, context: PageCacheContext) -> PageCacheContext:
    tag = path_tag(key)
    if tag in context.tags:
        return context
    return replace(context, tags=[*context.tags, tag])
