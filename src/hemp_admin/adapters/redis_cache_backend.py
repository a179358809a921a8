"""Redis backend for the page cache, shared by all app instances."""

import json
from dataclasses import dataclass

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ConstantBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from hemp_admin.config import CacheConfig
from hemp_admin.domain.cache import CacheStats, PageCacheContext
from hemp_admin.services.page_cache import CacheBackend

_SHARED_TAGS_KEY = "__sharedTags__"


@dataclass
class RedisCacheBackend(CacheBackend):
    """Stores JSON payloads as Redis strings under a key prefix.

    Tags live in one hash mapping each cache key to its JSON tag list, so
    revalidating a tag is a single scan of that hash.
    """

    client: Redis
    key_prefix: str = "hempadmin:"
    name: str = "remote"

    @classmethod
    def create(cls, config: CacheConfig) -> "RedisCacheBackend":
        """Create a backend with timeouts and a constant-backoff retry policy."""
        if not config.remote_url:
            raise ValueError("Redis cache backend requires a remote URL")
        client = Redis.from_url(
            config.remote_url,
            decode_responses=True,
            socket_connect_timeout=config.remote_timeout_seconds,
            socket_timeout=config.remote_timeout_seconds,
            retry=Retry(
                ConstantBackoff(config.remote_retry_delay_seconds),
                config.remote_max_retries,
            ),
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
        )
        return cls(client=client, key_prefix=config.remote_key_prefix)

    @property
    def tags_key(self) -> str:
        return f"{self.key_prefix}{_SHARED_TAGS_KEY}"

    async def get(self, key: str) -> dict[str, object] | None:
        raw = await self.client.get(self._key(key))
        if raw is None:
            await self.client.hdel(self.tags_key, key)
            return None
        return json.loads(raw)

    async def set(
        self, key: str, value: dict[str, object], context: PageCacheContext
    ) -> None:
        """Write the payload and its tag entry in one transaction."""
        expiry_ms = (
            int(context.revalidate_seconds * 1000)
            if context.revalidate_seconds
            else None
        )
        pipe = self.client.pipeline(transaction=True)
        pipe.set(self._key(key), json.dumps(value, default=str), px=expiry_ms)
        pipe.hset(self.tags_key, key, json.dumps(list(context.tags)))
        await pipe.execute()

    async def revalidate_tag(self, tag: str) -> None:
        shared_tags = await self._live_tags()
        stale = [key for key, tags in shared_tags.items() if tag in tags]
        if not stale:
            return
        await self.client.delete(*(self._key(key) for key in stale))
        await self.client.hdel(self.tags_key, *stale)

    async def stats(self) -> CacheStats:
        shared_tags = await self._live_tags()
        return CacheStats(size=len(shared_tags), keys=sorted(shared_tags))

    async def _live_tags(self) -> dict[str, list[str]]:
        """Return the tag index, pruning keys Redis has already expired."""
        shared_tags = await self.client.hgetall(self.tags_key)
        if not shared_tags:
            return {}
        keys = list(shared_tags)
        pipe = self.client.pipeline(transaction=False)
        for key in keys:
            pipe.exists(self._key(key))
        present = await pipe.execute()
        live = {
            key: json.loads(shared_tags[key])
            for key, exists in zip(keys, present, strict=True)
            if exists
        }
        expired = [key for key in keys if key not in live]
        if expired:
            await self.client.hdel(self.tags_key, *expired)
        return live

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self.client.aclose()

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"
