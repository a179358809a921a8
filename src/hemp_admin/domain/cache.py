"""Domain models for the caching layer."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta


class CacheTTL:
    """Common cache lifetimes in seconds."""

    SHORT = 60
    MEDIUM = 5 * 60
    LONG = 15 * 60
    EXTENDED = 60 * 60


class CacheTags:
    """Tag names used to group related cache entries."""

    DASHBOARD = "dashboard"
    PRODUCTS = "products"
    ORDERS = "orders"
    USERS = "users"
    CATEGORIES = "categories"
    ANALYTICS = "analytics"
    INVENTORY = "inventory"
    NEWSLETTER = "newsletter"


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its lifetime and invalidation tags."""

    key: str
    value: object
    created_at: datetime
    ttl_seconds: float
    tags: frozenset[str] = frozenset()

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_live(self, now: datetime) -> bool:
        """Return true while the entry has not reached its expiry."""
        return now < self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of a cache store for observability."""

    size: int
    keys: list[str]
    approx_memory: int | None = None


@dataclass(frozen=True)
class PageCacheContext:
    """Context supplied when storing a rendered page or data payload."""

    revalidate_seconds: float | None = None
    tags: list[str] = field(default_factory=list)


def path_tag(path: str) -> str:
    """Return the implicit tag attached to pages rendered for a path."""
    return f"path:{path}"
