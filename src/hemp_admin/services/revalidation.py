"""Storefront revalidation after catalog changes."""

import logging
from dataclasses import dataclass

from hemp_admin.adapters.storefront_client import StorefrontClient

_logger = logging.getLogger(__name__)


@dataclass
class RevalidationService:
    """Asks the storefront to refresh pages for changed content."""

    client: StorefrontClient
    secret: str | None = None

    async def trigger(
        self,
        content_type: str,
        content_id: str | None = None,
        paths: list[str] | None = None,
    ) -> bool:
        """Request revalidation; returns False instead of raising on failure."""
        if not self.secret:
            _logger.warning("Storefront revalidation secret not configured; skipping")
            return False
        payload: dict[str, object] = {"secret": self.secret, "type": content_type}
        if content_id is not None:
            payload["id"] = content_id
        if paths:
            payload["paths"] = paths
        try:
            await self.client.revalidate(payload)
        except Exception:
            _logger.warning(
                "Storefront revalidation failed",
                extra={"type": content_type, "id": content_id},
                exc_info=True,
            )
            return False
        _logger.info("Storefront revalidated: type=%s id=%s", content_type, content_id)
        return True
