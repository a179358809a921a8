"""HTTP client for the public storefront's revalidation hook."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class StorefrontClient(Protocol):
    """Interface for asking the storefront to rebuild cached pages."""

    async def revalidate(self, payload: dict[str, object]) -> dict[str, object]:
        """Send a revalidation request and return the decoded response."""


@dataclass
class HttpxStorefrontClient(StorefrontClient):
    """HTTPX-backed storefront client."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxStorefrontClient":
        """Create a storefront client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def revalidate(self, payload: dict[str, object]) -> dict[str, object]:
        """POST the payload to the storefront revalidation endpoint."""
        response = await self.http_client.post(
            f"{self.base_url}/api/revalidate",
            json=payload,
            timeout=10,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
