"""Supabase repository for dashboard queries."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from hemp_admin.domain.dashboard import OrderRow
from hemp_admin.services.dashboard import DashboardRepository


@dataclass
class SupabaseDashboardRepository(DashboardRepository):
    """Supabase implementation for dashboard aggregates."""

    client: Client

    def list_orders(self) -> list[OrderRow]:
        """Return orders newest first."""
        response = (
            self.client.table("orders")
            .select("id, status, total_amount, created_at, customer_email")
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_order(row) for row in response.data or []]

    def count_active_subscribers(self, since: datetime | None = None) -> int:
        """Count active newsletter subscriptions."""
        query = (
            self.client.table("newsletter_subscriptions")
            .select("id", count="exact")
            .eq("active", True)
        )
        if since is not None:
            query = query.gte("subscribed_at", since.isoformat())
        response = query.execute()
        return response.count or 0


def _parse_order(row: dict[str, object]) -> OrderRow:
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else datetime.min
    )
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    email = row.get("customer_email")
    return OrderRow(
        id=UUID(str(row["id"])),
        status=str(row.get("status") or "pending"),
        total_amount=float(row.get("total_amount") or 0.0),
        created_at=created_at,
        customer_email=str(email) if email else None,
    )
