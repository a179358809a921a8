"""Domain models for the admin dashboard."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class OrderRow:
    """Order fields needed for dashboard aggregates."""

    id: UUID
    status: str
    total_amount: float
    created_at: datetime
    customer_email: str | None = None
