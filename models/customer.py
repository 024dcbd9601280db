"""
Customer analytics summary models.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import LoyaltyStatus


class FavoriteItem(BaseModel):
    """An item ranked by how many units of it the customer ordered."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: float
    spend: float
    share: float  # count / total items ordered


class OrderHistoryEntry(BaseModel):
    """One past order, described by its first line."""

    model_config = ConfigDict(frozen=True)

    date: datetime | None
    order_id: str
    item_name: str
    quantity: float
    amount: float


class CustomerSummary(BaseModel):
    """
    Immutable per-customer analytics snapshot.

    Recomputed on every query from the customer's order lines.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: str
    customer_name: str | None = None
    total_visits: int = 0
    total_spend: float = 0.0
    last_visit: datetime | None = None
    avg_spend_per_visit: float = 0.0
    total_items_ordered: float = 0.0
    loyalty_status: LoyaltyStatus = LoyaltyStatus.NEW
    customer_lifetime_value: float = 0.0
    engagement_score: int = Field(default=0, ge=0, le=100)
    favorite_items: tuple[FavoriteItem, ...] = ()
    order_history: tuple[OrderHistoryEntry, ...] = ()
