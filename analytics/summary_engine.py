"""
Summary engine: derives a CustomerSummary from one customer's order lines.

Everything here is a pure function of its arguments. The evaluation time used
for recency can be injected through ``now`` so results are reproducible.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from config.config import CustomerAnalyticsConfig
from models.customer import CustomerSummary, FavoriteItem, OrderHistoryEntry
from models.enums import LoyaltyStatus
from models.orders import OrderLineRecord

logger = logging.getLogger(__name__)

UNKNOWN_ITEM = "Unknown"
SECONDS_PER_DAY = 86400.0


@dataclass
class _ItemTotals:
    count: float = 0.0
    spend: float = 0.0


def group_orders(records: Sequence[OrderLineRecord]) -> dict[str, list[OrderLineRecord]]:
    """Group lines by order identity, in first-seen order. Lines with no identity are skipped."""
    orders: dict[str, list[OrderLineRecord]] = {}
    for record in records:
        key = record.order_key
        if key:
            orders.setdefault(key, []).append(record)
    return orders


def rank_favorite_items(
    records: Sequence[OrderLineRecord], total_items: float, limit: int = 10
) -> list[FavoriteItem]:
    """
    Rank items by ordered quantity, highest first.
    Ties keep the order in which items were first seen.
    """
    totals: dict[str, _ItemTotals] = {}
    for record in records:
        name = record.item_name.strip() or UNKNOWN_ITEM
        item = totals.setdefault(name, _ItemTotals())
        item.count += record.quantity
        item.spend += record.spend

    # Stable sort on the negated count keeps ties in first-seen order
    ranked = sorted(totals.items(), key=lambda kv: -kv[1].count)
    return [
        FavoriteItem(
            name=name,
            count=item.count,
            spend=item.spend,
            share=item.count / total_items if total_items else 0.0,
        )
        for name, item in ranked[:limit]
    ]


def compute_engagement(
    records: Sequence[OrderLineRecord],
    now: datetime | None = None,
    config: CustomerAnalyticsConfig | None = None,
) -> int:
    """
    Engagement score in [0, 100], blending visit frequency with recency.

    frequency = distinct orders / max(1, days between first and last visit)
    recency   = 1 at the last visit, decaying linearly to 0 over the recency window
    score     = min(100, frequency * frequency_weight + recency * recency_weight)
    """
    cfg = config or CustomerAnalyticsConfig()
    dates = sorted(d for d in (r.parsed_date for r in records) if d is not None)
    if not dates:
        return 0

    first, last = dates[0], dates[-1]
    days_span = max(1.0, (last - first).total_seconds() / SECONDS_PER_DAY)
    visits = len(group_orders(records))
    frequency = visits / days_span

    reference = now or datetime.now()
    recency_days = max(0.0, (reference - last).total_seconds() / SECONDS_PER_DAY)
    window = cfg.recency_window_days
    recency_factor = max(0.0, 1.0 - min(recency_days / window, 1.0)) if window > 0 else 0.0

    raw = min(100.0, frequency * cfg.frequency_weight + recency_factor * cfg.recency_weight)
    # Round half up
    return max(0, int(math.floor(raw + 0.5)))


def build_order_history(orders: dict[str, list[OrderLineRecord]]) -> list[OrderHistoryEntry]:
    """One entry per order from its first line, newest first; undated orders go last."""
    entries = []
    for order_id, lines in orders.items():
        first_line = lines[0]
        entries.append(
            OrderHistoryEntry(
                date=first_line.parsed_date,
                order_id=order_id,
                item_name=first_line.item_name,
                quantity=first_line.quantity,
                amount=first_line.spend,
            )
        )
    dated = sorted((e for e in entries if e.date is not None), key=lambda e: e.date, reverse=True)
    undated = [e for e in entries if e.date is None]
    return dated + undated


def loyalty_for(total_visits: int, config: CustomerAnalyticsConfig) -> LoyaltyStatus:
    # VIP has no assignment rule yet
    if total_visits >= config.regular_visit_threshold:
        return LoyaltyStatus.REGULAR
    return LoyaltyStatus.NEW


def summarize(
    customer_id: str,
    records: Sequence[OrderLineRecord],
    config: CustomerAnalyticsConfig | None = None,
    now: datetime | None = None,
) -> CustomerSummary:
    """Compute the analytics summary of one customer from their order lines."""
    cfg = config or CustomerAnalyticsConfig()
    records = list(records)

    orders = group_orders(records)
    total_visits = len(orders)

    total_spend = 0.0
    total_items = 0.0
    last_visit: datetime | None = None
    for record in records:
        total_spend += record.spend
        total_items += record.quantity
        date = record.parsed_date
        if date is not None and (last_visit is None or date > last_visit):
            last_visit = date

    customer_name = None
    if records and records[0].customer_name and records[0].customer_name.strip():
        customer_name = records[0].customer_name.strip()

    summary = CustomerSummary(
        customer_id=customer_id,
        customer_name=customer_name,
        total_visits=total_visits,
        total_spend=total_spend,
        last_visit=last_visit,
        avg_spend_per_visit=total_spend / total_visits if total_visits else 0.0,
        total_items_ordered=total_items,
        loyalty_status=loyalty_for(total_visits, cfg),
        customer_lifetime_value=total_spend * cfg.retention_factor,
        engagement_score=compute_engagement(records, now=now, config=cfg),
        favorite_items=tuple(rank_favorite_items(records, total_items, cfg.favorite_items_limit)),
        order_history=tuple(build_order_history(orders)),
    )
    logger.debug(
        f"Summarized {customer_id}: {total_visits} visits, spend {total_spend:.2f}, "
        f"engagement {summary.engagement_score}"
    )
    return summary
