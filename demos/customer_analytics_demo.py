"""
Demonstration of the customer analytics core.

Loads the demo order table while a scanned customer id arrives mid-load, then
prints the resulting summary and a couple of follow-up searches.

Run with: python -m demos.customer_analytics_demo [path/to/orders.csv]
"""

import asyncio
import logging
import sys
from pathlib import Path

from analytics.query_coordinator import QueryCoordinator
from config.config import CustomerAnalyticsConfig
from connectors.customer_selection import CustomerSelectionChannel
from connectors.table_source import FileTableSource
from models.customer import CustomerSummary
from utils.logger import get_logger

logger = get_logger()
demo_logger = logging.getLogger("customer-analytics-demo")

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def print_summary(summary: CustomerSummary | None) -> None:
    if summary is None:
        print("  (no summary)")
        return
    print(f"  Customer:        {summary.customer_id} {summary.customer_name or ''}".rstrip())
    print(f"  Visits:          {summary.total_visits}")
    print(f"  Total spend:     {summary.total_spend:.2f}")
    print(f"  Avg per visit:   {summary.avg_spend_per_visit:.2f}")
    print(f"  Items ordered:   {summary.total_items_ordered:g}")
    print(f"  Last visit:      {summary.last_visit}")
    print(f"  Loyalty:         {summary.loyalty_status.value}")
    print(f"  Lifetime value:  {summary.customer_lifetime_value:.2f}")
    print(f"  Engagement:      {summary.engagement_score}/100")
    print("  Favorite items:")
    for item in summary.favorite_items:
        print(f"    - {item.name}: {item.count:g} units, {item.spend:.2f} spent ({item.share:.0%})")
    print("  Order history:")
    for entry in summary.order_history:
        print(f"    - {entry.date} {entry.order_id}: {entry.item_name} x{entry.quantity:g} = {entry.amount:.2f}")


async def main(table_path: Path) -> None:
    config = CustomerAnalyticsConfig.from_env()
    channel = CustomerSelectionChannel()
    coordinator = QueryCoordinator(config)
    coordinator.attach(channel)

    try:
        load_task = asyncio.create_task(coordinator.load(FileTableSource(table_path)))
        # A scan lands while the table is still loading
        await channel.set("c100")
        demo_logger.info(f"Queued scan while {coordinator.state.value}: {coordinator.pending_id}")
        await load_task
        await asyncio.sleep(0)  # Let the deferred pending search run

        if coordinator.get_error():
            print(f"Error: {coordinator.get_error()}")
            return

        print(f"Customers: {', '.join(coordinator.list_customer_ids())}")
        print(f"\nSummary for scanned id {coordinator.search_input}:")
        print_summary(coordinator.get_summary())

        for query in ("b7", "nobody"):
            print(f"\nSearch {query!r}:")
            coordinator.search(query)
            if coordinator.get_error():
                print(f"  Error: {coordinator.get_error()}")
            print_summary(coordinator.get_summary())
    finally:
        coordinator.detach()
        channel.close()


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DATA_DIR / CustomerAnalyticsConfig().table_path
    asyncio.run(main(path))
