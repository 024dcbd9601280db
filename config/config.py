"""
Configuration classes for the customer analytics core.
Defines the tunable constants of the summary engine and the table location
in a type-safe, extensible way.
"""

import logging
import os
from dataclasses import dataclass, fields

from utils.env import load_project_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "CUSTOMER_ANALYTICS_"


@dataclass
class CustomerAnalyticsConfig:
    table_path: str = "demo_customer_orders_under50.csv"
    regular_visit_threshold: int = 3  # Visits needed for REGULAR loyalty
    retention_factor: float = 1.2  # Lifetime value multiplier on total spend
    favorite_items_limit: int = 10
    recency_window_days: float = 30.0  # Recency decays to zero over this window
    frequency_weight: float = 120.0
    recency_weight: float = 80.0
    preselect_first_customer: bool = False

    @classmethod
    def from_env(cls) -> "CustomerAnalyticsConfig":
        """
        Build a config from ``CUSTOMER_ANALYTICS_*`` environment variables
        (e.g. ``CUSTOMER_ANALYTICS_RETENTION_FACTOR=1.5``), loading the
        project-level ``.env`` first. Unset variables keep their defaults.
        """
        load_project_dotenv()
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                overrides[f.name] = _coerce(raw, f.default)
            except ValueError:
                logger.warning(f"Ignoring invalid value {raw!r} for {ENV_PREFIX + f.name.upper()}")
        return cls(**overrides)


def _coerce(raw: str, default: object) -> object:
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(raw)
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


# Example usage:
# config = CustomerAnalyticsConfig.from_env()
# coordinator = QueryCoordinator(config)
