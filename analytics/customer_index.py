"""
Customer index: groups order lines by resolved customer identity.
"""

import logging
from collections.abc import Iterable, Iterator

from models.orders import OrderLineRecord

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = "UNKNOWN"
SYNTHETIC_PREFIX = "CUST"


def normalize_customer_id(value: str | None) -> str:
    """Trim and upper-case a customer id so lookups are case-insensitive."""
    return (value or "").strip().upper()


def derive_customer_id(transaction_id: str | None) -> str:
    """
    Derive a customer id from a transaction id.

    ``"AB-1234"`` -> ``"AB"`` (text before the first hyphen),
    ``"99990042"`` -> ``"CUST0042"`` (prefix + last four characters),
    ``""`` -> ``"UNKNOWN"``.
    """
    tx = (transaction_id or "").strip()
    if "-" in tx:
        return tx.split("-", 1)[0].upper()
    if tx:
        return (SYNTHETIC_PREFIX + tx[-4:]).upper()
    return UNKNOWN_CUSTOMER


def resolve_customer_id(record: OrderLineRecord) -> str:
    """Explicit CUSTOMER_ID if non-blank, otherwise derived from TRANSACTION_ID."""
    explicit = (record.customer_id or "").strip()
    return normalize_customer_id(explicit or derive_customer_id(record.transaction_id))


class CustomerIndex:
    """
    Immutable mapping of customer id -> that customer's order lines.

    Built once per table load. Lines keep their table order within a group.
    """

    def __init__(self, groups: dict[str, tuple[OrderLineRecord, ...]] | None = None):
        self._groups: dict[str, tuple[OrderLineRecord, ...]] = dict(groups or {})
        self._customer_ids: tuple[str, ...] = tuple(sorted(self._groups))

    @classmethod
    def build(cls, records: Iterable[OrderLineRecord]) -> "CustomerIndex":
        """Group records by customer; records with no resolvable id are dropped."""
        grouped: dict[str, list[OrderLineRecord]] = {}
        dropped = 0
        for record in records:
            customer_id = resolve_customer_id(record)
            if not customer_id:
                dropped += 1
                continue
            grouped.setdefault(customer_id, []).append(record)

        if dropped:
            logger.warning(f"Dropped {dropped} order lines with no resolvable customer id")
        index = cls({cid: tuple(lines) for cid, lines in grouped.items()})
        logger.info(f"Indexed {index.record_count} order lines for {len(index)} customers")
        return index

    @property
    def customer_ids(self) -> tuple[str, ...]:
        """Distinct customer ids, sorted ascending."""
        return self._customer_ids

    @property
    def record_count(self) -> int:
        return sum(len(lines) for lines in self._groups.values())

    def records_for(self, customer_id: str) -> tuple[OrderLineRecord, ...]:
        """Order lines of a customer (empty if unknown). The id is normalized first."""
        return self._groups.get(normalize_customer_id(customer_id), ())

    def __contains__(self, customer_id: object) -> bool:
        return isinstance(customer_id, str) and normalize_customer_id(customer_id) in self._groups

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[str]:
        return iter(self._customer_ids)
