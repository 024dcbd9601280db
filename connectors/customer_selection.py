"""
Module: connectors.customer_selection

Single-slot broadcast channel for customer ids coming from a scanner or a
search box. It remembers the most recent id and publishes every new one to
subscribers through the event bus.
"""

import logging

from models.enums import EventSource
from models.events import CUSTOMER_SELECTED, CustomerSelected
from utils.event_bus import EventBus, EventCallback

logger = logging.getLogger(__name__)


class CustomerSelectionChannel:
    """
    Holds the last selected customer id for the lifetime of the process.

    Create one at startup, hand it to both the id producer and the query
    coordinator, and ``close()`` it at shutdown.
    """

    def __init__(self, event_bus: EventBus | None = None):
        self.event_bus = event_bus or EventBus()
        self._current: str | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def peek(self) -> str | None:
        """The last published id, or None."""
        return self._current

    async def set(self, customer_id: str, source: EventSource = EventSource.SCANNER) -> None:
        """Remember ``customer_id`` and publish it to subscribers."""
        if self._closed:
            logger.warning(f"Ignoring customer id {customer_id!r} published on a closed channel")
            return
        self._current = customer_id
        await self.event_bus.publish(
            CustomerSelected(payload={"customer_id": customer_id}, source=source)
        )

    def subscribe(self, callback: EventCallback) -> None:
        self.event_bus.subscribe(CUSTOMER_SELECTED, callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        self.event_bus.unsubscribe(CUSTOMER_SELECTED, callback)

    def close(self) -> None:
        """Forget the current id and drop all subscribers."""
        self.event_bus.unsubscribe_all(CUSTOMER_SELECTED)
        self._current = None
        self._closed = True

