"""
Simple asynchronous event bus connecting analytics collaborators.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from models.events import AnalyticsEvent

logger_event_bus = logging.getLogger(__name__)

EventCallback = Callable[[AnalyticsEvent], Coroutine[Any, Any, None]]


class EventBus:
    """Publish/subscribe bus keyed by event type. Subscribers are async callables."""

    def __init__(self):
        self.subscribers: dict[str, list[EventCallback]] = {}

    def subscribe(self, event_type: str, callback: EventCallback) -> None:
        """Subscribe to an event type."""
        if not callable(callback):
            raise TypeError("Callback must be a callable async function.")
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        if callback not in self.subscribers[event_type]:
            self.subscribers[event_type].append(callback)
            logger_event_bus.debug(f"Callback {_name(callback)} subscribed to {event_type}")
        else:
            logger_event_bus.warning(f"Callback {_name(callback)} already subscribed to {event_type}")

    def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        """Unsubscribe a specific callback from an event type."""
        if event_type in self.subscribers:
            try:
                self.subscribers[event_type].remove(callback)
                logger_event_bus.debug(f"Callback {_name(callback)} unsubscribed from {event_type}")
                if not self.subscribers[event_type]:
                    del self.subscribers[event_type]
            except ValueError:
                logger_event_bus.warning(f"Callback {_name(callback)} not found for event type {event_type}")

    def unsubscribe_all(self, event_type: str) -> None:
        """Drop every subscription to an event type."""
        if self.subscribers.pop(event_type, None) is not None:
            logger_event_bus.debug(f"All callbacks unsubscribed from {event_type}")

    async def publish(self, event: AnalyticsEvent) -> None:
        """Publish an event to subscribers."""
        if not isinstance(event, AnalyticsEvent):
            logger_event_bus.error(f"Attempted to publish invalid event type: {type(event)}")
            return

        logger_event_bus.info(f"Event published: {event.event_type} from {event.source.value}")
        callbacks = list(self.subscribers.get(event.event_type, []))
        if not callbacks:
            return
        tasks = [asyncio.create_task(callback(event)) for callback in callbacks]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for callback, result in zip(callbacks, results):
            if isinstance(result, Exception):
                logger_event_bus.error(
                    f"Error in subscriber callback '{_name(callback)}' for event {event.event_type}: {result}",
                    exc_info=False,
                )


def _name(callback: Any) -> str:
    return getattr(callback, "__name__", type(callback).__name__)
