"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus implementation for publishing domain events
- Subscribing to a base class receives every subclass event
- Every published event is logged at DEBUG with its payload attached
- A failing handler is logged and never interrupts the publisher
"""

import logging
from typing import Callable, Awaitable, Iterable
from fleetwright.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    def _handlers_for(self, event: DomainEvent) -> list[Handler]:
        matched = []
        for event_type, handlers in self._handlers.items():
            if isinstance(event, event_type):
                matched.extend(handlers)
        return matched

    async def publish(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            logger.debug(
                "%s on %s", event.event_type, event.aggregate_id or "-",
                extra={"event": event.to_dict()},
            )
            for handler in self._handlers_for(event):
                try:
                    await handler(event)
                except Exception:
                    logger.exception("Handler for %s failed", event.event_type)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
