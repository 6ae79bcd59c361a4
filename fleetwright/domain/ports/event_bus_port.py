"""
Event Bus Port

Architectural Intent:
- Abstract interface for publishing domain events
- Allows decoupling of event producers (installer, coordinator) from consumers
- Implementation is in-memory; the CLI subscribes for progress output
"""

from typing import Protocol, Callable, Awaitable, Iterable, runtime_checkable
from fleetwright.domain.events.event_base import DomainEvent


@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, events: Iterable[DomainEvent]) -> None: ...

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None: ...
