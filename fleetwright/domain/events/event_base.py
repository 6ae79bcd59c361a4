"""
Domain Events Module

Architectural Intent:
- Base class for everything the installer and the rollout announce
- aggregate_id is always the node name the event is about
- Events are immutable and flatten to plain dicts for structured logs
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), init=False, repr=False
    )
    aggregate_id: str = ""

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"event_type": self.event_type, **asdict(self)}
