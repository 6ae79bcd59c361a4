"""
Domain Events Package

Architectural Intent:
- Contains domain events emitted by the rollout and the node installer
- Events are the primary mechanism for progress reporting across boundaries
"""

from fleetwright.domain.events.event_base import DomainEvent
from fleetwright.domain.events.rollout_events import (
    NodeInstallStarted,
    InstallStateChanged,
    NodeInstallFinished,
    RolloutAborted,
    RolloutCompleted,
)

__all__ = [
    "DomainEvent",
    "NodeInstallStarted",
    "InstallStateChanged",
    "NodeInstallFinished",
    "RolloutAborted",
    "RolloutCompleted",
]
