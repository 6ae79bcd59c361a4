"""
Rollout Events

Architectural Intent:
- Events emitted while a rollout progresses, one aggregate per node name
- Consumed by presentation (progress lines) and logging subscribers
- Carry plain strings so subscribers need no domain imports
"""

from dataclasses import dataclass

from fleetwright.domain.events.event_base import DomainEvent


@dataclass(frozen=True)
class NodeInstallStarted(DomainEvent):
    version: str = ""
    position: int = 0
    total: int = 0


@dataclass(frozen=True)
class InstallStateChanged(DomainEvent):
    state: str = ""


@dataclass(frozen=True)
class NodeInstallFinished(DomainEvent):
    outcome: str = ""
    reason: str = ""


@dataclass(frozen=True)
class RolloutAborted(DomainEvent):
    reason: str = ""


@dataclass(frozen=True)
class RolloutCompleted(DomainEvent):
    succeeded: int = 0
    failed: int = 0
    not_attempted: int = 0
