"""
Application Orchestration Package

Architectural Intent:
- Contains workflow orchestration helpers
- Partition-and-retry combinator and cancellable background tasks
"""

from fleetwright.application.orchestration.partition_retry import (
    Partition,
    partition,
    retry_failures,
)
from fleetwright.application.orchestration.background import (
    background_task,
    heartbeat,
)

__all__ = ["Partition", "partition", "retry_failures", "background_task", "heartbeat"]
