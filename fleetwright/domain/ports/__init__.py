"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.ports.topology_port import TopologyPort
from fleetwright.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "RemoteExecutorPort",
    "ReleaseSourcePort",
    "TopologyPort",
    "EventBusPort",
]
