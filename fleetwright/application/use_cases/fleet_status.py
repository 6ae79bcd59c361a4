"""
Inspect Fleet Use Case

Architectural Intent:
- Reports, per cluster member, reachability and the installed artifact version
- Divergent versions across members are reported, never reconciled
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fleetwright.domain.errors import FleetError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.ports.topology_port import TopologyPort
from fleetwright.domain.services.artifact_inspector import inspect_installed
from fleetwright.domain.services.connectivity_prober import ConnectivityProber
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeStatus:
    node: Node
    reachable: bool
    present: bool = False
    version: Optional[str] = None
    error: str = ""


@dataclass(frozen=True)
class FleetStatus:
    nodes: tuple[NodeStatus, ...]

    @property
    def versions(self) -> set[str]:
        return {s.version or "unknown" for s in self.nodes if s.present}

    @property
    def diverged(self) -> bool:
        return len(self.versions) > 1


class InspectFleet:
    def __init__(
        self,
        topology: TopologyPort,
        prober: ConnectivityProber,
        executor: RemoteExecutorPort,
        install_path: str,
    ):
        self.topology = topology
        self.prober = prober
        self.executor = executor
        self.install_path = install_path

    async def _inspect(self, node: Node) -> NodeStatus:
        try:
            installed = await inspect_installed(self.executor, node, self.install_path)
        except (FleetError, OSError) as e:
            logger.warning("Cannot inspect %s: %s", node.name, e)
            return NodeStatus(node=node, reachable=True, error=str(e))
        if installed is None:
            return NodeStatus(node=node, reachable=True)
        return NodeStatus(node=node, reachable=True, present=True, version=installed.version)

    async def execute(self) -> FleetStatus:
        members = await self.topology.list_members()
        probe = await self.prober.probe(members)
        inspected = dict(
            zip(probe.reachable, await asyncio.gather(*(self._inspect(n) for n in probe.reachable)))
        )
        reasons = {u.node: u.reason for u in probe.unreachable}

        statuses = []
        for node in members:
            if node in inspected:
                statuses.append(inspected[node])
            else:
                statuses.append(NodeStatus(node=node, reachable=False, error=reasons.get(node, "")))
        return FleetStatus(nodes=tuple(statuses))
