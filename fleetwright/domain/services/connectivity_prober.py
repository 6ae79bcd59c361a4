"""
Connectivity Prober

Architectural Intent:
- Classifies cluster members as reachable or unreachable
- One bounded-timeout no-op command per remote member, no internal retries
- Pure partition of the input, order preserved; nothing is silently dropped
- Whether to proceed with a reachable-only set is the caller's decision

Parallelization Strategy:
- Probes run concurrently so total latency is bounded by the slowest probe,
  not by cluster size
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from fleetwright.domain.errors import FleetError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)

PROBE_COMMAND = "true"


@dataclass(frozen=True)
class UnreachableNode:
    node: Node
    reason: str


@dataclass(frozen=True)
class ProbeReport:
    reachable: tuple[Node, ...] = ()
    unreachable: tuple[UnreachableNode, ...] = ()

    @property
    def unreachable_nodes(self) -> tuple[Node, ...]:
        return tuple(u.node for u in self.unreachable)

    @property
    def all_reachable(self) -> bool:
        return not self.unreachable


class ConnectivityProber:
    def __init__(self, executor: RemoteExecutorPort, timeout: Optional[float] = 5.0) -> None:
        self.executor = executor
        self.timeout = timeout

    async def _probe_one(self, node: Node) -> Optional[str]:
        """Returns None if reachable, otherwise the reason."""
        if node.is_local:
            return None
        try:
            result = await self.executor.run(node, PROBE_COMMAND, timeout=self.timeout)
        except FleetError as e:
            return f"{type(e).__name__}: {e}"
        if not result.ok:
            return f"probe exited with {result.exit_code}"
        return None

    async def probe(self, nodes: Sequence[Node]) -> ProbeReport:
        reasons = await asyncio.gather(*(self._probe_one(n) for n in nodes))

        reachable = []
        unreachable = []
        for node, reason in zip(nodes, reasons):
            if reason is None:
                reachable.append(node)
            else:
                logger.warning("Node %s is unreachable: %s", node.name, reason)
                unreachable.append(UnreachableNode(node, reason))

        return ProbeReport(reachable=tuple(reachable), unreachable=tuple(unreachable))
