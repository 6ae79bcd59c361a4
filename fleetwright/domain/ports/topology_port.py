"""
Topology Port

Architectural Intent:
- Port interface for resolving cluster membership
- The core accepts the member list as already-resolved data
- Implemented by ProxmoxTopologyAdapter and StaticTopologyAdapter
"""

from abc import ABC, abstractmethod
from typing import List
from fleetwright.domain.value_objects.node import Node


class TopologyPort(ABC):
    """
    Port interface for cluster membership. May raise TopologyError.
    """

    @abstractmethod
    async def list_members(self) -> List[Node]:
        """
        Returns every cluster member, with exactly one marked as local.
        """
        pass

    @abstractmethod
    async def current_member(self) -> Node:
        pass
