"""
Proxmox Topology Adapter

Architectural Intent:
- Implements TopologyPort from the Proxmox cluster filesystem
- Typed decode of /etc/pve/.members (nodename + nodelist with member IPs)
- Falls back to the directory names under /etc/pve/nodes, then to a
  single-member standalone host
- StaticTopologyAdapter serves an explicit target list from configuration
"""

import asyncio
import json
import logging
import socket
from pathlib import Path
from typing import Any, List, Optional, Sequence

from fleetwright.domain.errors import ParseError, TopologyError
from fleetwright.domain.ports.topology_port import TopologyPort
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


def local_hostname() -> str:
    return socket.gethostname().split(".", 1)[0]


def decode_members(
    document: Any, user: str = "root", port: int = 22
) -> List[Node]:
    """
    Decodes {"nodename": str, "nodelist": {name: {"ip": str, "online": int}}}.
    The member named by "nodename" is the local one.
    """
    if not isinstance(document, dict):
        raise ParseError("Members document must be an object")
    local = document.get("nodename")
    if not isinstance(local, str) or not local:
        raise ParseError("Members document has no nodename")

    nodelist = document.get("nodelist", {})
    if nodelist is None:
        nodelist = {}
    if not isinstance(nodelist, dict):
        raise ParseError("Members nodelist must be an object")

    nodes = []
    for name in sorted(nodelist):
        entry = nodelist[name]
        if not isinstance(entry, dict):
            raise ParseError(f"Member {name} must be an object")
        ip = entry.get("ip", "")
        if ip is None:
            ip = ""
        if not isinstance(ip, str):
            raise ParseError(f"Member {name} has a non-string ip")
        if not entry.get("online", 1):
            logger.info("Cluster member %s is reported offline", name)
        try:
            nodes.append(
                Node(name=name, address=ip, is_local=(name == local), user=user, port=port)
            )
        except ValueError as e:
            raise ParseError(f"Member {name}: {e}") from e

    if not any(n.is_local for n in nodes):
        nodes.insert(0, Node(name=local, is_local=True, user=user, port=port))
    return nodes


class ProxmoxTopologyAdapter(TopologyPort):
    def __init__(
        self,
        members_file: str = "/etc/pve/.members",
        nodes_dir: str = "/etc/pve/nodes",
        user: str = "root",
        port: int = 22,
    ) -> None:
        self.members_file = Path(members_file)
        self.nodes_dir = Path(nodes_dir)
        self.user = user
        self.port = port

    def _from_members_file(self) -> Optional[List[Node]]:
        try:
            raw = self.members_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise TopologyError(f"Cannot read {self.members_file}: {e}") from e
        try:
            document = json.loads(raw)
        except ValueError as e:
            raise ParseError(f"Invalid JSON in {self.members_file}: {e}") from e
        return decode_members(document, self.user, self.port)

    def _from_nodes_dir(self) -> List[Node]:
        local = local_hostname()
        names = []
        if self.nodes_dir.is_dir():
            names = sorted(p.name for p in self.nodes_dir.iterdir() if p.is_dir())
        if not names:
            logger.info("No cluster detected, treating %s as a standalone node", local)
            names = [local]
        nodes = []
        for name in names:
            try:
                nodes.append(
                    Node(name=name, is_local=(name == local), user=self.user, port=self.port)
                )
            except ValueError as e:
                raise TopologyError(f"Cluster member {name}: {e}") from e
        return nodes

    def _discover(self) -> List[Node]:
        nodes = self._from_members_file()
        if nodes is None:
            logger.debug("%s not found, using %s", self.members_file, self.nodes_dir)
            nodes = self._from_nodes_dir()
        return nodes

    async def list_members(self) -> List[Node]:
        return await asyncio.get_running_loop().run_in_executor(None, self._discover)

    async def current_member(self) -> Node:
        for node in await self.list_members():
            if node.is_local:
                return node
        raise TopologyError("The local host is not a member of the cluster")


class StaticTopologyAdapter(TopologyPort):
    """Members given explicitly, e.g. 'pve2=root@10.0.0.2:22'."""

    def __init__(
        self,
        targets: Sequence[str],
        local_node: str = "",
        user: str = "root",
        port: int = 22,
    ) -> None:
        self.local_node = local_node or local_hostname()
        nodes = []
        for spec in targets:
            try:
                node = Node.parse(spec)
            except ValueError as e:
                raise TopologyError(f"Invalid target {spec!r}: {e}") from e
            # Login details not given in the target fall back to the ssh section
            nodes.append(
                Node(
                    name=node.name,
                    address=node.address,
                    is_local=(node.name == self.local_node),
                    user=node.user if "@" in spec else user,
                    port=node.port if node.port != 22 else port,
                )
            )
        if len({n.name for n in nodes}) != len(nodes):
            raise TopologyError("Duplicate node names in configured targets")
        self._nodes = nodes

    async def list_members(self) -> List[Node]:
        return list(self._nodes)

    async def current_member(self) -> Node:
        for node in self._nodes:
            if node.is_local:
                return node
        return Node(name=self.local_node, address="localhost", is_local=True)
