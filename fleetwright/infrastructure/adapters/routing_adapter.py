"""
Routing Adapter

Architectural Intent:
- Single RemoteExecutorPort handed to the domain
- Sends operations for the local member to the local adapter and everything
  else over SSH, so domain services never branch on locality
"""

from typing import List, Optional

from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.command_result import CommandResult, RemoteFile
from fleetwright.domain.value_objects.node import Node


class NodeRouter(RemoteExecutorPort):
    def __init__(self, local: RemoteExecutorPort, remote: RemoteExecutorPort) -> None:
        self.local = local
        self.remote = remote

    def _for(self, node: Node) -> RemoteExecutorPort:
        return self.local if node.is_local else self.remote

    async def run(
        self, node: Node, command: str, timeout: Optional[float] = None
    ) -> CommandResult:
        return await self._for(node).run(node, command, timeout=timeout)

    async def put(self, node: Node, data: bytes, path: str, mode: int = 0o644) -> None:
        await self._for(node).put(node, data, path, mode=mode)

    async def get(self, node: Node, path: str) -> bytes:
        return await self._for(node).get(node, path)

    async def exists(self, node: Node, path: str) -> bool:
        return await self._for(node).exists(node, path)

    async def remove(self, node: Node, path: str) -> None:
        await self._for(node).remove(node, path)

    async def copy(self, node: Node, source: str, destination: str, mode: int = 0o644) -> None:
        await self._for(node).copy(node, source, destination, mode=mode)

    async def make_dirs(self, node: Node, path: str) -> None:
        await self._for(node).make_dirs(node, path)

    async def list_files(self, node: Node, directory: str) -> List[RemoteFile]:
        return await self._for(node).list_files(node, directory)

    async def close(self) -> None:
        await self.remote.close()
        await self.local.close()
