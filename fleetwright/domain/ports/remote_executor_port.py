"""
Remote Executor Port

Architectural Intent:
- Port interface for executing commands and moving files on cluster nodes
- Defines contract for per-node execution capabilities
- Implemented by adapters (Fabric/SSH for remote members, subprocess for the
  local member, a router that picks between them)

Error contract:
- Unreachable node -> ConnectivityError
- Connect or command timeout exceeded -> OperationTimeoutError
- A command that runs but exits non-zero is NOT an error: inspect CommandResult
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.command_result import CommandResult, RemoteFile


class RemoteExecutorPort(ABC):
    """
    Port interface for executing commands on cluster nodes.
    """

    @abstractmethod
    async def run(
        self, node: Node, command: str, timeout: Optional[float] = None
    ) -> CommandResult:
        """
        Runs a shell command on a node and returns its result.
        """
        pass

    @abstractmethod
    async def put(self, node: Node, data: bytes, path: str, mode: int = 0o644) -> None:
        """
        Writes bytes to a file on a node, creating or replacing it.
        """
        pass

    @abstractmethod
    async def get(self, node: Node, path: str) -> bytes:
        """
        Reads a file from a node. Raises FileNotFoundError if missing.
        """
        pass

    @abstractmethod
    async def exists(self, node: Node, path: str) -> bool:
        pass

    @abstractmethod
    async def remove(self, node: Node, path: str) -> None:
        """
        Removes a file from a node. Missing files are not an error.
        """
        pass

    @abstractmethod
    async def copy(self, node: Node, source: str, destination: str, mode: int = 0o644) -> None:
        """
        Atomically replaces destination with a copy of source on the same node.
        """
        pass

    @abstractmethod
    async def make_dirs(self, node: Node, path: str) -> None:
        pass

    @abstractmethod
    async def list_files(self, node: Node, directory: str) -> List[RemoteFile]:
        """
        Lists regular files directly inside a directory. Missing directory -> [].
        """
        pass

    async def close(self) -> None:
        """
        Releases any connections held by the adapter.
        """
        return None
