"""
Fabric Adapter

Architectural Intent:
- Infrastructure adapter implementing RemoteExecutorPort via Fabric/SSH
- Provides command execution and file transfer on remote cluster members
- Blocking Fabric calls run in the default executor, one connection per node

Timeouts:
- connect_timeout bounds the SSH handshake, command_timeout bounds each command
- Either being exceeded raises OperationTimeoutError

Security:
- SSH connections use connect_timeout, allow_agent, look_for_keys
- All remote paths are quoted via shlex.quote() to prevent shell injection
"""

import asyncio
import io
import logging
import shlex
import threading
from typing import Callable, List, Optional, TypeVar

from fabric import Connection
from invoke.exceptions import CommandTimedOut
from paramiko.ssh_exception import SSHException

from fleetwright.domain.errors import ConnectivityError, OperationTimeoutError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.command_result import CommandResult, RemoteFile
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_file_listing(output: str, directory: str) -> List[RemoteFile]:
    """Parse `find -printf '%f\\t%s\\t%T@\\n'` output."""
    base = directory.rstrip("/") or "/"
    files = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) != 3:
            continue
        name, size, modified = parts
        try:
            files.append(
                RemoteFile(
                    name=name,
                    path=f"{base}/{name}",
                    size=int(size),
                    modified=float(modified),
                )
            )
        except ValueError:
            logger.debug("Skipping unparsable listing line: %r", line)
    return files


class FabricAdapter(RemoteExecutorPort):
    """Adapter implementing RemoteExecutorPort via Fabric/SSH."""

    def __init__(
        self,
        connect_timeout: float = 10.0,
        command_timeout: float = 120.0,
        connection_factory: Optional[Callable[[Node], Connection]] = None,
    ) -> None:
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._connection_factory = connection_factory or self._new_connection
        self._connections: dict[str, Connection] = {}
        self._lock = threading.Lock()

    def _new_connection(self, node: Node) -> Connection:
        return Connection(
            host=node.address,
            user=node.user,
            port=node.port,
            connect_timeout=self.connect_timeout,
            connect_kwargs={
                "allow_agent": True,
                "look_for_keys": True,
            },
        )

    def _get_connection(self, node: Node) -> Connection:
        with self._lock:
            conn = self._connections.get(node.name)
            if conn is None:
                conn = self._connection_factory(node)
                self._connections[node.name] = conn
            return conn

    def _drop_connection(self, name: str) -> None:
        with self._lock:
            conn = self._connections.pop(name, None)
        if conn is not None:
            try:
                conn.close()
            except (SSHException, OSError) as e:
                logger.debug("Error closing connection to %s: %s", name, e)

    async def _call(self, node: Node, fn: Callable[[Connection], T]) -> T:
        def _work() -> T:
            return fn(self._get_connection(node))

        try:
            return await asyncio.get_running_loop().run_in_executor(None, _work)
        except asyncio.CancelledError:
            # Closing the transport unblocks the worker thread
            self._drop_connection(node.name)
            raise
        except CommandTimedOut as e:
            self._drop_connection(node.name)
            raise OperationTimeoutError(
                f"Command timed out on {node.name} after {e.timeout}s"
            ) from e
        except TimeoutError as e:
            self._drop_connection(node.name)
            raise OperationTimeoutError(f"Connection to {node.name} timed out") from e
        except (FileNotFoundError, PermissionError):
            raise
        except (SSHException, OSError, EOFError) as e:
            self._drop_connection(node.name)
            raise ConnectivityError(f"Cannot reach {node.ssh_target}: {e}") from e

    async def run(
        self, node: Node, command: str, timeout: Optional[float] = None
    ) -> CommandResult:
        limit = timeout if timeout is not None else self.command_timeout

        def _run(conn: Connection) -> CommandResult:
            result = conn.run(command, hide=True, warn=True, timeout=limit, in_stream=False)
            return CommandResult(
                exit_code=result.exited, stdout=result.stdout, stderr=result.stderr
            )

        logger.debug("[%s] $ %s", node.name, command)
        return await self._call(node, _run)

    async def _check(self, node: Node, command: str, action: str) -> CommandResult:
        result = await self.run(node, command)
        if not result.ok:
            raise OSError(f"{action} failed on {node.name}: {result.stderr.strip()}")
        return result

    async def put(self, node: Node, data: bytes, path: str, mode: int = 0o644) -> None:
        def _put(conn: Connection) -> None:
            conn.put(io.BytesIO(data), remote=path)
            conn.sftp().chmod(path, mode)

        await self._call(node, _put)

    async def get(self, node: Node, path: str) -> bytes:
        def _get(conn: Connection) -> bytes:
            buffer = io.BytesIO()
            conn.get(path, local=buffer)
            return buffer.getvalue()

        return await self._call(node, _get)

    async def exists(self, node: Node, path: str) -> bool:
        result = await self.run(node, f"test -e {shlex.quote(path)}")
        return result.ok

    async def remove(self, node: Node, path: str) -> None:
        await self._check(node, f"rm -f -- {shlex.quote(path)}", f"Removing {path}")

    async def copy(self, node: Node, source: str, destination: str, mode: int = 0o644) -> None:
        staged = shlex.quote(f"{destination}.fleetwright-new")
        command = (
            f"cp -- {shlex.quote(source)} {staged}"
            f" && chmod {mode:o} {staged}"
            f" && mv -f -- {staged} {shlex.quote(destination)}"
        )
        result = await self.run(node, command)
        if not result.ok:
            await self.run(node, f"rm -f -- {staged}")
            raise OSError(
                f"Copying {source} to {destination} failed on {node.name}: {result.stderr.strip()}"
            )

    async def make_dirs(self, node: Node, path: str) -> None:
        await self._check(node, f"mkdir -p -- {shlex.quote(path)}", f"Creating {path}")

    async def list_files(self, node: Node, directory: str) -> List[RemoteFile]:
        quoted = shlex.quote(directory)
        command = (
            f"if [ -d {quoted} ]; then "
            f"find {quoted} -mindepth 1 -maxdepth 1 -type f -printf '%f\\t%s\\t%T@\\n'; fi"
        )
        result = await self._check(node, command, f"Listing {directory}")
        return parse_file_listing(result.stdout, directory)

    async def close(self) -> None:
        with self._lock:
            nodes = list(self._connections)
        for name in nodes:
            self._drop_connection(name)
