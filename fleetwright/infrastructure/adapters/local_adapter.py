"""
Local Adapter

Architectural Intent:
- Implements RemoteExecutorPort for the member the tool runs on
- Commands run as asyncio subprocesses, files are handled with pathlib/shutil
- Blocking file operations run in the default executor; a cancelled caller
  still waits for the worker thread to finish before unwinding

Cancellation:
- Each command runs in its own session; on timeout or cancellation the whole
  process group is killed so no descendant outlives the step
"""

import asyncio
import logging
import os
import shutil
import signal
from pathlib import Path
from typing import List, Optional

from fleetwright.domain.errors import OperationTimeoutError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.command_result import CommandResult, RemoteFile
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


def _kill_group(process: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def _replace_atomically(data_source, destination: Path, mode: int) -> None:
    staged = destination.with_name(f"{destination.name}.fleetwright-new")
    try:
        if isinstance(data_source, Path):
            shutil.copyfile(data_source, staged)
        else:
            staged.write_bytes(data_source)
        os.chmod(staged, mode)
        os.replace(staged, destination)
    except OSError:
        staged.unlink(missing_ok=True)
        raise


class LocalAdapter(RemoteExecutorPort):
    """Adapter implementing RemoteExecutorPort on the local host."""

    def __init__(self, command_timeout: float = 120.0) -> None:
        self.command_timeout = command_timeout

    async def run(
        self, node: Node, command: str, timeout: Optional[float] = None
    ) -> CommandResult:
        limit = timeout if timeout is not None else self.command_timeout
        logger.debug("[%s] $ %s", node.name, command)

        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            _kill_group(process)
            await process.wait()
            raise OperationTimeoutError(
                f"Command timed out on {node.name} after {limit}s: {command}"
            ) from None
        except asyncio.CancelledError:
            _kill_group(process)
            raise

        return CommandResult(
            exit_code=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    async def _in_executor(self, fn):
        future = asyncio.get_running_loop().run_in_executor(None, fn)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # The worker thread cannot be stopped; let it finish so later
            # cleanup does not race a write still in flight
            await asyncio.wait([future])
            if not future.cancelled() and future.exception() is not None:
                logger.debug("File operation failed after cancellation: %s", future.exception())
            raise

    async def put(self, node: Node, data: bytes, path: str, mode: int = 0o644) -> None:
        await self._in_executor(lambda: _replace_atomically(data, Path(path), mode))

    async def get(self, node: Node, path: str) -> bytes:
        return await self._in_executor(lambda: Path(path).read_bytes())

    async def exists(self, node: Node, path: str) -> bool:
        return await self._in_executor(lambda: Path(path).exists())

    async def remove(self, node: Node, path: str) -> None:
        await self._in_executor(lambda: Path(path).unlink(missing_ok=True))

    async def copy(self, node: Node, source: str, destination: str, mode: int = 0o644) -> None:
        await self._in_executor(
            lambda: _replace_atomically(Path(source), Path(destination), mode)
        )

    async def make_dirs(self, node: Node, path: str) -> None:
        await self._in_executor(lambda: Path(path).mkdir(parents=True, exist_ok=True))

    async def list_files(self, node: Node, directory: str) -> List[RemoteFile]:
        def _list() -> List[RemoteFile]:
            root = Path(directory)
            if not root.is_dir():
                return []
            files = []
            for entry in root.iterdir():
                if not entry.is_file():
                    continue
                stat = entry.stat()
                files.append(
                    RemoteFile(
                        name=entry.name,
                        path=str(entry),
                        size=stat.st_size,
                        modified=stat.st_mtime,
                    )
                )
            return files

        return await self._in_executor(_list)
