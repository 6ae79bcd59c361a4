"""
Service Restarter

Architectural Intent:
- Restarts the services that load the artifact, then verifies they are active
- Every service is attempted even after one fails
- Failure raises ServiceRestartError; the installer downgrades it to NEEDS_RESTART
"""

import asyncio
import logging
import shlex
from typing import Optional, Sequence

from fleetwright.domain.errors import FleetError, ServiceRestartError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


class ServiceRestarter:
    def __init__(
        self,
        executor: RemoteExecutorPort,
        services: Sequence[str] = ("pvedaemon", "pveproxy"),
        settle_seconds: float = 2.0,
        timeout: Optional[float] = None,
    ) -> None:
        self.executor = executor
        self.services = tuple(services)
        self.settle_seconds = settle_seconds
        self.timeout = timeout

    async def _run(self, node: Node, command: str) -> bool:
        try:
            result = await self.executor.run(node, command, timeout=self.timeout)
        except FleetError as e:
            logger.error("%s on %s: %s", command, node.name, e)
            return False
        return result.ok

    async def restart(self, node: Node) -> None:
        failed = [
            service
            for service in self.services
            if not await self._run(node, f"systemctl restart {shlex.quote(service)}")
        ]
        if failed:
            raise ServiceRestartError(f"failed to restart {', '.join(failed)}")

        if self.settle_seconds > 0:
            await asyncio.sleep(self.settle_seconds)

        inactive = [
            service
            for service in self.services
            if not await self._run(
                node, f"systemctl is-active --quiet {shlex.quote(service)}"
            )
        ]
        if inactive:
            raise ServiceRestartError(f"not running after restart: {', '.join(inactive)}")

        logger.info("Restarted %s on %s", ", ".join(self.services), node.name)
