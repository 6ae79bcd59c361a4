"""
Uninstall Node Use Case

Architectural Intent:
- Removes the installed artifact from one node
- The artifact is backed up first; a failed backup leaves it in place
- Dependent services are restarted after removal; a restart failure is
  reported as needs-restart, never as a failed uninstall
- The backup stays in the node's store, so `rollback` can reinstall it
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fleetwright.domain.errors import (
    BackupError,
    FleetError,
    InstallError,
    OperationTimeoutError,
    ServiceRestartError,
)
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.services.artifact_inspector import read_artifact_version
from fleetwright.domain.services.backup_store import BackupStore
from fleetwright.domain.services.service_restarter import ServiceRestarter
from fleetwright.domain.value_objects.backup import Backup
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UninstallResult:
    node: Node
    removed: bool
    backup: Optional[Backup] = None
    restart_error: Optional[str] = None

    @property
    def needs_restart(self) -> bool:
        return self.restart_error is not None


class UninstallNode:
    def __init__(
        self,
        executor: RemoteExecutorPort,
        backup_store: BackupStore,
        restarter: ServiceRestarter,
        install_path: str,
    ):
        self.executor = executor
        self.backup_store = backup_store
        self.restarter = restarter
        self.install_path = install_path

    async def _installed_copy(self, node: Node) -> Optional[bytes]:
        try:
            if not await self.executor.exists(node, self.install_path):
                return None
            return await self.executor.get(node, self.install_path)
        except OperationTimeoutError:
            raise
        except (FleetError, OSError) as e:
            raise BackupError(f"cannot read installed artifact on {node.name}: {e}") from e

    async def execute(self, node: Node) -> UninstallResult:
        """
        Back up, remove and restart services on `node`.
        Raises BackupError or InstallError; the artifact is untouched when
        the backup fails.
        """
        current = await self._installed_copy(node)
        if current is None:
            logger.info("Nothing installed at %s on %s", self.install_path, node.name)
            return UninstallResult(node=node, removed=False)

        backup = await self.backup_store.create(node, current, read_artifact_version(current))

        try:
            await self.executor.remove(node, self.install_path)
        except OperationTimeoutError:
            raise
        except (FleetError, OSError) as e:
            raise InstallError(f"cannot remove {self.install_path} on {node.name}: {e}") from e
        logger.info("Removed %s on %s (backup %s)", self.install_path, node.name, backup.backup_id)

        try:
            await self.restarter.restart(node)
        except ServiceRestartError as e:
            logger.warning("Removed from %s but services need restart: %s", node.name, e)
            return UninstallResult(node=node, removed=True, backup=backup, restart_error=str(e))
        return UninstallResult(node=node, removed=True, backup=backup)
