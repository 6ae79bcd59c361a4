"""
Rollback Node Use Case

Architectural Intent:
- Restores a previous artifact on one node from its backup store
- The backup is re-validated before use
- The restored bytes go through the normal Node Installer, so the artifact
  being replaced is itself backed up first and services are restarted;
  every rollback is therefore reversible
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fleetwright.application.use_cases.install_node import InstallNode
from fleetwright.domain.entities.install_outcome import InstallOutcome
from fleetwright.domain.errors import BackupError
from fleetwright.domain.services.backup_store import BackupStore
from fleetwright.domain.value_objects.backup import Backup
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollbackResult:
    node: Node
    backup: Backup
    outcome: InstallOutcome


class RollbackNode:
    def __init__(self, backup_store: BackupStore, installer: InstallNode):
        self.backup_store = backup_store
        self.installer = installer

    async def execute(self, node: Node, backup_id: Optional[str] = None) -> RollbackResult:
        """
        Roll `node` back to `backup_id`, or to its newest backup.
        Raises BackupError or ValidationError if the backup is unusable.
        """
        if backup_id is None:
            backups = await self.backup_store.list(node)
            if not backups:
                raise BackupError(f"No backups available on {node.name}")
            backup = backups[0]
        else:
            backup = await self.backup_store.find(node, backup_id)

        logger.info(
            "Rolling back %s to %s (version %s)",
            node.name, backup.backup_id, backup.version_label,
        )
        artifact = await self.backup_store.restore(node, backup.backup_id)
        outcome = await self.installer.execute(node, artifact, backup.version_label)
        return RollbackResult(node=node, backup=backup, outcome=outcome)
