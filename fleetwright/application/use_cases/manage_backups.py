"""
Manage Backups Use Case

Architectural Intent:
- Operator-facing backup maintenance for one node
- Listing, statistics and the retention check
- Deletion by policy, by age, by count, or all at once
- Every deletion path goes through BackupStore so candidate selection
  follows one set of rules
"""

import logging
from typing import List, Optional

from fleetwright.domain.services.backup_store import BackupStats, BackupStore
from fleetwright.domain.value_objects.backup import Backup, BackupPolicy
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


class ManageBackups:
    def __init__(self, backup_store: BackupStore, policy: BackupPolicy):
        self.backup_store = backup_store
        self.policy = policy

    async def list(self, node: Node) -> List[Backup]:
        return await self.backup_store.list(node)

    async def stats(self, node: Node) -> BackupStats:
        return await self.backup_store.stats(node)

    async def needs_cleanup(self, node: Node, policy: Optional[BackupPolicy] = None) -> bool:
        stats = await self.backup_store.stats(node)
        return stats.exceeds(policy or self.policy)

    async def prune(self, node: Node, policy: Optional[BackupPolicy] = None) -> int:
        deleted = await self.backup_store.prune(node, policy or self.policy)
        logger.info("Pruned %d backup(s) on %s", deleted, node.name)
        return deleted

    async def delete_older_than(self, node: Node, days: int) -> int:
        policy = BackupPolicy(max_count=None, max_age_days=days, max_total_size_mb=None)
        return await self.backup_store.prune(node, policy)

    async def keep_latest(self, node: Node, count: int) -> int:
        policy = BackupPolicy(max_count=count, max_age_days=None, max_total_size_mb=None)
        return await self.backup_store.prune(node, policy)

    async def delete_all(self, node: Node) -> int:
        deleted = await self.backup_store.delete_all(node)
        logger.warning("Deleted all %d backup(s) on %s", deleted, node.name)
        return deleted
