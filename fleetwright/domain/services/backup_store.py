"""
Backup Store

Architectural Intent:
- Creates, lists, prunes and restores immutable backups of the artifact per node
- Backups are only ever created or deleted, never edited
- Works identically for the local member and remote members through the
  RemoteExecutorPort, so each node keeps its own backup directory

Design Decisions:
- Identity and recency are encoded in the file name (see value_objects.backup)
- create() guarantees a timestamp strictly newer than any existing backup on
  the node, so list() is strictly newest-first even with a coarse clock
- prune() computes three candidate sets independently and deletes their union

Limitations:
- No locking: concurrent invocations against the same node may interleave
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from fleetwright.domain.errors import BackupError, FleetError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.services.artifact_validator import ArtifactValidator
from fleetwright.domain.value_objects.backup import (
    Backup,
    BackupPolicy,
    UNKNOWN_VERSION,
    backup_name,
)
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupStats:
    count: int = 0
    total_size: int = 0
    oldest_age_days: int = 0
    newest_age_days: int = 0

    def exceeds(self, policy: BackupPolicy) -> bool:
        """True if any retention threshold is exceeded."""
        if policy.max_count is not None and self.count > policy.max_count:
            return True
        if policy.max_age_days is not None and self.oldest_age_days > policy.max_age_days:
            return True
        if (
            policy.max_total_size_mb is not None
            and self.total_size // (1024 * 1024) > policy.max_total_size_mb
        ):
            return True
        return False


def select_for_pruning(
    backups: List[Backup], policy: BackupPolicy, now: datetime
) -> List[Backup]:
    """
    Select the backups violating `policy`. `backups` must be newest-first.
    Returns the union of the count, age and size candidates, newest-first.
    """
    doomed: set[str] = set()

    if policy.max_count is not None:
        doomed.update(b.backup_id for b in backups[policy.max_count:])

    if policy.max_age_days is not None:
        doomed.update(
            b.backup_id for b in backups if b.age_days(now) > policy.max_age_days
        )

    limit = policy.max_total_size_bytes
    if limit is not None:
        total = sum(b.size_bytes for b in backups)
        for b in reversed(backups):
            if total <= limit:
                break
            doomed.add(b.backup_id)
            total -= b.size_bytes

    return [b for b in backups if b.backup_id in doomed]


class BackupStore:
    def __init__(
        self,
        executor: RemoteExecutorPort,
        validator: ArtifactValidator,
        backup_dir: str,
        artifact_name: str,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.executor = executor
        self.validator = validator
        self.backup_dir = backup_dir.rstrip("/") or "/"
        self.artifact_name = artifact_name
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    async def list(self, node: Node) -> List[Backup]:
        """Backups on `node`, strictly newest-first."""
        files = await self.executor.list_files(node, self.backup_dir)
        backups = []
        for f in files:
            backup = Backup.from_name(f.name, self.backup_dir, self.artifact_name, f.size)
            if backup is not None:
                backups.append(backup)
        return sorted(backups, key=lambda b: b.sort_key, reverse=True)

    async def find(self, node: Node, backup_id: str) -> Backup:
        for backup in await self.list(node):
            if backup.backup_id == backup_id:
                return backup
        raise BackupError(f"Backup not found on {node.name}: {backup_id}")

    async def create(
        self, node: Node, artifact: bytes, replaced_version: Optional[str]
    ) -> Backup:
        """
        Store `artifact` (the copy about to be replaced) tagged with the
        version being replaced. Raises BackupError if it cannot be written.
        """
        label = replaced_version or UNKNOWN_VERSION
        try:
            await self.executor.make_dirs(node, self.backup_dir)
            existing = await self.list(node)
        except (FleetError, OSError) as e:
            raise BackupError(f"Cannot prepare backup directory on {node.name}: {e}") from e

        timestamp = self.now()
        if existing and timestamp <= existing[0].timestamp:
            timestamp = existing[0].timestamp + timedelta(microseconds=1)

        location = f"{self.backup_dir}/{backup_name(self.artifact_name, label, timestamp)}"
        try:
            await self.executor.put(node, artifact, location, mode=0o644)
        except (FleetError, OSError) as e:
            raise BackupError(f"Failed to write backup {location} on {node.name}: {e}") from e

        logger.info("Backup created on %s: %s", node.name, location)
        return Backup(
            version_label=label,
            timestamp=timestamp,
            location=location,
            size_bytes=len(artifact),
        )

    async def delete(self, node: Node, backup: Backup) -> None:
        try:
            await self.executor.remove(node, backup.location)
        except (FleetError, OSError) as e:
            raise BackupError(f"Failed to delete {backup.backup_id} on {node.name}: {e}") from e
        logger.info("Deleted backup on %s: %s", node.name, backup.location)

    async def _delete_many(self, node: Node, backups: List[Backup]) -> int:
        deleted = 0
        for backup in backups:
            try:
                await self.delete(node, backup)
                deleted += 1
            except BackupError as e:
                logger.warning("%s", e)
        return deleted

    async def prune(
        self, node: Node, policy: BackupPolicy, now: Optional[datetime] = None
    ) -> int:
        """Delete backups violating `policy`. Returns the number deleted."""
        backups = await self.list(node)
        doomed = select_for_pruning(backups, policy, now or self.now())
        if not doomed:
            return 0
        return await self._delete_many(node, doomed)

    async def delete_all(self, node: Node) -> int:
        return await self._delete_many(node, await self.list(node))

    async def restore(self, node: Node, backup_id: str) -> bytes:
        """
        Re-validate a stored backup and return its bytes.
        Callers must back up the current artifact before writing these bytes.
        """
        backup = await self.find(node, backup_id)
        await self.validator.validate(node, backup.location)
        try:
            return await self.executor.get(node, backup.location)
        except (FleetError, OSError) as e:
            raise BackupError(f"Failed to read backup {backup_id} on {node.name}: {e}") from e

    async def stats(self, node: Node, now: Optional[datetime] = None) -> BackupStats:
        backups = await self.list(node)
        if not backups:
            return BackupStats()
        current = now or self.now()
        ages = [b.age_days(current) for b in backups]
        return BackupStats(
            count=len(backups),
            total_size=sum(b.size_bytes for b in backups),
            oldest_age_days=max(ages),
            newest_age_days=min(ages),
        )
