"""Tests for BackupStore and retention selection."""

from datetime import datetime, timedelta

import pytest

from fleetwright.domain.errors import BackupError, ValidationError
from fleetwright.domain.services.backup_store import BackupStats, select_for_pruning
from fleetwright.domain.value_objects.backup import Backup, BackupPolicy

DIR = "/var/lib/truenas-plugin-backups"
START = datetime(2026, 1, 1, 12, 0, 0)


def _backups(count, days_apart=1, size=100):
    """Newest-first backups, one every `days_apart` days before START."""
    return [
        Backup(f"1.0.{i}", START - timedelta(days=i * days_apart), f"{DIR}/b{i}", size)
        for i in range(count)
    ]


class TestSelectForPruning:
    def test_count_threshold(self):
        backups = _backups(8)
        doomed = select_for_pruning(backups, BackupPolicy(5, None, None), START)
        assert doomed == backups[5:]

    def test_age_threshold_is_strict(self):
        backups = _backups(5, days_apart=45)
        doomed = select_for_pruning(backups, BackupPolicy(None, 90, None), START)
        assert doomed == backups[3:]

    def test_size_threshold_deletes_oldest_until_within_budget(self):
        mb = 1024 * 1024
        backups = _backups(4, size=40 * mb)
        doomed = select_for_pruning(backups, BackupPolicy(None, None, 100), START)
        assert doomed == backups[2:]

    def test_union_without_duplicates(self):
        backups = _backups(6, days_apart=30)
        doomed = select_for_pruning(backups, BackupPolicy(4, 90, None), START)
        assert [b.backup_id for b in doomed] == ["b4", "b5"]

    def test_nothing_to_do(self):
        assert select_for_pruning(_backups(3), BackupPolicy(), START) == []


class TestBackupStats:
    def test_exceeds(self):
        assert BackupStats(count=11).exceeds(BackupPolicy())
        assert not BackupStats(count=10).exceeds(BackupPolicy())
        assert BackupStats(count=1, oldest_age_days=91).exceeds(BackupPolicy())
        assert BackupStats(count=1, total_size=101 * 1024 * 1024).exceeds(BackupPolicy())

    def test_disabled_thresholds(self):
        stats = BackupStats(count=500, total_size=10**12, oldest_age_days=10**4)
        assert not stats.exceeds(BackupPolicy(None, None, None))


class TestBackupStore:
    @pytest.mark.asyncio
    async def test_create_labels_replaced_version(self, stack, executor, local_node):
        backup = await stack.store.create(local_node, b"old", "1.1.0")
        assert backup.version_label == "1.1.0"
        assert executor.node_files("pve1")[backup.location] == b"old"
        assert backup.location.startswith(f"{DIR}/TrueNASPlugin.pm.backup.1.1.0.")

    @pytest.mark.asyncio
    async def test_create_without_version(self, stack, local_node):
        backup = await stack.store.create(local_node, b"old", None)
        assert backup.version_label == "unknown"

    @pytest.mark.asyncio
    async def test_list_strictly_newest_first_with_frozen_clock(self, stack, local_node):
        created = [await stack.store.create(local_node, b"x", f"1.0.{i}") for i in range(5)]
        listed = await stack.store.list(local_node)
        assert [b.backup_id for b in listed] == [b.backup_id for b in reversed(created)]
        stamps = [b.timestamp for b in listed]
        assert all(a > b for a, b in zip(stamps, stamps[1:]))

    @pytest.mark.asyncio
    async def test_list_ignores_foreign_files(self, stack, executor, local_node):
        executor.node_files("pve1")[f"{DIR}/notes.txt"] = b"hi"
        await stack.store.create(local_node, b"x", "1.0.0")
        assert len(await stack.store.list(local_node)) == 1

    @pytest.mark.asyncio
    async def test_create_write_failure(self, stack, executor, local_node):
        executor.fail("pve1", "put", PermissionError("read-only"), path_prefix=DIR)
        with pytest.raises(BackupError, match="read-only"):
            await stack.store.create(local_node, b"x", "1.0.0")

    @pytest.mark.asyncio
    async def test_prune_max_count_deletes_three_oldest(
        self, executor, local_node, stack_factory, step_clock
    ):
        clock = step_clock(step=timedelta(hours=1))
        store = stack_factory(executor, clock=clock).store
        for i in range(8):
            await store.create(local_node, b"x", f"1.0.{i}")
        before = await store.list(local_node)

        deleted = await store.prune(local_node, BackupPolicy(5, None, None))

        assert deleted == 3
        after = await store.list(local_node)
        assert [b.backup_id for b in after] == [b.backup_id for b in before[:5]]

    @pytest.mark.asyncio
    async def test_prune_counts_only_successful_deletes(
        self, executor, local_node, stack_factory, step_clock
    ):
        store = stack_factory(executor, clock=step_clock(step=timedelta(hours=1))).store
        for i in range(3):
            await store.create(local_node, b"x", f"1.0.{i}")
        oldest = (await store.list(local_node))[-1]
        executor.fail("pve1", "remove", PermissionError("denied"), path_prefix=oldest.location)

        deleted = await store.prune(local_node, BackupPolicy(1, None, None))

        assert deleted == 1
        assert len(await store.list(local_node)) == 2

    @pytest.mark.asyncio
    async def test_delete_all(self, stack, local_node):
        for i in range(3):
            await stack.store.create(local_node, b"x", f"1.0.{i}")
        assert await stack.store.delete_all(local_node) == 3
        assert await stack.store.list(local_node) == []

    @pytest.mark.asyncio
    async def test_restore_validates(self, stack, local_node, artifact_factory):
        good = await stack.store.create(local_node, artifact_factory("1.0.0"), "1.0.0")
        bad = await stack.store.create(local_node, artifact_factory("0.9.0", broken=True), "0.9.0")

        assert await stack.store.restore(local_node, good.backup_id) == artifact_factory("1.0.0")
        with pytest.raises(ValidationError):
            await stack.store.restore(local_node, bad.backup_id)

    @pytest.mark.asyncio
    async def test_restore_missing(self, stack, local_node):
        with pytest.raises(BackupError, match="not found"):
            await stack.store.restore(local_node, "TrueNASPlugin.pm.backup.1.0.0.20250101_000000")

    @pytest.mark.asyncio
    async def test_stats(self, executor, local_node, stack_factory, step_clock):
        store = stack_factory(executor, clock=step_clock(step=timedelta(days=10))).store
        await store.create(local_node, b"aaaa", "1.0.0")
        await store.create(local_node, b"bb", "1.0.1")

        stats = await store.stats(local_node, now=START + timedelta(days=30))

        assert stats.count == 2
        assert stats.total_size == 6
        assert stats.oldest_age_days == 30
        assert stats.newest_age_days == 20
