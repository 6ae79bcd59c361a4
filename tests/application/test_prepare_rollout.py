"""Tests for rollout preparation: selection, release resolution and probing."""

import pytest

from fleetwright.application.dtos.rollout_dtos import RollbackRequest, RolloutRequest
from fleetwright.application.use_cases.prepare_rollout import PrepareRollout, select_nodes
from fleetwright.domain.errors import FetchError, TopologyError
from fleetwright.domain.services.connectivity_prober import ConnectivityProber


@pytest.fixture
def prepare(executor, cluster, release_source):
    return PrepareRollout(cluster, ConnectivityProber(executor), release_source)


class TestRequests:
    def test_rollout_defaults(self):
        request = RolloutRequest()
        assert request.node_names == ()
        assert request.version is None
        assert request.include_local

    @pytest.mark.parametrize("kwargs", [
        {"node_names": ("pve1", "pve1")},
        {"node_names": ("",)},
        {"version": " "},
    ])
    def test_rollout_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RolloutRequest(**kwargs)

    def test_rollback_rejects_paths(self):
        with pytest.raises(ValueError, match="file name"):
            RollbackRequest(backup_id="../etc/passwd")


class TestSelectNodes:
    def test_all_members_by_default(self, local_node, remote_nodes):
        members = [local_node] + remote_nodes
        assert select_nodes(members, RolloutRequest()) == tuple(members)

    def test_named_members(self, local_node, remote_nodes):
        members = [local_node] + remote_nodes
        selected = select_nodes(members, RolloutRequest(node_names=("pve4", "pve2")))
        assert [n.name for n in selected] == ["pve4", "pve2"]

    def test_skip_local(self, local_node, remote_nodes):
        selected = select_nodes([local_node] + remote_nodes, RolloutRequest(include_local=False))
        assert local_node not in selected

    def test_unknown_member(self, local_node):
        with pytest.raises(TopologyError, match="pve9"):
            select_nodes([local_node], RolloutRequest(node_names=("pve9",)))


class TestPrepareRollout:
    @pytest.mark.asyncio
    async def test_latest_release(self, prepare, release_source):
        plan = await prepare.execute(RolloutRequest())

        assert plan.release.version == "1.2.0"
        assert plan.artifact == release_source.artifacts[plan.release.download_url]
        assert len(plan.targets) == 4
        assert plan.complete

    @pytest.mark.asyncio
    async def test_pinned_version(self, prepare):
        plan = await prepare.execute(RolloutRequest(version="v1.1.0"))
        assert plan.release.version == "1.1.0"

    @pytest.mark.asyncio
    async def test_unknown_version(self, prepare):
        with pytest.raises(FetchError):
            await prepare.execute(RolloutRequest(version="9.9.9"))

    @pytest.mark.asyncio
    async def test_unreachable_members_are_reported(self, prepare, executor):
        executor.unreachable.add("pve3")

        plan = await prepare.execute(RolloutRequest())

        assert not plan.complete
        assert [n.name for n in plan.targets] == ["pve1", "pve2", "pve4"]
        assert [n.name for n in plan.probe.unreachable_nodes] == ["pve3"]
        assert len(plan.selected) == 4
