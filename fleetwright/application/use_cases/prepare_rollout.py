"""
Prepare Rollout Use Case

Architectural Intent:
- Resolves everything a rollout needs before any node is touched:
  cluster members, the operator's selection, the Release, reachability
  and the artifact bytes
- Unreachable nodes are reported, never silently dropped; the caller
  decides whether to proceed with the reachable subset
"""

import logging
from dataclasses import dataclass

from fleetwright.application.dtos.rollout_dtos import RolloutRequest
from fleetwright.domain.errors import TopologyError
from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.ports.topology_port import TopologyPort
from fleetwright.domain.services.connectivity_prober import ConnectivityProber, ProbeReport
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.release import Release

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RolloutPlan:
    release: Release
    artifact: bytes
    members: tuple[Node, ...]
    selected: tuple[Node, ...]
    probe: ProbeReport

    @property
    def targets(self) -> tuple[Node, ...]:
        return self.probe.reachable

    @property
    def complete(self) -> bool:
        return self.probe.all_reachable


def select_nodes(members: list[Node], request: RolloutRequest) -> tuple[Node, ...]:
    if request.node_names:
        by_name = {m.name: m for m in members}
        unknown = [n for n in request.node_names if n not in by_name]
        if unknown:
            raise TopologyError(f"Unknown cluster member(s): {', '.join(unknown)}")
        selected = [by_name[n] for n in request.node_names]
    else:
        selected = list(members)
    if not request.include_local:
        selected = [n for n in selected if not n.is_local]
    return tuple(selected)


class PrepareRollout:
    def __init__(
        self,
        topology: TopologyPort,
        prober: ConnectivityProber,
        release_source: ReleaseSourcePort,
    ):
        self.topology = topology
        self.prober = prober
        self.release_source = release_source

    async def resolve_release(self, version=None) -> Release:
        if version:
            return await self.release_source.fetch_by_version(version)
        return await self.release_source.fetch_latest()

    async def execute(self, request: RolloutRequest) -> RolloutPlan:
        members = await self.topology.list_members()
        selected = select_nodes(members, request)
        logger.info(
            "Selected %d of %d cluster member(s): %s",
            len(selected), len(members), ", ".join(n.name for n in selected),
        )

        release = await self.resolve_release(request.version)
        logger.info("Release %s (%s)", release.version, release.download_url)

        probe = await self.prober.probe(selected)
        artifact = await self.release_source.download(release.download_url)
        logger.info("Downloaded %d bytes for %s", len(artifact), release.tag)

        return RolloutPlan(
            release=release,
            artifact=artifact,
            members=tuple(members),
            selected=selected,
            probe=probe,
        )
