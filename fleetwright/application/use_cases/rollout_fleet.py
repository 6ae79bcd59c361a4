"""
Rollout Fleet Use Case

Architectural Intent:
- Coordinates the Node Installer across a target node set for one Release
- Nodes are installed sequentially, local node first, so progress stays
  readable and each failure is attributable to one node
- A local-node failure aborts the rollout; remote failures are isolated
- Results are immutable RolloutResult values, never accumulated in place

Retry:
- retry() is explicit and targets only FAILED nodes
- Delegates the retry policy to the partition-and-retry combinator

Interrupts:
- Cancellation is surfaced as RolloutInterrupted carrying the partial result;
  only nodes that reached a terminal state have outcomes
"""

import asyncio
import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from fleetwright.application.orchestration.partition_retry import retry_failures
from fleetwright.application.use_cases.install_node import InstallNode
from fleetwright.domain.entities.install_outcome import InstallOutcome
from fleetwright.domain.entities.rollout_result import RolloutResult
from fleetwright.domain.errors import RolloutInterrupted
from fleetwright.domain.events.event_base import DomainEvent
from fleetwright.domain.events.rollout_events import (
    NodeInstallFinished,
    NodeInstallStarted,
    RolloutAborted,
    RolloutCompleted,
)
from fleetwright.domain.ports.event_bus_port import EventBusPort
from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.release import Release

logger = logging.getLogger(__name__)


def local_first(nodes: Iterable[Node]) -> tuple[Node, ...]:
    nodes = tuple(nodes)
    return tuple(n for n in nodes if n.is_local) + tuple(n for n in nodes if not n.is_local)


class RolloutFleet:
    def __init__(
        self,
        installer: InstallNode,
        release_source: ReleaseSourcePort,
        event_bus: Optional[EventBusPort] = None,
    ):
        self.installer = installer
        self.release_source = release_source
        self.event_bus = event_bus

    async def _publish(self, *events: DomainEvent) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(list(events))

    async def _install_each(
        self, result: RolloutResult, artifact: bytes
    ) -> RolloutResult:
        nodes = local_first(result.targets)
        version = result.version

        for position, node in enumerate(nodes, start=1):
            try:
                await self._publish(
                    NodeInstallStarted(
                        aggregate_id=node.name,
                        version=version,
                        position=position,
                        total=len(nodes),
                    )
                )
                outcome = await self.installer.execute(node, artifact, version)
            except asyncio.CancelledError:
                logger.warning("Rollout interrupted while installing on %s", node.name)
                raise RolloutInterrupted(result.interrupt(node)) from None

            result = result.record(node, outcome)
            logger.info("%s: %s", node.name, outcome.describe())
            await self._publish(
                NodeInstallFinished(
                    aggregate_id=node.name,
                    outcome=outcome.kind.value,
                    reason=outcome.describe(),
                )
            )

            if node.is_local and outcome.is_failure:
                reason = f"local node {node.name} failed: {outcome.describe()}"
                logger.error("Aborting rollout: %s", reason)
                result = result.abort(reason)
                await self._publish(RolloutAborted(aggregate_id=node.name, reason=reason))
                break

        return result

    async def _complete(self, result: RolloutResult) -> RolloutResult:
        counts = result.counts()
        logger.info(
            "Rollout of %s finished: %d succeeded, %d failed, %d not attempted",
            result.version or "artifact",
            counts["succeeded"],
            counts["failed"],
            counts["not_attempted"],
        )
        await self._publish(
            RolloutCompleted(
                aggregate_id=result.version,
                succeeded=counts["succeeded"],
                failed=counts["failed"],
                not_attempted=counts["not_attempted"],
            )
        )
        return result

    async def execute(
        self, targets: Sequence[Node], release: Release, artifact: bytes
    ) -> RolloutResult:
        """
        Install `artifact` on every target, one node at a time.
        Nodes already on this release are re-validated and re-installed.
        """
        result = RolloutResult(targets=tuple(targets), release=release)
        if not result.targets:
            logger.warning("No target nodes, nothing to install")
            return result
        result = await self._install_each(result, artifact)
        return await self._complete(result)

    async def retry(
        self, previous: RolloutResult, artifact: Optional[bytes] = None
    ) -> RolloutResult:
        """
        One explicit retry pass over the nodes whose outcome was FAILED.

        Nodes that now succeed move out of the failed set; nodes not reached
        because the retry aborted keep their previous outcome.
        """
        if not previous.failed:
            logger.info("No failed nodes to retry")
            return previous
        if artifact is None:
            if previous.release is None:
                raise ValueError("No artifact given and no release to download it from")
            artifact = await self.release_source.download(previous.release.download_url)

        retry_pass: dict[str, RolloutResult] = {}

        async def reinstall(nodes: list[Node]) -> dict[Node, InstallOutcome]:
            logger.info("Retrying %d failed node(s): %s", len(nodes), ", ".join(n.name for n in nodes))
            attempt = RolloutResult(targets=tuple(nodes), release=previous.release)
            try:
                attempt = await self._install_each(attempt, artifact)
            except RolloutInterrupted as interrupted:
                partial = interrupted.result
                merged = previous.merge(partial.outcomes).interrupt(partial.interrupted_node)
                raise RolloutInterrupted(merged) from None
            retry_pass["result"] = attempt
            return attempt.outcomes

        outcomes = await retry_failures(previous.outcomes, reinstall, lambda o: o.is_failure)
        attempt = retry_pass["result"]
        result = replace(previous.merge(outcomes), aborted_reason=attempt.aborted_reason)
        return await self._complete(result)
