"""
Rollout Result

Architectural Intent:
- Immutable aggregate of per-node outcomes for one rollout (or retry pass)
- Every targeted node is accounted for exactly once:
  |succeeded| + |failed| + |not_attempted| == |targets|
- Never mutated in place; recording and merging return new instances
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from fleetwright.domain.entities.install_outcome import InstallOutcome, OutcomeKind
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.release import Release


@dataclass(frozen=True)
class RolloutResult:
    targets: tuple[Node, ...]
    release: Optional[Release] = None
    entries: tuple[tuple[Node, InstallOutcome], ...] = ()
    aborted_reason: Optional[str] = None
    interrupted_node: Optional[Node] = None

    def __post_init__(self) -> None:
        names = [n.name for n in self.targets]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate node names in targets: {names}")
        target_set = set(self.targets)
        seen: set[Node] = set()
        for node, _ in self.entries:
            if node not in target_set:
                raise ValueError(f"Outcome recorded for non-target node {node.name}")
            if node in seen:
                raise ValueError(f"Duplicate outcome for node {node.name}")
            seen.add(node)

    @property
    def version(self) -> str:
        return self.release.version if self.release else ""

    @property
    def outcomes(self) -> dict[Node, InstallOutcome]:
        return dict(self.entries)

    def outcome_for(self, node: Node) -> Optional[InstallOutcome]:
        return self.outcomes.get(node)

    def _nodes_where(self, predicate) -> tuple[Node, ...]:
        return tuple(node for node, outcome in self.entries if predicate(outcome))

    @property
    def succeeded(self) -> tuple[Node, ...]:
        return self._nodes_where(lambda o: o.is_success)

    @property
    def failed(self) -> tuple[Node, ...]:
        return self._nodes_where(lambda o: o.is_failure)

    @property
    def needs_restart(self) -> tuple[Node, ...]:
        return self._nodes_where(lambda o: o.kind is OutcomeKind.NEEDS_RESTART)

    @property
    def not_attempted(self) -> tuple[Node, ...]:
        recorded = self.outcomes
        return tuple(node for node in self.targets if node not in recorded)

    @property
    def aborted(self) -> bool:
        return self.aborted_reason is not None

    @property
    def interrupted(self) -> bool:
        return self.interrupted_node is not None

    @property
    def ok(self) -> bool:
        return not self.failed and not self.not_attempted

    def counts(self) -> dict[str, int]:
        return {
            "targets": len(self.targets),
            "succeeded": len(self.succeeded),
            "needs_restart": len(self.needs_restart),
            "failed": len(self.failed),
            "not_attempted": len(self.not_attempted),
        }

    def failure_reasons(self) -> dict[str, str]:
        return {
            node.name: outcome.describe()
            for node, outcome in self.entries
            if outcome.is_failure
        }

    def record(self, node: Node, outcome: InstallOutcome) -> "RolloutResult":
        return replace(self, entries=self.entries + ((node, outcome),))

    def abort(self, reason: str) -> "RolloutResult":
        return replace(self, aborted_reason=reason)

    def interrupt(self, node: Optional[Node]) -> "RolloutResult":
        return replace(self, interrupted_node=node)

    def merge(self, retried: Mapping[Node, InstallOutcome]) -> "RolloutResult":
        """
        Return a new result where retried nodes carry their newer outcome.
        Nodes absent from `retried` keep their previous outcome.
        """
        merged = tuple(
            (node, retried.get(node, outcome)) for node, outcome in self.entries
        )
        known = {node for node, _ in self.entries}
        extra = tuple(
            (node, outcome)
            for node, outcome in retried.items()
            if node not in known and node in set(self.targets)
        )
        return replace(
            self, entries=merged + extra, interrupted_node=None
        )
