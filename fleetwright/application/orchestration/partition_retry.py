"""
Partition and Retry

Architectural Intent:
- Reusable combinator separating retry policy from the operation retried
- Partitions keyed outcomes into passed/failed, re-runs the operation once
  for the failed keys only, and merges the newer outcomes back in
- Never retries automatically; callers decide when a retry pass happens

Merge Rules:
- Only keys that failed before can be replaced
- Keys the operation did not report on keep their previous outcome
- Original key order is preserved
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Mapping, TypeVar

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class Partition(Generic[K, V]):
    passed: dict[K, V] = field(default_factory=dict)
    failed: dict[K, V] = field(default_factory=dict)


def partition(outcomes: Mapping[K, V], is_failure: Callable[[V], bool]) -> Partition[K, V]:
    passed: dict[K, V] = {}
    failed: dict[K, V] = {}
    for key, value in outcomes.items():
        (failed if is_failure(value) else passed)[key] = value
    return Partition(passed=passed, failed=failed)


async def retry_failures(
    outcomes: Mapping[K, V],
    operation: Callable[[list[K]], Awaitable[Mapping[K, V]]],
    is_failure: Callable[[V], bool],
) -> dict[K, V]:
    """
    Run `operation` exactly once over the failed keys and merge its results.
    """
    split = partition(outcomes, is_failure)
    if not split.failed:
        return dict(outcomes)

    retried = await operation(list(split.failed))

    merged = dict(outcomes)
    for key, value in retried.items():
        if key in split.failed:
            merged[key] = value
    return merged
