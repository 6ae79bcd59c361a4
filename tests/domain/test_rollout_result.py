"""Tests for the RolloutResult aggregate."""

import pytest

from fleetwright.domain.entities.install_outcome import InstallOutcome
from fleetwright.domain.entities.rollout_result import RolloutResult
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.release import Release

LOCAL = Node(name="pve1", is_local=True)
A = Node(name="pve2")
B = Node(name="pve3")
C = Node(name="pve4")
RELEASE = Release(version="1.2.0", download_url="https://example.com/plugin.pm")
OK = InstallOutcome.success()
RESTART = InstallOutcome.needs_restart("pveproxy")
FAIL = InstallOutcome.failed("disk full", "InstallError", "installing")


def _assert_accounted(result):
    total = len(result.succeeded) + len(result.failed) + len(result.not_attempted)
    assert total == len(result.targets)


class TestRolloutResult:
    def test_empty(self):
        result = RolloutResult(targets=(LOCAL, A), release=RELEASE)
        assert result.version == "1.2.0"
        assert result.not_attempted == (LOCAL, A)
        assert not result.ok
        _assert_accounted(result)

    def test_record_is_immutable(self):
        empty = RolloutResult(targets=(LOCAL, A))
        recorded = empty.record(LOCAL, OK)
        assert empty.entries == ()
        assert recorded.outcome_for(LOCAL) == OK

    def test_derived_sets(self):
        result = (
            RolloutResult(targets=(LOCAL, A, B, C), release=RELEASE)
            .record(LOCAL, OK)
            .record(A, RESTART)
            .record(B, FAIL)
        )
        assert result.succeeded == (LOCAL, A)
        assert result.needs_restart == (A,)
        assert result.failed == (B,)
        assert result.not_attempted == (C,)
        assert result.counts() == {
            "targets": 4,
            "succeeded": 2,
            "needs_restart": 1,
            "failed": 1,
            "not_attempted": 1,
        }
        _assert_accounted(result)

    def test_failure_reasons_name_every_node(self):
        result = RolloutResult(targets=(A, B)).record(A, FAIL).record(
            B, InstallOutcome.failed("timeout", "OperationTimeoutError")
        )
        assert result.failure_reasons() == {
            "pve2": "InstallError: disk full",
            "pve3": "OperationTimeoutError: timeout",
        }

    def test_duplicate_target_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate node names"):
            RolloutResult(targets=(A, Node(name="pve2", address="10.0.0.9")))

    def test_outcome_for_non_target_rejected(self):
        with pytest.raises(ValueError, match="non-target"):
            RolloutResult(targets=(A,)).record(B, OK)

    def test_duplicate_outcome_rejected(self):
        with pytest.raises(ValueError, match="Duplicate outcome"):
            RolloutResult(targets=(A,)).record(A, FAIL).record(A, OK)

    def test_abort_and_interrupt(self):
        result = RolloutResult(targets=(LOCAL, A)).record(LOCAL, FAIL).abort("local failed")
        assert result.aborted
        assert result.aborted_reason == "local failed"
        interrupted = RolloutResult(targets=(LOCAL, A)).interrupt(LOCAL)
        assert interrupted.interrupted
        assert interrupted.interrupted_node == LOCAL


class TestMerge:
    def test_retried_success_leaves_failed_set(self):
        first = RolloutResult(targets=(LOCAL, A, B)).record(LOCAL, OK).record(A, FAIL).record(B, FAIL)
        merged = first.merge({A: OK, B: FAIL})

        assert set(merged.succeeded) >= set(first.succeeded)
        assert merged.failed == (B,)
        assert not set(merged.failed) & set(merged.succeeded)
        _assert_accounted(merged)

    def test_keys_absent_keep_previous(self):
        first = RolloutResult(targets=(A, B)).record(A, FAIL).record(B, OK)
        merged = first.merge({})
        assert merged.outcomes == first.outcomes

    def test_merge_preserves_order_and_clears_interrupt(self):
        first = RolloutResult(targets=(A, B, C)).record(A, FAIL).interrupt(B)
        merged = first.merge({A: OK, B: OK})
        assert [n.name for n, _ in merged.entries] == ["pve2", "pve3"]
        assert merged.interrupted_node is None
        assert merged.not_attempted == (C,)
