"""
Install Run Module

Architectural Intent:
- InstallRun aggregate is the consistency boundary for one node installer pass
- Lifecycle managed through state transitions enforced by domain methods
- All state changes produce new instances to ensure auditability
- Domain events recorded on every transition for progress reporting

States:
    IDLE -> TRANSFERRING -> VALIDATING -> BACKING_UP -> INSTALLING
         -> RESTARTING_SERVICES -> VERIFIED | NEEDS_RESTART
    Any non-terminal state may move to FAILED.
    BACKING_UP may be skipped (VALIDATING -> INSTALLING) when nothing is installed.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional

from fleetwright.domain.entities.install_outcome import InstallOutcome
from fleetwright.domain.events.event_base import DomainEvent
from fleetwright.domain.events.rollout_events import InstallStateChanged


class InstallState(Enum):
    IDLE = "idle"
    TRANSFERRING = "transferring"
    VALIDATING = "validating"
    BACKING_UP = "backing_up"
    INSTALLING = "installing"
    RESTARTING_SERVICES = "restarting_services"
    VERIFIED = "verified"
    NEEDS_RESTART = "needs_restart"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {InstallState.VERIFIED, InstallState.NEEDS_RESTART, InstallState.FAILED}
)

_ALLOWED: dict[InstallState, frozenset[InstallState]] = {
    InstallState.IDLE: frozenset({InstallState.TRANSFERRING}),
    InstallState.TRANSFERRING: frozenset({InstallState.VALIDATING}),
    InstallState.VALIDATING: frozenset(
        {InstallState.BACKING_UP, InstallState.INSTALLING}
    ),
    InstallState.BACKING_UP: frozenset({InstallState.INSTALLING}),
    InstallState.INSTALLING: frozenset({InstallState.RESTARTING_SERVICES}),
    InstallState.RESTARTING_SERVICES: frozenset(
        {InstallState.VERIFIED, InstallState.NEEDS_RESTART}
    ),
}


class InstallRun:
    __slots__ = (
        "_node_name",
        "_version",
        "_state",
        "_error_type",
        "_reason",
        "_failed_in",
        "_domain_events",
    )

    def __init__(
        self,
        node_name: str,
        version: str,
        state: InstallState = InstallState.IDLE,
        error_type: str = "",
        reason: str = "",
        failed_in: Optional[InstallState] = None,
        domain_events: tuple = (),
    ):
        self._node_name = node_name
        self._version = version
        self._state = state
        self._error_type = error_type
        self._reason = reason
        self._failed_in = failed_in
        self._domain_events = domain_events

    @property
    def node_name(self) -> str:
        return self._node_name

    @property
    def version(self) -> str:
        return self._version

    @property
    def state(self) -> InstallState:
        return self._state

    @property
    def error_type(self) -> str:
        return self._error_type

    @property
    def reason(self) -> str:
        return self._reason

    @property
    def failed_in(self) -> Optional[InstallState]:
        return self._failed_in

    @property
    def domain_events(self) -> tuple[DomainEvent, ...]:
        return self._domain_events

    @property
    def last_event(self) -> Optional[DomainEvent]:
        return self._domain_events[-1] if self._domain_events else None

    def _with(self, state: InstallState, **changes) -> "InstallRun":
        return InstallRun(
            node_name=self._node_name,
            version=self._version,
            state=state,
            error_type=changes.get("error_type", self._error_type),
            reason=changes.get("reason", self._reason),
            failed_in=changes.get("failed_in", self._failed_in),
            domain_events=self._domain_events
            + (InstallStateChanged(aggregate_id=self._node_name, state=state.value),),
        )

    def advance(self, state: InstallState) -> "InstallRun":
        allowed = _ALLOWED.get(self._state, frozenset())
        if state not in allowed or state is InstallState.NEEDS_RESTART:
            raise ValueError(
                f"Illegal install transition {self._state.value} -> {state.value}"
            )
        return self._with(state)

    def needs_restart(self, reason: str) -> "InstallRun":
        if self._state is not InstallState.RESTARTING_SERVICES:
            raise ValueError("Install must be RESTARTING_SERVICES to need a restart")
        return self._with(
            InstallState.NEEDS_RESTART,
            error_type="ServiceRestartError",
            reason=reason,
        )

    def fail(self, error_type: str, reason: str) -> "InstallRun":
        if self._state.is_terminal:
            raise ValueError(f"Install already finished as {self._state.value}")
        return self._with(
            InstallState.FAILED,
            error_type=error_type,
            reason=reason,
            failed_in=self._state,
        )

    def to_outcome(self) -> InstallOutcome:
        if self._state is InstallState.VERIFIED:
            return InstallOutcome.success(state=self._state.value)
        if self._state is InstallState.NEEDS_RESTART:
            return InstallOutcome.needs_restart(self._reason, state=self._state.value)
        if self._state is InstallState.FAILED:
            failed_in = self._failed_in.value if self._failed_in else ""
            return InstallOutcome.failed(
                self._reason, error_type=self._error_type, state=failed_in
            )
        raise ValueError(f"Install has not finished (state {self._state.value})")

    def __repr__(self) -> str:
        return (
            f"InstallRun(node={self._node_name}, version={self._version}, "
            f"state={self._state}, error_type={self._error_type}, "
            f"reason={self._reason})"
        )
