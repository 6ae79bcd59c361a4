"""
Install Outcome

Architectural Intent:
- Terminal result of one node installer run
- Exactly one outcome per node per rollout attempt
- NEEDS_RESTART is a success variant: the artifact is installed correctly but
  dependent services must be restarted by hand
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OutcomeKind(Enum):
    SUCCESS = "success"
    NEEDS_RESTART = "needs_restart"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallOutcome:
    kind: OutcomeKind
    reason: str = ""
    error_type: str = ""
    state: str = ""
    cleanup_error: Optional[str] = None

    @staticmethod
    def success(state: str = "verified") -> "InstallOutcome":
        return InstallOutcome(OutcomeKind.SUCCESS, state=state)

    @staticmethod
    def needs_restart(reason: str, state: str = "needs_restart") -> "InstallOutcome":
        return InstallOutcome(
            OutcomeKind.NEEDS_RESTART,
            reason=reason,
            error_type="ServiceRestartError",
            state=state,
        )

    @staticmethod
    def failed(reason: str, error_type: str = "", state: str = "") -> "InstallOutcome":
        return InstallOutcome(
            OutcomeKind.FAILED, reason=reason, error_type=error_type, state=state
        )

    @property
    def is_success(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.NEEDS_RESTART)

    @property
    def is_failure(self) -> bool:
        return self.kind is OutcomeKind.FAILED

    def describe(self) -> str:
        if self.kind is OutcomeKind.SUCCESS:
            return "installed"
        if self.kind is OutcomeKind.NEEDS_RESTART:
            return f"installed, services need manual restart: {self.reason}"
        prefix = f"{self.error_type}: " if self.error_type else ""
        return f"{prefix}{self.reason}"
