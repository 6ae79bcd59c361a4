"""
Domain Errors

Architectural Intent:
- Single error taxonomy shared by every layer
- Adapters translate library exceptions (paramiko, invoke, urllib) into these
- Node installer failures are captured as data carrying the error type name
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetwright.domain.entities.rollout_result import RolloutResult


class FleetError(Exception):
    """Base class for all Fleetwright errors."""


class FetchError(FleetError):
    """Release metadata or artifact bytes could not be fetched."""


class RateLimitError(FetchError):
    """The release registry refused the request because of rate limiting."""


class ParseError(FleetError):
    """A version string or release/topology document is malformed."""


class TopologyError(FleetError):
    """Cluster membership could not be resolved."""


class ConnectivityError(FleetError):
    """A node could not be reached."""


class TransferError(FleetError):
    """The artifact could not be transferred to a node."""


class ValidationError(FleetError):
    """The artifact failed its integrity or syntax check."""


class BackupError(FleetError):
    """A backup could not be created, found or removed."""


class InstallError(FleetError):
    """The artifact could not be written to its install location."""


class ServiceRestartError(FleetError):
    """Dependent services could not be restarted after install."""


class OperationTimeoutError(FleetError, TimeoutError):
    """A remote or local operation exceeded its timeout."""


class RolloutInterrupted(FleetError):
    """Raised when a rollout is cancelled; carries the partial result."""

    def __init__(self, result: "RolloutResult") -> None:
        super().__init__("Rollout interrupted")
        self.result = result
