"""
Domain Services Package

Architectural Intent:
- Stateless services holding the per-node safety rules
- Validation before install, backup before overwrite, connectivity partitioning
- Depend only on domain ports, never on concrete adapters
"""

from fleetwright.domain.services.artifact_validator import ArtifactValidator
from fleetwright.domain.services.backup_store import BackupStore, BackupStats
from fleetwright.domain.services.connectivity_prober import (
    ConnectivityProber,
    ProbeReport,
    UnreachableNode,
)
from fleetwright.domain.services.service_restarter import ServiceRestarter

__all__ = [
    "ArtifactValidator",
    "BackupStore",
    "BackupStats",
    "ConnectivityProber",
    "ProbeReport",
    "UnreachableNode",
    "ServiceRestarter",
]
