"""
Rollout DTOs

Architectural Intent:
- Data Transfer Objects for the rollout and rollback use case boundaries
- Input validation at the application boundary
- Decouples CLI arguments from the domain model
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RolloutRequest:
    """
    node_names empty means every cluster member.
    version None means the latest published release.
    """

    node_names: tuple[str, ...] = field(default_factory=tuple)
    version: Optional[str] = None
    include_local: bool = True

    def __post_init__(self) -> None:
        if any(not name.strip() for name in self.node_names):
            raise ValueError("node names cannot be empty")
        if len(set(self.node_names)) != len(self.node_names):
            raise ValueError("node names must be unique")
        if self.version is not None and not self.version.strip():
            raise ValueError("version cannot be empty")


@dataclass(frozen=True)
class RollbackRequest:
    node_name: Optional[str] = None
    backup_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.node_name is not None and not self.node_name.strip():
            raise ValueError("node_name cannot be empty")
        if self.backup_id is not None and "/" in self.backup_id:
            raise ValueError("backup_id must be a file name, not a path")
