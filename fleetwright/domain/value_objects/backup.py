"""
Backup Value Objects

Architectural Intent:
- Immutable record of one stored copy of a previously installed artifact
- The file name deterministically encodes (version_label, timestamp), so
  identity and newest-first ordering come from the name alone
- BackupPolicy is pure retention configuration with no mutable state

Naming:
- <artifact>.backup.<version_label>.<YYYYMMDD_HHMMSS_ffffff>
- Legacy second-resolution names (<YYYYMMDD_HHMMSS>) are still decoded
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

UNKNOWN_VERSION = "unknown"

_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_LEGACY_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_NAME_RE = re.compile(
    r"^(?P<artifact>.+?)\.backup\.(?P<label>.+)\.(?P<ts>\d{8}_\d{6}(?:_\d{6})?)$"
)


def backup_name(artifact_name: str, version_label: str, timestamp: datetime) -> str:
    label = version_label or UNKNOWN_VERSION
    return f"{artifact_name}.backup.{label}.{timestamp.strftime(_TIMESTAMP_FORMAT)}"


@dataclass(frozen=True)
class Backup:
    """
    Value Object for one immutable, timestamped, version-labeled backup.
    """
    version_label: str
    timestamp: datetime
    location: str
    size_bytes: int = 0

    @property
    def backup_id(self) -> str:
        return self.location.rsplit("/", 1)[-1]

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.timestamp, self.version_label)

    def age_days(self, now: datetime) -> int:
        return max((now - self.timestamp).days, 0)

    @staticmethod
    def from_name(
        name: str, directory: str, artifact_name: str, size_bytes: int = 0
    ) -> Optional["Backup"]:
        """Decode a backup file name. Returns None for foreign files."""
        m = _NAME_RE.match(name)
        if not m or m.group("artifact") != artifact_name:
            return None

        ts = m.group("ts")
        fmt = _TIMESTAMP_FORMAT if ts.count("_") == 2 else _LEGACY_TIMESTAMP_FORMAT
        try:
            timestamp = datetime.strptime(ts, fmt)
        except ValueError:
            return None

        return Backup(
            version_label=m.group("label"),
            timestamp=timestamp,
            location=f"{directory.rstrip('/')}/{name}",
            size_bytes=size_bytes,
        )


@dataclass(frozen=True)
class BackupPolicy:
    """
    Retention thresholds for the backup store. None disables a threshold.
    """
    max_count: Optional[int] = 10
    max_age_days: Optional[int] = 90
    max_total_size_mb: Optional[int] = 100

    def __post_init__(self) -> None:
        for name in ("max_count", "max_age_days", "max_total_size_mb"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative, got {value}")

    @property
    def max_total_size_bytes(self) -> Optional[int]:
        if self.max_total_size_mb is None:
            return None
        return self.max_total_size_mb * 1024 * 1024
