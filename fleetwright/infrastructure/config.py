"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all Fleetwright settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- Defaults target the Proxmox TrueNAS storage plugin
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

from fleetwright.domain.value_objects.backup import BackupPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactConfig:
    """The installed artifact and the services that load it."""
    name: str = "TrueNASPlugin.pm"
    install_path: str = "/usr/share/perl5/PVE/Storage/Custom/TrueNASPlugin.pm"
    temp_dir: str = "/tmp"
    validate_command: str = "perl -c {path}"
    validate_timeout: float = 60.0
    services: tuple[str, ...] = ("pvedaemon", "pveproxy")
    restart_settle_seconds: float = 2.0


@dataclass(frozen=True)
class BackupConfig:
    """Backup location and retention. 0 or none disables a threshold."""
    dir: str = "/var/lib/truenas-plugin-backups"
    max_count: Optional[int] = 10
    max_age_days: Optional[int] = 90
    max_size_mb: Optional[int] = 100

    def policy(self) -> BackupPolicy:
        return BackupPolicy(
            max_count=self.max_count,
            max_age_days=self.max_age_days,
            max_total_size_mb=self.max_size_mb,
        )


@dataclass(frozen=True)
class ReleaseConfig:
    """Release registry configuration."""
    repo: str = "WarlockSyno/truenasplugin"
    api_url: str = "https://api.github.com"
    raw_url: str = "https://raw.githubusercontent.com"
    timeout: float = 30.0
    token: str = ""


@dataclass(frozen=True)
class SSHConfig:
    """SSH login and timeouts for remote members."""
    user: str = "root"
    port: int = 22
    connect_timeout: float = 10.0
    command_timeout: float = 120.0
    probe_timeout: float = 5.0


@dataclass(frozen=True)
class TopologyConfig:
    """Cluster membership source. A non-empty targets list overrides discovery."""
    members_file: str = "/etc/pve/.members"
    nodes_dir: str = "/etc/pve/nodes"
    targets: tuple[str, ...] = ()
    local_node: str = ""


@dataclass(frozen=True)
class FleetwrightConfig:
    """Root configuration for the Fleetwright application."""
    artifact: ArtifactConfig = field(default_factory=ArtifactConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)
    topology: TopologyConfig = field(default_factory=TopologyConfig)
    log_level: str = "WARNING"
    log_file: str = ""


_TOP_LEVEL_KEYS = ("log_level", "log_file")


def _env_override(data: dict, prefix: str = "FLEETWRIGHT") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern FLEETWRIGHT_SECTION_KEY.
    For example: FLEETWRIGHT_BACKUP_MAX_COUNT=5, FLEETWRIGHT_LOG_LEVEL=INFO
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s must hold a JSON object", path)
        return {}
    return data


def _coerce(type_name: str, value):
    if type_name == "tuple[str, ...]":
        if isinstance(value, str):
            return tuple(v.strip() for v in value.split(",") if v.strip())
        return tuple(value)
    if type_name == "Optional[int]":
        if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none")):
            return None
        value = int(value)
        if value < 0:
            raise ValueError(f"negative value {value}")
        # 0 disables a retention threshold
        return value or None
    if not isinstance(value, str):
        return value
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.lower() in ("true", "1", "yes")
    return value


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        return cls()
    filtered = {}
    for f in dataclasses.fields(cls):
        if f.name in data:
            try:
                filtered[f.name] = _coerce(f.type, data[f.name])
            except (TypeError, ValueError):
                logger.warning(
                    "Ignoring invalid value for %s.%s: %r", cls.__name__, f.name, data[f.name]
                )
    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "FLEETWRIGHT",
) -> FleetwrightConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (FLEETWRIGHT_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to fleetwright.json in CWD.
        env_prefix: Environment variable prefix. Defaults to FLEETWRIGHT.
    """
    config_path = Path(path) if path else Path("fleetwright.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return FleetwrightConfig(
        artifact=_build_sub_config(ArtifactConfig, data.get("artifact", {})),
        backup=_build_sub_config(BackupConfig, data.get("backup", {})),
        release=_build_sub_config(ReleaseConfig, data.get("release", {})),
        ssh=_build_sub_config(SSHConfig, data.get("ssh", {})),
        topology=_build_sub_config(TopologyConfig, data.get("topology", {})),
        log_level=str(data.get("log_level", "WARNING")),
        log_file=str(data.get("log_file", "")),
    )
