"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the Fleetwright application
- Single place where all adapters, services and use cases are wired together
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies from a FleetwrightConfig
- One NodeRouter is shared so every service reaches local and remote
  members through the same port
"""

from dataclasses import dataclass
from typing import Optional

from fleetwright.application.use_cases.check_updates import CheckForUpdates
from fleetwright.application.use_cases.fleet_status import InspectFleet
from fleetwright.application.use_cases.install_node import InstallNode
from fleetwright.application.use_cases.manage_backups import ManageBackups
from fleetwright.application.use_cases.prepare_rollout import PrepareRollout
from fleetwright.application.use_cases.rollback_node import RollbackNode
from fleetwright.application.use_cases.rollout_fleet import RolloutFleet
from fleetwright.application.use_cases.uninstall_node import UninstallNode
from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.ports.topology_port import TopologyPort
from fleetwright.domain.services.artifact_validator import ArtifactValidator
from fleetwright.domain.services.backup_store import BackupStore
from fleetwright.domain.services.connectivity_prober import ConnectivityProber
from fleetwright.domain.services.service_restarter import ServiceRestarter
from fleetwright.infrastructure.adapters.fabric_adapter import FabricAdapter
from fleetwright.infrastructure.adapters.github_release_adapter import GitHubReleaseAdapter
from fleetwright.infrastructure.adapters.local_adapter import LocalAdapter
from fleetwright.infrastructure.adapters.proxmox_topology_adapter import (
    ProxmoxTopologyAdapter,
    StaticTopologyAdapter,
)
from fleetwright.infrastructure.adapters.routing_adapter import NodeRouter
from fleetwright.infrastructure.config import FleetwrightConfig
from fleetwright.infrastructure.event_bus import EventBus


@dataclass
class FleetwrightContainer:
    """DI container holding all wired dependencies."""

    config: FleetwrightConfig
    executor: RemoteExecutorPort
    topology: TopologyPort
    release_source: ReleaseSourcePort
    event_bus: EventBus
    prober: ConnectivityProber
    backup_store: BackupStore
    installer: InstallNode
    prepare_rollout: PrepareRollout
    rollout: RolloutFleet
    rollback: RollbackNode
    uninstall: UninstallNode
    manage_backups: ManageBackups
    check_updates: CheckForUpdates
    inspect_fleet: InspectFleet

    async def close(self) -> None:
        await self.executor.close()


def _topology(config: FleetwrightConfig) -> TopologyPort:
    if config.topology.targets:
        return StaticTopologyAdapter(
            config.topology.targets,
            local_node=config.topology.local_node,
            user=config.ssh.user,
            port=config.ssh.port,
        )
    return ProxmoxTopologyAdapter(
        members_file=config.topology.members_file,
        nodes_dir=config.topology.nodes_dir,
        user=config.ssh.user,
        port=config.ssh.port,
    )


def create_container(
    config: Optional[FleetwrightConfig] = None,
    executor: Optional[RemoteExecutorPort] = None,
    release_source: Optional[ReleaseSourcePort] = None,
) -> FleetwrightContainer:
    """Create and wire all dependencies.

    `executor` and `release_source` replace the SSH/local router and the
    GitHub adapter, e.g. for tests.
    """
    config = config or FleetwrightConfig()
    artifact = config.artifact

    executor = executor or NodeRouter(
        local=LocalAdapter(command_timeout=config.ssh.command_timeout),
        remote=FabricAdapter(
            connect_timeout=config.ssh.connect_timeout,
            command_timeout=config.ssh.command_timeout,
        ),
    )
    topology = _topology(config)
    release_source = release_source or GitHubReleaseAdapter(
        repo=config.release.repo,
        artifact_name=artifact.name,
        api_url=config.release.api_url,
        raw_url=config.release.raw_url,
        timeout=config.release.timeout,
        token=config.release.token,
    )
    event_bus = EventBus()

    validator = ArtifactValidator(
        executor, artifact.validate_command, timeout=artifact.validate_timeout
    )
    prober = ConnectivityProber(executor, timeout=config.ssh.probe_timeout)
    backup_store = BackupStore(executor, validator, config.backup.dir, artifact.name)
    restarter = ServiceRestarter(
        executor, artifact.services, settle_seconds=artifact.restart_settle_seconds
    )
    installer = InstallNode(
        executor,
        validator,
        backup_store,
        restarter,
        install_path=artifact.install_path,
        temp_dir=artifact.temp_dir,
        event_bus=event_bus,
    )

    return FleetwrightContainer(
        config=config,
        executor=executor,
        topology=topology,
        release_source=release_source,
        event_bus=event_bus,
        prober=prober,
        backup_store=backup_store,
        installer=installer,
        prepare_rollout=PrepareRollout(topology, prober, release_source),
        rollout=RolloutFleet(installer, release_source, event_bus),
        rollback=RollbackNode(backup_store, installer),
        uninstall=UninstallNode(executor, backup_store, restarter, artifact.install_path),
        manage_backups=ManageBackups(backup_store, config.backup.policy()),
        check_updates=CheckForUpdates(executor, release_source, artifact.install_path),
        inspect_fleet=InspectFleet(topology, prober, executor, artifact.install_path),
    )
