"""
Check For Updates Use Case

Architectural Intent:
- Compares the artifact installed on a node with the latest release
- Read-only: never downloads the artifact or touches the node
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.services.artifact_inspector import inspect_installed
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.release import Release
from fleetwright.domain.value_objects.version import Ordering, compare_versions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateStatus:
    node: Node
    latest: Release
    installed: Optional[str] = None
    present: bool = False

    @property
    def update_available(self) -> bool:
        # An artifact with no readable version is treated as outdated
        if self.installed is None:
            return True
        return compare_versions(self.installed, self.latest.version) is Ordering.LESS


class CheckForUpdates:
    def __init__(
        self,
        executor: RemoteExecutorPort,
        release_source: ReleaseSourcePort,
        install_path: str,
    ):
        self.executor = executor
        self.release_source = release_source
        self.install_path = install_path

    async def execute(self, node: Node) -> UpdateStatus:
        latest = await self.release_source.fetch_latest()
        installed = await inspect_installed(self.executor, node, self.install_path)
        status = UpdateStatus(
            node=node,
            latest=latest,
            installed=installed.version if installed else None,
            present=installed is not None,
        )
        logger.info(
            "%s: installed %s, latest %s",
            node.name, status.installed or "none", latest.version,
        )
        return status

    async def releases(self) -> List[Release]:
        return await self.release_source.list_releases()
