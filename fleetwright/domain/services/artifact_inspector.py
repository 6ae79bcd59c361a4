"""Reads the version embedded in an installed artifact."""

import re
from dataclasses import dataclass
from typing import Optional

from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.node import Node

_VERSION_PATTERNS = (
    re.compile(rb"""VERSION\s*=\s*['"]([0-9]+\.[0-9]+\.[0-9]+)"""),
    re.compile(rb"version:\s*([0-9]+\.[0-9]+\.[0-9]+)"),
)


@dataclass(frozen=True)
class InstalledArtifact:
    path: str
    version: Optional[str]
    size_bytes: int


def read_artifact_version(content: bytes) -> Optional[str]:
    for pattern in _VERSION_PATTERNS:
        m = pattern.search(content)
        if m:
            return m.group(1).decode("ascii")
    return None


async def inspect_installed(
    executor: RemoteExecutorPort, node: Node, path: str
) -> Optional[InstalledArtifact]:
    """None when nothing is installed at `path`."""
    if not await executor.exists(node, path):
        return None
    content = await executor.get(node, path)
    return InstalledArtifact(
        path=path, version=read_artifact_version(content), size_bytes=len(content)
    )
