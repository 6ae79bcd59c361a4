"""Global test configuration.

Provides an in-memory RemoteExecutorPort so domain services, use cases and
the CLI can be exercised without SSH, perl or systemd.
"""

import asyncio
import shlex
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import List, Optional

import pytest

from fleetwright.application.use_cases.install_node import InstallNode
from fleetwright.domain.errors import ConnectivityError, FetchError
from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.ports.topology_port import TopologyPort
from fleetwright.domain.services.artifact_validator import ArtifactValidator
from fleetwright.domain.services.backup_store import BackupStore
from fleetwright.domain.services.service_restarter import ServiceRestarter
from fleetwright.domain.value_objects.command_result import CommandResult, RemoteFile
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.release import Release
from fleetwright.infrastructure.event_bus import EventBus

ARTIFACT_NAME = "TrueNASPlugin.pm"
INSTALL_PATH = "/usr/share/perl5/PVE/Storage/Custom/TrueNASPlugin.pm"
BACKUP_DIR = "/var/lib/truenas-plugin-backups"
TEMP_DIR = "/tmp"
SYNTAX_ERROR = b"SYNTAX ERROR"


def make_artifact(version: str = "1.2.0", broken: bool = False) -> bytes:
    body = b"package PVE::Storage::Custom::TrueNASPlugin;\n"
    body += f"our $VERSION = '{version}';\n".encode()
    if broken:
        body += SYNTAX_ERROR + b"\n"
    return body + b"1;\n"


class FakeExecutor(RemoteExecutorPort):
    """In-memory cluster: one file map per node name."""

    def __init__(self) -> None:
        self.files: dict[str, dict[str, bytes]] = {}
        self.commands: list[tuple[str, str]] = []
        self.unreachable: set[str] = set()
        self.failures: list[tuple[str, str, str, Exception]] = []
        self.responses: list[tuple[str, str, CommandResult]] = []
        self.failing_services: set[tuple[str, str]] = set()
        self.cancel_on: Optional[tuple[str, str]] = None

    def node_files(self, name: str) -> dict[str, bytes]:
        return self.files.setdefault(name, {})

    def fail(self, node_name: str, op: str, error: Exception, path_prefix: str = "") -> None:
        self.failures.append((node_name, op, path_prefix, error))

    def respond(self, node_name: str, command_prefix: str, result: CommandResult) -> None:
        self.responses.append((node_name, command_prefix, result))

    def _check(self, node: Node, op: str, path: str = "") -> None:
        if node.name in self.unreachable:
            raise ConnectivityError(f"Cannot reach {node.name}")
        if self.cancel_on == (node.name, op):
            raise asyncio.CancelledError()
        for name, failing_op, prefix, error in self.failures:
            if name == node.name and failing_op == op and path.startswith(prefix):
                raise error

    def _systemctl(self, node: Node, args: list[str]) -> CommandResult:
        service = args[-1]
        if (node.name, service) in self.failing_services:
            return CommandResult(3, stderr=f"{service} failed")
        return CommandResult(0)

    async def run(self, node: Node, command: str, timeout: Optional[float] = None) -> CommandResult:
        self._check(node, "run")
        self.commands.append((node.name, command))
        for name, prefix, result in self.responses:
            if name == node.name and command.startswith(prefix):
                return result

        args = shlex.split(command)
        if args[:2] == ["perl", "-c"]:
            data = self.node_files(node.name).get(args[2])
            if data is None:
                return CommandResult(2, stderr=f"Can't open perl script \"{args[2]}\"")
            if SYNTAX_ERROR in data:
                return CommandResult(255, stderr="syntax error at line 3, near \"SYNTAX ERROR\"")
            return CommandResult(0, stderr=f"{args[2]} syntax OK")
        if args[:1] == ["systemctl"]:
            return self._systemctl(node, args)
        return CommandResult(0)

    async def put(self, node: Node, data: bytes, path: str, mode: int = 0o644) -> None:
        self._check(node, "put", path)
        self.node_files(node.name)[path] = bytes(data)

    async def get(self, node: Node, path: str) -> bytes:
        self._check(node, "get", path)
        try:
            return self.node_files(node.name)[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    async def exists(self, node: Node, path: str) -> bool:
        self._check(node, "exists", path)
        return path in self.node_files(node.name)

    async def remove(self, node: Node, path: str) -> None:
        self._check(node, "remove", path)
        self.node_files(node.name).pop(path, None)

    async def copy(self, node: Node, source: str, destination: str, mode: int = 0o644) -> None:
        self._check(node, "copy", destination)
        files = self.node_files(node.name)
        if source not in files:
            raise FileNotFoundError(source)
        files[destination] = files[source]

    async def make_dirs(self, node: Node, path: str) -> None:
        self._check(node, "make_dirs", path)

    async def list_files(self, node: Node, directory: str) -> List[RemoteFile]:
        self._check(node, "list_files", directory)
        base = directory.rstrip("/")
        return [
            RemoteFile(name=path.rsplit("/", 1)[-1], path=path, size=len(data))
            for path, data in self.node_files(node.name).items()
            if path.rsplit("/", 1)[0] == base
        ]

    def temp_files(self, name: str) -> list[str]:
        return [p for p in self.node_files(name) if p.startswith(f"{TEMP_DIR}/")]

    def backups(self, name: str) -> list[str]:
        return [p for p in self.node_files(name) if p.startswith(f"{BACKUP_DIR}/")]


class StepClock:
    """Deterministic clock advancing by `step` on every call."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0), step=timedelta(0)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def build_stack(executor: RemoteExecutorPort, clock=None) -> SimpleNamespace:
    event_bus = EventBus()
    validator = ArtifactValidator(executor)
    store = BackupStore(
        executor, validator, BACKUP_DIR, ARTIFACT_NAME, clock=clock or StepClock()
    )
    restarter = ServiceRestarter(executor, settle_seconds=0)
    installer = InstallNode(
        executor,
        validator,
        store,
        restarter,
        install_path=INSTALL_PATH,
        temp_dir=TEMP_DIR,
        event_bus=event_bus,
    )
    return SimpleNamespace(
        executor=executor,
        event_bus=event_bus,
        validator=validator,
        store=store,
        restarter=restarter,
        installer=installer,
    )


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def stack(executor) -> SimpleNamespace:
    return build_stack(executor)


@pytest.fixture
def local_node() -> Node:
    return Node(name="pve1", address="10.0.0.1", is_local=True)


@pytest.fixture
def remote_nodes() -> list[Node]:
    return [
        Node(name="pve2", address="10.0.0.2"),
        Node(name="pve3", address="10.0.0.3"),
        Node(name="pve4", address="10.0.0.4"),
    ]


@pytest.fixture
def artifact() -> bytes:
    return make_artifact("1.2.0")


@pytest.fixture
def paths() -> SimpleNamespace:
    return SimpleNamespace(
        artifact_name=ARTIFACT_NAME,
        install_path=INSTALL_PATH,
        backup_dir=BACKUP_DIR,
        temp_dir=TEMP_DIR,
    )


@pytest.fixture
def artifact_factory():
    return make_artifact


@pytest.fixture
def stack_factory():
    return build_stack


@pytest.fixture
def step_clock():
    return StepClock


class FakeReleaseSource(ReleaseSourcePort):
    """Serves releases and artifact bytes from memory."""

    def __init__(self, releases: Optional[List[Release]] = None) -> None:
        self.releases = list(releases or [])
        self.artifacts: dict[str, bytes] = {}
        self.downloads: list[str] = []

    def publish(self, version: str, content: Optional[bytes] = None, prerelease: bool = False) -> Release:
        release = Release(
            version=version,
            download_url=f"https://example.com/v{version}/{ARTIFACT_NAME}",
            is_prerelease=prerelease,
        )
        self.releases.insert(0, release)
        self.artifacts[release.download_url] = content if content is not None else make_artifact(version)
        return release

    async def fetch_latest(self) -> Release:
        for release in self.releases:
            if not release.is_prerelease:
                return release
        raise FetchError("No releases published")

    async def fetch_by_version(self, version: str) -> Release:
        bare = version[1:] if version.startswith("v") else version
        for release in self.releases:
            if release.version == bare:
                return release
        raise FetchError(f"Release {version} not found")

    async def list_releases(self) -> List[Release]:
        return list(self.releases)

    async def download(self, url: str) -> bytes:
        self.downloads.append(url)
        try:
            return self.artifacts[url]
        except KeyError:
            raise FetchError(f"Download failed: {url}") from None


class FakeTopology(TopologyPort):
    def __init__(self, members: List[Node]) -> None:
        self.members = list(members)

    async def list_members(self) -> List[Node]:
        return list(self.members)

    async def current_member(self) -> Node:
        return next(n for n in self.members if n.is_local)


@pytest.fixture
def release_source() -> FakeReleaseSource:
    source = FakeReleaseSource()
    source.publish("1.1.0")
    source.publish("1.2.0")
    return source


@pytest.fixture
def cluster(local_node, remote_nodes) -> FakeTopology:
    return FakeTopology([local_node] + remote_nodes)
