"""Tests for the validator, the service restarter and the installed-artifact reader."""

import pytest

from fleetwright.domain.errors import ServiceRestartError, ValidationError
from fleetwright.domain.services.artifact_inspector import (
    inspect_installed,
    read_artifact_version,
)
from fleetwright.domain.services.artifact_validator import ArtifactValidator
from fleetwright.domain.services.service_restarter import ServiceRestarter
from fleetwright.domain.value_objects.command_result import CommandResult


class TestArtifactValidator:
    @pytest.mark.asyncio
    async def test_valid_artifact(self, executor, local_node, artifact):
        executor.node_files("pve1")["/tmp/a.pm"] = artifact
        await ArtifactValidator(executor).validate(local_node, "/tmp/a.pm")
        assert executor.commands == [("pve1", "perl -c /tmp/a.pm")]

    @pytest.mark.asyncio
    async def test_syntax_error(self, executor, local_node, artifact_factory):
        executor.node_files("pve1")["/tmp/a.pm"] = artifact_factory(broken=True)
        with pytest.raises(ValidationError, match="exit 255"):
            await ArtifactValidator(executor).validate(local_node, "/tmp/a.pm")

    @pytest.mark.asyncio
    async def test_path_is_quoted(self, executor, local_node):
        validator = ArtifactValidator(executor, command_template="check {path}")
        await validator.validate(local_node, "/tmp/with space.pm")
        assert executor.commands[-1] == ("pve1", "check '/tmp/with space.pm'")

    def test_template_requires_placeholder(self, executor):
        with pytest.raises(ValueError, match="placeholder"):
            ArtifactValidator(executor, command_template="perl -c")


class TestServiceRestarter:
    @pytest.mark.asyncio
    async def test_restarts_and_verifies(self, executor, local_node):
        await ServiceRestarter(executor, settle_seconds=0).restart(local_node)
        commands = [c for _, c in executor.commands]
        assert commands == [
            "systemctl restart pvedaemon",
            "systemctl restart pveproxy",
            "systemctl is-active --quiet pvedaemon",
            "systemctl is-active --quiet pveproxy",
        ]

    @pytest.mark.asyncio
    async def test_every_service_attempted(self, executor, local_node):
        executor.failing_services.add(("pve1", "pvedaemon"))
        with pytest.raises(ServiceRestartError, match="pvedaemon"):
            await ServiceRestarter(executor, settle_seconds=0).restart(local_node)
        assert ("pve1", "systemctl restart pveproxy") in executor.commands

    @pytest.mark.asyncio
    async def test_inactive_after_restart(self, executor, local_node):
        executor.respond(
            "pve1", "systemctl is-active --quiet pveproxy", CommandResult(3)
        )
        with pytest.raises(ServiceRestartError, match="not running after restart: pveproxy"):
            await ServiceRestarter(executor, settle_seconds=0).restart(local_node)

    @pytest.mark.asyncio
    async def test_unreachable_node(self, executor, remote_nodes):
        executor.unreachable.add("pve2")
        with pytest.raises(ServiceRestartError):
            await ServiceRestarter(executor, settle_seconds=0).restart(remote_nodes[0])


class TestArtifactInspector:
    @pytest.mark.parametrize("content,expected", [
        (b"our $VERSION = '1.0.7';", "1.0.7"),
        (b'use constant VERSION => 1;\nmy $VERSION="2.10.3";', "2.10.3"),
        (b"# version: 1.4.0\n", "1.4.0"),
        (b"package Foo; 1;", None),
    ])
    def test_read_version(self, content, expected):
        assert read_artifact_version(content) == expected

    @pytest.mark.asyncio
    async def test_nothing_installed(self, executor, local_node, paths):
        assert await inspect_installed(executor, local_node, paths.install_path) is None

    @pytest.mark.asyncio
    async def test_installed(self, executor, local_node, paths, artifact):
        executor.node_files("pve1")[paths.install_path] = artifact
        installed = await inspect_installed(executor, local_node, paths.install_path)
        assert installed.version == "1.2.0"
        assert installed.size_bytes == len(artifact)
