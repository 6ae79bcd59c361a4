"""
Install Node Use Case

Architectural Intent:
- Drives the InstallRun state machine for a single node, single pass
- transfer -> validate -> backup -> install -> restart services -> verified
- Failures are returned as an InstallOutcome, never raised
- The transient transfer file is removed on every exit path, cancellation included

Safety Rules:
- Validation runs against the transferred copy before anything is written
- Backup of an existing artifact is a hard precondition for overwriting it
- A service restart failure after a good install yields NEEDS_RESTART
"""

import asyncio
import hashlib
import logging
import uuid
from dataclasses import replace
from typing import Optional

from fleetwright.domain.entities.install_outcome import InstallOutcome
from fleetwright.domain.entities.install_run import InstallRun, InstallState
from fleetwright.domain.errors import (
    BackupError,
    FleetError,
    InstallError,
    OperationTimeoutError,
    ServiceRestartError,
    TransferError,
)
from fleetwright.domain.ports.event_bus_port import EventBusPort
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.services.artifact_inspector import read_artifact_version
from fleetwright.domain.services.artifact_validator import ArtifactValidator
from fleetwright.domain.services.backup_store import BackupStore
from fleetwright.domain.services.service_restarter import ServiceRestarter
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


def _translate(error: Exception, error_cls: type, message: str) -> FleetError:
    if isinstance(error, (OperationTimeoutError, error_cls)):
        return error
    return error_cls(f"{message}: {error}")


class InstallNode:
    def __init__(
        self,
        executor: RemoteExecutorPort,
        validator: ArtifactValidator,
        backup_store: BackupStore,
        restarter: ServiceRestarter,
        install_path: str,
        temp_dir: str = "/tmp",
        event_bus: Optional[EventBusPort] = None,
    ):
        self.executor = executor
        self.validator = validator
        self.backup_store = backup_store
        self.restarter = restarter
        self.install_path = install_path
        self.temp_dir = temp_dir.rstrip("/") or "/"
        self.event_bus = event_bus

    def _temp_path(self) -> str:
        name = self.install_path.rsplit("/", 1)[-1]
        return f"{self.temp_dir}/{name}.{uuid.uuid4().hex[:12]}"

    async def _publish(self, run: InstallRun) -> InstallRun:
        if self.event_bus is not None and run.last_event is not None:
            await self.event_bus.publish([run.last_event])
        return run

    async def _transfer(self, node: Node, artifact: bytes, temp_path: str) -> None:
        try:
            await self.executor.put(node, artifact, temp_path, mode=0o600)
        except (FleetError, OSError) as e:
            raise _translate(e, TransferError, f"cannot transfer artifact to {node.name}") from e

    async def _installed_copy(self, node: Node) -> Optional[bytes]:
        try:
            if not await self.executor.exists(node, self.install_path):
                return None
            return await self.executor.get(node, self.install_path)
        except (FleetError, OSError) as e:
            raise _translate(e, BackupError, "cannot read installed artifact") from e

    async def _install(self, node: Node, temp_path: str, artifact: bytes) -> None:
        try:
            await self.executor.copy(node, temp_path, self.install_path, mode=0o644)
            written = await self.executor.get(node, self.install_path)
        except (FleetError, OSError) as e:
            raise _translate(e, InstallError, f"cannot write {self.install_path}") from e
        if hashlib.sha256(written).digest() != hashlib.sha256(artifact).digest():
            raise InstallError(f"{self.install_path} does not match the transferred artifact")

    async def _cleanup(self, node: Node, temp_path: str) -> Optional[str]:
        try:
            await self.executor.remove(node, temp_path)
        except (FleetError, OSError) as e:
            logger.error("Failed to remove %s on %s: %s", temp_path, node.name, e)
            return str(e)
        return None

    async def execute(self, node: Node, artifact: bytes, version: str) -> InstallOutcome:
        run = InstallRun(node_name=node.name, version=version)
        temp_path = self._temp_path()
        cleanup_error: Optional[str] = None

        try:
            run = await self._publish(run.advance(InstallState.TRANSFERRING))
            await self._transfer(node, artifact, temp_path)

            run = await self._publish(run.advance(InstallState.VALIDATING))
            await self.validator.validate(node, temp_path)

            try:
                current = await self._installed_copy(node)
            except FleetError:
                # Reading the installed copy is part of the backup step
                run = await self._publish(run.advance(InstallState.BACKING_UP))
                raise
            if current is None:
                logger.info("No existing artifact on %s, backup skipped", node.name)
            else:
                run = await self._publish(run.advance(InstallState.BACKING_UP))
                await self.backup_store.create(node, current, read_artifact_version(current))

            run = await self._publish(run.advance(InstallState.INSTALLING))
            await self._install(node, temp_path, artifact)

            run = await self._publish(run.advance(InstallState.RESTARTING_SERVICES))
            try:
                await self.restarter.restart(node)
            except ServiceRestartError as e:
                logger.warning("Installed on %s but services need restart: %s", node.name, e)
                run = await self._publish(run.needs_restart(str(e)))
            else:
                run = await self._publish(run.advance(InstallState.VERIFIED))
        except FleetError as e:
            logger.error(
                "Install of %s failed on %s during %s: %s",
                version, node.name, run.state.value, e,
            )
            run = await self._publish(run.fail(type(e).__name__, str(e)))
        finally:
            cleanup_error = await asyncio.shield(self._cleanup(node, temp_path))

        outcome = run.to_outcome()
        if cleanup_error is not None:
            outcome = replace(outcome, cleanup_error=cleanup_error)
        return outcome
