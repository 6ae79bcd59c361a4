"""
Artifact Validator

Architectural Intent:
- Runs the artifact's syntax check on the node that holds the file
- Command template is configurable; default is `perl -c {path}`
- Validation always precedes any write to the install location
"""

import logging
import shlex
from typing import Optional

from fleetwright.domain.errors import ValidationError
from fleetwright.domain.ports.remote_executor_port import RemoteExecutorPort
from fleetwright.domain.value_objects.node import Node

logger = logging.getLogger(__name__)

DEFAULT_VALIDATE_COMMAND = "perl -c {path}"


class ArtifactValidator:
    def __init__(
        self,
        executor: RemoteExecutorPort,
        command_template: str = DEFAULT_VALIDATE_COMMAND,
        timeout: Optional[float] = None,
    ) -> None:
        if "{path}" not in command_template:
            raise ValueError("Validate command must contain a {path} placeholder")
        self.executor = executor
        self.command_template = command_template
        self.timeout = timeout

    async def validate(self, node: Node, path: str) -> None:
        """Raises ValidationError if the file at `path` fails the check."""
        command = self.command_template.format(path=shlex.quote(path))
        result = await self.executor.run(node, command, timeout=self.timeout)
        if not result.ok:
            details = (result.stderr or result.stdout).strip().splitlines()[:10]
            logger.error("Validation failed on %s for %s", node.name, path)
            raise ValidationError(
                f"{path} failed validation (exit {result.exit_code})"
                + (f": {' '.join(details)}" if details else "")
            )
        logger.debug("Validated %s on %s", path, node.name)
