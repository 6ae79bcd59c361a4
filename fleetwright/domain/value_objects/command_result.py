from dataclasses import dataclass


@dataclass(frozen=True)
class CommandResult:
    """
    Value Object for the result of a command executed on a node.
    """
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class RemoteFile:
    """
    Value Object describing a regular file found on a node.
    """
    name: str
    path: str
    size: int
    modified: float = 0.0
