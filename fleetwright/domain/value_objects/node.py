"""
Node Value Object

Architectural Intent:
- Immutable value object representing a cluster member targeted by a rollout
- Identity is the member name; address, login and locality do not take part in equality
- Validates address format (DNS, IPv4, IPv6), port bounds, non-empty user
- Supports IPv6 bracket notation in parse() (e.g., pve2=root@[fe80::2]:22)
"""

import re
from dataclasses import dataclass, field

# RFC 1123 hostname: labels of alnum/hyphens, dot-separated
_HOSTNAME_RE = re.compile(
    r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$"
)

# Simple IPv4 pattern
_IPV4_RE = re.compile(
    r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$"
)

# IPv6 pattern (simplified, accepts common forms including ::1, fe80::1, etc.)
_IPV6_RE = re.compile(r"^[0-9a-fA-F:]+$")


def _is_valid_address(host: str) -> bool:
    """Validate address as DNS name, IPv4, or IPv6."""
    if not host:
        return False

    m = _IPV4_RE.match(host)
    if m:
        return all(0 <= int(g) <= 255 for g in m.groups())

    if _IPV6_RE.match(host) and ":" in host:
        return True

    if _HOSTNAME_RE.match(host) and len(host) <= 253:
        return True

    return False


@dataclass(frozen=True)
class Node:
    """
    Value Object representing a single cluster member.
    """
    name: str
    address: str = field(default="", compare=False)
    is_local: bool = field(default=False, compare=False)
    user: str = field(default="root", compare=False)
    port: int = field(default=22, compare=False)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Node name cannot be empty")
        if not self.address:
            object.__setattr__(self, "address", self.name)
        if not self.user:
            raise ValueError("Node user cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not _is_valid_address(self.address):
            raise ValueError(f"Invalid address: {self.address!r}")

    def __str__(self) -> str:
        return self.name

    @property
    def ssh_target(self) -> str:
        if ":" in self.address:
            return f"{self.user}@[{self.address}]:{self.port}"
        return f"{self.user}@{self.address}:{self.port}"

    @staticmethod
    def parse(spec: str, is_local: bool = False) -> "Node":
        """
        Parses 'name', 'name=address', or 'name=user@address:port' into a Node.
        A bare 'user@address:port' uses the address as the member name.
        """
        text = spec.strip()
        name = ""
        if "=" in text:
            name, text = text.split("=", 1)
            name = name.strip()

        user = "root"
        port = 22
        host = text.strip()

        if "@" in host:
            user, host = host.split("@", 1)

        # IPv6 bracket notation: [::1]:port or [::1]
        if host.startswith("["):
            bracket_end = host.find("]")
            if bracket_end == -1:
                raise ValueError(f"Unterminated IPv6 bracket in: {spec}")
            ipv6_addr = host[1:bracket_end]
            remainder = host[bracket_end + 1:]
            if remainder.startswith(":"):
                port = int(remainder[1:])
            host = ipv6_addr
        elif host.count(":") == 1:
            # For non-IPv6, split on last colon for port
            last_colon = host.rfind(":")
            try:
                port = int(host[last_colon + 1:])
                host = host[:last_colon]
            except ValueError:
                pass

        return Node(
            name=name or host,
            address=host,
            is_local=is_local,
            user=user,
            port=port,
        )
