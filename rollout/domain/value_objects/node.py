"""
Node Value Object

Architectural Intent:
- Immutable value object naming one deployment target host
- Each node owns its own release registry (a node is a host-group of one)
- Validates hostname format (DNS, IPv4, IPv6), port bounds, non-empty user
"""

import re
from dataclasses import dataclass

_HOSTNAME_RE = re.compile(
    r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$"
)

_IPV4_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")

_IPV6_RE = re.compile(r"^[0-9a-fA-F:]+$")


def _is_valid_hostname(host: str) -> bool:
    if not host:
        return False

    m = _IPV4_RE.match(host)
    if m:
        return all(0 <= int(g) <= 255 for g in m.groups())

    if _IPV6_RE.match(host) and ":" in host:
        return True

    return bool(_HOSTNAME_RE.match(host)) and len(host) <= 253


@dataclass(frozen=True)
class Node:
    """A remote host releases are staged on."""

    host: str
    user: str = "root"
    port: int = 22

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("Node user cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not _is_valid_hostname(self.host):
            raise ValueError(f"Invalid hostname: {self.host!r}")

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"

    @staticmethod
    def parse(target: str, user: str = "root", port: int = 22) -> "Node":
        """
        Parses 'user@host:port', 'host' or 'user@[::1]:port'.
        Parts missing from the target fall back to the given defaults.
        """
        host = target.strip()

        if "@" in host:
            user, host = host.split("@", 1)

        if host.startswith("["):
            bracket_end = host.find("]")
            if bracket_end == -1:
                raise ValueError(f"Unterminated IPv6 bracket in: {target}")
            remainder = host[bracket_end + 1:]
            if remainder.startswith(":"):
                port = int(remainder[1:])
            host = host[1:bracket_end]
        elif host.count(":") == 1:
            name, _, maybe_port = host.partition(":")
            if maybe_port.isascii() and maybe_port.isdigit():
                host, port = name, int(maybe_port)

        return Node(host=host, user=user, port=port)
