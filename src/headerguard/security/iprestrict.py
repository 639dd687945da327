"""IP allow-list for bypassing blocked headers.

Uses Python's built-in ipaddress module for network matching.
Supports both IPv4 and IPv6 addresses and CIDR notation.

Parsing is fault tolerant: entries that are neither a CIDR nor a bare
address are skipped (and logged when logging is enabled), never raised.

Example:
    allow_list = parse_allowed_ips(["1.1.1.1/32, 2.2.2.2/32", "10.0.0.0/8"])

    if allow_list.contains(client_ip):
        forward_request()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network, ip_address, ip_network

import structlog

logger = structlog.get_logger()

IPAddress = IPv4Address | IPv6Address
IPNetwork = IPv4Network | IPv6Network


@dataclass
class IPCheckResult:
    """Result of an allow-list check."""

    allowed: bool
    matched_rule: str | None
    reason: str


def normalize_address(addr: IPAddress) -> IPAddress:
    """Unwrap IPv4-mapped IPv6 addresses (``::ffff:1.2.3.4`` -> ``1.2.3.4``)."""
    if isinstance(addr, IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def parse_address(value: str) -> IPAddress | None:
    """Parse a bare IP address, returning None when it is not one."""
    try:
        return normalize_address(ip_address(value.strip()))
    except ValueError:
        return None


def parse_range(entry: str) -> IPNetwork | None:
    """Parse one allow-list entry.

    CIDR notation is tried first (host bits are allowed and masked off),
    then a bare address which becomes a /32 or /128 host range.

    Returns:
        The parsed network, or None if the entry is neither.
    """
    if "/" in entry:
        try:
            return ip_network(entry, strict=False)
        except ValueError:
            return None

    addr = parse_address(entry)
    if addr is None:
        return None
    return ip_network(f"{addr}/{addr.max_prefixlen}")


@dataclass(frozen=True)
class AllowList:
    """Immutable set of networks allowed to bypass a blocked header.

    Order is kept for display only; any matching range allows.
    """

    ranges: tuple[IPNetwork, ...] = ()

    def contains(self, ip: IPAddress | None) -> bool:
        """Return True if ip falls in any range. None is never allowed."""
        return self.check(ip).allowed

    def check(self, ip: IPAddress | None) -> IPCheckResult:
        """Check ip against the ranges with a detailed result."""
        if ip is None:
            return IPCheckResult(
                allowed=False,
                matched_rule=None,
                reason="No client address",
            )

        ip = normalize_address(ip)
        for network in self.ranges:
            if ip in network:
                return IPCheckResult(
                    allowed=True,
                    matched_rule=str(network),
                    reason="IP in allowed network",
                )

        return IPCheckResult(
            allowed=False,
            matched_rule=None,
            reason="IP not in allow list",
        )

    def __len__(self) -> int:
        return len(self.ranges)


def parse_allowed_ips(
    raw: Iterable[str],
    log_enabled: bool = False,
    log: structlog.typing.FilteringBoundLogger | None = None,
) -> AllowList:
    """Parse raw allow-list entries into an AllowList.

    Each entry may bundle several ranges separated by commas,
    e.g. ``"1.1.1.1/32, 2.2.2.2/32"``.

    Args:
        raw: Raw entries from configuration.
        log_enabled: Log skipped entries.
        log: Logger to use instead of the module logger.

    Returns:
        AllowList with every entry that parsed, in input order.
    """
    log = log or logger
    ranges: list[IPNetwork] = []
    for entry in raw:
        for part in entry.split(","):
            candidate = part.strip()
            if not candidate:
                continue

            network = parse_range(candidate)
            if network is not None:
                ranges.append(network)
                continue

            if log_enabled:
                log.warning("Invalid allowedIP entry skipped", entry=candidate)

    return AllowList(ranges=tuple(ranges))
