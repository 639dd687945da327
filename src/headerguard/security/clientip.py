"""Client IP resolution.

The address attributed to a request comes from, in order:
1. the first entry of X-Forwarded-For,
2. the transport peer address (port suffix stripped),
3. otherwise None, which never passes an allow-list check.

Trust assumption: X-Forwarded-For is read without checking that the
immediate peer is a trusted proxy. Deploy behind a proxy layer that
overwrites the header, otherwise clients can spoof their address.
"""

from __future__ import annotations

from headerguard.security.iprestrict import IPAddress, parse_address

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def split_host_port(addr: str) -> tuple[str, str] | None:
    """Split ``host:port`` or ``[v6host]:port``.

    Returns:
        (host, port), or None if addr has no port suffix.
    """
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or not addr[end + 1 :].startswith(":"):
            return None
        return addr[1:end], addr[end + 2 :]

    host, sep, port = addr.rpartition(":")
    # A bare IPv6 address has several colons and no brackets
    if not sep or ":" in host:
        return None
    return host, port


def resolve_client_ip(forwarded_for: str | None, remote_addr: str | None) -> IPAddress | None:
    """Derive the client IP for allow-list checks.

    Args:
        forwarded_for: Raw X-Forwarded-For value, e.g. ``"9.9.9.9, 10.0.0.1"``.
        remote_addr: Peer address, ``host``, ``host:port`` or ``[v6]:port``.

    Returns:
        The parsed address, or None if neither source yields one.
    """
    if forwarded_for:
        first = forwarded_for.split(",", 1)[0].strip()
        addr = parse_address(first)
        if addr is not None:
            return addr

    if not remote_addr:
        return None

    split = split_host_port(remote_addr)
    if split is None:
        return parse_address(remote_addr)
    return parse_address(split[0])
