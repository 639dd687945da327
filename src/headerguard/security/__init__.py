"""Source address handling.

This module provides:
- IP allow-list parsing (CIDR or bare addresses, fault tolerant)
- Client IP resolution from X-Forwarded-For or the peer address
"""

from headerguard.security.clientip import (
    FORWARDED_FOR_HEADER,
    resolve_client_ip,
    split_host_port,
)
from headerguard.security.iprestrict import (
    AllowList,
    IPCheckResult,
    parse_address,
    parse_allowed_ips,
    parse_range,
)

__all__ = [
    "AllowList",
    "IPCheckResult",
    "parse_address",
    "parse_allowed_ips",
    "parse_range",
    "FORWARDED_FOR_HEADER",
    "resolve_client_ip",
    "split_host_port",
]
