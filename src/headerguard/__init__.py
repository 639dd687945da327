"""headerguard - header block filter for HTTP requests.

Decides whether to forward or reject a request by matching header names and
values against a blocklist, with whitelist and source-IP allow-list overrides.

Usage:
    from headerguard import RequestView, create_filter

    header_filter = create_filter({
        "requestHeaders": [{"name": "User-Agent", "value": "MJ12bot"}],
        "whitelistRequestHeaders": [{"name": "Cf-Ipcountry", "value": "VN"}],
        "allowedIPs": ["10.0.0.0/8"],
        "log": True,
    })

    result = header_filter.evaluate(
        RequestView.from_mapping({"User-Agent": "MJ12bot/1.4"}, remote_addr="5.5.5.5:4000")
    )
    if result.denied:
        ...  # respond 403
"""

from headerguard.core.config import FilterConfig, HeaderPattern, load_filter_config
from headerguard.core.errors import ConfigError, HeaderGuardError, RuleCompileError
from headerguard.filter.engine import Decision, FilterResult, HeaderBlockFilter, create_filter
from headerguard.filter.request import RequestView

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Engine
    "HeaderBlockFilter",
    "Decision",
    "FilterResult",
    "RequestView",
    "create_filter",
    # Configuration
    "FilterConfig",
    "HeaderPattern",
    "load_filter_config",
    # Errors
    "HeaderGuardError",
    "ConfigError",
    "RuleCompileError",
]
