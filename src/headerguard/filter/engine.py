"""Header block decision engine.

For every request the engine scans headers against the blocklist. When a
header matches a blocklist rule it is cleared if a whitelist rule matches
it, or if the client IP is in the allow-list; otherwise the request is
denied on the spot.

Evaluation order:
1. Headers in the order the request exposes them.
2. Blocklist rules in declaration order, per header.
3. On the first blocklist match for a header:
   a. whitelist -> header cleared, continue with the next header
   b. allow-listed client IP -> header cleared, continue with the next header
   c. otherwise deny, stop scanning
4. No deny after the full scan -> forward.

Once a header is cleared, the remaining blocklist rules are not tried
against it.

Example:
    header_filter = create_filter(
        FilterConfig(requestHeaders=[{"name": "User-Agent", "value": "MJ12bot"}])
    )
    result = header_filter.evaluate(
        RequestView.from_mapping({"User-Agent": "MJ12bot/1.4"}, remote_addr="5.5.5.5:4000")
    )
    if result.denied:
        return 403
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from headerguard.core.config import FilterConfig, load_filter_config
from headerguard.filter.request import RequestView
from headerguard.rules.patterns import PatternRule, compile_rules
from headerguard.security.clientip import resolve_client_ip
from headerguard.security.iprestrict import AllowList, IPAddress, parse_allowed_ips

logger = structlog.get_logger()


class Decision(Enum):
    """Outcome of evaluating a request."""

    FORWARD = "forward"
    DENY = "deny"


@dataclass(frozen=True)
class FilterResult:
    """Decision plus the header and client IP that led to it."""

    decision: Decision
    reason: str
    header: str | None = None
    client_ip: IPAddress | None = None

    @property
    def allowed(self) -> bool:
        return self.decision == Decision.FORWARD

    @property
    def denied(self) -> bool:
        return self.decision == Decision.DENY


_FORWARD = FilterResult(decision=Decision.FORWARD, reason="No blocked headers")


class HeaderBlockFilter:
    """Compiled header block filter.

    Built once from a FilterConfig; the compiled rules and allow-list are
    never modified afterwards, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        block_rules: Sequence[PatternRule],
        whitelist_rules: Sequence[PatternRule] = (),
        allow_list: AllowList | None = None,
        log_enabled: bool = False,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        self._block_rules = tuple(block_rules)
        self._whitelist_rules = tuple(whitelist_rules)
        self._allow_list = allow_list if allow_list is not None else AllowList()
        self._log_enabled = log_enabled
        self._logger = log if log is not None else logger.bind(component="headerblock")

    @classmethod
    def from_config(
        cls,
        config: FilterConfig,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> HeaderBlockFilter:
        """Compile a FilterConfig.

        Raises:
            RuleCompileError: If any blocklist or whitelist pattern is invalid.
        """
        log = log if log is not None else logger.bind(component="headerblock")
        block_rules = compile_rules(config.request_headers, rule_set="requestHeaders")
        whitelist_rules = compile_rules(
            config.whitelist_request_headers, rule_set="whitelistRequestHeaders"
        )
        allow_list = parse_allowed_ips(config.allowed_ips, log_enabled=config.log, log=log)
        return cls(
            block_rules=block_rules,
            whitelist_rules=whitelist_rules,
            allow_list=allow_list,
            log_enabled=config.log,
            log=log,
        )

    @property
    def block_rules(self) -> tuple[PatternRule, ...]:
        return self._block_rules

    @property
    def whitelist_rules(self) -> tuple[PatternRule, ...]:
        return self._whitelist_rules

    @property
    def allow_list(self) -> AllowList:
        return self._allow_list

    @property
    def log_enabled(self) -> bool:
        return self._log_enabled

    def is_whitelisted(self, name: str, values: Sequence[str]) -> bool:
        """Check whether any whitelist rule clears this header."""
        return any(rule.clears(name, values) for rule in self._whitelist_rules)

    def evaluate(self, request: RequestView) -> FilterResult:
        """Decide whether to forward or deny a request."""
        client_ip: IPAddress | None = None
        client_ip_resolved = False

        for name, values in request.headers.items():
            for rule in self._block_rules:
                if not rule.blocks(name, values):
                    continue

                if self.is_whitelisted(name, values):
                    if self._log_enabled:
                        self._logger.info(
                            "Access allowed - whitelisted header",
                            url=request.url,
                            header=name,
                        )
                    break

                if not client_ip_resolved:
                    client_ip = resolve_client_ip(request.forwarded_for, request.remote_addr)
                    client_ip_resolved = True

                ip_result = self._allow_list.check(client_ip)
                if ip_result.allowed:
                    if self._log_enabled:
                        self._logger.info(
                            "Access allowed - IP bypassed blocked header",
                            url=request.url,
                            header=name,
                            client_ip=str(client_ip),
                            matched_rule=ip_result.matched_rule,
                        )
                    break

                if self._log_enabled:
                    self._logger.warning(
                        "Access denied - blocked header",
                        url=request.url,
                        header=name,
                        client_ip=str(client_ip) if client_ip is not None else None,
                        rule=rule.describe(),
                    )
                return FilterResult(
                    decision=Decision.DENY,
                    reason=f"Blocked header {name}",
                    header=name,
                    client_ip=client_ip,
                )

        return _FORWARD


def create_filter(
    config: FilterConfig | Mapping[str, Any] | None = None,
    log: structlog.typing.FilteringBoundLogger | None = None,
) -> HeaderBlockFilter:
    """Create a header block filter from configuration.

    Args:
        config: FilterConfig, or a mapping in plugin configuration shape
            (requestHeaders, whitelistRequestHeaders, allowedIPs, log).
            None gives an empty filter that forwards everything.
        log: structlog logger for decision logs; defaults to a module
            logger bound with component="headerblock".

    Returns:
        Configured HeaderBlockFilter instance

    Raises:
        ConfigError: If the mapping is not a valid configuration.
        RuleCompileError: If any pattern is not a valid regular expression.
    """
    if config is None:
        config = FilterConfig()
    elif not isinstance(config, FilterConfig):
        config = load_filter_config(config)
    return HeaderBlockFilter.from_config(config, log=log)
