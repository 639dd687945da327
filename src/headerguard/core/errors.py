"""Error types for headerguard.

Two policies apply:
- Configuration errors (bad patterns, malformed config documents) are fatal
  and keep the filter from being constructed.
- Runtime data errors (unparseable allow-list entries, unresolvable client
  addresses) never raise; they are skipped or treated as "no address".
"""

from __future__ import annotations


class HeaderGuardError(Exception):
    """Base exception for headerguard."""


class ConfigError(HeaderGuardError, ValueError):
    """Raised when the filter configuration is invalid."""


class RuleCompileError(ConfigError):
    """Raised when a header pattern cannot be compiled.

    Attributes:
        pattern: The raw pattern text.
        field: Which part of the rule failed ("name" or "value").
        index: Position of the rule in its list.
        rule_set: Name of the list the rule came from.
    """

    def __init__(self, pattern: str, field: str, index: int, rule_set: str, cause: str) -> None:
        self.pattern = pattern
        self.field = field
        self.index = index
        self.rule_set = rule_set
        super().__init__(
            f"Invalid {field} pattern {pattern!r} in {rule_set}[{index}]: {cause}"
        )
