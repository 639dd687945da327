"""Header pattern rules and the rule compiler.

A rule pairs an optional header-name matcher with an optional header-value
matcher. The same rule type backs both the blocklist and the whitelist, but
the two lists combine name and value differently:

Blocklist (``PatternRule.blocks``):
- value absent: the rule matches when the name matcher is present and matches.
- value present: the rule matches when the name matches (or the name matcher
  is absent) and at least one of the header's values matches. A value-only
  rule therefore applies to every header name.

Whitelist (``PatternRule.clears``):
- a present name matcher must match this header's name;
- value absent: the name match alone clears the header;
- value present: at least one value must match.

Example:
    >>> rules = compile_rules([{"value": "MJ12bot"}])
    >>> rules[0].blocks("X-Custom", ["MJ12bot"])
    True
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from headerguard.core.config import HeaderPattern
from headerguard.core.errors import ConfigError, RuleCompileError
from headerguard.rules.matchers import Matcher, create_matcher


@dataclass(frozen=True)
class PatternRule:
    """Compiled name/value pattern pair."""

    name: Matcher | None = None
    value: Matcher | None = None

    def _any_value_matches(self, values: Iterable[str]) -> bool:
        assert self.value is not None
        return any(self.value.matches(v) for v in values)

    def blocks(self, name: str, values: Sequence[str]) -> bool:
        """Check this rule as a blocklist entry against one header."""
        name_match = self.name is not None and self.name.matches(name)
        if self.value is None:
            return name_match
        if name_match or self.name is None:
            return self._any_value_matches(values)
        return False

    def clears(self, name: str, values: Sequence[str]) -> bool:
        """Check this rule as a whitelist entry against one header."""
        if self.name is not None and not self.name.matches(name):
            return False
        if self.value is None:
            return True
        return self._any_value_matches(values)

    def describe(self) -> str:
        """Short human readable form, e.g. ``name~'User-Agent' value~'bot'``."""
        parts = []
        if self.name is not None:
            parts.append(f"name~{self.name.pattern!r}")
        if self.value is not None:
            parts.append(f"value~{self.value.pattern!r}")
        return " ".join(parts) or "<empty>"


def _compile_field(
    pattern: str | None, kind: str, field: str, index: int, rule_set: str
) -> Matcher | None:
    if not pattern:
        return None
    try:
        return create_matcher(pattern, kind)
    except re.error as e:
        raise RuleCompileError(pattern, field, index, rule_set, str(e)) from e


def compile_rules(
    entries: Iterable[HeaderPattern | Mapping[str, Any]],
    rule_set: str = "requestHeaders",
) -> list[PatternRule]:
    """Compile raw header patterns into rules, preserving order.

    Args:
        entries: Header patterns, as models or plain mappings with
            ``name``/``value`` (or ``header``/``env``) keys.
        rule_set: Name of the list, used in error messages.

    Returns:
        Compiled rules in input order.

    Raises:
        RuleCompileError: If any pattern is not a valid regular expression.
        ConfigError: If a mapping entry is not a valid header pattern.
    """
    rules: list[PatternRule] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, HeaderPattern):
            try:
                entry = HeaderPattern.model_validate(entry)
            except ValidationError as e:
                raise ConfigError(f"Invalid pattern in {rule_set}[{index}]: {e}") from e
        kind = entry.match
        rules.append(
            PatternRule(
                name=_compile_field(entry.name, kind, "name", index, rule_set),
                value=_compile_field(entry.value, kind, "value", index, rule_set),
            )
        )
    return rules
