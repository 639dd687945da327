"""String matchers used by header pattern rules.

A matcher is anything with a ``matches(candidate) -> bool`` method. The
decision engine only talks to that method, so regex, exact and glob matching
are interchangeable.

Example:
    >>> RegexMatcher("bot").matches("MJ12bot/1.4")
    True
    >>> ExactMatcher("curl").matches("curl/8.0")
    False
    >>> GlobMatcher("curl/*").matches("curl/8.0")
    True
"""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable


class MatchKind(Enum):
    """Supported matcher types."""

    REGEX = "regex"
    EXACT = "exact"
    GLOB = "glob"


@runtime_checkable
class Matcher(Protocol):
    """Capability to test a candidate string."""

    pattern: str

    def matches(self, candidate: str) -> bool: ...


@dataclass(frozen=True)
class RegexMatcher:
    """Regular expression matcher with search semantics.

    The pattern is not anchored: ``RegexMatcher("bot")`` matches any string
    containing "bot". Use ``^``/``$`` in the pattern for anchoring.

    Raises:
        re.error: If the pattern does not compile.
    """

    pattern: str
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches(self, candidate: str) -> bool:
        return self._compiled.search(candidate) is not None


@dataclass(frozen=True)
class ExactMatcher:
    """Case-sensitive string equality."""

    pattern: str

    def matches(self, candidate: str) -> bool:
        return candidate == self.pattern


@dataclass(frozen=True)
class GlobMatcher:
    """Shell-style glob over the whole candidate (``*``, ``?``, ``[...]``)."""

    pattern: str
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(fnmatch.translate(self.pattern)))

    def matches(self, candidate: str) -> bool:
        return self._compiled.match(candidate) is not None


def create_matcher(pattern: str, kind: MatchKind | str = MatchKind.REGEX) -> Matcher:
    """Create a matcher of the given kind.

    Args:
        pattern: Pattern text.
        kind: MatchKind or its string value.

    Returns:
        A matcher instance.

    Raises:
        ValueError: If kind is unknown.
        re.error: If a regex pattern does not compile.
    """
    kind = MatchKind(kind)
    if kind == MatchKind.REGEX:
        return RegexMatcher(pattern)
    elif kind == MatchKind.EXACT:
        return ExactMatcher(pattern)
    elif kind == MatchKind.GLOB:
        return GlobMatcher(pattern)
    else:
        raise ValueError(f"Unknown match kind: {kind}")
