"""Header pattern rules.

Rules pair an optional header-name matcher with an optional header-value
matcher. Matchers are regex (search semantics) by default; exact and glob
matchers can be selected per rule.
"""

from headerguard.rules.matchers import (
    ExactMatcher,
    GlobMatcher,
    Matcher,
    MatchKind,
    RegexMatcher,
    create_matcher,
)
from headerguard.rules.patterns import PatternRule, compile_rules

__all__ = [
    # Matchers
    "Matcher",
    "MatchKind",
    "RegexMatcher",
    "ExactMatcher",
    "GlobMatcher",
    "create_matcher",
    # Rules
    "PatternRule",
    "compile_rules",
]
