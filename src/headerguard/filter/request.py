"""Per-request view consumed by the decision engine."""

from __future__ import annotations

import string
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from headerguard.security.clientip import FORWARDED_FOR_HEADER

if TYPE_CHECKING:
    from aiohttp import web

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")


def canonical_header_name(name: str) -> str:
    """Canonical MIME form: ``x-forwarded-for`` -> ``X-Forwarded-For``.

    The first letter and every letter after a hyphen are upper-cased, the
    rest lower-cased (``x_custom`` -> ``X_custom``). Names with characters
    outside the HTTP token set are returned as is.
    """
    if not name or not all(c in _TOKEN_CHARS for c in name):
        return name
    chars = []
    upper = True
    for c in name:
        chars.append(c.upper() if upper else c.lower())
        upper = c == "-"
    return "".join(chars)


@dataclass(frozen=True)
class RequestView:
    """Headers and connection metadata of one request.

    ``headers`` maps canonical header names to every value seen for that
    name, in arrival order.
    """

    headers: dict[str, list[str]] = field(default_factory=dict)
    remote_addr: str | None = None
    url: str = ""

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, str]],
        remote_addr: str | None = None,
        url: str = "",
    ) -> RequestView:
        """Build a view from raw (name, value) pairs, grouping repeated names."""
        headers: dict[str, list[str]] = {}
        for name, value in pairs:
            headers.setdefault(canonical_header_name(name), []).append(value)
        return cls(headers=headers, remote_addr=remote_addr, url=url)

    @classmethod
    def from_mapping(
        cls,
        headers: Mapping[str, str | Iterable[str]],
        remote_addr: str | None = None,
        url: str = "",
    ) -> RequestView:
        """Build a view from a mapping of name to a value or list of values."""
        pairs: list[tuple[str, str]] = []
        for name, values in headers.items():
            if isinstance(values, str):
                pairs.append((name, values))
            else:
                pairs.extend((name, v) for v in values)
        return cls.from_pairs(pairs, remote_addr=remote_addr, url=url)

    @classmethod
    def from_aiohttp(cls, request: web.Request) -> RequestView:
        """Build a view from an aiohttp request."""
        return cls.from_pairs(
            request.headers.items(),
            remote_addr=request.remote,
            url=str(request.rel_url),
        )

    @property
    def forwarded_for(self) -> str | None:
        """First X-Forwarded-For value, if any."""
        values = self.headers.get(FORWARDED_FOR_HEADER)
        return values[0] if values else None
