"""Header block filter: decision engine, request view and aiohttp middleware."""

from headerguard.filter.engine import Decision, FilterResult, HeaderBlockFilter, create_filter
from headerguard.filter.middleware import header_block_middleware
from headerguard.filter.request import RequestView, canonical_header_name

__all__ = [
    "HeaderBlockFilter",
    "Decision",
    "FilterResult",
    "create_filter",
    "RequestView",
    "canonical_header_name",
    "header_block_middleware",
]
