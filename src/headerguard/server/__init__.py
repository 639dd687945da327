"""Filtering reverse proxy server."""

from headerguard.server.proxy import FilterProxy

__all__ = ["FilterProxy"]
