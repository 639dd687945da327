"""aiohttp middleware that runs the header block filter.

Example:
    header_filter = create_filter(load_filter_config("headerblock.yaml"))
    app = web.Application(middlewares=[header_block_middleware(header_filter)])
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from aiohttp import web

from headerguard.filter.engine import HeaderBlockFilter
from headerguard.filter.request import RequestView

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def header_block_middleware(header_filter: HeaderBlockFilter):
    """Create middleware that answers 403 with an empty body on deny.

    Forwarded requests reach the next handler unchanged.
    """

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        result = header_filter.evaluate(RequestView.from_aiohttp(request))
        if result.denied:
            return web.Response(status=403)
        return await handler(request)

    return middleware
