"""Filtering reverse proxy.

Runs the header block filter as aiohttp middleware in front of a catch-all
handler that forwards every admitted request to an upstream base URL.

Example:
    proxy = FilterProxy(header_filter, upstream="http://127.0.0.1:8000", bind="0.0.0.0:8080")
    await proxy.start()
    ...
    await proxy.stop()
"""

from __future__ import annotations

import aiohttp
import structlog
from aiohttp import web
from multidict import CIMultiDict

from headerguard.filter.engine import HeaderBlockFilter
from headerguard.filter.middleware import header_block_middleware
from headerguard.security.clientip import FORWARDED_FOR_HEADER

logger = structlog.get_logger()

HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

SKIP_REQUEST_HEADERS = frozenset({"host", "content-length", "x-forwarded-for"})

SESSION_KEY = web.AppKey("headerguard.session", aiohttp.ClientSession)


def _forward_headers(request: web.Request) -> dict[str, str]:
    headers: dict[str, str] = {}
    seen: dict[str, str] = {}
    for key, value in request.headers.items():
        key_lower = key.lower()
        if key_lower in HOP_BY_HOP or key_lower in SKIP_REQUEST_HEADERS:
            continue
        if key_lower in seen:
            original = seen[key_lower]
            headers[original] = f"{headers[original]}, {value}"
        else:
            seen[key_lower] = key
            headers[key] = value

    chain = [v.strip() for v in request.headers.getall(FORWARDED_FOR_HEADER, []) if v.strip()]
    if request.remote:
        chain.append(request.remote)
    if chain:
        headers[FORWARDED_FOR_HEADER] = ", ".join(chain)
    headers["X-Forwarded-Proto"] = request.scheme
    headers["X-Forwarded-Host"] = request.host
    return headers


class FilterProxy:
    """aiohttp server forwarding filtered requests to an upstream."""

    def __init__(
        self,
        header_filter: HeaderBlockFilter,
        upstream: str,
        bind: str = "0.0.0.0:8080",
        request_timeout: float | None = 60.0,
    ) -> None:
        self.header_filter = header_filter
        self.upstream = upstream.rstrip("/")
        self.bind = bind
        self.request_timeout = request_timeout or None
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        """Create the application; usable directly with aiohttp test clients."""
        app = web.Application(middlewares=[header_block_middleware(self.header_filter)])
        app.router.add_route("*", "/{path:.*}", self._handle_request)
        app.on_startup.append(self._open_session)
        app.on_cleanup.append(self._close_session)
        return app

    async def _open_session(self, app: web.Application) -> None:
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        app[SESSION_KEY] = aiohttp.ClientSession(
            timeout=timeout,
            auto_decompress=False,
            cookie_jar=aiohttp.DummyCookieJar(),
        )

    async def _close_session(self, app: web.Application) -> None:
        await app[SESSION_KEY].close()

    def _upstream_url(self, request: web.Request) -> str:
        return self.upstream + request.raw_path

    async def _handle_request(self, request: web.Request) -> web.StreamResponse:
        session = request.app[SESSION_KEY]
        target = self._upstream_url(request)
        body = await request.read()

        try:
            async with session.request(
                request.method,
                target,
                headers=_forward_headers(request),
                data=body or None,
                allow_redirects=False,
            ) as upstream_response:
                payload = await upstream_response.read()
                headers: CIMultiDict[str] = CIMultiDict(
                    (k, v)
                    for k, v in upstream_response.headers.items()
                    if k.lower() not in HOP_BY_HOP and k.lower() != "content-length"
                )
                return web.Response(
                    body=payload,
                    status=upstream_response.status,
                    headers=headers,
                )
        except aiohttp.ClientError as e:
            logger.warning("Upstream request failed", url=target, error=str(e))
            return web.Response(text="Bad Gateway", status=502, content_type="text/plain")
        except TimeoutError:
            logger.warning("Upstream request timed out", url=target)
            return web.Response(text="Gateway Timeout", status=504, content_type="text/plain")

    def _parse_bind(self, bind: str) -> tuple[str, int]:
        """Parse bind address into host and port."""
        if ":" in bind:
            host, port = bind.rsplit(":", 1)
            return host, int(port)
        return "0.0.0.0", int(bind)

    async def start(self) -> None:
        """Start listening."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        host, port = self._parse_bind(self.bind)
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info(
            "Filter proxy started",
            host=host,
            port=port,
            upstream=self.upstream,
            block_rules=len(self.header_filter.block_rules),
            whitelist_rules=len(self.header_filter.whitelist_rules),
            allowed_ranges=len(self.header_filter.allow_list),
        )

    async def stop(self) -> None:
        """Stop the proxy gracefully."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Filter proxy stopped")
