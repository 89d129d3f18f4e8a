"""Authenticating reverse proxy for OpenAI and Anthropic upstreams.

Every inbound request except the health check must carry
``Authorization: Bearer <PROXY_TOKEN>``. Authorized requests under
``/openai/`` or ``/anthropic/`` are forwarded to the matching upstream with
the vendor credential injected:

1. Strip the routing prefix and join the rest onto the upstream base URL
2. Drop hop headers and the caller's Authorization
3. Inject the vendor key (and default anthropic-version, if configured)
4. Stream the request body up and the response body back, chunk by chunk

Bodies are never buffered, so Server-Sent Events reach the caller as the
upstream emits them. Upstream 4xx/5xx responses are relayed as-is; only
transport failures become a 502.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
import time
from dataclasses import dataclass, field

import aiohttp
from aiohttp import hdrs, web
from multidict import CIMultiDict
from yarl import URL

from llm_proxy.config import ProxyConfig
from llm_proxy.errors import bad_gateway, not_found, unauthorized
from llm_proxy.headers import filter_headers, outbound_headers
from llm_proxy.routing import (
    HEALTH_PATH,
    build_upstream_url,
    select_upstream,
    strip_prefix,
)
from llm_proxy.tracing import RequestTracer

logger = logging.getLogger(__name__)

# aiohttp would otherwise add these itself when the caller did not send them
_SKIP_AUTO_HEADERS = (
    hdrs.ACCEPT,
    hdrs.ACCEPT_ENCODING,
    hdrs.CONTENT_TYPE,
    hdrs.USER_AGENT,
)


def mask_secret(value: str | None) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


@dataclass
class ProxyServer:
    """Forwards authorized requests to the configured upstreams.

    Example:
        >>> config = load_config()
        >>> server = ProxyServer(config=config)
        >>> await server.serve()
    """

    config: ProxyConfig
    _app: web.Application | None = None
    _runner: web.AppRunner | None = None
    _session: aiohttp.ClientSession | None = None
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)
    _tracer: RequestTracer = field(default_factory=RequestTracer)

    def create_app(self) -> web.Application:
        """Build the aiohttp application; the upstream session opens on startup."""
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle_request)
        app.on_startup.append(self._open_session)
        app.on_cleanup.append(self._close_session)
        return app

    async def serve(self) -> None:
        """Start the proxy and block until ``shutdown()`` is called."""
        self._app = self.create_app()
        # Access lines would duplicate the per-request trace log
        self._runner = web.AppRunner(self._app, access_log=None)
        # setup() already opened the upstream session, so cleanup must run
        # even when binding the listener fails
        await self._runner.setup()
        try:
            site = web.TCPSite(self._runner, self.config.host, self.config.port)
            await site.start()

            logger.info("llm-proxy listening on http://%s:%d", self.config.host, self.config.port)
            logger.info("/openai -> %s", self.config.openai_base_url)
            logger.info("/anthropic -> %s", self.config.anthropic_base_url)
            logger.debug(
                "Credentials: openai=%s, anthropic=%s, proxy_token=%s",
                mask_secret(self.config.openai_api_key),
                mask_secret(self.config.anthropic_api_key),
                mask_secret(self.config.proxy_token),
            )
            if self.config.anthropic_version:
                logger.info("Default anthropic-version: %s", self.config.anthropic_version)

            await self._shutdown_event.wait()
        finally:
            await self._runner.cleanup()
            self._runner = None

    def request_shutdown(self) -> None:
        """Signal-safe variant of ``shutdown()``; wakes ``serve()`` so it cleans up."""
        logger.info("Shutting down llm-proxy...")
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Ask ``serve()`` to stop; it closes the listener and upstream session."""
        self.request_shutdown()

    async def _open_session(self, app: web.Application) -> None:
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=self.config.connect_timeout,
            sock_read=self.config.read_timeout,
        )
        # Bodies are relayed byte-for-byte, so no transparent decompression.
        # Upstream cookies belong to the caller, never to the shared session.
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            auto_decompress=False,
            cookie_jar=aiohttp.DummyCookieJar(),
            skip_auto_headers=_SKIP_AUTO_HEADERS,
        )

    async def _close_session(self, app: web.Application) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _is_authorized(self, request: web.Request) -> bool:
        supplied = request.headers.get(hdrs.AUTHORIZATION)
        if supplied is None:
            return False
        expected = f"Bearer {self.config.proxy_token}"
        return hmac.compare_digest(
            supplied.encode("utf-8", "surrogateescape"),
            expected.encode("utf-8", "surrogateescape"),
        )

    async def _handle_request(self, request: web.Request) -> web.StreamResponse:
        """Route one inbound request: health, auth, upstream selection, forward."""
        path = request.rel_url.raw_path
        if path == HEALTH_PATH:
            return web.Response(text="ok")

        if not self._is_authorized(request):
            logger.debug("Rejected %s %s: bad or missing proxy token", request.method, path)
            return unauthorized()

        upstream = select_upstream(path, self.config)
        if upstream is None:
            return not_found()

        url = build_upstream_url(
            upstream.base_url,
            strip_prefix(path, upstream.prefix),
            request.rel_url.raw_query_string,
        )
        headers = outbound_headers(upstream, self.config, request.headers)
        trace_id = self._tracer.generate_trace_id(upstream.prefix.lstrip("/"))

        return await self._forward(request, url, headers, trace_id)

    async def _forward(
        self,
        request: web.Request,
        url: str,
        headers: CIMultiDict[str],
        trace_id: str,
    ) -> web.StreamResponse:
        """Send the request upstream and relay the response as it arrives."""
        assert self._session is not None

        started = time.monotonic()
        self._tracer.log_request(trace_id, request.method, request.rel_url.raw_path, url)

        try:
            upstream_response = await self._session.request(
                request.method,
                URL(url, encoded=True),
                headers=headers,
                data=request.content if request.body_exists else None,
                allow_redirects=False,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._tracer.log_response(
                trace_id,
                502,
                time.monotonic() - started,
                error=f"{type(e).__name__}: {e}",
            )
            return bad_gateway()

        async with upstream_response:
            response = web.StreamResponse(
                status=upstream_response.status,
                reason=upstream_response.reason,
                headers=filter_headers(upstream_response.headers),
            )
            await response.prepare(request)

            size = 0
            try:
                async for chunk in upstream_response.content.iter_any():
                    size += len(chunk)
                    await response.write(chunk)
            except ConnectionResetError:
                logger.debug("[%s] Client disconnected during streaming", trace_id)
                return response
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                # Headers are already sent; re-raise so aiohttp drops the connection
                self._tracer.log_response(
                    trace_id,
                    upstream_response.status,
                    time.monotonic() - started,
                    response_size=size,
                    error=f"upstream stream failed: {type(e).__name__}: {e}",
                )
                raise

            await response.write_eof()

        self._tracer.log_response(
            trace_id,
            upstream_response.status,
            time.monotonic() - started,
            response_size=size,
        )
        return response
