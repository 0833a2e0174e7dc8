"""
RPC endpoint server.

HTTP surface:

    GET     /         302 to the documentation URL
    OPTIONS /         200, CORS headers only
    POST    /         admission check, then delegated JSON-RPC processing
    *       /health   200, {"time", "startTime", "version"}

Every response carries the CORS headers, whichever branch produced it.

The server owns the blacklist, the dedup cache and its sweeper, and the
signing key; request processors receive them through RequestContext or
their constructor, never through module globals.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from relaygate.processor.compat import ClientCompatFixer
from relaygate.processor.forwarder import RelayForwarder
from relaygate.processor.jsonrpc import error_body
from relaygate.processor.request import RequestProcessor, RpcRequestProcessor
from relaygate.protocol.enums import JsonRpcCode
from relaygate.security.signing import RelaySigner
from relaygate.utils.json import json_dumps_bytes
from relaygate.utils.timestamps import Clock, utc_now

from .blacklist import BlacklistFilter
from .dedup import CacheSweeper, RelayForwardCache
from .models import GatewayConfig, HealthSnapshot, RequestContext

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Accept,Content-Type",
}

HEALTH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class RpcEndpointServer:
    """
    Gateway in front of the transaction relay.

    Usage:
        server = RpcEndpointServer(GatewayConfig.from_env(), RelaySigner.from_hex(key))
        server.start()  # blocks; exits the process if the address cannot be bound
    """

    def __init__(
        self,
        config: GatewayConfig,
        signer: RelaySigner,
        *,
        processor: Optional[RequestProcessor] = None,
        forwarder: Optional[RelayForwarder] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        config.validate()
        self._config = config
        self._signer = signer
        self._clock = clock or utc_now
        self._start_time = self._clock()

        self._blacklist = BlacklistFilter(config.blacklist)
        self._cache = RelayForwardCache(
            window=timedelta(seconds=config.dedup_window_s),
            clock=self._clock,
        )
        self._sweeper = CacheSweeper(self._cache, interval_s=config.sweep_interval_s)
        self._forwarder = forwarder or RelayForwarder(timeout=config.forward_timeout_s)
        self._processor = processor or RpcRequestProcessor(
            self._cache,
            self._forwarder,
            ClientCompatFixer(),
        )
        self._executor = ThreadPoolExecutor(thread_name_prefix="relaygate-rpc")
        self._app: Optional[FastAPI] = None

    def __repr__(self) -> str:
        return f"RpcEndpointServer(version={self._config.version!r}, listen={self._config.listen_address!r})"

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def start_time(self):
        return self._start_time

    @property
    def blacklist(self) -> BlacklistFilter:
        return self._blacklist

    @property
    def cache(self) -> RelayForwardCache:
        return self._cache

    @property
    def sweeper(self) -> CacheSweeper:
        return self._sweeper

    @property
    def app(self) -> FastAPI:
        if self._app is None:
            self._app = self.build_app()
        return self._app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------
    def health_report(self) -> HealthSnapshot:
        return HealthSnapshot(
            now=self._clock(),
            start_time=self._start_time,
            version=self._config.version,
        )

    def resolve_origin(self, request: Request) -> str:
        """Client address: first X-Forwarded-For hop when trusted, else the peer."""
        if self._config.trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For", "")
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        return request.client.host if request.client else ""

    def build_request_context(self, origin: str, http_method: str, body: bytes) -> RequestContext:
        return RequestContext(
            origin=origin,
            http_method=http_method,
            body=body,
            proxy_url=self._config.proxy_url,
            relay_url=self._config.relay_url,
            signer=self._signer,
        )

    async def handle_rpc(self, request: Request) -> Response:
        origin = self.resolve_origin(request)
        admission = self._blacklist.evaluate(origin)
        if not admission.allowed:
            logger.warning("Rejected blacklisted origin %s (prefix %s)", origin, admission.metadata.get("prefix"))
            return Response(
                content=error_body(JsonRpcCode.SERVER_ERROR, "origin is blacklisted"),
                status_code=403,
                media_type=JSON_MEDIA_TYPE,
            )

        body = await request.body()
        ctx = self.build_request_context(origin, request.method, body)

        loop = asyncio.get_running_loop()
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._processor.process, ctx),
                timeout=self._config.processor_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Request from %s timed out after %.1fs", origin, self._config.processor_timeout_s)
            return Response(
                content=error_body(JsonRpcCode.SERVER_ERROR, "request timed out"),
                status_code=504,
                media_type=JSON_MEDIA_TYPE,
            )
        except Exception:
            logger.exception("Request processor failed for %s", origin)
            return Response(
                content=error_body(JsonRpcCode.SERVER_ERROR, "internal error"),
                status_code=500,
                media_type=JSON_MEDIA_TYPE,
            )

        return Response(content=result.body, status_code=result.status, media_type=result.content_type)

    def handle_health(self) -> Response:
        try:
            raw = json_dumps_bytes(self.health_report().to_dict())
        except (TypeError, ValueError) as e:
            logger.error("healthCheck json error: %s", e)
            return Response(
                content=b'{"error":"internal_error"}',
                status_code=500,
                media_type=JSON_MEDIA_TYPE,
            )
        return Response(content=raw, status_code=200, media_type=JSON_MEDIA_TYPE)

    # ------------------------------------------------------------------
    # App wiring
    # ------------------------------------------------------------------
    def build_app(self) -> FastAPI:
        sweeper = self._sweeper

        @asynccontextmanager
        async def lifespan(_app: FastAPI):
            sweeper.start()
            try:
                yield
            finally:
                sweeper.stop()

        app = FastAPI(
            lifespan=lifespan,
            title="relaygate",
            version=self._config.version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        docs_url = self._config.docs_url

        @app.middleware("http")
        async def cors_headers(request: Request, call_next):
            response = await call_next(request)
            for name, value in CORS_HEADERS.items():
                response.headers[name] = value
            return response

        @app.exception_handler(StarletteHTTPException)
        async def http_error(request: Request, exc: StarletteHTTPException):
            if exc.status_code == 404:
                return Response(
                    content=b'{"error":"not_found"}',
                    status_code=404,
                    media_type=JSON_MEDIA_TYPE,
                )
            return await http_exception_handler(request, exc)

        @app.get("/")
        async def root_redirect():
            return RedirectResponse(docs_url, status_code=302)

        @app.options("/")
        async def root_options():
            return Response(status_code=200)

        @app.post("/")
        async def root_rpc(request: Request):
            return await self.handle_rpc(request)

        @app.api_route("/health", methods=HEALTH_METHODS)
        async def health():
            return self.handle_health()

        return app

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _bind(self) -> socket.socket:
        host, port = self._config.host, self._config.port
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    def start(self, log_level: str = "info") -> None:
        """
        Bind and serve until interrupted.

        A bind failure (port in use, bad address) is fatal: it is logged
        and the process exits with status 1.
        """
        import uvicorn

        logger.info("Starting rpc endpoint %s at %s...", self._config.version, self._config.listen_address)
        try:
            sock = self._bind()
        except OSError as e:
            logger.critical("Failed to start rpc endpoint: %s", e)
            raise SystemExit(1) from e

        server = uvicorn.Server(uvicorn.Config(self.app, log_level=log_level.lower(), lifespan="on"))
        try:
            server.run(sockets=[sock])
        finally:
            self.stop()
            sock.close()

    def stop(self) -> None:
        """Stop background work. Safe to call more than once."""
        self._sweeper.stop()
        self._executor.shutdown(wait=False)
        self._forwarder.close()
