"""HTTP ping and health endpoints backed by the database pool."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from aiohttp import web

from recorder.core.logger import Logger

if TYPE_CHECKING:
    from recorder.core.pool import Pool

PING_MESSAGE = "Recorder Dashboard API"


class HealthServer:
    """Lightweight HTTP server for ping and health checks.

    Provides /api/ping for clients and /health and /ready for container
    probes. Readiness means the pool can hand out a live connection.
    """

    def __init__(self, pool: Pool, host: str = "0.0.0.0", port: int = 8080) -> None:
        """Initialize health server.

        Args:
            pool: Pool whose liveness decides readiness
            host: Interface to bind
            port: Port to listen on
        """
        self.pool = pool
        self.host = host
        self.port = port
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._logger = Logger("health")

        self.app.router.add_get("/api/ping", self.ping_handler)
        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/ready", self.ready_handler)

    async def ping_handler(self, request: web.Request) -> web.Response:
        """Ping - service banner with server time."""
        return web.json_response(
            {
                "message": PING_MESSAGE,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    async def health_handler(self, request: web.Request) -> web.Response:
        """Liveness probe - returns 200 if process is running."""
        return web.Response(text="OK", status=200)

    async def ready_handler(self, request: web.Request) -> web.Response:
        """Readiness probe - returns 200 if the database answers."""
        try:
            await self.pool.probe()
        except Exception as e:
            self._logger.warning("readiness_failed", error_type=type(e).__name__, error=str(e))
            return web.Response(text="NOT READY", status=503)
        return web.Response(text="READY", status=200)

    async def start(self) -> None:
        """Start the HTTP server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()
        self._logger.info("listening", host=self.host, port=self.port)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        self._logger.info("stopped")
