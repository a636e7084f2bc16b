"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

from aiohttp import web

from webhook_dispatcher.config import ServerConfig
from webhook_dispatcher.core.metrics import MetricsCollector
from webhook_dispatcher.utils.logging import get_logger
from webhook_dispatcher.webhooks.handlers import IngestionHandler
from webhook_dispatcher.webhooks.homepage import HOMEPAGE_HTML

log = get_logger(__name__)


class WebhookServer:
    """Serves the homepage, metrics, and the catch-all ingestion endpoint."""

    def __init__(
        self,
        config: ServerConfig,
        handler: IngestionHandler,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config
        self._handler = handler
        self._metrics = metrics
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def _build_app(self) -> web.Application:
        app = web.Application(client_max_size=self._config.max_body_size)
        if self._metrics is not None:
            app.router.add_get("/metrics", self._handle_metrics)
        app.router.add_route("*", "/{tail:.*}", self._handle_request)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_request(self, request: web.Request) -> web.Response:
        if request.method == "GET" and request.path == "/":
            return web.Response(text=HOMEPAGE_HTML, content_type="text/html")
        return await self._handler.handle(request)

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        assert self._metrics is not None
        body, content_type = self._metrics.render()
        return web.Response(body=body, headers={"Content-Type": content_type})
