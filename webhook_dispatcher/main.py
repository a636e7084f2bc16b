"""webhook-dispatcher entry point: wires everything together and runs the server."""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from webhook_dispatcher import __version__
from webhook_dispatcher.config import Settings, load_settings
from webhook_dispatcher.core.dispatch import load_dispatch_table
from webhook_dispatcher.core.forwarder import Forwarder
from webhook_dispatcher.core.metrics import MetricsCollector
from webhook_dispatcher.storage import DualStorage, StorageBackend, StorageError, open_storage
from webhook_dispatcher.utils.logging import get_logger, setup_logging
from webhook_dispatcher.webhooks import IngestionHandler, WebhookServer

log = get_logger(__name__)


class DispatcherApp:
    """Main application orchestrator."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.storage: StorageBackend | None = None
        self.forwarder: Forwarder | None = None
        self.metrics: MetricsCollector | None = None
        self.server: WebhookServer | None = None

    async def start(self) -> None:
        log.info("dispatcher_starting", version=__version__)
        if self.settings.log_requests:
            log.info("request_logging_enabled")

        table = load_dispatch_table(self.settings.dispatch_config)

        # Unreachable storage is fatal; let StorageError propagate
        self.storage = await open_storage(self.settings)

        self.forwarder = Forwarder(self.settings.forwarding)
        handler = IngestionHandler(
            self.storage,
            table,
            self.forwarder,
            log_requests=self.settings.log_requests,
        )

        if self.settings.metrics.enabled:
            if isinstance(self.storage, DualStorage):
                primary, secondary = self.storage.primary, self.storage.secondary
            else:
                primary, secondary = self.storage, None
            self.metrics = MetricsCollector(
                primary, secondary, interval=self.settings.metrics.interval
            )
            await self.metrics.start()

        self.server = WebhookServer(self.settings.server, handler, self.metrics)
        await self.server.start()

        log.info("dispatcher_ready", rules=len(table))

    async def stop(self) -> None:
        log.info("dispatcher_stopping")
        if self.server is not None:
            await self.server.stop()
        if self.metrics is not None:
            await self.metrics.stop()
        if self.forwarder is not None:
            await self.forwarder.close()
        if self.storage is not None:
            try:
                await self.storage.close()
            except StorageError:
                log.exception("storage_close_error")
        log.info("dispatcher_stopped")


async def run(settings: Settings) -> None:
    app = DispatcherApp(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    try:
        await app.start()
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.group()
def cli() -> None:
    """webhook-dispatcher: store incoming webhooks and forward them."""


@cli.command()
@click.option("--port", type=int, default=None, help="Port to listen on")
@click.option("--dispatch-config", default=None, help="Path to the dispatch rules YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-requests", is_flag=True, help="Log every incoming request")
def server(
    port: int | None,
    dispatch_config: str | None,
    log_level: str | None,
    log_requests: bool,
) -> None:
    """Run the webhook server."""
    settings = load_settings(
        port=port,
        dispatch_config=dispatch_config,
        log_level=log_level,
        log_requests=log_requests or None,
    )
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    try:
        asyncio.run(run(settings))
    except StorageError as exc:
        log.error("storage_unavailable", error=str(exc))
        sys.exit(1)


@cli.command()
def version() -> None:
    """Print the version."""
    click.echo(__version__)


if __name__ == "__main__":
    cli()
