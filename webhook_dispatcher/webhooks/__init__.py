"""HTTP surface: ingestion handler and aiohttp server."""

from webhook_dispatcher.webhooks.handlers import IngestionHandler
from webhook_dispatcher.webhooks.server import WebhookServer

__all__ = ["IngestionHandler", "WebhookServer"]
