"""Prometheus gauges for stored event counts, refreshed on a timer."""

from __future__ import annotations

import asyncio

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from webhook_dispatcher.storage.base import StorageBackend, StorageError
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)

NOT_CONFIGURED = -1


class MetricsCollector:
    """Owns a private registry; a missing backend reports -1.

    The primary gauge keeps the long-standing
    ``webhook_dispatcher_redis_events_total`` name. The SQLite archive
    reports as ``webhook_dispatcher_archive_events_total``; there is no
    ``mongodb`` gauge.
    """

    def __init__(
        self,
        primary: StorageBackend | None,
        secondary: StorageBackend | None = None,
        interval: float = 15.0,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

        self.registry = CollectorRegistry()
        self._primary_gauge = Gauge(
            "webhook_dispatcher_redis_events_total",
            "Number of events stored in the primary store",
            registry=self.registry,
        )
        self._secondary_gauge = Gauge(
            "webhook_dispatcher_archive_events_total",
            "Number of events stored in the secondary archive",
            registry=self.registry,
        )

    async def refresh(self) -> None:
        await self._update(self._primary, self._primary_gauge)
        await self._update(self._secondary, self._secondary_gauge)

    async def _update(self, backend: StorageBackend | None, gauge: Gauge) -> None:
        if backend is None:
            gauge.set(NOT_CONFIGURED)
            return
        try:
            gauge.set(await backend.count())
        except StorageError as exc:
            log.warning("metrics_count_failed", backend=backend.name, error=str(exc))

    async def start(self) -> None:
        await self.refresh()
        self._task = asyncio.create_task(self._loop(), name="metrics-refresh")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.refresh()
            except Exception:
                log.exception("metrics_refresh_error")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
