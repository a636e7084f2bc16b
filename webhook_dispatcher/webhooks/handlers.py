"""Ingestion pipeline: read → validate → key → persist → dispatch → respond."""

from __future__ import annotations

import json
import time
from typing import Callable

from aiohttp import web

from webhook_dispatcher.core.dispatch import DispatchTable
from webhook_dispatcher.core.forwarder import Forwarder
from webhook_dispatcher.core.keys import generate_key
from webhook_dispatcher.storage.base import StorageBackend, StorageError
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-standard JSON constant {name!r}")


class IngestionHandler:
    """Persists every well-formed JSON request and fans it out to targets.

    Persistence is on the request's critical path; forwarding is not.
    """

    def __init__(
        self,
        storage: StorageBackend,
        table: DispatchTable,
        forwarder: Forwarder,
        log_requests: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._table = table
        self._forwarder = forwarder
        self._log_requests = log_requests
        self._clock = clock

    async def handle(self, request: web.Request) -> web.Response:
        path = request.path

        try:
            body = await request.read()
        except OSError as exc:
            log.warning("request_body_unreadable", path=path, error=str(exc))
            return web.Response(status=400, text="Failed to read request body")

        if self._log_requests:
            log.info(
                "incoming_request",
                method=request.method,
                path=path,
                remote=request.remote,
                headers=dict(request.headers),
                body=body.decode("utf-8", errors="replace"),
            )

        # Parsed only to validate; the raw bytes are what gets stored
        try:
            json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
        except ValueError as exc:
            log.info("invalid_json", path=path, remote=request.remote, error=str(exc))
            return web.Response(status=400, text="Invalid JSON")

        key = generate_key(path, self._clock())

        try:
            await self._storage.store(key, path, body)
        except StorageError as exc:
            log.error("webhook_store_failed", key=key, path=path, error=str(exc))
            return web.Response(status=500, text="Failed to store webhook")

        log.info("webhook_stored", key=key, path=path, size=len(body))

        targets = self._table.lookup(path)
        if targets:
            self._forwarder.dispatch(
                targets, body, request.headers.get("Content-Type")
            )
            log.info("webhook_dispatched", key=key, targets=len(targets))

        return web.Response(status=200, text=f"Webhook received and stored: {key}\n")
