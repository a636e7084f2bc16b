"""Fire-and-forget fan-out of webhook payloads to configured targets."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import httpx

from webhook_dispatcher.config import ForwardingConfig
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"


class Forwarder:
    """Delivers a raw body to every target as an independent background task.

    A forward is attempted once and follows redirects. Its outcome is only
    logged; it never affects the inbound response or sibling targets.

    The timeout covers the HTTP exchange only. Once ``max_concurrency``
    forwards are in flight, further ones queue without a deadline and
    start as earlier ones finish.
    """

    def __init__(
        self,
        config: ForwardingConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or ForwardingConfig()
        self._client = client or httpx.AsyncClient(timeout=self._config.timeout)
        self._semaphore = asyncio.Semaphore(self._config.max_concurrency)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def dispatch(
        self,
        targets: Iterable[str],
        body: bytes,
        content_type: str | None = None,
    ) -> list[asyncio.Task[None]]:
        """Spawn one forward per target and return without waiting."""
        headers = {"Content-Type": content_type or DEFAULT_CONTENT_TYPE}
        spawned = []
        for url in targets:
            task = asyncio.create_task(
                self._forward(url, body, headers), name=f"forward-{url}"
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            spawned.append(task)
        return spawned

    async def _forward(self, url: str, body: bytes, headers: dict[str, str]) -> None:
        async with self._semaphore:
            try:
                resp = await asyncio.wait_for(
                    self._client.post(
                        url, content=body, headers=headers, follow_redirects=True
                    ),
                    timeout=self._config.timeout,
                )
            except (httpx.HTTPError, asyncio.TimeoutError) as exc:
                log.warning(
                    "webhook_forward_failed",
                    target=url,
                    error=repr(exc),
                )
                return
            except Exception:
                log.exception("webhook_forward_error", target=url)
                return

        log.info("webhook_forwarded", target=url, status=resp.status_code)

    async def close(self) -> None:
        """Let in-flight forwards finish, then release the HTTP client."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._client.aclose()
