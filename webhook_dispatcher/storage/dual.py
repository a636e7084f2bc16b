"""Composite storage: authoritative primary plus best-effort secondary."""

from __future__ import annotations

from webhook_dispatcher.storage.base import StorageBackend
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)


class DualStorage(StorageBackend):
    """Writes go to the primary first; the secondary can never fail a write.

    There is no transaction across the two stores. A primary failure
    skips the secondary entirely; a secondary failure is logged and
    swallowed.
    """

    name = "dual"

    def __init__(self, primary: StorageBackend, secondary: StorageBackend) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def primary(self) -> StorageBackend:
        return self._primary

    @property
    def secondary(self) -> StorageBackend:
        return self._secondary

    async def store(self, key: str, path: str, body: bytes) -> None:
        await self._primary.store(key, path, body)

        try:
            await self._secondary.store(key, path, body)
        except Exception as exc:
            log.warning(
                "secondary_store_failed",
                key=key,
                backend=self._secondary.name,
                error=str(exc),
            )

    async def count(self) -> int:
        return await self._primary.count()

    async def primary_count(self) -> int:
        return await self._primary.count()

    async def secondary_count(self) -> int:
        return await self._secondary.count()

    async def close(self) -> None:
        """Close both stores; re-raise the primary's error in preference."""
        errors: list[Exception] = []
        for backend in (self._primary, self._secondary):
            try:
                await backend.close()
            except Exception as exc:
                log.error("storage_close_failed", backend=backend.name, error=str(exc))
                errors.append(exc)
        if errors:
            raise errors[0]
