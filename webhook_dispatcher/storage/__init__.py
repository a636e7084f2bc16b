"""Storage backends for webhook events."""

from pathlib import Path

from webhook_dispatcher.config import Settings
from webhook_dispatcher.storage.archive import ArchiveStorage
from webhook_dispatcher.storage.base import Event, StorageBackend, StorageError
from webhook_dispatcher.storage.dual import DualStorage
from webhook_dispatcher.storage.redis import RedisStorage
from webhook_dispatcher.utils.logging import get_logger

__all__ = [
    "ArchiveStorage",
    "DualStorage",
    "Event",
    "RedisStorage",
    "StorageBackend",
    "StorageError",
    "open_storage",
]

log = get_logger(__name__)


async def open_storage(settings: Settings) -> StorageBackend:
    """Connect the configured backend: Redis alone, or Redis + archive.

    Raises StorageError if any configured store is unreachable.
    """
    primary = RedisStorage(settings.redis)
    try:
        await primary.connect()
    except StorageError:
        await primary.close()
        raise

    if not settings.archive.path:
        log.info("storage_selected", primary=primary.name)
        return primary

    secondary = ArchiveStorage(Path(settings.archive.path))
    try:
        await secondary.connect()
    except StorageError:
        await primary.close()
        raise

    log.info("storage_selected", primary=primary.name, secondary=secondary.name)
    return DualStorage(primary, secondary)
