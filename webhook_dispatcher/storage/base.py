"""Storage backend interface and the persisted event record."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class StorageError(Exception):
    """Raised when a backend cannot connect, write, count or close."""


@dataclass(frozen=True)
class Event:
    key: str
    path: str
    body: bytes
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, key: str, path: str, body: bytes) -> Event:
        return cls(key=key, path=path, body=body)

    def to_record(self) -> dict[str, Any]:
        """Field layout shared by every store that keeps full records."""
        return {
            "key": self.key,
            "path": self.path,
            "body": self.body.decode("utf-8", errors="replace"),
            "timestamp": self.timestamp.isoformat(),
        }


class StorageBackend(ABC):
    """A place to persist webhook events.

    Instances are shared by all concurrent requests. ``store`` and
    ``count`` raise :class:`StorageError` once the backend is closed.
    """

    name: str = "storage"

    async def connect(self) -> None:
        """Open and verify the connection. Override if needed."""

    @abstractmethod
    async def store(self, key: str, path: str, body: bytes) -> None: ...

    @abstractmethod
    async def count(self) -> int: ...

    @abstractmethod
    async def close(self) -> None: ...
