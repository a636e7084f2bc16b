"""Shared fakes for storage-backed tests."""

from __future__ import annotations

import pytest

from webhook_dispatcher.storage.base import StorageBackend, StorageError


class FakeStorage(StorageBackend):
    """In-memory backend that records calls and can be told to fail."""

    def __init__(self, name: str = "fake") -> None:
        self.name = name
        self.data: dict[str, bytes] = {}
        self.store_calls: list[tuple[str, str, bytes]] = []
        self.close_calls = 0
        self.fail_store = False
        self.fail_count = False
        self.fail_close = False

    async def store(self, key: str, path: str, body: bytes) -> None:
        self.store_calls.append((key, path, body))
        if self.fail_store:
            raise StorageError(f"{self.name} unavailable")
        self.data[key] = body

    async def count(self) -> int:
        if self.fail_count:
            raise StorageError(f"{self.name} count failed")
        return len(self.data)

    async def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise StorageError(f"{self.name} close failed")


@pytest.fixture
def primary():
    return FakeStorage("primary")


@pytest.fixture
def secondary():
    return FakeStorage("secondary")
