"""Tests for storage backends and backend selection."""

import fnmatch
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from webhook_dispatcher.config import Settings
from webhook_dispatcher.storage import (
    ArchiveStorage,
    DualStorage,
    Event,
    RedisStorage,
    StorageError,
    open_storage,
)


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, bytes] = {}
        self.down = False
        self.closed = 0

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("connection refused")

    async def ping(self) -> bool:
        self._check()
        return True

    async def set(self, key, value):
        self._check()
        self.values[key] = value
        return True

    async def scan_iter(self, match=None, count=None):
        self._check()
        for key in list(self.values):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed += 1


# ---------------------------------------------------------------------------
# Event record
# ---------------------------------------------------------------------------

class TestEvent:
    def test_record_shape(self):
        event = Event.create("webhook-a-1", "/a", b'{"x": 1}')
        record = event.to_record()
        assert set(record) == {"key", "path", "body", "timestamp"}
        assert record["body"] == '{"x": 1}'
        assert record["path"] == "/a"
        assert event.timestamp.tzinfo is not None


# ---------------------------------------------------------------------------
# Redis (primary)
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_storage(fake_redis):
    return RedisStorage(client=fake_redis)


class TestRedisStorage:
    async def test_store_writes_raw_body(self, redis_storage, fake_redis):
        await redis_storage.store("webhook-a-1", "/a", b'{"a": 1}')
        assert fake_redis.values == {"webhook-a-1": b'{"a": 1}'}

    async def test_count_only_matches_prefix(self, redis_storage, fake_redis):
        fake_redis.values = {
            "webhook-a-1": b"{}",
            "webhook-b-2": b"{}",
            "other-key": b"{}",
        }
        assert await redis_storage.count() == 2

    async def test_store_failure_raises_storage_error(self, redis_storage, fake_redis):
        fake_redis.down = True
        with pytest.raises(StorageError):
            await redis_storage.store("webhook-a-1", "/a", b"{}")

    async def test_connect_failure_raises_storage_error(self, redis_storage, fake_redis):
        fake_redis.down = True
        with pytest.raises(StorageError, match="failed to connect"):
            await redis_storage.connect()

    async def test_closed_backend_rejects_calls(self, redis_storage, fake_redis):
        await redis_storage.close()
        await redis_storage.close()
        assert fake_redis.closed == 1
        with pytest.raises(StorageError, match="closed"):
            await redis_storage.store("webhook-a-1", "/a", b"{}")
        with pytest.raises(StorageError, match="closed"):
            await redis_storage.count()


# ---------------------------------------------------------------------------
# SQLite archive (secondary)
# ---------------------------------------------------------------------------

@pytest.fixture
async def archive(tmp_path):
    s = ArchiveStorage(tmp_path / "archive" / "events.db")
    await s.connect()
    yield s
    await s.close()


class TestArchiveStorage:
    async def test_store_and_count(self, archive):
        assert await archive.count() == 0
        await archive.store("webhook-a-1", "/a", b'{"a": 1}')
        await archive.store("webhook-b-1", "/b", b"[]")
        assert await archive.count() == 2

    async def test_record_fields(self, archive):
        await archive.store("webhook-a-1", "/a", b'{"a": 1}')
        records = await archive.get("webhook-a-1")
        assert len(records) == 1
        assert records[0]["key"] == "webhook-a-1"
        assert records[0]["path"] == "/a"
        assert records[0]["body"] == '{"a": 1}'
        assert records[0]["timestamp"]

    async def test_colliding_keys_are_all_kept(self, archive):
        await archive.store("webhook-a-1", "/a", b"1")
        await archive.store("webhook-a-1", "/a", b"2")
        records = await archive.get("webhook-a-1")
        assert [r["body"] for r in records] == ["1", "2"]

    async def test_closed_archive_rejects_calls(self, tmp_path):
        s = ArchiveStorage(tmp_path / "events.db")
        await s.connect()
        await s.close()
        with pytest.raises(StorageError, match="closed"):
            await s.store("webhook-a-1", "/a", b"{}")

    async def test_non_sqlite_file_fails_and_releases_connection(self, tmp_path):
        path = tmp_path / "events.db"
        path.write_text("this is not a sqlite database, just some text" * 100)
        s = ArchiveStorage(path)
        with pytest.raises(StorageError, match="failed to open archive"):
            await s.connect()
        assert s._db is None
        with pytest.raises(StorageError, match="not connected"):
            await s.count()

    async def test_store_before_connect_fails(self, tmp_path):
        s = ArchiveStorage(tmp_path / "events.db")
        with pytest.raises(StorageError, match="not connected"):
            await s.count()


# ---------------------------------------------------------------------------
# Dual storage
# ---------------------------------------------------------------------------

class TestDualStorage:
    async def test_writes_both(self, primary, secondary):
        dual = DualStorage(primary, secondary)
        await dual.store("webhook-a-1", "/a", b"{}")
        assert "webhook-a-1" in primary.data
        assert "webhook-a-1" in secondary.data

    async def test_secondary_failure_is_swallowed(self, primary, secondary):
        secondary.fail_store = True
        dual = DualStorage(primary, secondary)
        await dual.store("webhook-a-1", "/a", b"{}")
        assert "webhook-a-1" in primary.data
        assert len(secondary.store_calls) == 1

    async def test_primary_failure_skips_secondary(self, primary, secondary):
        primary.fail_store = True
        dual = DualStorage(primary, secondary)
        with pytest.raises(StorageError):
            await dual.store("webhook-a-1", "/a", b"{}")
        assert secondary.store_calls == []

    async def test_counts_are_separate(self, primary, secondary):
        primary.data = {"a": b"", "b": b""}
        secondary.data = {"a": b""}
        dual = DualStorage(primary, secondary)
        assert await dual.count() == 2
        assert await dual.primary_count() == 2
        assert await dual.secondary_count() == 1

    async def test_close_attempts_both_when_primary_fails(self, primary, secondary):
        primary.fail_close = True
        dual = DualStorage(primary, secondary)
        with pytest.raises(StorageError, match="primary"):
            await dual.close()
        assert primary.close_calls == 1
        assert secondary.close_calls == 1

    async def test_close_reports_secondary_failure(self, primary, secondary):
        secondary.fail_close = True
        dual = DualStorage(primary, secondary)
        with pytest.raises(StorageError, match="secondary"):
            await dual.close()
        assert primary.close_calls == 1
        assert secondary.close_calls == 1

    async def test_close_prefers_primary_error(self, primary, secondary):
        primary.fail_close = True
        secondary.fail_close = True
        dual = DualStorage(primary, secondary)
        with pytest.raises(StorageError, match="primary close failed"):
            await dual.close()
        assert secondary.close_calls == 1


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------

class TestOpenStorage:
    async def test_redis_only_without_archive(self, monkeypatch):
        monkeypatch.setattr(RedisStorage, "connect", AsyncMock())
        backend = await open_storage(Settings())
        assert isinstance(backend, RedisStorage)
        await backend.close()

    async def test_dual_with_archive(self, monkeypatch, tmp_path):
        monkeypatch.setattr(RedisStorage, "connect", AsyncMock())
        settings = Settings()
        settings.archive.path = str(tmp_path / "events.db")
        backend = await open_storage(settings)
        assert isinstance(backend, DualStorage)
        assert isinstance(backend.primary, RedisStorage)
        assert isinstance(backend.secondary, ArchiveStorage)
        await backend.close()

    async def test_unreachable_primary_is_fatal(self, monkeypatch):
        monkeypatch.setattr(
            RedisStorage, "connect", AsyncMock(side_effect=StorageError("down"))
        )
        with pytest.raises(StorageError):
            await open_storage(Settings())

    async def test_archive_failure_closes_primary(self, monkeypatch):
        monkeypatch.setattr(RedisStorage, "connect", AsyncMock())
        close = AsyncMock()
        monkeypatch.setattr(RedisStorage, "close", close)
        monkeypatch.setattr(
            ArchiveStorage, "connect", AsyncMock(side_effect=StorageError("no disk"))
        )
        settings = Settings()
        settings.archive.path = "/nonexistent/events.db"
        with pytest.raises(StorageError, match="no disk"):
            await open_storage(settings)
        close.assert_awaited_once()

    async def test_corrupt_archive_is_fatal_and_closes_primary(self, monkeypatch, tmp_path):
        monkeypatch.setattr(RedisStorage, "connect", AsyncMock())
        close = AsyncMock()
        monkeypatch.setattr(RedisStorage, "close", close)
        corrupt = tmp_path / "events.db"
        corrupt.write_bytes(b"\x00garbage" * 512)
        settings = Settings()
        settings.archive.path = str(corrupt)
        with pytest.raises(StorageError, match="failed to open archive"):
            await open_storage(settings)
        close.assert_awaited_once()
