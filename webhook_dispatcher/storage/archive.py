"""Secondary storage: append-only SQLite archive of full event records."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import aiosqlite

from webhook_dispatcher.storage.base import Event, StorageBackend, StorageError
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    path TEXT NOT NULL,
    body TEXT NOT NULL,
    timestamp TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_key ON events (key);
"""


class ArchiveStorage(StorageBackend):
    name = "archive"

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._closed = False

    async def connect(self) -> None:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(str(self._db_path))
            await self._db.executescript(_SCHEMA)
            await self._db.commit()
        except (OSError, sqlite3.Error) as exc:
            await self._discard_connection()
            raise StorageError(f"failed to open archive at {self._db_path}: {exc}") from exc
        log.info("archive_opened", path=str(self._db_path))

    async def store(self, key: str, path: str, body: bytes) -> None:
        """Append one record. Events sharing a key are all kept."""
        db = self._require_db()
        record = Event.create(key, path, body).to_record()
        try:
            await db.execute(
                "INSERT INTO events (key, path, body, timestamp) VALUES (?, ?, ?, ?)",
                (record["key"], record["path"], record["body"], record["timestamp"]),
            )
            await db.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to archive {key}: {exc}") from exc

    async def count(self) -> int:
        db = self._require_db()
        try:
            cursor = await db.execute("SELECT COUNT(*) FROM events")
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to count archived events: {exc}") from exc
        return row[0] if row else 0

    async def get(self, key: str) -> list[dict]:
        """All archived records for ``key``, oldest first."""
        db = self._require_db()
        cursor = await db.execute(
            "SELECT key, path, body, timestamp FROM events WHERE key = ? ORDER BY id",
            (key,),
        )
        rows = await cursor.fetchall()
        return [
            {"key": r[0], "path": r[1], "body": r[2], "timestamp": r[3]}
            for r in rows
        ]

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._db is None:
            return
        db, self._db = self._db, None
        try:
            await db.close()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to close archive: {exc}") from exc

    async def _discard_connection(self) -> None:
        # Release the worker thread of a half-opened connection
        if self._db is None:
            return
        db, self._db = self._db, None
        try:
            await db.close()
        except sqlite3.Error:
            log.warning("archive_close_after_failed_open", path=str(self._db_path))

    def _require_db(self) -> aiosqlite.Connection:
        if self._closed:
            raise StorageError("archive storage is closed")
        if self._db is None:
            raise StorageError("archive storage is not connected")
        return self._db
