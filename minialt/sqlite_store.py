"""A store kept in an SQLite database file."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone

from .models import Bucket, Metadata, Object
from .store import BucketExistsError, NotFoundError, Store

_SCHEMA = """
CREATE TABLE IF NOT EXISTS buckets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    created_at DATETIME NOT NULL
);

CREATE TABLE IF NOT EXISTS objects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    bucket_name TEXT NOT NULL,
    key TEXT NOT NULL,
    size INTEGER,
    last_modified DATETIME,
    FOREIGN KEY(bucket_name) REFERENCES buckets(name) ON DELETE CASCADE,
    UNIQUE(bucket_name, key)
);

CREATE TABLE IF NOT EXISTS object_metadata (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    object_id INTEGER NOT NULL,
    acl TEXT,
    cache_control TEXT,
    content_disposition TEXT,
    content_encoding TEXT,
    content_language TEXT,
    content_length INTEGER,
    content_md5 TEXT,
    content_type TEXT,
    expires DATETIME,
    FOREIGN KEY(object_id) REFERENCES objects(id) ON DELETE CASCADE
);
"""


def _parse_time(value: str | None) -> datetime:
    if value is None:
        return datetime.fromtimestamp(0, timezone.utc)
    moment = datetime.fromisoformat(value)
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class SQLiteStore(Store):
    """A thread-safe store backed by an SQLite database."""

    def __init__(self, db_path) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        try:
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error:
            self._conn.close()
            raise

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def put_object(self, bucket: str, key: str, size: int) -> Object:
        now = datetime.now(timezone.utc)
        with self._lock, self._conn:
            try:
                self._conn.execute(
                    """
                    INSERT INTO objects(bucket_name, key, size, last_modified)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(bucket_name, key) DO UPDATE
                    SET size = excluded.size, last_modified = excluded.last_modified
                    """,
                    (bucket, key, size, now.isoformat()),
                )
            except sqlite3.IntegrityError as exc:
                raise NotFoundError(f"bucket {bucket!r} does not exist") from exc
            (object_id,) = self._conn.execute(
                "SELECT id FROM objects WHERE bucket_name = ? AND key = ?",
                (bucket, key),
            ).fetchone()
        return Object(id=object_id, key=key, size=size, last_modified=now)

    def put_bucket(self, bucket: str) -> None:
        now = datetime.now(timezone.utc)
        with self._lock, self._conn:
            try:
                self._conn.execute(
                    "INSERT INTO buckets(name, created_at) VALUES (?, ?)",
                    (bucket, now.isoformat()),
                )
            except sqlite3.IntegrityError as exc:
                raise BucketExistsError(f"bucket {bucket!r} already exists") from exc

    def put_metadata(self, object_id: int, metadata: Metadata) -> None:
        with self._lock, self._conn:
            try:
                self._conn.execute(
                    """
                    INSERT INTO object_metadata (
                        object_id, acl, cache_control, content_disposition,
                        content_encoding, content_language, content_length,
                        content_md5, content_type, expires
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        object_id,
                        metadata.acl,
                        metadata.cache_control,
                        metadata.content_disposition,
                        metadata.content_encoding,
                        metadata.content_language,
                        metadata.content_length,
                        metadata.content_md5,
                        metadata.content_type,
                        metadata.expires,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise NotFoundError(f"no object with id {object_id}") from exc

    def list_objects(self, bucket: str) -> list[Object]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, key, size, last_modified FROM objects "
                "WHERE bucket_name = ? ORDER BY id",
                (bucket,),
            ).fetchall()
        return [
            Object(id=row_id, key=key, size=size or 0, last_modified=_parse_time(modified))
            for row_id, key, size, modified in rows
        ]

    def list_buckets(self) -> list[Bucket]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, name, created_at FROM buckets ORDER BY id"
            ).fetchall()
        return [
            Bucket(id=row_id, name=name, created_at=_parse_time(created))
            for row_id, name, created in rows
        ]

    def get_object(self, bucket: str, key: str) -> Object:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, key, size, last_modified FROM objects "
                "WHERE bucket_name = ? AND key = ?",
                (bucket, key),
            ).fetchone()
        if row is None:
            raise NotFoundError("object not found")
        row_id, found_key, size, modified = row
        return Object(
            id=row_id, key=found_key, size=size or 0, last_modified=_parse_time(modified)
        )

    def get_bucket(self, bucket: str) -> Bucket:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, name, created_at FROM buckets WHERE name = ?", (bucket,)
            ).fetchone()
        if row is None:
            raise NotFoundError("the specified bucket does not exist")
        row_id, name, created = row
        return Bucket(id=row_id, name=name, created_at=_parse_time(created))

    def delete_object(self, bucket: str, key: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM objects WHERE bucket_name = ? AND key = ?", (bucket, key)
            )

    def delete_bucket(self, bucket: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM buckets WHERE name = ?", (bucket,))