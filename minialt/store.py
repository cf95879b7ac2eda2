"""The store interface for bucket and object records, and an in-memory store."""

from __future__ import annotations

import abc
import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone

from .models import Bucket, Metadata, Object


class StoreError(Exception):
    """Base class for failures reported by a store."""


class BucketExistsError(StoreError):
    """Raised when a bucket with the requested name already exists."""


class NotFoundError(StoreError):
    """Raised when a bucket, object or referenced record does not exist."""


class Store(abc.ABC):
    """Record keeping for buckets, objects and their metadata."""

    @abc.abstractmethod
    def put_object(self, bucket: str, key: str, size: int) -> Object:
        """Create or update the record of an object and return it."""

    @abc.abstractmethod
    def put_bucket(self, bucket: str) -> None:
        """Create a bucket; raise BucketExistsError if it exists."""

    @abc.abstractmethod
    def put_metadata(self, object_id: int, metadata: Metadata) -> None:
        """Attach upload metadata to the object with the given id."""

    @abc.abstractmethod
    def list_objects(self, bucket: str) -> list[Object]:
        """Return the objects of a bucket, empty if it has none."""

    @abc.abstractmethod
    def list_buckets(self) -> list[Bucket]:
        """Return all buckets."""

    @abc.abstractmethod
    def get_object(self, bucket: str, key: str) -> Object:
        """Return one object; raise NotFoundError if missing."""

    @abc.abstractmethod
    def get_bucket(self, bucket: str) -> Bucket:
        """Return one bucket; raise NotFoundError if missing."""

    @abc.abstractmethod
    def delete_object(self, bucket: str, key: str) -> None:
        """Remove an object record if it exists."""

    @abc.abstractmethod
    def delete_bucket(self, bucket: str) -> None:
        """Remove a bucket and the records of its objects."""


class InMemoryStore(Store):
    """A thread-safe store that keeps everything in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, dict[str, Object]] = {}
        self._meta: dict[str, Bucket] = {}
        self._metadata: dict[int, list[Metadata]] = {}
        self._ids = itertools.count(1)

    def put_bucket(self, bucket: str) -> None:
        with self._lock:
            if bucket in self._buckets or bucket in self._meta:
                raise BucketExistsError("bucket already exists")
            self._buckets[bucket] = {}
            self._meta[bucket] = Bucket(name=bucket, created_at=datetime.now(timezone.utc))

    def list_buckets(self) -> list[Bucket]:
        with self._lock:
            return [replace(bucket) for bucket in self._meta.values()]

    def put_object(self, bucket: str, key: str, size: int) -> Object:
        with self._lock:
            objects = self._buckets.setdefault(bucket, {})
            existing = objects.get(key)
            object_id = existing.id if existing is not None else next(self._ids)
            obj = Object(
                id=object_id,
                key=key,
                size=size,
                last_modified=datetime.now(timezone.utc),
            )
            objects[key] = obj
            return replace(obj)

    def put_metadata(self, object_id: int, metadata: Metadata) -> None:
        with self._lock:
            known = any(
                obj.id == object_id
                for objects in self._buckets.values()
                for obj in objects.values()
            )
            if not known:
                raise NotFoundError(f"no object with id {object_id}")
            self._metadata.setdefault(object_id, []).append(
                replace(metadata, object_id=object_id)
            )

    def list_objects(self, bucket: str) -> list[Object]:
        with self._lock:
            return [replace(obj) for obj in self._buckets.get(bucket, {}).values()]

    def delete_object(self, bucket: str, key: str) -> None:
        with self._lock:
            removed = self._buckets.get(bucket, {}).pop(key, None)
            if removed is not None:
                self._metadata.pop(removed.id, None)

    def delete_bucket(self, bucket: str) -> None:
        with self._lock:
            for obj in self._buckets.pop(bucket, {}).values():
                self._metadata.pop(obj.id, None)
            self._meta.pop(bucket, None)

    def get_object(self, bucket: str, key: str) -> Object:
        with self._lock:
            obj = self._buckets.get(bucket, {}).get(key)
            if obj is None:
                raise NotFoundError("the specified key does not exist")
            return replace(obj)

    def get_bucket(self, bucket: str) -> Bucket:
        with self._lock:
            found = self._meta.get(bucket)
            if found is None:
                raise NotFoundError("the specified bucket does not exist")
            return replace(found)