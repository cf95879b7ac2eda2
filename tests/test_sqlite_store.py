import sqlite3

import pytest

from minialt.models import Metadata
from minialt.sqlite_store import SQLiteStore
from minialt.store import BucketExistsError, NotFoundError


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "store.sqlite"


@pytest.fixture
def store(db_path):
    with SQLiteStore(db_path) as opened:
        yield opened


def _metadata_rows(db_path):
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute(
            "SELECT object_id, content_type, content_length, expires FROM object_metadata"
        ).fetchall()
    finally:
        conn.close()


def test_put_and_get_bucket(store):
    store.put_bucket("test-bucket")
    bucket = store.get_bucket("test-bucket")
    assert bucket.name == "test-bucket"
    assert bucket.id >= 1
    assert [b.name for b in store.list_buckets()] == ["test-bucket"]


def test_bucket_creation_time_round_trips(store):
    store.put_bucket("b")
    assert store.get_bucket("b").created_at == store.list_buckets()[0].created_at
    assert store.get_bucket("b").created_at.tzinfo is not None


def test_duplicate_bucket_rejected(store):
    store.put_bucket("b")
    with pytest.raises(BucketExistsError):
        store.put_bucket("b")


def test_missing_bucket_not_found(store):
    with pytest.raises(NotFoundError):
        store.get_bucket("absent")


def test_put_object_requires_bucket(store):
    with pytest.raises(NotFoundError):
        store.put_object("absent", "k", 1)
    assert store.list_objects("absent") == []


def test_put_object_round_trip(store):
    store.put_bucket("test-bucket")
    created = store.put_object("test-bucket", "test-object.txt", 29)
    fetched = store.get_object("test-bucket", "test-object.txt")
    assert fetched == created
    assert fetched.size == 29


def test_put_object_upsert_keeps_id(store):
    store.put_bucket("b")
    first = store.put_object("b", "k", 1)
    second = store.put_object("b", "k", 7)
    assert second.id == first.id
    assert store.get_object("b", "k").size == 7
    assert len(store.list_objects("b")) == 1


def test_list_objects_in_insertion_order(store):
    store.put_bucket("b")
    for key in ("testDir/test-object.txt", "test-object.txt", "a"):
        store.put_object("b", key, 1)
    assert [o.key for o in store.list_objects("b")] == [
        "testDir/test-object.txt",
        "test-object.txt",
        "a",
    ]


def test_objects_scoped_to_bucket(store):
    store.put_bucket("one")
    store.put_bucket("two")
    store.put_object("one", "k", 1)
    assert store.list_objects("two") == []
    with pytest.raises(NotFoundError):
        store.get_object("two", "k")


def test_delete_object(store):
    store.put_bucket("b")
    store.put_object("b", "k", 1)
    store.delete_object("b", "k")
    with pytest.raises(NotFoundError):
        store.get_object("b", "k")


def test_delete_bucket_cascades_to_objects(store):
    store.put_bucket("b")
    store.put_object("b", "k", 1)
    store.delete_bucket("b")
    assert store.list_buckets() == []
    store.put_bucket("b")
    assert store.list_objects("b") == []


def test_put_metadata_is_stored(store, db_path):
    store.put_bucket("b")
    obj = store.put_object("b", "k", 29)
    store.put_metadata(
        obj.id,
        Metadata(content_type="text/plain", content_length=29, expires="Wed, 21 Oct 2015 07:28:00 GMT"),
    )
    assert _metadata_rows(db_path) == [
        (obj.id, "text/plain", 29, "Wed, 21 Oct 2015 07:28:00 GMT")
    ]


def test_put_metadata_unknown_object(store, db_path):
    with pytest.raises(NotFoundError):
        store.put_metadata(12345, Metadata(content_type="text/plain"))
    assert _metadata_rows(db_path) == []


def test_deleting_object_removes_metadata(store, db_path):
    store.put_bucket("b")
    obj = store.put_object("b", "k", 1)
    store.put_metadata(obj.id, Metadata(content_type="text/plain"))
    store.delete_object("b", "k")
    assert store.list_objects("b") == []
    with pytest.raises(NotFoundError):
        store.put_metadata(obj.id, Metadata(content_type="text/plain"))
    assert _metadata_rows(db_path) == []


def test_data_persists_across_connections(db_path):
    with SQLiteStore(db_path) as first:
        first.put_bucket("kept")
        first.put_object("kept", "file", 4)
    with SQLiteStore(db_path) as second:
        assert [b.name for b in second.list_buckets()] == ["kept"]
        assert second.get_object("kept", "file").size == 4


def test_closed_store_refuses_work(db_path):
    with SQLiteStore(db_path) as opened:
        opened.put_bucket("b")
    with pytest.raises(sqlite3.ProgrammingError):
        opened.list_buckets()