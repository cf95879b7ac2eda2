import io

import pytest

from minialt.disk import DiskError, DiskStorage, default_root


@pytest.fixture
def disk(tmp_path):
    storage = DiskStorage(tmp_path / "app")
    storage.ensure_directories()
    return storage


def test_default_root_location():
    root = default_root()
    assert root.parts[-3:] == ("Library", "Application Support", "mini-alt")


def test_buckets_dir_is_data_below_root(tmp_path):
    storage = DiskStorage(tmp_path)
    assert storage.buckets_dir() == tmp_path / "data"


def test_ensure_directories_creates_both(tmp_path):
    storage = DiskStorage(tmp_path / "fresh")
    storage.ensure_directories()
    assert storage.root.is_dir()
    assert storage.buckets_dir().is_dir()


def test_create_bucket_directory(disk):
    path = disk.create_bucket_directory("photos")
    assert path == disk.buckets_dir() / "photos"
    assert path.is_dir()


def test_create_object_round_trip(disk):
    payload = b"Hello, S3-compatible storage!"
    path = disk.create_object_file_path("test-bucket", "test-dir/test-object.txt")
    assert path.parent.is_dir()
    written = disk.create_object(path, io.BytesIO(payload))
    assert written == len(payload)
    assert disk.get_object_path("test-bucket", "test-dir/test-object.txt") == path
    with disk.open_object("test-bucket", "test-dir/test-object.txt") as handle:
        assert handle.read() == payload


def test_create_object_large_content(disk):
    payload = bytes(range(256)) * 1000
    path = disk.create_object_file_path("b", "big.bin")
    assert disk.create_object(path, io.BytesIO(payload)) == len(payload)
    assert path.read_bytes() == payload


def test_create_object_overwrites(disk):
    path = disk.create_object_file_path("b", "k")
    disk.create_object(path, io.BytesIO(b"first version"))
    disk.create_object(path, io.BytesIO(b"second"))
    assert path.read_bytes() == b"second"


def test_get_object_path_missing(disk):
    with pytest.raises(DiskError):
        disk.get_object_path("nobucket", "nothing.txt")


def test_open_object_missing(disk):
    with pytest.raises(DiskError):
        disk.open_object("nobucket", "nothing.txt")


def test_delete_object_file(disk):
    path = disk.create_object_file_path("b", "k.txt")
    disk.create_object(path, io.BytesIO(b"data"))
    disk.delete_object_file("b", "k.txt")
    assert not path.exists()
    with pytest.raises(DiskError):
        disk.get_object_path("b", "k.txt")


def test_delete_object_file_missing_is_quiet(disk):
    disk.delete_object_file("b", "absent.txt")
    assert not (disk.buckets_dir() / "b" / "absent.txt").exists()


def test_delete_bucket_removes_contents(disk):
    path = disk.create_object_file_path("gone", "a/b/c.txt")
    disk.create_object(path, io.BytesIO(b"x"))
    disk.delete_bucket("gone")
    assert not (disk.buckets_dir() / "gone").exists()
    assert disk.buckets_dir().is_dir()


def test_delete_missing_bucket_is_quiet(disk):
    disk.delete_bucket("never-made")
    assert not (disk.buckets_dir() / "never-made").exists()


@pytest.mark.parametrize("name", ["", ".", "/"])
def test_delete_bucket_invalid_names(disk, name):
    with pytest.raises(DiskError):
        disk.delete_bucket(name)
    assert disk.buckets_dir().is_dir()


def test_delete_bucket_refuses_escape(disk):
    with pytest.raises(DiskError):
        disk.delete_bucket("..")
    assert disk.root.is_dir()
    assert disk.buckets_dir().is_dir()


def test_leading_slash_stays_inside(disk):
    path = disk.create_bucket_directory("/inside")
    assert path == disk.buckets_dir() / "inside"