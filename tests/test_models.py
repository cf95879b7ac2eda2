from dataclasses import replace
from datetime import datetime, timezone

import pytest

from minialt.models import (
    Bucket,
    ChecksumAlgorithm,
    ChecksumType,
    Metadata,
    Object,
    ObjectMetadata,
)


@pytest.mark.parametrize("name", ["CRC32", "CRC32C", "SHA1", "SHA256", "CRC64NVME"])
def test_checksum_algorithm_lookup_by_value(name):
    assert ChecksumAlgorithm(name).value == name
    assert ChecksumAlgorithm(name) == name


def test_checksum_type_lookup_by_value():
    assert ChecksumType("FULL_OBJECT") is ChecksumType.FULL_OBJECT
    assert ChecksumType("COMPOSITE") is ChecksumType.COMPOSITE


def test_unknown_checksum_algorithm_rejected():
    with pytest.raises(ValueError):
        ChecksumAlgorithm("MD4")


def test_object_checksum_lists_are_independent():
    first = Object(key="a")
    second = Object(key="b")
    first.checksum_algorithm.append(ChecksumAlgorithm.SHA1)
    assert second.checksum_algorithm == []
    assert first.checksum_algorithm == [ChecksumAlgorithm.SHA1]


def test_object_equality_and_replace():
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    obj = Object(id=3, key="k.txt", size=10, last_modified=moment)
    assert obj == Object(id=3, key="k.txt", size=10, last_modified=moment)
    bigger = replace(obj, size=20)
    assert bigger.size == 20
    assert bigger.key == obj.key
    assert obj.size == 10


def test_unset_timestamps_share_a_single_origin():
    assert Object().last_modified == Bucket().created_at
    assert Bucket().created_at.tzinfo is not None


def test_metadata_carries_given_fields():
    meta = Metadata(object_id=7, content_type="text/plain", expires="Wed, 21 Oct 2015 07:28:00 GMT")
    assert meta.object_id == 7
    assert meta.content_type == "text/plain"
    assert meta.expires == "Wed, 21 Oct 2015 07:28:00 GMT"
    assert meta.acl == ""


def test_object_metadata_expiry_defaults_to_unset():
    meta = ObjectMetadata(key="k", bucket="b")
    assert meta.expires is None
    assert (meta.key, meta.bucket) == ("k", "b")