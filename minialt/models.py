"""Records kept about buckets, objects and object metadata."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _epoch() -> datetime:
    return datetime.fromtimestamp(0, timezone.utc)


class ChecksumAlgorithm(str, enum.Enum):
    """Checksum algorithms an object may be verified with."""

    CRC32 = "CRC32"
    CRC32C = "CRC32C"
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    CRC64NVME = "CRC64NVME"


class ChecksumType(str, enum.Enum):
    """How an object's checksum was computed."""

    COMPOSITE = "COMPOSITE"
    FULL_OBJECT = "FULL_OBJECT"


@dataclass
class Object:
    """A stored object as known to a store."""

    id: int = 0
    checksum_algorithm: list[ChecksumAlgorithm] = field(default_factory=list)
    checksum_type: ChecksumType | None = None
    etag: str = ""
    key: str = ""
    last_modified: datetime = field(default_factory=_epoch)
    size: int = 0


@dataclass
class Bucket:
    """A bucket and the moment it was created."""

    id: int = 0
    name: str = ""
    created_at: datetime = field(default_factory=_epoch)


@dataclass
class ObjectMetadata:
    """Descriptive headers of an object, addressed by bucket and key."""

    key: str = ""
    bucket: str = ""
    cache_control: str = ""
    content_disposition: str = ""
    content_encoding: str = ""
    content_language: str = ""
    content_length: int = 0
    content_md5: str = ""
    content_type: str = ""
    expires: datetime | None = None


@dataclass
class Metadata:
    """Headers sent with an upload, stored against an object id."""

    id: int = 0
    object_id: int = 0
    acl: str = ""
    cache_control: str = ""
    content_disposition: str = ""
    content_encoding: str = ""
    content_language: str = ""
    content_length: int = 0
    content_md5: str = ""
    content_type: str = ""
    expires: str = ""  # RFC 1123 or RFC 3339 text