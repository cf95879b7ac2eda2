"""XML documents exchanged with S3 clients."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

REQUEST_ID = "0000000000000000"
HOST_ID = "local-s3-emulator"


class _Document(Protocol):
    def to_element(self) -> ET.Element: ...


def _format_time(moment: datetime) -> str:
    """Format a moment as RFC 3339 with trailing zeros of the fraction dropped."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds()) // 60
    sign = "+" if total >= 0 else "-"
    hours, minutes = divmod(abs(total), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _child(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = text
    return element


@dataclass
class BucketXML:
    """One bucket entry of a bucket listing."""

    name: str = ""
    created_at: str = ""

    def to_element(self) -> ET.Element:
        element = ET.Element("Bucket")
        _child(element, "Name", self.name)
        _child(element, "CreationDate", self.created_at)
        return element


@dataclass
class ListAllMyBucketsResult:
    """The answer to a bucket listing."""

    buckets: list[BucketXML] = field(default_factory=list)
    xmlns: str = ""

    def to_element(self) -> ET.Element:
        element = ET.Element("ListAllMyBucketsResult")
        if self.xmlns:
            element.set("xmlns", self.xmlns)
        holder = ET.SubElement(element, "Buckets")
        holder.extend(bucket.to_element() for bucket in self.buckets)
        return element


@dataclass
class S3Error:
    """An error document."""

    code: str = ""
    message: str = ""
    bucket_name: str = ""
    request_id: str = ""
    host_id: str = ""

    def to_element(self) -> ET.Element:
        element = ET.Element("Error")
        _child(element, "Code", self.code)
        _child(element, "Message", self.message)
        if self.bucket_name:
            _child(element, "BucketName", self.bucket_name)
        _child(element, "RequestId", self.request_id)
        _child(element, "HostId", self.host_id)
        return element


@dataclass
class Content:
    """One object entry of an object listing."""

    key: str = ""
    last_modified: datetime = field(
        default_factory=lambda: datetime.fromtimestamp(0, timezone.utc)
    )
    size: int = 0

    def to_element(self) -> ET.Element:
        element = ET.Element("Contents")
        _child(element, "Key", self.key)
        _child(element, "LastModified", _format_time(self.last_modified))
        _child(element, "Size", str(self.size))
        return element


@dataclass
class CommonPrefix:
    """A key prefix rolled up by a delimiter in an object listing."""

    prefix: str = ""

    def to_element(self) -> ET.Element:
        element = ET.Element("CommonPrefixes")
        _child(element, "Prefix", self.prefix)
        return element


@dataclass
class ListBucketResult:
    """The answer to an object listing."""

    contents: list[Content] = field(default_factory=list)
    common_prefixes: list[CommonPrefix] = field(default_factory=list)
    is_truncated: bool = False
    key_count: int = 0
    max_keys: int = 0
    name: str = ""
    start_after: str = ""
    delimiter: str = ""

    def to_element(self) -> ET.Element:
        element = ET.Element("ListBucketResult")
        element.extend(content.to_element() for content in self.contents)
        element.extend(prefix.to_element() for prefix in self.common_prefixes)
        _child(element, "IsTruncated", "true" if self.is_truncated else "false")
        _child(element, "KeyCount", str(self.key_count))
        _child(element, "MaxKeys", str(self.max_keys))
        _child(element, "Name", self.name)
        _child(element, "StartAfter", self.start_after)
        _child(element, "Delimiter", self.delimiter)
        return element


@dataclass
class CopyObjectResult:
    """The answer to an object copy."""

    last_modified: datetime = field(
        default_factory=lambda: datetime.fromtimestamp(0, timezone.utc)
    )

    def to_element(self) -> ET.Element:
        element = ET.Element("CopyObjectResult")
        _child(element, "LastModified", _format_time(self.last_modified))
        return element


def to_xml(document: _Document) -> str:
    """Serialise a document to XML text without a declaration."""
    return ET.tostring(document.to_element(), encoding="unicode")


def s3_error(code: str, message: str, bucket: str) -> S3Error:
    """Build the error document this server answers failures with."""
    return S3Error(
        code=code,
        message=message,
        bucket_name=bucket,
        request_id=REQUEST_ID,
        host_id=HOST_ID,
    )