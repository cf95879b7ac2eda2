"""Request handlers of the S3-compatible API."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime

from flask import Response, request, send_file

from .disk import DiskError, DiskStorage
from .models import Metadata, Object
from .s3xml import (
    BucketXML,
    CommonPrefix,
    Content,
    CopyObjectResult,
    ListAllMyBucketsResult,
    ListBucketResult,
    s3_error,
    to_xml,
)
from .store import NotFoundError, Store, StoreError

MAX_OBJECTS = 1000
XML_CONTENT_TYPE = "application/xml; charset=utf-8"
_INTEGER = re.compile(r"[+-]?\d+")


class PutObjectError(str, enum.Enum):
    """Failures an object upload can be answered with."""

    ENCRYPTION_TYPE_MISMATCH = "EncryptionTypeMismatch"
    INVALID_REQUEST = "InvalidRequest"
    INVALID_WRITE_OFFSET = "InvalidWriteOffset"
    TOO_MANY_PARTS = "TooManyParts"


_FIXED_MESSAGES = {
    PutObjectError.ENCRYPTION_TYPE_MISMATCH: (
        "The existing object was created with a different encryption type. "
        "Subsequent write requests must include the appropriate encryption "
        "parameters in the request or while creating the session."
    ),
    PutObjectError.INVALID_WRITE_OFFSET: (
        "The write offset value that you specified does not match the current object size."
    ),
    PutObjectError.TOO_MANY_PARTS: (
        "You have attempted to add more parts than the maximum of 10000 that are "
        "allowed for this object. You can use the CopyObject operation to copy this "
        "object to another and then add more data to the newly copied object."
    ),
}


def _parse_int(text: str) -> int | None:
    text = text or ""
    return int(text) if _INTEGER.fullmatch(text) else None


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.replace(microsecond=0).isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


@dataclass
class PutObjectRequest:
    """The headers of an upload that are kept as object metadata."""

    acl: str = ""
    cache_control: str = ""
    content_disposition: str = ""
    content_encoding: str = ""
    content_language: str = ""
    content_length: int = 0
    content_md5: str = ""
    content_type: str = ""
    expires: str = ""
    if_match: str = ""
    if_none_match: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> PutObjectRequest:
        """Read the upload headers; names are matched without regard to case."""
        lowered = {name.lower(): value for name, value in headers.items()}

        def get(name: str) -> str:
            return lowered.get(name.lower(), "")

        return cls(
            acl=get("x-amz-acl"),
            cache_control=get("Cache-Control"),
            content_disposition=get("Content-Disposition"),
            content_encoding=get("Content-Encoding"),
            content_language=get("Content-Language"),
            content_length=_parse_int(get("Content-Length")) or 0,
            content_md5=get("Content-MD5"),
            content_type=get("Content-Type"),
            expires=get("Expires"),
            if_match=get("If-Match"),
            if_none_match=get("If-None-Match"),
        )

    def to_metadata(self) -> Metadata:
        """Return the metadata record for these headers."""
        return Metadata(
            acl=self.acl,
            cache_control=self.cache_control,
            content_disposition=self.content_disposition,
            content_encoding=self.content_encoding,
            content_language=self.content_language,
            content_length=self.content_length,
            content_md5=self.content_md5,
            content_type=self.content_type,
            expires=self.expires,
        )


def xml_response(document, status: int = 200) -> Response:
    """Answer with a document serialised as XML."""
    return Response(to_xml(document), status=status, content_type=XML_CONTENT_TYPE)


def error_response(status: int, code: str, message: str, bucket: str) -> Response:
    """Answer with an S3 error document."""
    return xml_response(s3_error(code, message, bucket), status)


def handle_error(error: PutObjectError, bucket: str, message: str) -> Response:
    """Answer an upload failure; only an invalid request carries the given message."""
    error = PutObjectError(error)
    text = message if error is PutObjectError.INVALID_REQUEST else _FIXED_MESSAGES[error]
    return error_response(400, error.value, text, bucket)


def build_list_result(
    bucket: str,
    objects: Iterable[Object],
    max_keys: int = MAX_OBJECTS,
    start_after: str = "",
    prefix: str = "",
    delimiter: str = "",
) -> ListBucketResult:
    """Select the listing entries of a bucket for the given listing parameters."""
    result = ListBucketResult(
        name=bucket, max_keys=max_keys, start_after=start_after, delimiter=delimiter
    )
    seen_prefixes: set[str] = set()
    found_start = start_after == ""

    for obj in objects:
        if not found_start:
            found_start = obj.key == start_after
            continue
        if result.key_count >= max_keys:
            result.is_truncated = True
            break
        if prefix and not obj.key.startswith(prefix):
            continue

        remaining = obj.key[len(prefix):]
        if delimiter:
            position = remaining.find(delimiter)
            if position >= 0:
                common = prefix + remaining[: position + len(delimiter)]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    result.common_prefixes.append(CommonPrefix(prefix=common))
                    result.key_count += 1
                continue

        if not prefix or delimiter not in remaining:
            result.contents.append(
                Content(key=obj.key, last_modified=obj.last_modified, size=obj.size)
            )
            result.key_count += 1

    return result


class Handler:
    """Answers API requests from a record store and object files on disk."""

    def __init__(self, store: Store, disk: DiskStorage) -> None:
        self.store = store
        self.disk = disk

    def list_buckets(self) -> Response:
        """List every bucket with its creation time."""
        try:
            buckets = self.store.list_buckets()
        except StoreError:
            buckets = []
        result = ListAllMyBucketsResult(
            buckets=[
                BucketXML(name=bucket.name, created_at=_rfc3339(bucket.created_at))
                for bucket in buckets
            ]
        )
        return xml_response(result)

    def get_object_or_list(self, bucket: str, object_path: str) -> Response:
        """Fetch an object, or list the bucket when no object is named."""
        if object_path in ("", "/"):
            return self.list_objects_v2(bucket)
        return self.get_object(bucket, object_path[1:])

    def put_object_or_bucket(self, bucket: str, object_path: str) -> Response:
        """Copy or upload an object, or create the bucket when no object is named."""
        copy_source = request.headers.get("x-amz-copy-source", "")
        if copy_source:
            return self.copy_object(bucket, object_path, copy_source)
        if object_path in ("", "/"):
            return self.create_bucket(bucket)
        return self.put_object(bucket, object_path[1:])

    def delete_object_or_bucket(self, bucket: str, object_path: str) -> Response:
        """Delete an object, or the bucket when no object is named."""
        if object_path in ("", "/"):
            return self.delete_bucket(bucket)
        return self.delete_object(bucket, object_path[1:])

    def head_object(self, bucket: str, object_path: str) -> Response:
        """Answer with the size and modification time of an object."""
        key = object_path[1:] if object_path.startswith("/") else object_path
        try:
            obj = self.store.get_object(bucket, key)
        except StoreError as exc:
            return error_response(404, "NoSuchKey", str(exc), bucket)
        response = Response(status=200)
        response.headers["Last-Modified"] = format_datetime(
            obj.last_modified.astimezone(timezone.utc), usegmt=True
        )
        response.headers["Content-Length"] = str(obj.size)
        return response

    def create_bucket(self, bucket: str) -> Response:
        """Create a bucket record and its directory."""
        try:
            self.store.put_bucket(bucket)
        except StoreError:
            return error_response(
                409, "BucketAlreadyExists", "The requested bucket name is not available.", bucket
            )
        try:
            self.disk.create_bucket_directory(bucket)
        except DiskError:
            return error_response(
                500, "InternalError", "Could not create storage directory.", bucket
            )
        return Response(status=201)

    def delete_bucket(self, bucket: str) -> Response:
        """Remove a bucket with all of its content."""
        try:
            self.disk.delete_bucket(bucket)
            self.store.delete_bucket(bucket)
        except (DiskError, StoreError):
            return error_response(500, "InternalError", "Could not delete bucket", bucket)
        return Response(status=204)

    def delete_object(self, bucket: str, key: str) -> Response:
        """Remove an object; a missing object is not an error."""
        try:
            self.store.delete_object(bucket, key)
        except StoreError:
            return Response(status=204)
        try:
            self.disk.delete_object_file(bucket, key)
        except DiskError:
            pass
        return Response(status=204)

    def get_object(self, bucket: str, key: str) -> Response:
        """Send the contents of an object."""
        try:
            path = self.disk.get_object_path(bucket, key)
        except DiskError:
            return error_response(404, "NoSuchKey", "Object not found.", bucket)
        if not path.is_file():
            return error_response(404, "NoSuchKey", "Object not found.", bucket)
        return send_file(path)

    def list_objects_v2(self, bucket: str) -> Response:
        """List the objects of a bucket as selected by the query parameters."""
        try:
            objects = self.store.list_objects(bucket)
        except StoreError:
            return error_response(
                404, "NoSuchBucket", "The specified bucket does not exist.", bucket
            )
        params = request.args
        max_keys = MAX_OBJECTS
        if "max-keys" in params:
            parsed = _parse_int(params.get("max-keys", ""))
            if parsed is not None:
                max_keys = parsed
        result = build_list_result(
            bucket,
            objects,
            max_keys=max_keys,
            start_after=params.get("start-after", ""),
            prefix=params.get("prefix", ""),
            delimiter=params.get("delimiter", ""),
        )
        return xml_response(result)

    def put_object(self, bucket: str, key: str) -> Response:
        """Store the request body as an object, creating the bucket if needed."""
        try:
            self.store.get_bucket(bucket)
        except NotFoundError:
            try:
                self.store.put_bucket(bucket)
            except StoreError:
                pass
        except StoreError:
            pass

        try:
            path = self.disk.create_object_file_path(bucket, key)
        except DiskError:
            return handle_error(PutObjectError.INVALID_REQUEST, bucket, "Could not create objectKey path")
        try:
            written = self.disk.create_object(path, request.stream)
        except DiskError:
            return handle_error(PutObjectError.INVALID_REQUEST, bucket, "Could not write object")
        try:
            obj = self.store.put_object(bucket, key, written)
        except StoreError:
            return handle_error(PutObjectError.INVALID_REQUEST, bucket, "Could not create object")
        metadata = PutObjectRequest.from_headers(request.headers).to_metadata()
        try:
            self.store.put_metadata(obj.id, metadata)
        except StoreError:
            return handle_error(PutObjectError.INVALID_REQUEST, bucket, "Could not create metadata")
        return Response(status=200)

    def copy_object(self, bucket: str, key: str, copy_source: str) -> Response:
        """Copy the object named by copy_source ("bucket/key") to bucket and key."""
        parts = copy_source.split("/", 1)
        if len(parts) != 2:
            return error_response(
                400, "InvalidArgument", "Invalid x-amz-copy-source header", bucket
            )
        src_bucket, src_key = parts
        key = key.removeprefix("/")

        try:
            source = self.disk.open_object(src_bucket, src_key)
        except DiskError:
            return error_response(
                404, "ObjectNotFound", "Could not find the Object.", src_bucket
            )
        try:
            with source:
                path = self.disk.create_object_file_path(bucket, key)
                written = self.disk.create_object(path, source)
            obj = self.store.put_object(bucket, key, written)
        except (DiskError, StoreError):
            return error_response(
                500, "CouldNotWrite", "Could not write the Object.", bucket
            )
        return xml_response(CopyObjectResult(last_modified=obj.last_modified))