"""Bucket listing for the web interface, read from the API server."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from urllib.request import urlopen

DEFAULT_API_URL = "http://localhost:9000"
_TIMEOUT = 10.0


def _local(tag: str) -> str:
    """Return a tag name without its namespace."""
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local(child.tag) == name:
            return child.text or ""
    return None


def parse_bucket_list(xml_text: str | bytes) -> list[dict[str, str | None]]:
    """Read a bucket listing document into one dict per bucket.

    Each dict holds the keys "CreationDate" and "Name"; an element that is
    missing from the document gives None.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise ValueError(f"malformed bucket listing: {exc}") from exc

    root_name = _local(root.tag)
    if root_name == "Error":
        code = _child_text(root, "Code") or ""
        message = _child_text(root, "Message") or ""
        raise ValueError(f"{code}: {message}")
    if root_name != "ListAllMyBucketsResult":
        raise ValueError(f"unexpected document {root_name!r}")

    return [
        {
            "CreationDate": _child_text(entry, "CreationDate"),
            "Name": _child_text(entry, "Name"),
        }
        for holder in root
        if _local(holder.tag) == "Buckets"
        for entry in holder
        if _local(entry.tag) == "Bucket"
    ]


def fetch_buckets(api_url: str = DEFAULT_API_URL) -> list[dict[str, str | None]]:
    """Ask the API server at api_url for its buckets.

    Raises OSError when the server cannot be reached or answers with an
    error status, and ValueError when its answer cannot be read.
    """
    url = api_url.rstrip("/") + "/"
    with urlopen(url, timeout=_TIMEOUT) as response:
        body = response.read()
    return parse_bucket_list(body)