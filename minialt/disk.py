"""Object contents kept as files below a data directory."""

from __future__ import annotations

import os
import shutil
from functools import partial
from pathlib import Path
from typing import BinaryIO

_CHUNK = 64 * 1024


def default_root() -> Path:
    """Return the application support directory that holds the server's data."""
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise DiskError(f"failed to get user home directory: {exc}") from exc
    return home / "Library" / "Application Support" / "mini-alt"


class DiskError(Exception):
    """Raised when an object or bucket cannot be handled on disk."""


def _join(base: Path, *parts: str) -> Path:
    """Join path parts below base and clean the result, like a path join that never escapes to the root."""
    cleaned = [part.lstrip("/\\") for part in parts]
    return Path(os.path.normpath(os.path.join(base, *cleaned)))


class DiskStorage:
    """Bucket directories and object files under one root directory."""

    def __init__(self, root: str | os.PathLike[str] | None = None) -> None:
        self.root = Path(root) if root is not None else default_root()

    def buckets_dir(self) -> Path:
        """Return the directory that holds one directory per bucket."""
        return self.root / "data"

    def ensure_directories(self) -> None:
        """Create the root and buckets directories if they are missing."""
        try:
            self.root.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise DiskError(f"failed to create application support directory: {exc}") from exc
        try:
            self.buckets_dir().mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise DiskError(f"failed to create buckets directory: {exc}") from exc

    def create_bucket_directory(self, bucket: str) -> Path:
        """Create the directory of a bucket and return its path."""
        path = _join(self.buckets_dir(), bucket)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DiskError(f"failed to create bucket directory: {exc}") from exc
        return path

    def delete_object_file(self, bucket: str, key: str) -> None:
        """Remove the file of an object; a missing file is not an error."""
        path = _join(self.buckets_dir(), bucket, key)
        try:
            if path.is_dir() and not path.is_symlink():
                path.rmdir()
            else:
                path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise DiskError(f"failed to delete object file: {exc}") from exc

    def create_object_file_path(self, bucket: str, key: str) -> Path:
        """Create the directories an object file needs and return the file's path."""
        path = _join(self.buckets_dir(), bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DiskError(f"failed to create object path directories: {exc}") from exc
        return path

    def create_object(self, path: str | os.PathLike[str], src: BinaryIO) -> int:
        """Write everything read from src to path and return the number of bytes written."""
        target = Path(path)
        try:
            target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise DiskError(f"failed to create object directory: {exc}") from exc
        try:
            handle = target.open("wb")
        except OSError as exc:
            raise DiskError(f"failed to create object file: {exc}") from exc
        written = 0
        with handle:
            try:
                for chunk in iter(partial(src.read, _CHUNK), b""):
                    handle.write(chunk)
                    written += len(chunk)
            except OSError as exc:
                raise DiskError(f"failed to write object content: {exc}") from exc
        return written

    def get_object_path(self, bucket: str, key: str) -> Path:
        """Return the path of an existing object file; raise DiskError if it is missing."""
        path = _join(self.buckets_dir(), bucket, key)
        if not path.exists():
            raise DiskError(f"object not found: {path}")
        return path

    def open_object(self, bucket: str, key: str) -> BinaryIO:
        """Open an existing object file for binary reading."""
        path = self.get_object_path(bucket, key)
        try:
            return path.open("rb")
        except OSError as exc:
            raise DiskError(f"failed to open object: {exc}") from exc

    def delete_bucket(self, bucket: str) -> None:
        """Remove a bucket directory with everything in it."""
        if bucket in ("", ".", "/"):
            raise DiskError("invalid bucket name")
        buckets_dir = self.buckets_dir()
        path = _join(buckets_dir, bucket)
        abs_buckets = os.path.abspath(buckets_dir)
        abs_target = os.path.abspath(path)
        if os.path.commonpath([abs_buckets, abs_target]) != abs_buckets:
            raise DiskError(f"refusing to delete outside of {buckets_dir} directory")
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink(missing_ok=True)
        except OSError as exc:
            raise DiskError(f"failed to delete bucket: {exc}") from exc