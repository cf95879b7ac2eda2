"""A small local S3-compatible object storage server with a web interface."""

__version__ = "0.1.0"