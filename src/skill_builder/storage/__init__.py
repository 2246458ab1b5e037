"""
Skill storage backends.

Provides a backend-agnostic key -> bytes store with two implementations:
the local filesystem and S3-compatible object storage.
"""

from .base import StorageBackend
from .exceptions import (
    InvalidKeyError,
    StorageCorruptError,
    StorageError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageTransientError,
)
from .local_storage import LocalStorageBackend
from .retry import RetryPolicy

__all__ = [
    "StorageBackend",
    "LocalStorageBackend",
    "RetryPolicy",
    "StorageError",
    "StorageNotFoundError",
    "StoragePermissionError",
    "StorageTransientError",
    "StorageCorruptError",
    "InvalidKeyError",
]
