"""Abstract base class for skill storage backends."""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from .exceptions import InvalidKeyError


class StorageBackend(ABC):
    """Backend-agnostic interface over a flat key -> bytes space.

    Keys are ``/``-separated relative paths such as
    ``skills/foo/1.0.0/foo.skill``. Implementations share nothing but this
    contract.
    """

    @abstractmethod
    def put(self, key: str, content: bytes) -> None:
        """Store content at key, replacing any existing object.

        Readers never observe a partially written object.
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the content at key. Raises StorageNotFoundError if missing."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if an object is stored at key."""

    @abstractmethod
    def list(self, prefix: str) -> Iterator[str]:
        """Lazily yield every key starting with prefix, in no particular order."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a single object. No-op if the key doesn't exist."""


def validate_key(key: str) -> str:
    """Reject keys that could escape the storage root."""
    if not key or key.startswith("/") or "\\" in key:
        raise InvalidKeyError(f"Invalid storage key: {key!r}", key=key)
    parts = key.split("/")
    if any(part in ("", ".", "..") for part in parts[:-1]) or parts[-1] in ("", ".", ".."):
        raise InvalidKeyError(f"Invalid storage key: {key!r}", key=key)
    return key
