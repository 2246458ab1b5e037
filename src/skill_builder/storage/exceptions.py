"""Common exception hierarchy for skill storage backends."""


class StorageError(Exception):
    """Base exception for all storage operations."""

    def __init__(self, message: str, key: str | None = None, cause: Exception | None = None):
        self.key = key
        self.cause = cause
        super().__init__(message)


class StorageNotFoundError(StorageError):
    """Raised when a requested key, skill or version does not exist."""


class StoragePermissionError(StorageError):
    """Raised when credentials are invalid or access is denied."""


class StorageTransientError(StorageError):
    """Raised for network or disk failures that are safe to retry."""


class StorageCorruptError(StorageError):
    """Raised when content was read but fails to parse or verify."""


class InvalidKeyError(StorageError):
    """Raised when a key is empty, absolute or escapes the storage root."""
