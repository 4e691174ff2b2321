class StorageError(Exception):
    """Base exception for blob storage errors."""


class BlobNotFoundError(StorageError):
    """Raised when no blob exists for a storage key."""


class InvalidStorageKeyError(StorageError):
    """Raised when a storage key resolves outside the files root."""
