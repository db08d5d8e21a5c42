"""Exceptions raised by bunnysync."""


class BunnySyncError(Exception):
    """Base exception for all bunnysync errors."""


class ConfigError(BunnySyncError):
    """Missing or invalid configuration (credentials, options)."""


class LocalIOError(BunnySyncError):
    """Local filesystem access failed."""

    def __init__(self, message: str, path: object = None):
        super().__init__(message)
        self.path = path


class StorageError(BunnySyncError):
    """Storage API request failed for an unclassified reason."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(StorageError):
    """Requested object or directory does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Object not found: {path}", status_code=404)
        self.path = path


class AuthenticationError(StorageError):
    """Storage zone rejected the access key."""

    def __init__(self, storage_zone: str):
        super().__init__(
            f"Authentication failed for storage zone '{storage_zone}' "
            "- check your access key",
            status_code=401,
        )
        self.storage_zone = storage_zone


class ChecksumMismatchError(StorageError):
    """Server rejected uploaded content because its SHA-256 did not match."""

    def __init__(self, path: str, checksum: str):
        super().__init__(
            f"Checksum validation failed for {path} (expected {checksum})",
            status_code=400,
        )
        self.path = path
        self.checksum = checksum


class StorageNetworkError(StorageError):
    """Connection to the storage endpoint failed."""
