"""bunnysync - mirror local directories to and from BunnyCDN storage zones."""

from .api import BunnyStorageClient
from .exceptions import (
    AuthenticationError,
    BunnySyncError,
    ChecksumMismatchError,
    ConfigError,
    LocalIOError,
    NotFoundError,
    StorageError,
    StorageNetworkError,
)
from .utils import calculate_sha256, normalize_key

__all__ = [
    "BunnyStorageClient",
    "BunnySyncError",
    "AuthenticationError",
    "ChecksumMismatchError",
    "ConfigError",
    "LocalIOError",
    "NotFoundError",
    "StorageError",
    "StorageNetworkError",
    "calculate_sha256",
    "normalize_key",
]
