"""Utility functions for bunnysync."""

import hashlib
from pathlib import Path
from typing import Union

# =============================================================================
# Constants for file operations
# =============================================================================

# Buffer size for streamed reads/writes and progress callbacks (64 KB)
TRANSFER_CHUNK_SIZE: int = 64 * 1024

# Parallel transfer limits
DEFAULT_CONCURRENCY: int = 16
MIN_CONCURRENCY: int = 1
MAX_CONCURRENCY: int = 64

# Request timeout for storage calls (seconds)
DEFAULT_TIMEOUT: float = 120.0

# Default storage region
DEFAULT_REGION: str = "de"


# =============================================================================
# Key normalization utilities
# =============================================================================


def normalize_key(path: str) -> str:
    """Normalize a path into an object key.

    Trims whitespace, converts backslashes, strips leading slashes and
    collapses repeated slashes. A trailing slash (directory marker) is kept.

    Args:
        path: Raw path string

    Returns:
        Normalized key

    Examples:
        >>> normalize_key("/zone//sub\\\\file.txt")
        'zone/sub/file.txt'
        >>> normalize_key("zone/dir/")
        'zone/dir/'
    """
    key = path.strip().replace("\\", "/").lstrip("/")
    while "//" in key:
        key = key.replace("//", "/")
    return key


def join_key(*parts: str) -> str:
    """Join key segments with single slashes, ignoring empty segments.

    Examples:
        >>> join_key("zone", "/sub/", "a.txt")
        'zone/sub/a.txt'
    """
    segments = [p.strip("/") for p in parts if p and p.strip("/")]
    return normalize_key("/".join(segments))


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_sha256(file_path: Union[str, Path]) -> str:
    """Calculate the SHA-256 digest of a file.

    The file is read in chunks so large files are never held in memory.

    Args:
        file_path: Path to the file

    Returns:
        Uppercase hex digest, the format the storage API reports
    """
    digest = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(TRANSFER_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest().upper()


def checksums_equal(a: str | None, b: str | None) -> bool:
    """Compare two hex digests case-insensitively."""
    if not a or not b:
        return False
    return a.strip().lower() == b.strip().lower()


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.50 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.2f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.2f} GB"


def format_duration(seconds: float) -> str:
    """Format elapsed time compactly (e.g. "1h 2m 3s", "4m 5s", "6s")."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
