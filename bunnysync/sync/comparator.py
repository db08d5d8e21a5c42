"""File comparison logic for sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..utils import checksums_equal
from .scanner import LocalEntry, RemoteEntry


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DOWNLOAD = "download"
    """Download remote file to local"""

    DELETE_LOCAL = "delete_local"
    """Delete local file"""

    DELETE_REMOTE = "delete_remote"
    """Delete remote file"""

    SKIP = "skip"
    """Skip file (no action needed)"""


class Comparison(str, Enum):
    """Outcome of comparing a file that exists on both sides."""

    SAME = "same"
    """Contents are considered identical"""

    DIFFERENT = "different"
    """Contents differ and must be transferred"""

    VERIFY = "verify"
    """A checksum is available but the local digest was not computed yet"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    key: str
    """Object key of the file"""


class FileComparator:
    """Decides whether a file present on both sides needs a transfer.

    The policy is the same for both directions:

    1. If the remote object carries a checksum, compare it with the SHA-256
       of the local file.
    2. Otherwise compare byte lengths only; equal length means "same".

    Rule 2 cannot detect same-length edits. That is a known weakness of
    the size fallback and deliberately kept.
    """

    def __init__(self, hasher: Optional[Callable[[LocalEntry], str]] = None):
        """Initialize file comparator.

        Args:
            hasher: Function returning the hex digest of a local file. When
                None, checksum comparisons are reported as VERIFY instead of
                being resolved.
        """
        self.hasher = hasher

    def compare(self, local: LocalEntry, remote: RemoteEntry) -> Comparison:
        """Compare a local file with its remote counterpart."""
        if remote.checksum:
            if self.hasher is None:
                return Comparison.VERIFY
            if checksums_equal(self.hasher(local), remote.checksum):
                return Comparison.SAME
            return Comparison.DIFFERENT

        if local.size == remote.size:
            return Comparison.SAME
        return Comparison.DIFFERENT

    @staticmethod
    def describe(comparison: Comparison, remote: RemoteEntry) -> str:
        """Human-readable reason for a comparison result."""
        if comparison is Comparison.SAME:
            if remote.checksum:
                return "unchanged"
            return "same size, no checksum"
        if comparison is Comparison.VERIFY:
            return "checksum to verify"
        if remote.checksum:
            return "checksum differs"
        return "size differs"
