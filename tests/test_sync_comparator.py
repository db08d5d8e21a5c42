"""Tests for file comparison logic."""

from pathlib import Path
from unittest.mock import Mock

from bunnysync.sync import Comparison, FileComparator
from bunnysync.sync.scanner import LocalEntry, RemoteEntry


def local_entry(size=10):
    return LocalEntry(
        path=Path("/tmp/site/a.txt"),
        key="zone/a.txt",
        relative_path="a.txt",
        size=size,
    )


def remote_entry(size=10, checksum=None):
    return RemoteEntry(
        key="zone/a.txt", relative_path="a.txt", size=size, checksum=checksum
    )


class TestFileComparator:
    """Test FileComparator functionality."""

    def test_checksum_match(self):
        comparator = FileComparator(hasher=lambda entry: "abc123")
        assert comparator.compare(local_entry(), remote_entry(checksum="ABC123")) == (
            Comparison.SAME
        )

    def test_checksum_mismatch_ignores_size(self):
        comparator = FileComparator(hasher=lambda entry: "abc123")
        result = comparator.compare(local_entry(10), remote_entry(10, checksum="fff"))
        assert result == Comparison.DIFFERENT

    def test_checksum_without_hasher_needs_verification(self):
        comparator = FileComparator()
        result = comparator.compare(local_entry(), remote_entry(checksum="abc"))
        assert result == Comparison.VERIFY

    def test_size_fallback_same(self):
        hasher = Mock()
        comparator = FileComparator(hasher=hasher)
        assert comparator.compare(local_entry(10), remote_entry(10)) == Comparison.SAME
        # No checksum on the remote side: no digest is computed
        hasher.assert_not_called()

    def test_size_fallback_different(self):
        comparator = FileComparator()
        assert comparator.compare(local_entry(10), remote_entry(11)) == (
            Comparison.DIFFERENT
        )

    def test_describe(self):
        with_checksum = remote_entry(checksum="abc")
        without = remote_entry()
        assert FileComparator.describe(Comparison.SAME, with_checksum) == "unchanged"
        assert (
            FileComparator.describe(Comparison.SAME, without)
            == "same size, no checksum"
        )
        assert FileComparator.describe(Comparison.VERIFY, with_checksum) == (
            "checksum to verify"
        )
        assert FileComparator.describe(Comparison.DIFFERENT, with_checksum) == (
            "checksum differs"
        )
        assert FileComparator.describe(Comparison.DIFFERENT, without) == "size differs"
