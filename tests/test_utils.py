"""Unit tests for utility functions."""

import hashlib

import pytest

from bunnysync.utils import (
    calculate_sha256,
    checksums_equal,
    format_duration,
    format_size,
    join_key,
    normalize_key,
)


class TestNormalizeKey:
    """Tests for normalize_key function."""

    def test_strips_leading_slashes(self):
        assert normalize_key("/zone/a.txt") == "zone/a.txt"
        assert normalize_key("///zone/a.txt") == "zone/a.txt"

    def test_converts_backslashes(self):
        assert normalize_key("zone\\sub\\a.txt") == "zone/sub/a.txt"

    def test_collapses_repeated_slashes(self):
        assert normalize_key("zone//sub///a.txt") == "zone/sub/a.txt"

    def test_keeps_trailing_slash(self):
        assert normalize_key("zone/dir/") == "zone/dir/"

    def test_trims_whitespace(self):
        assert normalize_key("  zone/a.txt ") == "zone/a.txt"


class TestJoinKey:
    """Tests for join_key function."""

    def test_join_simple(self):
        assert join_key("zone", "sub", "a.txt") == "zone/sub/a.txt"

    def test_ignores_empty_segments(self):
        assert join_key("zone", "", "a.txt") == "zone/a.txt"
        assert join_key("zone", "/", "a.txt") == "zone/a.txt"

    def test_strips_segment_slashes(self):
        assert join_key("zone/", "/sub/", "a.txt") == "zone/sub/a.txt"

    def test_zone_only(self):
        assert join_key("zone") == "zone"


class TestCalculateSha256:
    """Tests for calculate_sha256 function."""

    def test_known_digest(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello world")
        expected = hashlib.sha256(b"hello world").hexdigest().upper()
        assert calculate_sha256(path) == expected

    def test_digest_is_uppercase(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"abc")
        digest = calculate_sha256(path)
        assert digest == digest.upper()
        assert len(digest) == 64

    def test_large_file_read_in_chunks(self, tmp_path):
        data = b"x" * (200 * 1024 + 7)
        path = tmp_path / "big.bin"
        path.write_bytes(data)
        assert calculate_sha256(path) == hashlib.sha256(data).hexdigest().upper()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            calculate_sha256(tmp_path / "missing")


class TestChecksumsEqual:
    def test_case_insensitive(self):
        assert checksums_equal("ABCDEF", "abcdef") is True

    def test_different(self):
        assert checksums_equal("ABC", "ABD") is False

    def test_missing_values(self):
        assert checksums_equal(None, "abc") is False
        assert checksums_equal("abc", "") is False


class TestFormatSize:
    """Tests for format_size function."""

    def test_bytes(self):
        assert format_size(0) == "0 B"
        assert format_size(512) == "512 B"

    def test_kilobytes(self):
        assert format_size(1536) == "1.50 KB"

    def test_megabytes(self):
        assert format_size(5 * 1024 * 1024) == "5.00 MB"

    def test_gigabytes(self):
        assert format_size(2 * 1024 * 1024 * 1024) == "2.00 GB"


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(6.7) == "6s"

    def test_minutes(self):
        assert format_duration(245) == "4m 5s"

    def test_hours(self):
        assert format_duration(3723) == "1h 2m 3s"
