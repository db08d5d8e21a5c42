"""Tests for the CLI progress display."""

from bunnysync.cli_progress import SyncProgressDisplay, _shorten, format_overall
from bunnysync.sync.progress import FileProgressSnapshot, ProgressSnapshot


def snapshot(files=(), completed_files=1, total_files=4):
    return ProgressSnapshot(
        completed_files=completed_files,
        total_files=total_files,
        completed_bytes=512 * 1024,
        total_bytes=1024 * 1024,
        elapsed=2.0,
        files=list(files),
    )


def file_snapshot(key, transferred=10, completed=False):
    return FileProgressSnapshot(
        key=key,
        total_bytes=100,
        transferred_bytes=transferred,
        elapsed=1.0,
        completed=completed,
    )


class TestFormatting:
    def test_shorten(self):
        assert _shorten("zone/a.txt") == "zone/a.txt"
        long_key = "zone/" + "x" * 60 + "/file.txt"
        short = _shorten(long_key, width=20)
        assert len(short) == 20
        assert short.startswith("...")
        assert short.endswith("file.txt")

    def test_format_overall(self):
        text = format_overall(snapshot())
        assert text == "1/4 files (50.0%) | 512.00 KB/1.00 MB | 0.25 MB/s | 2s"


class TestSyncProgressDisplay:
    """Test SyncProgressDisplay functionality."""

    def test_render_outside_context_keeps_snapshot(self):
        display = SyncProgressDisplay()
        snap = snapshot()
        display.render(snap)
        assert display.last_snapshot is snap

    def test_render_limits_file_rows(self):
        files = [file_snapshot(f"zone/f{i}", transferred=i) for i in range(5)]
        with SyncProgressDisplay(max_files=2) as display:
            display.render(snapshot(files))
            assert set(display._file_tasks) == {"zone/f4", "zone/f3"}
            assert display._more_task is not None

            display.render(snapshot(files[:1]))
            assert set(display._file_tasks) == {"zone/f0"}
            assert display._more_task is None

        assert display._progress is None

    def test_completed_files_listed_first(self):
        files = [
            file_snapshot("zone/active", transferred=90),
            file_snapshot("zone/done", transferred=100, completed=True),
        ]
        with SyncProgressDisplay(max_files=1) as display:
            display.render(snapshot(files))
            assert list(display._file_tasks) == ["zone/done"]
