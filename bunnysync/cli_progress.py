"""CLI progress display for sync operations.

This module renders the ProgressSnapshot objects published by the sync
engine's ProgressSampler with a Rich live progress view.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .sync.progress import ProgressSnapshot
from .utils import format_duration, format_size

# Maximum number of per-file rows shown at once
MAX_DISPLAY_FILES = 10


def _shorten(key: str, width: int = 40) -> str:
    """Trim long keys from the left so the file name stays visible."""
    if len(key) <= width:
        return key
    return "..." + key[-(width - 3) :]


def format_overall(snapshot: ProgressSnapshot) -> str:
    """One-line overall summary of a snapshot.

    Example: ``3/10 files (42.0%) | 1.20 MB/2.86 MB | 0.80 MB/s | 2s``
    """
    speed_mb = snapshot.bytes_per_second / 1024 / 1024
    return (
        f"{snapshot.completed_files}/{snapshot.total_files} files "
        f"({snapshot.percent:.1f}%) | "
        f"{format_size(snapshot.completed_bytes)}/{format_size(snapshot.total_bytes)} | "
        f"{speed_mb:.2f} MB/s | {format_duration(snapshot.elapsed)}"
    )


class SyncProgressDisplay:
    """Rich-based progress display for sync operations.

    Shows one overall bar (bytes) and a row per active or recently
    completed file. Feed it snapshots through :meth:`render`.
    """

    def __init__(self, max_files: int = MAX_DISPLAY_FILES) -> None:
        """Initialize the progress display."""
        self.max_files = max_files
        self._progress: Optional[Progress] = None
        self._overall_task: Optional[TaskID] = None
        self._file_tasks: dict[str, TaskID] = {}
        self._more_task: Optional[TaskID] = None
        self.last_snapshot: Optional[ProgressSnapshot] = None

    def render(self, snapshot: ProgressSnapshot) -> None:
        """Update the display from a snapshot.

        Args:
            snapshot: Progress snapshot from the tracker
        """
        self.last_snapshot = snapshot
        if self._progress is None or self._overall_task is None:
            return

        self._progress.update(
            self._overall_task,
            description=f"Overall: {snapshot.completed_files}/{snapshot.total_files} files",
            total=max(snapshot.total_bytes, 1),
            completed=snapshot.completed_bytes,
        )

        # Completed files first, then the biggest in-flight transfers
        ordered = sorted(
            snapshot.files,
            key=lambda f: (f.completed, f.transferred_bytes),
            reverse=True,
        )
        shown = ordered[: self.max_files]
        shown_keys = {f.key for f in shown}

        for key in list(self._file_tasks):
            if key not in shown_keys:
                self._progress.remove_task(self._file_tasks.pop(key))

        for file in shown:
            status = "✓" if file.completed else " "
            description = f"  {status} {_shorten(file.key)}"
            task = self._file_tasks.get(file.key)
            if task is None:
                task = self._progress.add_task(
                    description, total=max(file.total_bytes, 1)
                )
                self._file_tasks[file.key] = task
            self._progress.update(
                task,
                description=description,
                completed=file.total_bytes if file.completed else file.transferred_bytes,
            )

        remaining = len(snapshot.active_files) - sum(
            1 for f in shown if not f.completed
        )
        self._update_more(remaining)

    def _update_more(self, remaining: int) -> None:
        if self._progress is None:
            return
        if remaining > 0:
            text = f"  ... and {remaining} more file(s) transferring"
            if self._more_task is None:
                self._more_task = self._progress.add_task(
                    text, total=None, visible=True
                )
            else:
                self._progress.update(self._more_task, description=text)
        elif self._more_task is not None:
            self._progress.remove_task(self._more_task)
            self._more_task = None

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            TextColumn("{task.description}", style="bold blue", markup=False),
            BarColumn(),
            TaskProgressColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeElapsedColumn(),
            refresh_per_second=10,
            transient=True,
        )
        self._progress.__enter__()
        self._overall_task = self._progress.add_task("Overall", total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._overall_task = None
            self._file_tasks = {}
            self._more_task = None
