"""Progress accounting for concurrent transfers.

Many transfer threads report byte progress at once. Each file record is
written only by the thread transferring that file, so per-file updates
need no lock. A single small lock guards the aggregate counters and the
structure of the file map (insert, evict, snapshot).
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Seconds a completed file stays visible in snapshots
DEFAULT_GRACE_PERIOD: float = 2.0

# Sampling cadence of ProgressSampler (seconds)
DEFAULT_SAMPLE_INTERVAL: float = 0.1


@dataclass
class FileProgress:
    """Mutable progress record of one transfer."""

    key: str
    total_bytes: int
    transferred_bytes: int = 0
    started_at: float = field(default_factory=time.monotonic)
    completed: bool = False
    completed_at: Optional[float] = None


@dataclass(frozen=True)
class FileProgressSnapshot:
    """Point-in-time copy of a FileProgress record."""

    key: str
    total_bytes: int
    transferred_bytes: int
    elapsed: float
    completed: bool

    @property
    def percent(self) -> float:
        if self.completed:
            return 100.0
        if self.total_bytes <= 0:
            return 0.0
        return self.transferred_bytes * 100.0 / self.total_bytes

    @property
    def bytes_per_second(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return self.transferred_bytes / self.elapsed


@dataclass(frozen=True)
class ProgressSnapshot:
    """Overall progress at one sampling instant."""

    completed_files: int
    total_files: int
    completed_bytes: int
    """Full size of completed files plus bytes of in-flight files"""

    total_bytes: int
    elapsed: float
    files: list[FileProgressSnapshot] = field(default_factory=list)

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.completed_bytes * 100.0 / self.total_bytes

    @property
    def bytes_per_second(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return self.completed_bytes / self.elapsed

    @property
    def active_files(self) -> list[FileProgressSnapshot]:
        return [f for f in self.files if not f.completed]


class SyncProgressTracker:
    """Accumulates per-file progress into an overall view.

    ``total_bytes`` grows lazily: a file contributes to it only once the
    executor decides to actually transfer it.

    Examples:
        >>> tracker = SyncProgressTracker()
        >>> tracker.add_to_total_bytes(100)
        >>> tracker.start_file("zone/a.txt", 100)
        >>> tracker.update_file_progress("zone/a.txt", 40)
        >>> tracker.snapshot().completed_bytes
        40
    """

    def __init__(
        self,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize progress tracker.

        Args:
            grace_period: Seconds completed files stay in snapshots
            clock: Monotonic time source (injectable for tests)
        """
        self.grace_period = grace_period
        self._clock = clock
        self._started_at = clock()
        self._files: dict[str, FileProgress] = {}
        self._lock = threading.Lock()
        self._total_files = 0
        self._completed_files = 0
        self._completed_bytes = 0
        self._total_bytes = 0

    def set_total_files(self, count: int) -> None:
        """Set the number of files expected to be processed."""
        with self._lock:
            self._total_files = count

    def add_to_total_bytes(self, delta: int) -> None:
        """Grow the byte denominator by a file about to be transferred."""
        with self._lock:
            self._total_bytes += delta

    def start_file(self, key: str, total_size: int) -> None:
        """Register (or replace) the progress record of a file."""
        record = FileProgress(key=key, total_bytes=total_size, started_at=self._clock())
        with self._lock:
            self._files[key] = record

    def update_file_progress(self, key: str, transferred_bytes: int) -> None:
        """Record bytes transferred so far for a file.

        Values never decrease and are capped at the file's size.
        """
        record = self._files.get(key)
        if record is None or record.completed:
            return
        value = min(transferred_bytes, record.total_bytes)
        if value > record.transferred_bytes:
            record.transferred_bytes = value

    def complete_file(self, key: str) -> None:
        """Mark a file as finished."""
        with self._lock:
            record = self._files.get(key)
            if record is None or record.completed:
                return
            record.transferred_bytes = record.total_bytes
            record.completed = True
            record.completed_at = self._clock()
            self._completed_files += 1
            self._completed_bytes += record.total_bytes

    def evict_completed(self, now: Optional[float] = None) -> int:
        """Drop completed records older than the grace period.

        Returns:
            Number of evicted records
        """
        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                key
                for key, record in self._files.items()
                if record.completed
                and record.completed_at is not None
                and now - record.completed_at > self.grace_period
            ]
            for key in expired:
                del self._files[key]
        return len(expired)

    def snapshot(self, now: Optional[float] = None) -> ProgressSnapshot:
        """Compute an overall snapshot.

        Counters and file records are read under the same lock as
        ``complete_file`` so a file is never counted both as completed and
        as in flight.
        """
        now = self._clock() if now is None else now
        with self._lock:
            completed_bytes = self._completed_bytes
            total_bytes = self._total_bytes
            files = []
            for record in self._files.values():
                transferred = record.transferred_bytes
                if not record.completed:
                    completed_bytes += transferred
                files.append(
                    FileProgressSnapshot(
                        key=record.key,
                        total_bytes=record.total_bytes,
                        transferred_bytes=transferred,
                        elapsed=(record.completed_at or now) - record.started_at,
                        completed=record.completed,
                    )
                )
            completed_files = self._completed_files
            total_files = self._total_files

        return ProgressSnapshot(
            completed_files=completed_files,
            total_files=total_files,
            completed_bytes=min(completed_bytes, total_bytes),
            total_bytes=total_bytes,
            elapsed=now - self._started_at,
            files=files,
        )


class ProgressSampler:
    """Publishes tracker snapshots on a fixed cadence from a daemon thread.

    Examples:
        >>> with ProgressSampler(tracker, display.render):
        ...     executor.execute(items)
    """

    def __init__(
        self,
        tracker: SyncProgressTracker,
        callback: Callable[[ProgressSnapshot], None],
        interval: float = DEFAULT_SAMPLE_INTERVAL,
    ):
        self.tracker = tracker
        self.callback = callback
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sample(self) -> ProgressSnapshot:
        """Evict expired records and publish one snapshot."""
        self.tracker.evict_completed()
        snapshot = self.tracker.snapshot()
        self.callback(snapshot)
        return snapshot

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.sample()
            except Exception:
                # Rendering problems must not kill the sampler
                logger.debug("Progress callback failed", exc_info=True)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="progress-sampler", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop sampling and publish a final snapshot."""
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        self.sample()

    def __enter__(self) -> "ProgressSampler":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
