"""Parallel execution of upload/download work items."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..exceptions import LocalIOError
from ..utils import MAX_CONCURRENCY, MIN_CONCURRENCY, calculate_sha256, checksums_equal
from .operations import SyncOperations
from .options import SyncDirection
from .planner import TransferItem
from .progress import SyncProgressTracker

logger = logging.getLogger(__name__)


class TransferOutcome(str, Enum):
    """Result of running one work item."""

    TRANSFERRED = "transferred"
    SKIPPED = "skipped"


@dataclass
class TransferResult:
    """Counts for one executor invocation."""

    succeeded: int = 0
    skipped: int = 0
    failed: list[tuple[str, str]] = field(default_factory=list)
    """(key, error message) of failed items (collect mode only)"""

    def merge(self, other: "TransferResult") -> "TransferResult":
        return TransferResult(
            succeeded=self.succeeded + other.succeeded,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
        )


class TransferExecutor:
    """Runs transfers with bounded parallelism.

    Every call to :meth:`execute` is a barrier: it returns only after all of
    its items finished. Items inside one call run in no particular order.
    """

    def __init__(
        self,
        operations: SyncOperations,
        direction: SyncDirection,
        concurrency: int,
        tracker: Optional[SyncProgressTracker] = None,
        dry_run: bool = False,
        fail_fast: bool = True,
        hasher: Callable[[Path], str] = calculate_sha256,
        on_skip: Optional[Callable[[TransferItem, str], None]] = None,
    ):
        """Initialize transfer executor.

        Args:
            operations: Single-object operations
            direction: Upload or download
            concurrency: Maximum simultaneous transfers (1-64)
            tracker: Progress tracker receiving byte-level events
            dry_run: Account for transfers without calling the storage API
            fail_fast: Re-raise the first item error once the batch finished;
                when False, errors are collected into the result
            hasher: Function computing a local file's SHA-256
            on_skip: Called with (item, reason) when an item turns out
                to be unchanged
        """
        if not MIN_CONCURRENCY <= concurrency <= MAX_CONCURRENCY:
            raise ValueError(
                f"concurrency must be between {MIN_CONCURRENCY} and "
                f"{MAX_CONCURRENCY}, got {concurrency}"
            )
        self.operations = operations
        self.direction = SyncDirection.from_string(direction)
        self.concurrency = concurrency
        self.tracker = tracker or SyncProgressTracker()
        self.dry_run = dry_run
        self.fail_fast = fail_fast
        self.hasher = hasher
        self.on_skip = on_skip

    def execute(self, items: list[TransferItem], label: str = "") -> TransferResult:
        """Transfer all items and wait for every one of them.

        Args:
            items: Work items of one tier (or the whole download set)
            label: Name of the batch for logging

        Returns:
            TransferResult with success/skip counts

        Raises:
            Exception: The first item failure, when ``fail_fast`` is set
        """
        result = TransferResult()
        if not items:
            return result

        batch_start = time.time()
        logger.debug(
            "Executing %d %s(s)%s with %d worker(s)",
            len(items),
            self.direction.value,
            f" [{label}]" if label else "",
            self.concurrency,
        )

        gate = threading.BoundedSemaphore(self.concurrency)
        errors: list[BaseException] = []

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="transfer"
        ) as pool:
            futures = {}
            for item in items:
                # Admission gate: blocks until a transfer slot is free
                gate.acquire()
                futures[pool.submit(self._run_gated, gate, item)] = item

            for future in as_completed(futures):
                item = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    logger.debug("Failed %s: %s", item.key, e, exc_info=True)
                    errors.append(e)
                    result.failed.append((item.key, str(e)))
                    continue

                if outcome is TransferOutcome.SKIPPED:
                    result.skipped += 1
                else:
                    result.succeeded += 1

        logger.debug(
            "Batch%s finished in %.2fs: %d ok, %d skipped, %d failed",
            f" [{label}]" if label else "",
            time.time() - batch_start,
            result.succeeded,
            result.skipped,
            len(result.failed),
        )

        if errors and self.fail_fast:
            raise errors[0]
        return result

    def _run_gated(
        self, gate: threading.BoundedSemaphore, item: TransferItem
    ) -> TransferOutcome:
        try:
            return self._run_item(item)
        finally:
            gate.release()

    def _digest(self, path: Path) -> str:
        try:
            return self.hasher(path)
        except OSError as e:
            raise LocalIOError(f"Cannot hash {path}: {e}", path) from e

    def _run_item(self, item: TransferItem) -> TransferOutcome:
        """Transfer a single item (runs on a worker thread)."""
        start = time.time()
        checksum: Optional[str] = None

        if item.expected_checksum:
            checksum = self._digest(item.local_path)
            if checksums_equal(checksum, item.expected_checksum):
                if self.on_skip:
                    self.on_skip(item, "unchanged")
                return TransferOutcome.SKIPPED

        # Only files that are really transferred count towards the total
        self.tracker.add_to_total_bytes(item.size)
        self.tracker.start_file(item.key, item.size)

        if not self.dry_run:

            def progress_callback(transferred: int, _total: int) -> None:
                self.tracker.update_file_progress(item.key, transferred)

            if self.direction is SyncDirection.UPLOAD:
                self.operations.upload_file(
                    item, checksum=checksum, progress_callback=progress_callback
                )
            else:
                self.operations.download_file(
                    item, progress_callback=progress_callback
                )

        self.tracker.complete_file(item.key)
        logger.debug(
            "%s of %s took %.2fs",
            self.direction.value.capitalize(),
            item.key,
            time.time() - start,
        )
        return TransferOutcome.TRANSFERRED
