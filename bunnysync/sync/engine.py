"""Core sync engine for executing sync runs."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..api import BunnyStorageClient
from ..exceptions import StorageError
from ..output import OutputFormatter
from .executor import TransferExecutor, TransferResult
from .operations import SyncOperations
from .options import SyncDirection, SyncOptions
from .planner import ChangePlanner, TransferItem, TransferPlan
from .progress import ProgressSampler, ProgressSnapshot, SyncProgressTracker
from .scanner import DirectoryScanner, LocalEntry, RemoteEntry, RemoteScanner

logger = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    """Outcome of a sync run."""

    direction: SyncDirection
    transferred: int = 0
    """Files uploaded or downloaded"""

    skipped: int = 0
    """Files found unchanged"""

    deleted: int = 0
    """Files removed from the destination"""

    failed: list[tuple[str, str]] = field(default_factory=list)
    """(key, error message) pairs, only filled when not failing fast"""

    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "direction": self.direction.value,
            self.direction.verb: self.transferred,
            "skipped": self.skipped,
            "deleted": self.deleted,
            "failed": [{"key": k, "error": e} for k, e in self.failed],
            "dry_run": self.dry_run,
        }


class SyncEngine:
    """Orchestrates one sync run: scan, plan, transfer, delete."""

    def __init__(
        self,
        client: BunnyStorageClient,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Storage API client
            output: Output formatter for displaying progress/status
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.operations = SyncOperations(client)
        self.tracker: Optional[SyncProgressTracker] = None

    def snapshot(self) -> Optional[ProgressSnapshot]:
        """Current progress snapshot of the running (or last) sync."""
        if self.tracker is None:
            return None
        return self.tracker.snapshot()

    def run_sync(
        self,
        options: SyncOptions,
        on_snapshot: Optional[Callable[[ProgressSnapshot], None]] = None,
    ) -> SyncSummary:
        """Run a sync in the configured direction.

        Args:
            options: Run configuration
            on_snapshot: Optional callback receiving progress snapshots on a
                fixed cadence while transfers run

        Returns:
            SyncSummary with transfer, skip and deletion counts

        Raises:
            LocalIOError: If the local directory is missing (upload)
            StorageError: If listing fails, or a transfer/deletion fails
                while ``options.fail_fast`` is set

        Examples:
            >>> engine = SyncEngine(client)
            >>> options = SyncOptions(Path("./dist"), "my-zone", dry_run=True)
            >>> summary = engine.run_sync(options)
            >>> print(f"Would upload {summary.transferred} files")
        """
        run_start = time.time()
        self._display_header(options)

        local, remote = self._build_inventories(options)

        planner = ChangePlanner(options.direction, upload_last=options.upload_last)
        plan = planner.plan(local, remote, local_root=options.local_path.resolve())
        self._display_sync_plan(plan, options)

        tracker = SyncProgressTracker()
        tracker.set_total_files(plan.transfer_count)
        self.tracker = tracker

        executor = TransferExecutor(
            operations=self.operations,
            direction=options.direction,
            concurrency=options.concurrency,
            tracker=tracker,
            dry_run=options.dry_run,
            fail_fast=options.fail_fast,
            on_skip=self._skip_reporter(options),
        )

        result = self._execute_plan(plan, executor, tracker, on_snapshot)

        deleted, delete_failures = self._execute_deletions(plan, local, options)

        summary = SyncSummary(
            direction=options.direction,
            transferred=result.succeeded,
            skipped=len(plan.skipped) + result.skipped,
            deleted=deleted,
            failed=result.failed + delete_failures,
            dry_run=options.dry_run,
        )
        logger.debug("Sync finished in %.2fs", time.time() - run_start)

        if not self.output.quiet:
            self._display_summary(summary)
        return summary

    def _build_inventories(
        self, options: SyncOptions
    ) -> tuple[dict[str, LocalEntry], dict[str, RemoteEntry]]:
        """Scan both sides. Any failure here aborts the run."""
        local_root = options.local_path
        is_download = options.direction is SyncDirection.DOWNLOAD

        scan_start = time.time()
        if is_download and not local_root.exists():
            local: dict[str, LocalEntry] = {}
        else:
            local = DirectoryScanner().scan_local(local_root, options.remote_base)
        logger.debug(
            "Local scan took %.2fs for %d files", time.time() - scan_start, len(local)
        )

        scan_start = time.time()
        # A missing remote prefix is only "empty" when uploading into it
        remote_scanner = RemoteScanner(
            self.client,
            max_workers=options.concurrency,
            allow_missing_base=not is_download,
        )
        remote = remote_scanner.scan(options.remote_base_path)
        logger.debug(
            "Remote scan took %.2fs for %d files",
            time.time() - scan_start,
            len(remote),
        )

        if is_download and not local_root.exists():
            if options.dry_run:
                logger.debug("Local directory %s does not exist yet", local_root)
            else:
                local_root.mkdir(parents=True, exist_ok=True)

        self.output.info(f"Found {len(local)} local file(s)")
        self.output.info(f"Found {len(remote)} remote file(s)")
        return local, remote

    def _execute_plan(
        self,
        plan: TransferPlan,
        executor: TransferExecutor,
        tracker: SyncProgressTracker,
        on_snapshot: Optional[Callable[[ProgressSnapshot], None]],
    ) -> TransferResult:
        """Run upload tiers (or the download set) strictly one after another."""
        result = TransferResult()
        sampler = ProgressSampler(tracker, on_snapshot) if on_snapshot else None

        if sampler:
            sampler.start()
        try:
            for label, items in plan.batches():
                if not items:
                    continue
                if label:
                    logger.debug("Starting %s tier (%d file(s))", label, len(items))
                result = result.merge(executor.execute(items, label))
        finally:
            if sampler:
                sampler.stop()

        return result

    def _execute_deletions(
        self,
        plan: TransferPlan,
        local: dict[str, LocalEntry],
        options: SyncOptions,
    ) -> tuple[int, list[tuple[str, str]]]:
        """Delete destination files missing from the source, one at a time.

        With ``fail_fast`` the first failure propagates; otherwise failures
        are reported and the remaining deletions still run.

        Returns:
            (number deleted, list of (key, error message))
        """
        if not plan.to_delete:
            return 0, []

        self.output.print("")
        self.output.info("Cleaning up deleted files...")

        deleted = 0
        failures: list[tuple[str, str]] = []
        local_root = options.local_path.resolve()

        for key in plan.to_delete:
            if plan.direction is SyncDirection.UPLOAD:
                display = key
            else:
                display = local[key].relative_path
            self.output.info(f"[DELETE] {display}")

            if options.dry_run:
                deleted += 1
                continue

            try:
                if plan.direction is SyncDirection.UPLOAD:
                    if not self.operations.delete_remote(key):
                        raise StorageError(f"Delete of {key} was not confirmed")
                else:
                    self.operations.delete_local(local[key].path, root=local_root)
            except Exception as e:
                if options.fail_fast:
                    raise
                self.output.error(f"Failed to delete {display}: {e}")
                failures.append((key, str(e)))
                continue
            deleted += 1

        return deleted, failures

    def _skip_reporter(
        self, options: SyncOptions
    ) -> Optional[Callable[[TransferItem, str], None]]:
        if not options.verbose or self.output.quiet:
            return None

        def report(item: TransferItem, reason: str) -> None:
            self.output.info(f"[SKIP] {item.key} ({reason})")

        return report

    def _display_header(self, options: SyncOptions) -> None:
        if self.output.quiet:
            return
        self.output.info(f"Starting sync: {options.direction.arrow}")
        self.output.info(f"Local Path: {options.local_path}")
        self.output.info(f"Storage Zone: {options.storage_zone}")
        self.output.info(f"Region: {options.region}")
        if options.remote_path:
            self.output.info(f"Remote Path: /{options.remote_path}")
        if options.dry_run:
            self.output.warning("DRY RUN MODE - No changes will be made")
        self.output.print("")

    def _display_sync_plan(self, plan: TransferPlan, options: SyncOptions) -> None:
        """Display sync plan to user."""
        if self.output.quiet:
            return

        self.output.print("")
        self.output.info("Sync plan:")
        # Items carrying a checksum may still turn out unchanged
        to_verify = plan.verify_keys()
        if plan.direction is SyncDirection.UPLOAD:
            for tier in plan.tiers:
                count = sum(1 for i in tier.items if i.key not in to_verify)
                if count:
                    name = tier.tier.label or "files"
                    self.output.info(f"  ↑ Upload {name}: {count} file(s)")
        else:
            count = len(plan.downloads) - len(to_verify)
            if count:
                self.output.info(f"  ↓ Download: {count} file(s)")
        if to_verify:
            self.output.info(
                f"  ? To verify: {len(to_verify)} file(s) (checksum compared "
                "before transfer)"
            )
        if plan.to_delete:
            self.output.info(f"  ✗ Delete: {len(plan.to_delete)} file(s)")
        if plan.skipped:
            self.output.info(f"  = Skip: {len(plan.skipped)} file(s)")

        if options.verbose:
            for decision in plan.decisions:
                label = (
                    "VERIFY"
                    if decision.key in to_verify
                    else decision.action.value.upper()
                )
                self.output.info(f"  [{label}] {decision.key} ({decision.reason})")

        self.output.print("")
        self.output.info(f"Syncing files (parallel: {options.concurrency})...")

    def _display_summary(self, summary: SyncSummary) -> None:
        """Display sync summary."""
        self.output.print("")
        self.output.info(
            f"Summary: {summary.transferred} {summary.direction.verb}, "
            f"{summary.skipped} skipped, {summary.deleted} deleted"
        )
        if summary.failed:
            self.output.warning(f"{len(summary.failed)} file(s) failed:")
            for key, error in summary.failed:
                self.output.warning(f"  {key}: {error}")
        elif summary.dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Sync completed successfully!")
