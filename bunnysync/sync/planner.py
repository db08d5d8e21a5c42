"""Change planning: turn two inventories into a transfer plan."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..utils import calculate_sha256
from .comparator import Comparison, FileComparator, SyncAction, SyncDecision
from .options import SyncDirection
from .scanner import LocalEntry, RemoteEntry
from .tiers import Tier, TierClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferItem:
    """A single object to upload or download."""

    key: str
    """Object key"""

    relative_path: str
    """Path relative to the sync root"""

    local_path: Path
    """Local source (upload) or target (download)"""

    size: int
    """Size of the source in bytes"""

    expected_checksum: Optional[str] = None
    """Destination checksum still to be compared before transferring"""


@dataclass
class UploadTier:
    """Upload items that must all finish before the next tier starts."""

    tier: Tier
    items: list[TransferItem] = field(default_factory=list)


@dataclass
class TransferPlan:
    """Result of planning a sync run. Read-only once built."""

    direction: SyncDirection
    tiers: list[UploadTier] = field(default_factory=list)
    downloads: list[TransferItem] = field(default_factory=list)
    to_delete: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    decisions: list[SyncDecision] = field(default_factory=list)

    @property
    def transfer_count(self) -> int:
        """Number of uploads/downloads (including items still to verify)."""
        return len(self.downloads) + sum(len(t.items) for t in self.tiers)

    def verify_keys(self) -> set[str]:
        """Keys whose transfer still depends on a deferred checksum check."""
        items = self.downloads + [i for t in self.tiers for i in t.items]
        return {i.key for i in items if i.expected_checksum}

    def batches(self) -> list[tuple[str, list[TransferItem]]]:
        """Work batches in execution order as (label, items) pairs."""
        if self.direction is SyncDirection.DOWNLOAD:
            return [("", self.downloads)]
        return [(t.tier.label, t.items) for t in self.tiers]

    def actions(self) -> dict[str, SyncAction]:
        """Map of every planned key to its action."""
        return {d.key: d.action for d in self.decisions}


class ChangePlanner:
    """Computes which objects to transfer, skip, and delete.

    Planning performs no network I/O. Local digests are only computed when
    ``eager_checksums`` is set and the remote side reports a checksum;
    otherwise such files are planned as transfers carrying
    ``expected_checksum`` and verified lazily by the executor.
    """

    def __init__(
        self,
        direction: SyncDirection,
        upload_last: Iterable[str] = (),
        hasher: Callable[[Path], str] = calculate_sha256,
        eager_checksums: bool = False,
    ):
        """Initialize change planner.

        Args:
            direction: Sync direction
            upload_last: Patterns for files uploaded in the final tier
            hasher: Function computing a file's SHA-256 hex digest
            eager_checksums: Resolve checksum comparisons during planning
        """
        self.direction = SyncDirection.from_string(direction)
        self.classifier = TierClassifier.for_patterns(upload_last)
        self.hasher = hasher
        self.comparator = FileComparator(
            hasher=(lambda entry: hasher(entry.path)) if eager_checksums else None
        )

    def plan(
        self,
        local: dict[str, LocalEntry],
        remote: dict[str, RemoteEntry],
        local_root: Optional[Path] = None,
    ) -> TransferPlan:
        """Build the transfer plan.

        Args:
            local: Local inventory
            remote: Remote inventory
            local_root: Sync root, required for the download direction to
                derive target paths

        Returns:
            TransferPlan
        """
        if self.direction is SyncDirection.UPLOAD:
            plan = self._plan_upload(local, remote)
        else:
            if local_root is None:
                raise ValueError("local_root is required to plan downloads")
            plan = self._plan_download(local, remote, local_root)

        logger.debug(
            "Planned %d transfer(s), %d skip(s), %d deletion(s)",
            plan.transfer_count,
            len(plan.skipped),
            len(plan.to_delete),
        )
        return plan

    def _compare(
        self, local_entry: LocalEntry, remote_entry: Optional[RemoteEntry]
    ) -> tuple[Comparison, str]:
        if remote_entry is None:
            return Comparison.DIFFERENT, "new file"
        comparison = self.comparator.compare(local_entry, remote_entry)
        return comparison, self.comparator.describe(comparison, remote_entry)

    def _plan_upload(
        self, local: dict[str, LocalEntry], remote: dict[str, RemoteEntry]
    ) -> TransferPlan:
        plan = TransferPlan(direction=SyncDirection.UPLOAD)
        buckets: dict[Tier, list[TransferItem]] = {tier: [] for tier in Tier}

        for key in sorted(local):
            entry = local[key]
            remote_entry = remote.get(key)
            comparison, reason = self._compare(entry, remote_entry)

            if comparison is Comparison.SAME:
                plan.skipped.append(key)
                plan.decisions.append(SyncDecision(SyncAction.SKIP, reason, key))
                continue

            item = TransferItem(
                key=key,
                relative_path=entry.relative_path,
                local_path=entry.path,
                size=entry.size,
                expected_checksum=(
                    remote_entry.checksum
                    if remote_entry and comparison is Comparison.VERIFY
                    else None
                ),
            )
            buckets[self.classifier.classify(key)].append(item)
            plan.decisions.append(SyncDecision(SyncAction.UPLOAD, reason, key))

        plan.tiers = [UploadTier(tier, buckets[tier]) for tier in Tier]

        for key in sorted(set(remote) - set(local)):
            plan.to_delete.append(key)
            plan.decisions.append(
                SyncDecision(SyncAction.DELETE_REMOTE, "not present locally", key)
            )

        return plan

    def _plan_download(
        self,
        local: dict[str, LocalEntry],
        remote: dict[str, RemoteEntry],
        local_root: Path,
    ) -> TransferPlan:
        plan = TransferPlan(direction=SyncDirection.DOWNLOAD)

        for key in sorted(remote):
            remote_entry = remote[key]
            local_entry = local.get(key)

            if local_entry is None:
                comparison, reason = Comparison.DIFFERENT, "new file"
            else:
                comparison = self.comparator.compare(local_entry, remote_entry)
                reason = self.comparator.describe(comparison, remote_entry)

            if comparison is Comparison.SAME:
                plan.skipped.append(key)
                plan.decisions.append(SyncDecision(SyncAction.SKIP, reason, key))
                continue

            plan.downloads.append(
                TransferItem(
                    key=key,
                    relative_path=remote_entry.relative_path,
                    local_path=(
                        local_entry.path
                        if local_entry
                        else local_root / remote_entry.relative_path
                    ),
                    size=remote_entry.size,
                    expected_checksum=(
                        remote_entry.checksum
                        if comparison is Comparison.VERIFY
                        else None
                    ),
                )
            )
            plan.decisions.append(SyncDecision(SyncAction.DOWNLOAD, reason, key))

        for key in sorted(set(local) - set(remote)):
            plan.to_delete.append(key)
            plan.decisions.append(
                SyncDecision(SyncAction.DELETE_LOCAL, "not present remotely", key)
            )

        return plan
