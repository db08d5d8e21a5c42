"""Sync engine for bunnysync - one-way mirroring between a directory and storage."""

from .comparator import Comparison, FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine, SyncSummary
from .executor import TransferExecutor, TransferOutcome, TransferResult
from .operations import SyncOperations
from .options import SyncDirection, SyncOptions, parse_patterns
from .planner import ChangePlanner, TransferItem, TransferPlan, UploadTier
from .progress import (
    FileProgress,
    FileProgressSnapshot,
    ProgressSampler,
    ProgressSnapshot,
    SyncProgressTracker,
)
from .scanner import DirectoryScanner, LocalEntry, RemoteEntry, RemoteScanner
from .tiers import SuffixRule, Tier, TierClassifier, UploadLastRule

__all__ = [
    "SyncEngine",
    "SyncSummary",
    "SyncDirection",
    "SyncOptions",
    "parse_patterns",
    "SyncOperations",
    "DirectoryScanner",
    "RemoteScanner",
    "LocalEntry",
    "RemoteEntry",
    "FileComparator",
    "Comparison",
    "SyncAction",
    "SyncDecision",
    "ChangePlanner",
    "TransferItem",
    "TransferPlan",
    "UploadTier",
    "Tier",
    "TierClassifier",
    "UploadLastRule",
    "SuffixRule",
    "TransferExecutor",
    "TransferOutcome",
    "TransferResult",
    "SyncProgressTracker",
    "ProgressSampler",
    "ProgressSnapshot",
    "FileProgress",
    "FileProgressSnapshot",
]
