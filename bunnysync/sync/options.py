"""Sync direction and run options."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import ConfigError
from ..utils import (
    DEFAULT_CONCURRENCY,
    DEFAULT_REGION,
    MAX_CONCURRENCY,
    MIN_CONCURRENCY,
    join_key,
)


class SyncDirection(str, Enum):
    """Direction of a sync run."""

    UPLOAD = "upload"
    """Make the remote storage match the local directory"""

    DOWNLOAD = "download"
    """Make the local directory match the remote storage"""

    @classmethod
    def from_string(cls, value: Union[str, "SyncDirection"]) -> "SyncDirection":
        """Parse a direction name (case-insensitive).

        Raises:
            ConfigError: If the value is not a known direction
        """
        if isinstance(value, SyncDirection):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(
                f"Invalid direction '{value}': must be 'upload' or 'download'"
            ) from None

    @property
    def verb(self) -> str:
        """Past-tense verb used in summaries."""
        return "uploaded" if self is SyncDirection.UPLOAD else "downloaded"

    @property
    def arrow(self) -> str:
        return "Local → Remote" if self is SyncDirection.UPLOAD else "Remote → Local"


def parse_patterns(values: Optional[list[str]]) -> list[str]:
    """Split comma-separated pattern lists into a flat, trimmed list.

    Examples:
        >>> parse_patterns(["hash.txt, manifest.json", "sw.js"])
        ['hash.txt', 'manifest.json', 'sw.js']
    """
    patterns: list[str] = []
    for value in values or []:
        patterns.extend(p.strip() for p in value.split(",") if p.strip())
    return patterns


@dataclass
class SyncOptions:
    """Configuration for one sync run."""

    local_path: Path
    """Local directory to sync"""

    storage_zone: str
    """Storage zone name"""

    access_key: str = ""
    """Storage zone access key"""

    direction: SyncDirection = SyncDirection.UPLOAD
    """Which side is the source"""

    remote_path: str = ""
    """Optional sub-path inside the storage zone"""

    region: str = DEFAULT_REGION
    """Main replication region"""

    concurrency: int = DEFAULT_CONCURRENCY
    """Maximum number of simultaneous transfers (1-64)"""

    dry_run: bool = False
    """Compute and report everything but issue no mutating calls"""

    upload_last: list[str] = field(default_factory=list)
    """File names / path suffixes uploaded after everything else"""

    fail_fast: bool = True
    """Abort the run on the first failed transfer or deletion"""

    verbose: bool = False
    """Report every skipped file"""

    def __post_init__(self) -> None:
        self.local_path = Path(self.local_path).expanduser()
        self.direction = SyncDirection.from_string(self.direction)
        self.remote_path = self.remote_path.strip().strip("/") if self.remote_path else ""
        self.upload_last = parse_patterns(self.upload_last)

        if not self.storage_zone:
            raise ConfigError("Storage zone is required")
        if not MIN_CONCURRENCY <= self.concurrency <= MAX_CONCURRENCY:
            raise ConfigError(
                f"Concurrency must be between {MIN_CONCURRENCY} and "
                f"{MAX_CONCURRENCY}, got {self.concurrency}"
            )

    @property
    def remote_base(self) -> str:
        """Key prefix of the synced namespace, e.g. ``zone/sub/path``."""
        return join_key(self.storage_zone, self.remote_path)

    @property
    def remote_base_path(self) -> str:
        """Directory path to list, e.g. ``zone/sub/path/``."""
        return self.remote_base + "/"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncOptions":
        """Create options from a dictionary (e.g. parsed JSON/CLI values)."""
        return cls(
            local_path=Path(data["local_path"]),
            storage_zone=data.get("storage_zone", ""),
            access_key=data.get("access_key", ""),
            direction=data.get("direction", SyncDirection.UPLOAD),
            remote_path=data.get("remote_path", ""),
            region=data.get("region", DEFAULT_REGION),
            concurrency=int(data.get("concurrency", DEFAULT_CONCURRENCY)),
            dry_run=bool(data.get("dry_run", False)),
            upload_last=list(data.get("upload_last", [])),
            fail_fast=bool(data.get("fail_fast", True)),
            verbose=bool(data.get("verbose", False)),
        )
