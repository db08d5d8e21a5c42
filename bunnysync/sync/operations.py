"""Sync operations wrapper for unified upload/download interface."""

import logging
from pathlib import Path
from typing import Callable, Optional

from ..api import BunnyStorageClient
from ..exceptions import LocalIOError
from .planner import TransferItem

logger = logging.getLogger(__name__)


class SyncOperations:
    """Single-object operations used by the executor and deletion pass."""

    def __init__(self, client: BunnyStorageClient):
        """Initialize sync operations.

        Args:
            client: Storage API client
        """
        self.client = client

    def upload_file(
        self,
        item: TransferItem,
        checksum: Optional[str] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        """Upload a local file to its object key.

        Args:
            item: Transfer item (local_path is the source)
            checksum: Precomputed SHA-256 of the file, if already known
            progress_callback: Optional progress callback
                function(bytes_uploaded, total_bytes)
        """
        self.client.upload_file(
            local_path=item.local_path,
            path=item.key,
            checksum=checksum,
            validate_checksum=True,
            progress_callback=progress_callback,
        )

    def download_file(
        self,
        item: TransferItem,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """Download an object to its local target path.

        Args:
            item: Transfer item (local_path is the target)
            progress_callback: Optional progress callback
                function(bytes_downloaded, total_bytes)

        Returns:
            Path where file was saved
        """
        # Ensure parent directory exists
        try:
            item.local_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(
                f"Cannot create directory {item.local_path.parent}: {e}",
                item.local_path.parent,
            ) from e

        return self.client.download_file(
            path=item.key,
            output_path=item.local_path,
            progress_callback=progress_callback,
        )

    def delete_remote(self, key: str) -> bool:
        """Delete a remote object.

        Returns:
            True if the server confirmed the deletion
        """
        return self.client.delete_object(key)

    def delete_local(self, path: Path, root: Optional[Path] = None) -> None:
        """Delete a local file, then prune directories left empty.

        Args:
            path: File to delete
            root: Sync root; directories are pruned up to (not including) it
        """
        try:
            path.unlink()
        except OSError as e:
            raise LocalIOError(f"Cannot delete {path}: {e}", path) from e

        if root is None:
            return

        root = root.resolve()
        parent = path.parent
        while parent != root and root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                # Not empty (or not removable); stop pruning
                break
            logger.debug("Removed empty directory %s", parent)
            parent = parent.parent
