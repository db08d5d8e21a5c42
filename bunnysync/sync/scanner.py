"""Inventory building for sync operations.

Both sides of a sync are flattened into ``dict[key, entry]`` inventories
using the same key space: ``zone/remote/path/relative/file.txt``.
Directories never appear in an inventory.
"""

import logging
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..api import BunnyStorageClient
from ..exceptions import LocalIOError, NotFoundError
from ..models import StorageObject
from ..utils import join_key, normalize_key

logger = logging.getLogger(__name__)


def relative_to_base(key: str, base: str) -> str:
    """Strip the ``base/`` prefix from a key.

    Examples:
        >>> relative_to_base("zone/site/css/a.css", "zone/site")
        'css/a.css'
    """
    prefix = base.rstrip("/") + "/"
    if key.startswith(prefix):
        return key[len(prefix) :]
    return key


@dataclass(frozen=True)
class LocalEntry:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    key: str
    """Object key the file maps to"""

    relative_path: str
    """Path relative to the sync root (forward slashes)"""

    size: int
    """File size in bytes"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path, key_prefix: str) -> "LocalEntry":
        """Create LocalEntry from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Sync root used for calculating relative paths
            key_prefix: Key prefix of the remote namespace

        Returns:
            LocalEntry instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()
        return cls(
            path=file_path,
            key=join_key(key_prefix, relative_path),
            relative_path=relative_path,
            size=stat.st_size,
        )


@dataclass(frozen=True)
class RemoteEntry:
    """Represents a remote object with metadata."""

    key: str
    """Normalized object key"""

    relative_path: str
    """Path relative to the remote base"""

    size: int
    """Object size in bytes"""

    is_directory: bool = False
    """Whether the listing reported a directory"""

    checksum: Optional[str] = None
    """SHA-256 hex digest, if the server provided one"""

    @classmethod
    def from_storage_object(cls, obj: StorageObject, base: str) -> "RemoteEntry":
        key = normalize_key(obj.full_path)
        return cls(
            key=key,
            relative_path=relative_to_base(key, base),
            size=obj.length,
            is_directory=obj.is_directory,
            checksum=obj.checksum,
        )


class DirectoryScanner:
    """Builds the local inventory by walking a directory tree.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("./dist"), "my-zone/site")
        >>> files["my-zone/site/index.html"].relative_path
        'index.html'
    """

    def scan_local(self, root: Path, key_prefix: str) -> dict[str, LocalEntry]:
        """Recursively scan a local directory.

        Unreadable sub-directories and files are skipped with a warning.

        Args:
            root: Directory to scan
            key_prefix: Key prefix of the remote namespace (``zone/sub``)

        Returns:
            Mapping of object key to LocalEntry

        Raises:
            LocalIOError: If root does not exist or is not a directory
        """
        root = root.resolve()
        if not root.exists():
            raise LocalIOError(f"Local directory not found: {root}", root)
        if not root.is_dir():
            raise LocalIOError(f"Local path is not a directory: {root}", root)

        inventory: dict[str, LocalEntry] = {}
        pending = [root]

        while pending:
            directory = pending.pop()
            try:
                children = sorted(directory.iterdir())
            except PermissionError as e:
                logger.warning("Skipping unreadable directory %s: %s", directory, e)
                continue

            for item in children:
                if item.is_dir():
                    if item.is_symlink():
                        logger.debug("Not following symlinked directory %s", item)
                        continue
                    pending.append(item)
                elif item.is_file():
                    try:
                        entry = LocalEntry.from_path(item, root, key_prefix)
                    except OSError as e:
                        # Skip files we can't stat
                        logger.warning("Skipping unreadable file %s: %s", item, e)
                        continue
                    inventory[entry.key] = entry

        logger.debug("Local scan of %s found %d file(s)", root, len(inventory))
        return inventory


class RemoteScanner:
    """Builds the remote inventory by listing directories recursively.

    Directories are processed from an explicit worklist, one listing call
    per directory. With ``max_workers > 1`` independent directories are
    listed in parallel.
    """

    def __init__(
        self,
        client: BunnyStorageClient,
        max_workers: int = 1,
        allow_missing_base: bool = False,
    ):
        """Initialize remote scanner.

        Args:
            client: Storage client
            max_workers: Number of directories listed concurrently
            allow_missing_base: Treat a missing base directory as empty
                instead of failing (only safe when nothing local is deleted)
        """
        self.client = client
        self.max_workers = max(1, max_workers)
        self.allow_missing_base = allow_missing_base

    def _list_directory(self, directory: str, is_base: bool) -> list[StorageObject]:
        try:
            return self.client.list_objects(directory)
        except NotFoundError:
            if is_base and self.allow_missing_base:
                # Remote prefix does not exist yet; nothing to compare against
                logger.debug("Remote base %s not found, treating as empty", directory)
                return []
            raise

    def _collect(
        self,
        objects: list[StorageObject],
        base: str,
        inventory: dict[str, RemoteEntry],
        pending: deque,
        visited: set[str],
    ) -> None:
        for obj in objects:
            entry = RemoteEntry.from_storage_object(obj, base)
            if entry.is_directory:
                sub_directory = entry.key.rstrip("/") + "/"
                if sub_directory not in visited:
                    visited.add(sub_directory)
                    pending.append(sub_directory)
            else:
                inventory[entry.key] = entry

    def scan(self, base_path: str) -> dict[str, RemoteEntry]:
        """List a remote directory tree into a flat inventory.

        Args:
            base_path: Directory to start from (``zone/`` or ``zone/sub/``)

        Returns:
            Mapping of object key to RemoteEntry (files only)

        Raises:
            NotFoundError: If a directory (including the base, unless
                ``allow_missing_base`` is set) does not exist
            StorageError: If any other listing call fails
        """
        base_dir = normalize_key(base_path).rstrip("/") + "/"
        base = base_dir.rstrip("/")
        inventory: dict[str, RemoteEntry] = {}
        pending: deque = deque([base_dir])
        visited = {base_dir}

        if self.max_workers == 1:
            while pending:
                directory = pending.popleft()
                objects = self._list_directory(directory, directory == base_dir)
                self._collect(objects, base, inventory, pending, visited)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                in_flight: dict[Future, str] = {}
                while pending or in_flight:
                    while pending:
                        directory = pending.popleft()
                        future = executor.submit(
                            self._list_directory, directory, directory == base_dir
                        )
                        in_flight[future] = directory

                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        in_flight.pop(future)
                        # A failed listing aborts the whole scan
                        self._collect(
                            future.result(), base, inventory, pending, visited
                        )

        logger.debug(
            "Remote scan of %s listed %d directories, found %d file(s)",
            base_dir,
            len(visited),
            len(inventory),
        )
        return inventory
