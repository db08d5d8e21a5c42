"""API client for BunnyCDN edge storage."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

import httpx

from .exceptions import (
    AuthenticationError,
    ChecksumMismatchError,
    ConfigError,
    LocalIOError,
    NotFoundError,
    StorageError,
    StorageNetworkError,
)
from .models import StorageObject
from .utils import (
    DEFAULT_REGION,
    DEFAULT_TIMEOUT,
    TRANSFER_CHUNK_SIZE,
    calculate_sha256,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

# Process umask, read once at import (os.umask can only be read by setting it)
_UMASK = os.umask(0)
os.umask(_UMASK)


def _target_mode(path: Path) -> int:
    """Mode a downloaded file should get: the existing file's, or 0666 & ~umask."""
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        return 0o666 & ~_UMASK


def get_base_url(region: str | None) -> str:
    """Return the storage endpoint for a replication region.

    Args:
        region: Region code such as "de", "ny", "sg" (empty means "de")

    Returns:
        Base URL ending with a slash
    """
    if not region or region.lower() == DEFAULT_REGION:
        return "https://storage.bunnycdn.com/"
    return f"https://{region.lower()}.storage.bunnycdn.com/"


class BunnyStorageClient:
    """Client for the BunnyCDN storage HTTP API.

    Objects are addressed by path, always starting with the storage zone
    name (``zone/dir/file.txt``). Directories are listed by requesting their
    path with a trailing slash.
    """

    def __init__(
        self,
        storage_zone: str,
        access_key: str,
        region: str | None = DEFAULT_REGION,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize storage client.

        Args:
            storage_zone: Name of the storage zone
            access_key: Storage zone password / API access key
            region: Main replication region (default: "de")
            timeout: Request timeout in seconds (default: 120)
        """
        if not storage_zone:
            raise ConfigError("Storage zone name is required")
        if not access_key:
            raise ConfigError(
                "Access key not configured. Please set BUNNY_ACCESS_KEY "
                "environment variable or run 'bunnysync init'."
            )

        self.storage_zone = storage_zone
        self.access_key = access_key
        self.region = region or DEFAULT_REGION
        self.base_url = get_base_url(region)
        self.timeout = timeout

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={"AccessKey": self.access_key},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> BunnyStorageClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================
    # Path handling
    # =========================

    def normalize_path(self, path: str, is_directory: bool | None = None) -> str:
        """Normalize a path string for API calls.

        Args:
            path: Object or directory path, must start with the zone name
            is_directory: True to force a trailing slash, False to reject one,
                None to leave it as is

        Returns:
            Normalized path without leading slash

        Raises:
            StorageError: If the path is outside the zone or has the
                wrong shape for the requested kind
        """
        path = path.strip().replace("\\", "/").lstrip("/")

        if not path.startswith(f"{self.storage_zone}/") and path != self.storage_zone:
            raise StorageError(
                "Path validation failed. File path must begin with "
                f"/{self.storage_zone}/."
            )

        if is_directory is True:
            path = path.rstrip("/") + "/"
        elif is_directory is False and path.endswith("/"):
            raise StorageError("The requested path is invalid, cannot be directory.")

        while "//" in path:
            path = path.replace("//", "/")

        return path

    def _map_status_error(self, status_code: int, path: str) -> StorageError:
        """Map an unsuccessful HTTP status to an exception."""
        if status_code == 404:
            return NotFoundError(path)
        if status_code == 401:
            return AuthenticationError(self.storage_zone)
        return StorageError(
            f"Storage request for {path} failed with status {status_code}",
            status_code=status_code,
        )

    # =========================
    # Listing
    # =========================

    def list_objects(self, path: str) -> list[StorageObject]:
        """List all objects in a directory.

        Args:
            path: Directory path (``zone/`` or ``zone/sub/dir/``)

        Returns:
            Entries directly inside the directory (files and directories)

        Raises:
            NotFoundError: If the directory does not exist
            AuthenticationError: If the access key is rejected
            StorageError: For any other failure
        """
        normalized = self.normalize_path(path, is_directory=True)
        client = self._get_client()

        try:
            response = client.get(normalized)
        except httpx.RequestError as e:
            raise StorageNetworkError(f"Network error while listing {path}: {e}") from e

        if not response.is_success:
            raise self._map_status_error(response.status_code, normalized)

        if not response.content or not response.content.strip():
            return []

        try:
            data = response.json()
        except ValueError as e:
            raise StorageError(f"Invalid listing response for {normalized}") from e

        return StorageObject.list_from_api_response(data)

    # =========================
    # Upload Operations
    # =========================

    def upload_file(
        self,
        local_path: Path,
        path: str,
        checksum: str | None = None,
        validate_checksum: bool = True,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Upload a local file, streaming it in chunks.

        Args:
            local_path: File to upload
            path: Destination object path (must not end with a slash)
            checksum: Precomputed SHA-256 hex digest of the file
            validate_checksum: Compute the digest when none is given so the
                server can verify the content
            progress_callback: Optional callback function(bytes_uploaded,
                total_bytes)

        Raises:
            LocalIOError: If the local file cannot be read
            ChecksumMismatchError: If the server rejects the checksum
            StorageError: For any other failure
        """
        normalized = self.normalize_path(path, is_directory=False)

        try:
            file_size = local_path.stat().st_size
            if validate_checksum and not checksum:
                checksum = calculate_sha256(local_path)
        except OSError as e:
            raise LocalIOError(f"Cannot read {local_path}: {e}", local_path) from e

        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Length": str(file_size),
        }
        if checksum:
            headers["Checksum"] = checksum.upper()

        def file_reader() -> Any:
            bytes_uploaded = 0
            with open(local_path, "rb") as f:
                while True:
                    chunk = f.read(TRANSFER_CHUNK_SIZE)
                    if not chunk:
                        break
                    bytes_uploaded += len(chunk)
                    if progress_callback:
                        progress_callback(bytes_uploaded, file_size)
                    yield chunk

        client = self._get_client()
        try:
            response = client.put(normalized, content=file_reader(), headers=headers)
        except httpx.RequestError as e:
            raise StorageNetworkError(
                f"Network error during upload of {normalized}: {e}"
            ) from e
        except OSError as e:
            raise LocalIOError(f"Cannot read {local_path}: {e}", local_path) from e

        if not response.is_success:
            if response.status_code == 400 and checksum:
                raise ChecksumMismatchError(normalized, checksum)
            raise self._map_status_error(response.status_code, normalized)

        logger.debug("Uploaded %s (%d bytes)", normalized, file_size)

    # =========================
    # Download Operations
    # =========================

    def download_file(
        self,
        path: str,
        output_path: Path,
        progress_callback: ProgressCallback | None = None,
    ) -> Path:
        """Download an object to a local file.

        The body is streamed into a temporary file next to the target, which
        replaces the target only after the download completed. A failed
        download leaves an existing file untouched.

        Args:
            path: Object path
            output_path: Where to write the file (parent must exist)
            progress_callback: Optional callback function(bytes_downloaded,
                total_bytes)

        Returns:
            Path where the file was saved

        Raises:
            NotFoundError: If the object does not exist
            LocalIOError: If the file cannot be written
            StorageError: For any other failure
        """
        normalized = self.normalize_path(path, is_directory=False)
        output_path = Path(output_path)
        client = self._get_client()
        partial_path: Path | None = None

        try:
            with client.stream("GET", normalized) as response:
                if not response.is_success:
                    raise self._map_status_error(response.status_code, normalized)

                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0

                with tempfile.NamedTemporaryFile(
                    dir=output_path.parent,
                    prefix=f".{output_path.name}.",
                    suffix=".part",
                    delete=False,
                ) as f:
                    partial_path = Path(f.name)
                    for chunk in response.iter_bytes(chunk_size=TRANSFER_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)

            os.chmod(partial_path, _target_mode(output_path))
            os.replace(partial_path, output_path)
            partial_path = None
            return output_path

        except httpx.RequestError as e:
            raise StorageNetworkError(
                f"Network error during download of {normalized}: {e}"
            ) from e
        except OSError as e:
            raise LocalIOError(
                f"Failed to write {output_path}: {e}", output_path
            ) from e
        finally:
            if partial_path is not None:
                try:
                    partial_path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(
                        "Could not remove partial download %s: %s", partial_path, e
                    )

    # =========================
    # Delete Operations
    # =========================

    def delete_object(self, path: str) -> bool:
        """Delete an object or a directory including all its contents.

        Args:
            path: Object or directory path

        Returns:
            True if the server confirmed the deletion

        Raises:
            NotFoundError: If the object does not exist
            AuthenticationError: If the access key is rejected
        """
        normalized = self.normalize_path(path)
        client = self._get_client()

        try:
            response = client.delete(normalized)
        except httpx.RequestError as e:
            raise StorageNetworkError(
                f"Network error during delete of {normalized}: {e}"
            ) from e

        if response.status_code in (401, 404):
            raise self._map_status_error(response.status_code, normalized)

        return response.is_success
