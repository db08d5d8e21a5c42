"""Data models for storage API responses."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class StorageObject:
    """A single entry returned by a storage directory listing."""

    guid: str
    """Unique identifier of the object"""

    storage_zone_name: str
    """Storage zone the object lives in"""

    path: str
    """Parent directory path, e.g. ``/zone/sub/``"""

    object_name: str
    """Object (file or directory) name"""

    length: int = 0
    """Size in bytes (0 for directories)"""

    is_directory: bool = False
    """Whether this entry is a directory marker"""

    checksum: Optional[str] = None
    """SHA-256 hex digest reported by the server, if any"""

    last_changed: Optional[str] = None
    """ISO timestamp of last modification"""

    date_created: Optional[str] = None
    """ISO timestamp of creation"""

    @property
    def full_path(self) -> str:
        """Path of the object including its name."""
        return self.path + self.object_name

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "StorageObject":
        """Create a StorageObject from one element of a listing response.

        Args:
            data: JSON object as returned by the storage API

        Returns:
            StorageObject instance
        """
        checksum = data.get("Checksum") or None
        return cls(
            guid=data.get("Guid", ""),
            storage_zone_name=data.get("StorageZoneName", ""),
            path=data.get("Path", ""),
            object_name=data.get("ObjectName", ""),
            length=int(data.get("Length") or 0),
            is_directory=bool(data.get("IsDirectory", False)),
            checksum=checksum,
            last_changed=data.get("LastChanged"),
            date_created=data.get("DateCreated"),
        )

    @classmethod
    def list_from_api_response(cls, data: Any) -> list["StorageObject"]:
        """Parse a full listing response (a JSON array)."""
        if not data:
            return []
        return [cls.from_api_response(item) for item in data]
