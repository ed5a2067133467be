"""Shared data type definitions (FileInfo, AssetEntry, UploadResult)."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class FileInfo:
    """
    Metadata for a single entry returned by a storage backend.
    """
    name: str
    path: str
    is_directory: bool
    is_file: bool
    size: Optional[int] = None
    modified_at: Optional[int] = None


@dataclass(frozen=True)
class AssetEntry:
    """
    A stored binary asset. Identity is the filename; the hash is only a lookup key.
    """
    filename: str
    hash: str
    size: int
    mime_type: str
    uploaded_at: str

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to the on-disk index shape.

        Returns:
            Dictionary with camelCase keys
        """
        return {
            "filename": self.filename,
            "hash": self.hash,
            "size": self.size,
            "mimeType": self.mime_type,
            "uploadedAt": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetEntry":
        """
        Build an entry from the on-disk index shape.

        Args:
            data: Dictionary with camelCase keys

        Returns:
            AssetEntry instance

        Raises:
            KeyError: If a required field is missing
        """
        return cls(
            filename=data["filename"],
            hash=data["hash"],
            size=int(data["size"]),
            mime_type=data["mimeType"],
            uploaded_at=data["uploadedAt"],
        )


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of an upload request.

    Attributes:
        success: False only when the upload failed with an error
        path: Stored filename (new or existing), None on failure
        is_duplicate: True when identical content was already stored
        existing_filename: Filename of the existing copy for duplicates
        error: Error message on failure
    """
    success: bool
    path: Optional[str]
    is_duplicate: bool = False
    existing_filename: Optional[str] = None
    error: Optional[str] = None
