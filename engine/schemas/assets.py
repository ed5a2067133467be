"""Pydantic schemas for asset endpoints."""

from typing import List, Optional

from pydantic import BaseModel

from common.types import AssetEntry


class UploadResponse(BaseModel):
    """Response model for asset upload."""
    success: bool
    path: Optional[str] = None
    is_duplicate: bool = False
    existing_filename: Optional[str] = None
    error: Optional[str] = None


class AssetResponse(BaseModel):
    """Response model for a single asset."""
    filename: str
    hash: str
    size: int
    mime_type: str
    uploaded_at: str

    @classmethod
    def from_entry(cls, entry: AssetEntry) -> "AssetResponse":
        return cls(
            filename=entry.filename,
            hash=entry.hash,
            size=entry.size,
            mime_type=entry.mime_type,
            uploaded_at=entry.uploaded_at,
        )


class ListAssetsResponse(BaseModel):
    """Response model for asset listing."""
    folder: str
    assets: List[AssetResponse]


class DeleteAssetResponse(BaseModel):
    """Response model for asset deletion."""
    deleted: bool
    filename: str


class UnusedAssetsRequest(BaseModel):
    """Request model for the unused-asset sweep."""
    references: List[str]
    clean: bool = False


class UnusedAssetsResponse(BaseModel):
    """Response model for the unused-asset sweep."""
    unused: List[str]
    deleted: List[str]


class VerifyAssetsResponse(BaseModel):
    """Response model for asset verification."""
    folder: str
    damaged: List[str]
