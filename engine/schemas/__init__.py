"""Pydantic schemas for API requests and responses."""

from engine.schemas.assets import (
    AssetResponse,
    DeleteAssetResponse,
    ListAssetsResponse,
    UnusedAssetsRequest,
    UnusedAssetsResponse,
    UploadResponse,
    VerifyAssetsResponse,
)
from engine.schemas.common import ErrorResponse
from engine.schemas.snapshot import SaveSnapshotRequest, SaveSnapshotResponse, SnapshotResponse

__all__ = [
    "AssetResponse",
    "DeleteAssetResponse",
    "ListAssetsResponse",
    "UnusedAssetsRequest",
    "UnusedAssetsResponse",
    "UploadResponse",
    "VerifyAssetsResponse",
    "ErrorResponse",
    "SaveSnapshotRequest",
    "SaveSnapshotResponse",
    "SnapshotResponse",
]
