"""Binary asset handling: naming, hashing, dedup index, upload service, blob cache."""

from assets.asset_service import AssetService
from assets.blob_cache import BlobCache, BlobHandle
from assets.filename_service import FilenameFormat

__all__ = [
    "AssetService",
    "BlobCache",
    "BlobHandle",
    "FilenameFormat",
]
