"""Composition root wiring backend, asset service, blob cache, and snapshot writer."""

import logging
from typing import Any, Dict, Iterable, Optional

from assets.asset_service import AssetService
from assets.blob_cache import BlobCache, BlobHandle
from assets.filename_service import FilenameFormat
from common.constants import (
    DEFAULT_APP_NAME,
    DEFAULT_ASSET_FOLDER,
    DEFAULT_BLOB_CACHE_SIZE,
    DEFAULT_SAVE_DELAY_SECONDS,
    STORE_DIR_NAME,
)
from common.types import UploadResult
from snapshot.models import SnapshotEnvelope
from snapshot.snapshot_writer import SnapshotWriter
from storage import create_backend
from storage.atomic_write import cleanup_temp_files
from storage.backend import StorageBackend
from storage.paths import relative_path, to_storage_path

logger = logging.getLogger(__name__)


class StorageEngine:
    """
    The engine's public entry points over one explicitly injected backend.
    """

    def __init__(
        self,
        backend: StorageBackend,
        app_name: str = DEFAULT_APP_NAME,
        blob_cache_size: int = DEFAULT_BLOB_CACHE_SIZE,
        save_delay: float = DEFAULT_SAVE_DELAY_SECONDS,
        filename_format: FilenameFormat = FilenameFormat.ORIGINAL,
        write_mirror: bool = True,
        asset_folders: Iterable[str] = (DEFAULT_ASSET_FOLDER,),
    ):
        self.backend = backend
        self.app_name = app_name
        self.asset_folders = list(asset_folders)
        self.blob_cache = BlobCache(backend, capacity=blob_cache_size)
        self.assets = AssetService(
            backend,
            app_name=app_name,
            filename_format=filename_format,
            blob_cache=self.blob_cache,
        )
        self.snapshots = SnapshotWriter(
            backend,
            app_name=app_name,
            delay=save_delay,
            write_mirror=write_mirror,
        )
        self._started = False

    async def startup(self) -> None:
        """
        Sweep orphaned temp files and load asset indices.

        Runs once per process before any other write.
        """
        if self._started:
            return

        store_dir = f".{self.app_name}/{STORE_DIR_NAME}"
        await self.backend.mkdir(store_dir, recursive=True)
        await cleanup_temp_files(self.backend, store_dir)
        await self.assets.initialize(self.asset_folders)

        self._started = True
        logger.info(f"Storage engine started [platform={self.backend.platform}]")

    async def shutdown(self) -> None:
        """
        Write any pending snapshot and release cached blobs.
        """
        try:
            await self.snapshots.flush()
        finally:
            await self.blob_cache.clear()
            self._started = False
        logger.info("Storage engine stopped")

    async def upload(self, filename: str, data: bytes,
                     folder: str = DEFAULT_ASSET_FOLDER) -> UploadResult:
        return await self.assets.upload(filename, data, folder)

    async def _cache_key(self, path: str) -> str:
        base = await self.backend.get_base_path()
        return relative_path(base, to_storage_path(path))

    async def load_as_blob(self, path: str) -> BlobHandle:
        """
        Get a displayable handle for a stored file through the blob cache.

        Absolute paths under the base directory share cache entries with their
        relative form.

        Raises:
            PathNotFoundError: If the file does not exist
        """
        return await self.blob_cache.get(await self._cache_key(path))

    async def load_asset_blob(self, filename: str,
                              folder: str = DEFAULT_ASSET_FOLDER) -> BlobHandle:
        return await self.blob_cache.get(self.assets.asset_path(filename, folder))

    async def load_unified_data(self) -> Dict[str, Any]:
        return await self.snapshots.load_unified_data()

    def schedule_save(self, data: Dict[str, Any]) -> None:
        self.snapshots.schedule_save(data)

    async def save_immediate(self, data: Dict[str, Any]) -> SnapshotEnvelope:
        return await self.snapshots.save_immediate(data)


def build_engine(
    backend_kind: str,
    base_path: str,
    db_path: Optional[str] = None,
    app_name: str = DEFAULT_APP_NAME,
    **options: Any,
) -> StorageEngine:
    """
    Create a backend for the given substrate and an engine over it.

    Args:
        backend_kind: 'native' or 'structured'
        base_path: Base directory
        db_path: SQLite file for the structured substrate
        app_name: Application name
        **options: Forwarded to StorageEngine

    Returns:
        StorageEngine instance (not yet started)
    """
    backend = create_backend(backend_kind, base_path, db_path=db_path, app_name=app_name)
    return StorageEngine(backend, app_name=app_name, **options)


def build_engine_from_config() -> StorageEngine:
    """
    Build the engine from environment configuration.
    """
    from engine import config

    return build_engine(
        config.BACKEND,
        config.BASE_PATH,
        db_path=config.STRUCTURED_DB_PATH,
        app_name=config.APP_NAME,
        blob_cache_size=config.BLOB_CACHE_SIZE,
        save_delay=config.SAVE_DELAY_SECONDS,
        filename_format=FilenameFormat(config.FILENAME_FORMAT),
        write_mirror=config.WRITE_MIRROR,
        asset_folders=config.ASSET_FOLDERS,
    )
