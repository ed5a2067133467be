"""Asset service: upload pipeline, per-folder index persistence, and GC."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from assets.asset_index import (
    AssetIndex,
    add_entry,
    check_consistency,
    create_empty_index,
    existing_filename_for,
    index_from_dict,
    index_to_dict,
    remove_entry,
    sort_by_uploaded_desc,
)
from assets.blob_cache import BlobCache
from assets.filename_service import FilenameFormat, generate_filename, get_mime_type
from assets.hash_service import (
    IncrementalHasher,
    full_hash,
    is_large,
    quick_hash,
    quick_hash_size,
    verify_hash,
)
from common.constants import (
    ASSETS_DIR_NAME,
    DEFAULT_APP_NAME,
    DEFAULT_ASSET_FOLDER,
    PRECHECK_SIZE_BYTES,
    STORE_DIR_NAME,
)
from common.exceptions import IndexCorruptionError, PathNotFoundError
from common.types import AssetEntry, UploadResult
from storage.atomic_write import cleanup_temp_files, is_temp_file, write_atomic
from storage.backend import StorageBackend
from storage.paths import build_asset_path, join_path

logger = logging.getLogger(__name__)

# Piece size used when hashing large uploads incrementally
HASH_PIECE_BYTES = 16 * PRECHECK_SIZE_BYTES


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds')


def _hash_content(data: bytes) -> str:
    if not is_large(len(data)):
        return full_hash(data)

    hasher = IncrementalHasher()
    view = memoryview(data)
    for offset in range(0, len(data), HASH_PIECE_BYTES):
        hasher.update(view[offset:offset + HASH_PIECE_BYTES])
    return hasher.finalize()


class AssetService:
    """
    Owns the assets of every folder under '.<app>/assets/' and their indices
    under '.<app>/store/<folder>.json'.

    Indices are cached in memory once loaded. Uploads and deletes into the same
    folder are serialized by a per-folder lock, so the dedup check, the byte
    write, and the index commit run as one unit.
    """

    def __init__(
        self,
        backend: StorageBackend,
        app_name: str = DEFAULT_APP_NAME,
        filename_format: FilenameFormat = FilenameFormat.ORIGINAL,
        blob_cache: Optional[BlobCache] = None,
    ):
        self.backend = backend
        self.app_name = app_name
        self.filename_format = FilenameFormat(filename_format)
        self.blob_cache = blob_cache
        self._indices: Dict[str, AssetIndex] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def asset_dir(self, folder: str = DEFAULT_ASSET_FOLDER) -> str:
        return f".{self.app_name}/{ASSETS_DIR_NAME}/{folder}"

    def asset_path(self, filename: str, folder: str = DEFAULT_ASSET_FOLDER) -> str:
        return build_asset_path(filename, self.app_name, folder)

    def index_path(self, folder: str = DEFAULT_ASSET_FOLDER) -> str:
        return f".{self.app_name}/{STORE_DIR_NAME}/{folder}.json"

    def _lock_for(self, folder: str) -> asyncio.Lock:
        lock = self._locks.get(folder)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[folder] = lock
        return lock

    async def initialize(self, folders: Iterable[str] = (DEFAULT_ASSET_FOLDER,)) -> None:
        """
        Startup hook: create directories, sweep orphaned temp files, load indices.

        Must run before any other write to the asset directories.

        Args:
            folders: Asset folders to prepare
        """
        await self.backend.mkdir(f".{self.app_name}/{STORE_DIR_NAME}", recursive=True)

        for folder in folders:
            directory = self.asset_dir(folder)
            await self.backend.mkdir(directory, recursive=True)
            await cleanup_temp_files(self.backend, directory)

        for folder in folders:
            index = await self.load_index(folder)
            logger.info(f"Asset folder '{folder}' ready with {len(index)} asset(s)")

    async def get_index(self, folder: str = DEFAULT_ASSET_FOLDER) -> AssetIndex:
        """
        Get the in-memory index for a folder, loading it on first use.
        """
        index = self._indices.get(folder)
        if index is None:
            index = await self.load_index(folder)
        return index

    async def load_index(self, folder: str = DEFAULT_ASSET_FOLDER) -> AssetIndex:
        """
        Load a folder's index from storage.

        A missing index is rebuilt from the asset directory. A corrupt one is
        backed up as '<index>.bak' and rebuilt; corruption is never raised.

        Args:
            folder: Asset folder

        Returns:
            Loaded (or rebuilt) AssetIndex
        """
        path = self.index_path(folder)

        try:
            raw = await self.backend.read_binary_file(path)
        except PathNotFoundError:
            logger.info(f"No asset index for '{folder}', scanning asset directory")
            return await self.rebuild_index(folder)

        try:
            index = index_from_dict(json.loads(raw.decode('utf-8')))
        except (UnicodeDecodeError, json.JSONDecodeError, IndexCorruptionError) as e:
            logger.warning(f"Asset index for '{folder}' is corrupt ({e}), rebuilding")
            try:
                await write_atomic(self.backend, f"{path}.bak", raw)
            except Exception as backup_error:
                logger.warning(f"Could not back up corrupt index {path}: {backup_error}")
            return await self.rebuild_index(folder)

        self._indices[folder] = index
        logger.debug(f"Loaded asset index for '{folder}' ({len(index)} entries)")
        return index

    async def rebuild_index(self, folder: str = DEFAULT_ASSET_FOLDER) -> AssetIndex:
        """
        Rebuild a folder's index by hashing every file in its asset directory.

        Files whose content duplicates an already indexed file are left out of
        the index. Temp files are ignored.

        Args:
            folder: Asset folder

        Returns:
            Rebuilt AssetIndex, already persisted
        """
        directory = self.asset_dir(folder)
        index = create_empty_index()

        for info in await self.backend.list_dir(directory):
            if not info.is_file or is_temp_file(info.name):
                continue

            data = await self.backend.read_binary_file(join_path(directory, info.name))
            content_hash = _hash_content(data)

            owner = existing_filename_for(index, content_hash)
            if owner is not None:
                logger.warning(f"'{info.name}' duplicates '{owner}' in '{folder}', not indexed")
                continue

            uploaded_at = _now_iso()
            if info.modified_at is not None:
                uploaded_at = datetime.fromtimestamp(info.modified_at / 1000, timezone.utc).isoformat(timespec='milliseconds')

            index = add_entry(index, AssetEntry(
                filename=info.name,
                hash=content_hash,
                size=len(data),
                mime_type=get_mime_type(info.name),
                uploaded_at=uploaded_at,
            ))

        await self._save_index(folder, index)

        logger.info(f"Rebuilt asset index for '{folder}' with {len(index)} entries")
        return index

    async def _save_index(self, folder: str, index: AssetIndex) -> None:
        """
        Commit a candidate index: check it, write it atomically, then adopt it.

        Raises:
            IndexCorruptionError: If the candidate fails the consistency check
        """
        if not check_consistency(index):
            raise IndexCorruptionError(f"Refusing to save inconsistent index for '{folder}'")

        payload = json.dumps(index_to_dict(index), indent=2, ensure_ascii=False)
        await self.backend.mkdir(f".{self.app_name}/{STORE_DIR_NAME}", recursive=True)
        await write_atomic(self.backend, self.index_path(folder), payload)
        self._indices[folder] = index

    async def _existing_names(self, folder: str, index: AssetIndex) -> List[str]:
        names = set(index.filenames())
        for info in await self.backend.list_dir(self.asset_dir(folder)):
            names.add(info.name)
        return sorted(names)

    async def upload(self, filename: str, data: bytes,
                     folder: str = DEFAULT_ASSET_FOLDER) -> UploadResult:
        """
        Store bytes as an asset, reusing an existing file with identical content.

        Args:
            filename: Name supplied by the caller
            data: File content
            folder: Target asset folder

        Returns:
            UploadResult; failures are reported with success=False
        """
        try:
            async with self._lock_for(folder):
                return await self._upload_locked(filename, data, folder)
        except Exception as e:
            logger.error(f"Upload of '{filename}' to '{folder}' failed: {e}")
            return UploadResult(success=False, path=None, error=str(e))

    async def _upload_locked(self, filename: str, data: bytes, folder: str) -> UploadResult:
        index = await self.get_index(folder)

        may_exist = True
        if is_large(len(data)):
            quick = quick_hash(data)
            size = quick_hash_size(quick)
            may_exist = any(entry.size == size for entry in index.assets.values())
            if not may_exist:
                logger.debug(f"Quick hash {quick} rules out a duplicate for '{filename}'")

        content_hash = _hash_content(data)

        if may_exist:
            existing = existing_filename_for(index, content_hash)
            if existing is not None:
                logger.info(f"'{filename}' duplicates existing asset '{existing}' in '{folder}'")
                return UploadResult(
                    success=True,
                    path=existing,
                    is_duplicate=True,
                    existing_filename=existing,
                )

        existing_names = await self._existing_names(folder, index)
        stored_name = generate_filename(filename, self.filename_format, existing_names)
        target = self.asset_path(stored_name, folder)

        await self.backend.mkdir(self.asset_dir(folder), recursive=True)
        await write_atomic(self.backend, target, data)

        entry = AssetEntry(
            filename=stored_name,
            hash=content_hash,
            size=len(data),
            mime_type=get_mime_type(stored_name),
            uploaded_at=_now_iso(),
        )
        await self._save_index(folder, add_entry(index, entry))

        if self.blob_cache is not None:
            await self.blob_cache.invalidate(target)

        logger.info(f"Stored asset '{stored_name}' in '{folder}' ({len(data)} bytes)")
        return UploadResult(success=True, path=stored_name)

    async def delete(self, filename: str, folder: str = DEFAULT_ASSET_FOLDER) -> bool:
        """
        Delete an asset's bytes and its index entry.

        Args:
            filename: Stored filename
            folder: Asset folder

        Returns:
            True if anything was removed, False if the asset did not exist
        """
        async with self._lock_for(folder):
            index = await self.get_index(folder)
            target = self.asset_path(filename, folder)

            removed_file = False
            if await self.backend.exists(target):
                await self.backend.delete_file(target)
                removed_file = True

            in_index = filename in index.assets
            if in_index:
                await self._save_index(folder, remove_entry(index, filename))

            if self.blob_cache is not None:
                await self.blob_cache.invalidate(target)

        if removed_file or in_index:
            logger.info(f"Deleted asset '{filename}' from '{folder}'")
        return removed_file or in_index

    async def list_assets(self, folder: str = DEFAULT_ASSET_FOLDER) -> List[AssetEntry]:
        """
        List a folder's assets, newest first.
        """
        index = await self.get_index(folder)
        return sort_by_uploaded_desc(list(index.assets.values()))

    async def find_unused(self, folder: str, referenced_texts: Iterable[str]) -> List[str]:
        """
        Find assets whose filename appears in none of the given texts.

        Args:
            folder: Asset folder
            referenced_texts: Documents that may mention asset filenames

        Returns:
            Unreferenced filenames, sorted
        """
        texts = list(referenced_texts)
        index = await self.get_index(folder)
        return sorted(
            name for name in index.assets
            if not any(name in text for text in texts)
        )

    async def clean_unused(self, folder: str, referenced_texts: Iterable[str]) -> List[str]:
        """
        Delete every unreferenced asset in a folder.

        Returns:
            Filenames that were deleted
        """
        deleted = []
        for filename in await self.find_unused(folder, referenced_texts):
            if await self.delete(filename, folder):
                deleted.append(filename)

        if deleted:
            logger.info(f"Cleaned {len(deleted)} unused asset(s) from '{folder}'")
        return deleted

    async def verify_assets(self, folder: str = DEFAULT_ASSET_FOLDER) -> List[str]:
        """
        Check every indexed asset against its stored bytes.

        Returns:
            Filenames whose file is missing or whose content hash changed
        """
        index = await self.get_index(folder)
        damaged = []

        for filename, entry in sorted(index.assets.items()):
            try:
                data = await self.backend.read_binary_file(self.asset_path(filename, folder))
            except PathNotFoundError:
                logger.warning(f"Asset '{filename}' in '{folder}' is missing")
                damaged.append(filename)
                continue

            if not verify_hash(data, entry.hash):
                logger.warning(f"Asset '{filename}' in '{folder}' failed hash verification")
                damaged.append(filename)

        return damaged
