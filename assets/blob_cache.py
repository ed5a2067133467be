"""LRU cache of binary content handed out as in-memory blob handles."""

import asyncio
import base64
import logging
from collections import OrderedDict
from typing import Optional

from assets.filename_service import get_mime_type
from common.constants import DEFAULT_BLOB_CACHE_SIZE
from storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class BlobHandle:
    """
    Displayable in-memory handle for a stored file.

    The handle owns the bytes until release() is called; after that it is
    unusable.
    """

    def __init__(self, path: str, data: bytes, mime_type: str):
        self.path = path
        self.mime_type = mime_type
        self._data: Optional[bytes] = data

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def size(self) -> int:
        return 0 if self._data is None else len(self._data)

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise ValueError(f"Blob handle for {self.path} has been released")
        return self._data

    def as_data_url(self) -> str:
        """
        Encode the content as a data: URL.
        """
        encoded = base64.b64encode(self.data).decode('ascii')
        return f"data:{self.mime_type};base64,{encoded}"

    def release(self) -> None:
        self._data = None

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self.size} bytes"
        return f"BlobHandle({self.path!r}, {self.mime_type}, {state})"


class BlobCache:
    """
    Bounded LRU map: path -> BlobHandle.

    Evicted and invalidated handles are released before they leave the map.
    All bookkeeping runs under one asyncio.Lock.
    """

    def __init__(self, backend: StorageBackend, capacity: int = DEFAULT_BLOB_CACHE_SIZE):
        """
        Initialize cache.

        Args:
            backend: Backend used to read on a miss
            capacity: Maximum number of cached handles

        Raises:
            ValueError: If capacity is smaller than 1
        """
        if capacity < 1:
            raise ValueError(f"Blob cache capacity must be positive, got {capacity}")

        self.backend = backend
        self.capacity = capacity
        self._entries: "OrderedDict[str, BlobHandle]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    async def get(self, path: str) -> BlobHandle:
        """
        Return the handle for path, reading it through the backend on a miss.

        Args:
            path: Path of the stored file

        Returns:
            BlobHandle owned by the cache

        Raises:
            PathNotFoundError: If the file does not exist
        """
        async with self._lock:
            handle = self._entries.get(path)
            if handle is not None:
                self._entries.move_to_end(path)
                self.hits += 1
                return handle

            self.misses += 1
            data = await self.backend.read_binary_file(path)
            handle = BlobHandle(path, data, get_mime_type(path))
            self._entries[path] = handle

            while len(self._entries) > self.capacity:
                evicted_path = next(iter(self._entries))
                self._entries[evicted_path].release()
                del self._entries[evicted_path]
                logger.debug(f"Evicted blob {evicted_path}")

            return handle

    def get_cached(self, path: str) -> Optional[BlobHandle]:
        """
        Peek at a cached handle without reading or touching recency.
        """
        return self._entries.get(path)

    async def invalidate(self, path: str) -> bool:
        """
        Release and drop the handle for path.

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            handle = self._entries.get(path)
            if handle is None:
                return False
            handle.release()
            del self._entries[path]
            return True

    async def clear(self) -> None:
        async with self._lock:
            for handle in self._entries.values():
                handle.release()
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cleared {count} cached blob(s)")
