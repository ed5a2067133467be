"""Atomic writes via a uniquely named sibling temp file and rename.

A target path holds either its old content or its new content, never a
partial write. Temp files orphaned by a crash between the temp write and the
rename are removed by cleanup_temp_files at startup.
"""

import logging
import re
import time
import uuid
from typing import Union

from common.constants import TEMP_EXTENSION
from storage.backend import StorageBackend
from storage.paths import join_path

logger = logging.getLogger(__name__)

_UNIQUE_TEMP_SUFFIX = re.compile(r'\.\d+_[0-9a-f]+' + re.escape(TEMP_EXTENSION) + r'$')


def make_temp_path(target_path: str) -> str:
    """
    Build a unique sibling temp path for a target.

    Args:
        target_path: Final destination path

    Returns:
        '<target>.<epoch-ms>_<random>.tmp'
    """
    return f"{target_path}.{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{TEMP_EXTENSION}"


def is_temp_file(path: str) -> bool:
    return path.endswith(TEMP_EXTENSION)


def get_final_path(temp_path: str) -> str:
    """
    Recover the target path from a temp path.

    Args:
        temp_path: Path produced by make_temp_path (or a plain '<target>.tmp')

    Returns:
        Target path; paths that are not temp files are returned unchanged
    """
    if not is_temp_file(temp_path):
        return temp_path
    stripped = _UNIQUE_TEMP_SUFFIX.sub('', temp_path)
    if stripped != temp_path:
        return stripped
    return temp_path[:-len(TEMP_EXTENSION)]


async def write_atomic(backend: StorageBackend, target_path: str,
                       data: Union[bytes, str]) -> None:
    """
    Write data to target_path atomically.

    The data goes to a unique temp file next to the target, which is then
    renamed over the target. On failure the temp file is removed (best effort)
    and the original error is re-raised; the target is left untouched.

    Args:
        backend: Storage backend to write through
        target_path: Final destination path
        data: Bytes, or text written as a text file

    Raises:
        StorageError: Whatever the backend raised for the temp write or rename
    """
    temp_path = make_temp_path(target_path)

    try:
        if isinstance(data, str):
            await backend.write_file(temp_path, data)
        else:
            await backend.write_binary_file(temp_path, data)
        await backend.rename(temp_path, target_path)
    except Exception as e:
        logger.error(f"Atomic write failed for {target_path}: {e}")
        try:
            if await backend.exists(temp_path):
                await backend.delete_file(temp_path)
        except Exception as cleanup_error:
            logger.warning(f"Could not remove temp file {temp_path}: {cleanup_error}")
        raise


async def cleanup_temp_files(backend: StorageBackend, directory: str) -> int:
    """
    Delete orphaned temp files directly inside a directory.

    Should run once per process start before any other write to the directory.
    Only '*.tmp' files are touched.

    Args:
        backend: Storage backend
        directory: Directory to sweep

    Returns:
        Number of temp files removed
    """
    entries = await backend.list_dir(directory, include_hidden=True)

    removed = 0
    for entry in entries:
        if not entry.is_file or not is_temp_file(entry.name):
            continue
        try:
            await backend.delete_file(join_path(directory, entry.name))
            removed += 1
        except Exception as e:
            logger.warning(f"Failed to remove orphaned temp file {entry.name}: {e}")

    if removed:
        logger.info(f"Removed {removed} orphaned temp file(s) from {directory}")

    return removed
