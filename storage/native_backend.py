"""Native file-system substrate: blocking pathlib calls run in worker threads."""

import asyncio
import logging
import os
import shutil
from contextlib import contextmanager
from stat import S_ISDIR
from pathlib import Path
from typing import Iterator, List, Optional, Union

from common.exceptions import PathNotFoundError, WriteFailureError
from common.types import FileInfo
from storage.backend import StorageBackend
from storage.paths import is_relative_path, to_storage_path

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(path: Union[str, Path]) -> Iterator[None]:
    """
    Map OSError subclasses onto the engine's exception taxonomy.
    """
    try:
        yield
    except FileNotFoundError as e:
        raise PathNotFoundError(str(path)) from e
    except OSError as e:
        raise WriteFailureError(str(path), f"{e.strerror or e}: {path}") from e


class NativeBackend(StorageBackend):
    """
    Storage backend over the local file system.

    Relative paths are resolved against the base path; absolute paths are used
    as given. Returned FileInfo paths are in storage form (forward slashes).
    """

    platform = "native"

    def __init__(self, base_path: Union[str, Path]):
        """
        Initialize backend.

        Args:
            base_path: Application data directory (created if missing)
        """
        self._base_path = Path(base_path).expanduser()
        self._base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Native storage backend ready [base={self._base_path}]")

    def _resolve(self, path: str) -> Path:
        normalized = to_storage_path(str(path))
        if is_relative_path(normalized):
            return self._base_path / normalized
        return Path(normalized)

    @staticmethod
    def _info(path: Path, st: os.stat_result) -> FileInfo:
        is_dir = S_ISDIR(st.st_mode)
        return FileInfo(
            name=path.name,
            path=to_storage_path(str(path)),
            is_directory=is_dir,
            is_file=not is_dir,
            size=None if is_dir else st.st_size,
            modified_at=int(st.st_mtime * 1000),
        )

    async def read_file(self, path: str) -> str:
        target = self._resolve(path)

        def _read() -> str:
            with _translate_errors(path):
                return target.read_bytes().decode('utf-8')

        return await asyncio.to_thread(_read)

    async def read_binary_file(self, path: str) -> bytes:
        target = self._resolve(path)

        def _read() -> bytes:
            with _translate_errors(path):
                return target.read_bytes()

        return await asyncio.to_thread(_read)

    async def write_file(self, path: str, content: str, recursive: bool = False,
                         append: bool = False) -> None:
        await self.write_binary_file(path, content.encode('utf-8'), recursive=recursive, append=append)

    async def write_binary_file(self, path: str, content: bytes, recursive: bool = False,
                                append: bool = False) -> None:
        target = self._resolve(path)

        def _write() -> None:
            with _translate_errors(path):
                if recursive:
                    target.parent.mkdir(parents=True, exist_ok=True)
                with open(target, 'ab' if append else 'wb') as f:
                    f.write(content)

        await asyncio.to_thread(_write)

    async def delete_file(self, path: str) -> None:
        target = self._resolve(path)

        def _delete() -> None:
            with _translate_errors(path):
                target.unlink()

        await asyncio.to_thread(_delete)

    async def delete_dir(self, path: str, recursive: bool = False) -> None:
        target = self._resolve(path)

        def _delete() -> None:
            with _translate_errors(path):
                if recursive:
                    shutil.rmtree(target)
                else:
                    target.rmdir()

        await asyncio.to_thread(_delete)

    async def exists(self, path: str) -> bool:
        target = self._resolve(path)
        return await asyncio.to_thread(target.exists)

    async def mkdir(self, path: str, recursive: bool = False) -> None:
        target = self._resolve(path)

        def _mkdir() -> None:
            with _translate_errors(path):
                target.mkdir(parents=recursive, exist_ok=True)

        await asyncio.to_thread(_mkdir)

    async def list_dir(self, path: str, include_hidden: bool = False,
                       recursive: bool = False) -> List[FileInfo]:
        root = self._resolve(path)

        def _walk(directory: Path) -> List[FileInfo]:
            results = []
            for entry in sorted(directory.iterdir(), key=lambda p: p.name):
                if not include_hidden and entry.name.startswith('.'):
                    continue
                try:
                    info = self._info(entry, entry.stat())
                except FileNotFoundError:
                    # removed between iterdir() and stat()
                    continue
                results.append(info)
                if recursive and info.is_directory:
                    results.extend(_walk(entry))
            return results

        def _list() -> List[FileInfo]:
            if not root.is_dir():
                return []
            return _walk(root)

        return await asyncio.to_thread(_list)

    async def rename(self, old_path: str, new_path: str) -> None:
        source = self._resolve(old_path)
        target = self._resolve(new_path)

        def _rename() -> None:
            if not source.exists():
                raise PathNotFoundError(str(old_path))
            with _translate_errors(new_path):
                os.replace(source, target)

        await asyncio.to_thread(_rename)

    async def copy_file(self, src: str, dest: str) -> None:
        source = self._resolve(src)
        target = self._resolve(dest)

        def _copy() -> None:
            if not source.is_file():
                raise PathNotFoundError(str(src))
            with _translate_errors(dest):
                shutil.copy2(source, target)

        await asyncio.to_thread(_copy)

    async def stat(self, path: str) -> Optional[FileInfo]:
        target = self._resolve(path)

        def _stat() -> Optional[FileInfo]:
            try:
                return self._info(target, target.stat())
            except (FileNotFoundError, NotADirectoryError):
                return None

        return await asyncio.to_thread(_stat)

    async def get_base_path(self) -> str:
        return to_storage_path(str(self._base_path))

    async def resolve_native_path(self, path: str) -> Optional[str]:
        return str(self._resolve(path))
