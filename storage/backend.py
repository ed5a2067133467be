"""Uniform asynchronous interface over the storage substrates."""

from abc import ABC, abstractmethod
from typing import List, Optional

from common.types import FileInfo


class StorageBackend(ABC):
    """
    File-system style contract shared by every substrate.

    All methods are coroutines. Paths passed in may use either separator style;
    implementations normalize them. Hidden entries (names starting with '.')
    are only listed when include_hidden is set.
    """

    platform: str = ""

    @abstractmethod
    async def read_file(self, path: str) -> str:
        """
        Read file content as text.

        Raises:
            PathNotFoundError: If the file does not exist
        """

    @abstractmethod
    async def read_binary_file(self, path: str) -> bytes:
        """
        Read file content as bytes.

        Raises:
            PathNotFoundError: If the file does not exist
        """

    @abstractmethod
    async def write_file(self, path: str, content: str, recursive: bool = False,
                         append: bool = False) -> None:
        """
        Write text content to a file.

        Args:
            path: Target file path
            content: Text to write
            recursive: Create missing parent directories
            append: Append instead of overwriting

        Raises:
            PathNotFoundError: If the parent directory is missing and recursive is False
            WriteFailureError: If the write fails
        """

    @abstractmethod
    async def write_binary_file(self, path: str, content: bytes, recursive: bool = False,
                                append: bool = False) -> None:
        """
        Write binary content to a file. Same options and errors as write_file.
        """

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        """
        Delete a file.

        Raises:
            PathNotFoundError: If the file does not exist
        """

    @abstractmethod
    async def delete_dir(self, path: str, recursive: bool = False) -> None:
        """
        Delete a directory, and its contents when recursive is set.
        """

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """
        Check whether a file or directory exists.
        """

    @abstractmethod
    async def mkdir(self, path: str, recursive: bool = False) -> None:
        """
        Create a directory. Creating an existing directory is a no-op.
        """

    @abstractmethod
    async def list_dir(self, path: str, include_hidden: bool = False,
                       recursive: bool = False) -> List[FileInfo]:
        """
        List directory entries.

        Args:
            path: Directory to list
            include_hidden: Include names starting with '.'
            recursive: Descend into subdirectories

        Returns:
            FileInfo entries; empty list when the directory does not exist
        """

    @abstractmethod
    async def rename(self, old_path: str, new_path: str) -> None:
        """
        Move a file or directory. A directory move relocates every descendant.
        An existing target file is replaced.

        Raises:
            PathNotFoundError: If old_path does not exist
            WriteFailureError: If the move fails
        """

    @abstractmethod
    async def copy_file(self, src: str, dest: str) -> None:
        """
        Copy a file, preserving whether its content is text or binary.

        Raises:
            PathNotFoundError: If src does not exist
        """

    @abstractmethod
    async def stat(self, path: str) -> Optional[FileInfo]:
        """
        Get entry metadata, or None when the path does not exist.
        """

    @abstractmethod
    async def get_base_path(self) -> str:
        """
        Get the base path under which the application stores its data.
        """

    async def resolve_native_path(self, path: str) -> Optional[str]:
        """
        Resolve a storage path to an OS path usable by external tools.

        Returns:
            OS path, or None when the substrate has no native file system
        """
        return None
