"""Structured-store substrate: a simulated file system kept in SQLite.

Files and directories are rows keyed by normalized absolute path. Every
mutating call runs in a single IMMEDIATE transaction, so a rename of a file or
a whole directory tree is all-or-nothing on this substrate.
"""

import asyncio
import logging
import re
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional, Tuple, Union

from common.constants import DEFAULT_APP_NAME
from common.exceptions import PathNotFoundError, StorageError, WriteFailureError
from common.types import FileInfo
from storage.backend import StorageBackend
from storage.paths import is_relative_path, to_storage_path

logger = logging.getLogger(__name__)

_MULTIPLE_SLASHES = re.compile(r'/+')


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parent_of(path: str) -> str:
    parent = path.rsplit('/', 1)[0]
    return parent or '/'


def _name_of(path: str) -> str:
    return path.rsplit('/', 1)[-1]


class StructuredBackend(StorageBackend):
    """
    Storage backend that simulates a file system inside a SQLite database.

    Paths are normalized to a leading '/', no trailing '/', and no doubled
    separators. Relative paths are resolved against the base path '/<app_name>'.
    """

    platform = "structured"

    def __init__(self, db_path: Union[str, Path], app_name: str = DEFAULT_APP_NAME):
        """
        Initialize backend and create its tables.

        Args:
            db_path: SQLite database file
            app_name: Application name; the base path is '/<app_name>'
        """
        self._db_path = Path(db_path)
        self._base_path = f"/{app_name}"
        self._init_database()
        logger.info(f"Structured storage backend ready [db={self._db_path}]")

    def _init_database(self) -> None:
        """
        Create tables if they don't exist and register the base directory.
        """
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS files (
                    path TEXT PRIMARY KEY,
                    content BLOB NOT NULL,
                    is_binary INTEGER NOT NULL,
                    size INTEGER NOT NULL,
                    created_at INTEGER NOT NULL,
                    modified_at INTEGER NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS directories (
                    path TEXT PRIMARY KEY,
                    created_at INTEGER NOT NULL
                )
            """)

            self._create_dirs(conn, self._base_path, recursive=True)

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.
        """
        conn = sqlite3.connect(self._db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager running the body in one IMMEDIATE transaction.

        Raises:
            WriteFailureError: If SQLite reports an error
        """
        with self._connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise WriteFailureError(str(self._db_path), f"Structured store error: {e}") from e
            except StorageError:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def _normalize(self, path: str) -> str:
        normalized = to_storage_path(str(path))
        if is_relative_path(normalized):
            normalized = f"{self._base_path}/{normalized}"
        if not normalized.startswith('/'):
            normalized = '/' + normalized
        normalized = _MULTIPLE_SLASHES.sub('/', normalized)
        if len(normalized) > 1 and normalized.endswith('/'):
            normalized = normalized[:-1]
        return normalized

    # Row helpers; all take an open connection.

    @staticmethod
    def _get_file(conn: sqlite3.Connection, path: str) -> Optional[sqlite3.Row]:
        return conn.execute("SELECT * FROM files WHERE path = ?", (path,)).fetchone()

    @staticmethod
    def _dir_exists(conn: sqlite3.Connection, path: str) -> bool:
        if path == '/':
            return True
        row = conn.execute("SELECT 1 FROM directories WHERE path = ?", (path,)).fetchone()
        return row is not None

    @staticmethod
    def _has_children(conn: sqlite3.Connection, path: str) -> bool:
        prefix = path.rstrip('/') + '/'
        for table in ('files', 'directories'):
            row = conn.execute(
                f"SELECT 1 FROM {table} WHERE substr(path, 1, ?) = ? LIMIT 1",
                (len(prefix), prefix)
            ).fetchone()
            if row:
                return True
        return False

    def _create_dirs(self, conn: sqlite3.Connection, path: str, recursive: bool) -> None:
        if self._get_file(conn, path):
            raise WriteFailureError(path, f"A file already exists at {path}")

        if recursive:
            current = ''
            for part in [p for p in path.split('/') if p]:
                current = f"{current}/{part}"
                if self._get_file(conn, current):
                    raise WriteFailureError(current, f"A file already exists at {current}")
                conn.execute(
                    "INSERT OR IGNORE INTO directories (path, created_at) VALUES (?, ?)",
                    (current, _now_ms())
                )
            return

        if not self._dir_exists(conn, _parent_of(path)):
            raise PathNotFoundError(_parent_of(path))
        conn.execute(
            "INSERT OR IGNORE INTO directories (path, created_at) VALUES (?, ?)",
            (path, _now_ms())
        )

    def _put_file(self, conn: sqlite3.Connection, path: str, content: Union[str, bytes],
                  is_binary: bool, recursive: bool, created_at: Optional[int] = None) -> None:
        parent = _parent_of(path)
        if recursive:
            self._create_dirs(conn, parent, recursive=True)
        elif not self._dir_exists(conn, parent):
            raise PathNotFoundError(parent)

        if self._dir_exists(conn, path):
            raise WriteFailureError(path, f"A directory already exists at {path}")

        size = len(content) if is_binary else len(content.encode('utf-8'))
        now = _now_ms()
        stored = sqlite3.Binary(content) if is_binary else content

        conn.execute("""
            INSERT INTO files (path, content, is_binary, size, created_at, modified_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET
                content = excluded.content,
                is_binary = excluded.is_binary,
                size = excluded.size,
                modified_at = excluded.modified_at
        """, (path, stored, 1 if is_binary else 0, size, created_at or now, now))

    @staticmethod
    def _as_text(row: sqlite3.Row) -> str:
        if row['is_binary']:
            return bytes(row['content']).decode('utf-8')
        return row['content']

    @staticmethod
    def _as_bytes(row: sqlite3.Row) -> bytes:
        if row['is_binary']:
            return bytes(row['content'])
        return row['content'].encode('utf-8')

    # Blocking implementations, run via asyncio.to_thread.

    def _read_row(self, path: str) -> sqlite3.Row:
        normalized = self._normalize(path)
        with self._connect() as conn:
            row = self._get_file(conn, normalized)
        if row is None:
            raise PathNotFoundError(path, f"File not found: {path}")
        return row

    def _write(self, path: str, content: Union[str, bytes], is_binary: bool,
               recursive: bool, append: bool) -> None:
        normalized = self._normalize(path)
        with self._transaction() as conn:
            existing = self._get_file(conn, normalized)
            if append and existing is not None:
                if is_binary:
                    content = self._as_bytes(existing) + content
                else:
                    content = self._as_text(existing) + content
            created_at = existing['created_at'] if existing is not None else None
            self._put_file(conn, normalized, content, is_binary, recursive, created_at)

    def _delete_file(self, path: str) -> None:
        normalized = self._normalize(path)
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM files WHERE path = ?", (normalized,))
            if cursor.rowcount == 0:
                raise PathNotFoundError(path)

    def _delete_dir(self, path: str, recursive: bool) -> None:
        normalized = self._normalize(path)
        prefix = normalized + '/'
        with self._transaction() as conn:
            if normalized == '/' or not self._dir_exists(conn, normalized):
                raise PathNotFoundError(path)
            if self._has_children(conn, normalized):
                if not recursive:
                    raise WriteFailureError(path, f"Directory not empty: {path}")
                for table in ('files', 'directories'):
                    conn.execute(
                        f"DELETE FROM {table} WHERE substr(path, 1, ?) = ?",
                        (len(prefix), prefix)
                    )
            conn.execute("DELETE FROM directories WHERE path = ?", (normalized,))

    def _exists(self, path: str) -> bool:
        normalized = self._normalize(path)
        with self._connect() as conn:
            return self._get_file(conn, normalized) is not None or self._dir_exists(conn, normalized)

    def _mkdir(self, path: str, recursive: bool) -> None:
        normalized = self._normalize(path)
        with self._transaction() as conn:
            self._create_dirs(conn, normalized, recursive)

    def _list(self, path: str, include_hidden: bool, recursive: bool) -> List[FileInfo]:
        normalized = self._normalize(path)
        prefix = '/' if normalized == '/' else normalized + '/'
        entries: List[Tuple[Tuple[str, ...], FileInfo]] = []

        with self._connect() as conn:
            if not self._dir_exists(conn, normalized):
                return []
            files = conn.execute(
                "SELECT path, size, modified_at FROM files WHERE substr(path, 1, ?) = ?",
                (len(prefix), prefix)
            ).fetchall()
            dirs = conn.execute(
                "SELECT path, created_at FROM directories WHERE substr(path, 1, ?) = ?",
                (len(prefix), prefix)
            ).fetchall()

        def _accept(full_path: str) -> Optional[Tuple[str, ...]]:
            parts = tuple(full_path[len(prefix):].split('/'))
            if len(parts) > 1 and not recursive:
                return None
            if not include_hidden and any(part.startswith('.') for part in parts):
                return None
            return parts

        for row in files:
            parts = _accept(row['path'])
            if parts is None:
                continue
            entries.append((parts, FileInfo(
                name=_name_of(row['path']),
                path=row['path'],
                is_directory=False,
                is_file=True,
                size=row['size'],
                modified_at=row['modified_at'],
            )))

        for row in dirs:
            parts = _accept(row['path'])
            if parts is None:
                continue
            entries.append((parts, FileInfo(
                name=_name_of(row['path']),
                path=row['path'],
                is_directory=True,
                is_file=False,
                modified_at=row['created_at'],
            )))

        # parent before children, siblings by name
        entries.sort(key=lambda item: item[0])
        return [info for _, info in entries]

    def _rename(self, old_path: str, new_path: str) -> None:
        source = self._normalize(old_path)
        target = self._normalize(new_path)
        if source == target:
            return

        with self._transaction() as conn:
            row = self._get_file(conn, source)
            if row is not None:
                if self._dir_exists(conn, target):
                    raise WriteFailureError(new_path, f"A directory already exists at {new_path}")
                if not self._dir_exists(conn, _parent_of(target)):
                    raise PathNotFoundError(_parent_of(target))
                conn.execute("DELETE FROM files WHERE path = ?", (target,))
                conn.execute(
                    "UPDATE files SET path = ?, modified_at = ? WHERE path = ?",
                    (target, _now_ms(), source)
                )
                return

            if not self._dir_exists(conn, source) or source == '/':
                raise PathNotFoundError(old_path)
            if target.startswith(source + '/'):
                raise WriteFailureError(new_path, f"Cannot move {old_path} into itself")
            if self._get_file(conn, target):
                raise WriteFailureError(new_path, f"A file already exists at {new_path}")
            if self._dir_exists(conn, target) and self._has_children(conn, target):
                raise WriteFailureError(new_path, f"Directory not empty: {new_path}")
            if not self._dir_exists(conn, _parent_of(target)):
                raise PathNotFoundError(_parent_of(target))

            prefix = source + '/'
            conn.execute("DELETE FROM directories WHERE path = ?", (target,))
            for table in ('files', 'directories'):
                conn.execute(
                    f"UPDATE {table} SET path = ? || substr(path, ?) WHERE substr(path, 1, ?) = ?",
                    (target, len(source) + 1, len(prefix), prefix)
                )
            conn.execute("UPDATE directories SET path = ? WHERE path = ?", (target, source))

    def _copy(self, src: str, dest: str) -> None:
        source = self._normalize(src)
        target = self._normalize(dest)
        with self._transaction() as conn:
            row = self._get_file(conn, source)
            if row is None:
                raise PathNotFoundError(src)
            content = self._as_bytes(row) if row['is_binary'] else self._as_text(row)
            existing = self._get_file(conn, target)
            created_at = existing['created_at'] if existing is not None else None
            self._put_file(conn, target, content, bool(row['is_binary']), False, created_at)

    def _stat(self, path: str) -> Optional[FileInfo]:
        normalized = self._normalize(path)
        with self._connect() as conn:
            row = self._get_file(conn, normalized)
            if row is not None:
                return FileInfo(
                    name=_name_of(normalized),
                    path=normalized,
                    is_directory=False,
                    is_file=True,
                    size=row['size'],
                    modified_at=row['modified_at'],
                )
            dir_row = conn.execute(
                "SELECT created_at FROM directories WHERE path = ?", (normalized,)
            ).fetchone()
            if dir_row is not None:
                return FileInfo(
                    name=_name_of(normalized),
                    path=normalized,
                    is_directory=True,
                    is_file=False,
                    modified_at=dir_row['created_at'],
                )
        return None

    # StorageBackend interface

    async def read_file(self, path: str) -> str:
        row = await asyncio.to_thread(self._read_row, path)
        return self._as_text(row)

    async def read_binary_file(self, path: str) -> bytes:
        row = await asyncio.to_thread(self._read_row, path)
        return self._as_bytes(row)

    async def write_file(self, path: str, content: str, recursive: bool = False,
                         append: bool = False) -> None:
        await asyncio.to_thread(self._write, path, content, False, recursive, append)

    async def write_binary_file(self, path: str, content: bytes, recursive: bool = False,
                                append: bool = False) -> None:
        await asyncio.to_thread(self._write, path, bytes(content), True, recursive, append)

    async def delete_file(self, path: str) -> None:
        await asyncio.to_thread(self._delete_file, path)

    async def delete_dir(self, path: str, recursive: bool = False) -> None:
        await asyncio.to_thread(self._delete_dir, path, recursive)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._exists, path)

    async def mkdir(self, path: str, recursive: bool = False) -> None:
        await asyncio.to_thread(self._mkdir, path, recursive)

    async def list_dir(self, path: str, include_hidden: bool = False,
                       recursive: bool = False) -> List[FileInfo]:
        return await asyncio.to_thread(self._list, path, include_hidden, recursive)

    async def rename(self, old_path: str, new_path: str) -> None:
        await asyncio.to_thread(self._rename, old_path, new_path)

    async def copy_file(self, src: str, dest: str) -> None:
        await asyncio.to_thread(self._copy, src, dest)

    async def stat(self, path: str) -> Optional[FileInfo]:
        return await asyncio.to_thread(self._stat, path)

    async def get_base_path(self) -> str:
        return self._base_path
