"""Storage substrates and the write discipline built on them."""

from pathlib import Path
from typing import Optional, Union

from common.constants import DEFAULT_APP_NAME
from storage.backend import StorageBackend
from storage.native_backend import NativeBackend
from storage.structured_backend import StructuredBackend

BACKEND_KINDS = ("native", "structured")


def create_backend(kind: str, base_path: Union[str, Path],
                   db_path: Optional[Union[str, Path]] = None,
                   app_name: str = DEFAULT_APP_NAME) -> StorageBackend:
    """
    Build a storage backend for the given substrate.

    Args:
        kind: 'native' or 'structured'
        base_path: Base directory for the native substrate; also where the
            structured database lives when db_path is not given
        db_path: SQLite file for the structured substrate
        app_name: Application name

    Returns:
        StorageBackend instance

    Raises:
        ValueError: If kind is unknown
    """
    if kind == "native":
        return NativeBackend(base_path)
    if kind == "structured":
        return StructuredBackend(db_path or Path(base_path).expanduser() / "storage.db", app_name=app_name)
    raise ValueError(f"Unknown storage backend '{kind}', expected one of {BACKEND_KINDS}")


__all__ = [
    "BACKEND_KINDS",
    "NativeBackend",
    "StorageBackend",
    "StructuredBackend",
    "create_backend",
]
