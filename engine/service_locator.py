"""Service locator for the running storage engine."""

from typing import Optional

from engine.storage_engine import StorageEngine

_engine: Optional[StorageEngine] = None


def set_engine(engine: Optional[StorageEngine]):
    """Set global storage engine instance"""
    global _engine
    _engine = engine


def get_engine() -> StorageEngine:
    """
    Get global storage engine instance.

    Raises:
        RuntimeError: If the engine has not been started
    """
    if _engine is None:
        raise RuntimeError("Storage engine is not initialized")
    return _engine
