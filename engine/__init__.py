"""Storage engine composition root and local API."""

from engine.storage_engine import StorageEngine, build_engine

__all__ = ["StorageEngine", "build_engine"]
