"""Unified snapshot persistence."""

from snapshot.models import SnapshotEnvelope, default_unified_data
from snapshot.snapshot_writer import SnapshotWriter, WriterState

__all__ = [
    "SnapshotEnvelope",
    "SnapshotWriter",
    "WriterState",
    "default_unified_data",
]
