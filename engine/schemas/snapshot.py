"""Pydantic schemas for snapshot endpoints."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class SnapshotResponse(BaseModel):
    """Response model for reading the unified payload."""
    data: Dict[str, Any]


class SaveSnapshotRequest(BaseModel):
    """Request model for saving the unified payload."""
    data: Dict[str, Any]


class SaveSnapshotResponse(BaseModel):
    """Response model for a save request."""
    state: str
    last_modified: Optional[int] = None
