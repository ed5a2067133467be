"""Unified snapshot API routes."""

from fastapi import APIRouter, Query

from engine.schemas.snapshot import SaveSnapshotRequest, SaveSnapshotResponse, SnapshotResponse
from engine.service_locator import get_engine

router = APIRouter(prefix="/snapshot", tags=["Snapshot"])


@router.get("", response_model=SnapshotResponse)
async def load_snapshot():
    """
    Return the stored payload, or the default payload when none is usable.
    """
    data = await get_engine().load_unified_data()
    return SnapshotResponse(data=data)


@router.put("", response_model=SaveSnapshotResponse)
async def save_snapshot(
    request: SaveSnapshotRequest,
    immediate: bool = Query(False, description="Write now instead of after the debounce delay"),
):
    """
    Save the payload.

    Parameters:
        - data: Full payload
        - immediate: Skip the debounce window and write synchronously

    Returns:
        - state: "pending" for a scheduled save, "idle" after an immediate write
        - last_modified: Envelope timestamp of an immediate write
    """
    engine = get_engine()

    if immediate:
        envelope = await engine.save_immediate(request.data)
        return SaveSnapshotResponse(state=engine.snapshots.state.value, last_modified=envelope.lastModified)

    engine.schedule_save(request.data)
    return SaveSnapshotResponse(state=engine.snapshots.state.value)
