"""Pydantic models for the unified snapshot envelope."""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, StrictInt, ValidationError

from common.constants import SNAPSHOT_VERSION
from common.exceptions import ParseFailureError


def default_unified_data() -> Dict[str, Any]:
    """
    Payload returned when no usable snapshot exists.
    """
    return {
        "progressItems": [],
        "archiveSections": [],
        "settings": {
            "timezone": 8,
            "viewMode": "day",
            "dayCount": 1,
        },
        "customIcons": [],
    }


class SnapshotEnvelope(BaseModel):
    """Versioned wrapper around the opaque application payload."""
    version: StrictInt
    lastModified: StrictInt
    data: Optional[Dict[str, Any]] = None


def parse_envelope(raw: Union[bytes, str]) -> SnapshotEnvelope:
    """
    Parse and validate a snapshot file.

    Args:
        raw: File content, as stored bytes or decoded text

    Returns:
        SnapshotEnvelope

    Raises:
        ParseFailureError: If the content is not UTF-8 JSON, is not an
            envelope, carries another version, or has no data
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ParseFailureError(f"Snapshot is not valid UTF-8: {e}") from e

    try:
        envelope = SnapshotEnvelope.model_validate_json(raw)
    except ValidationError as e:
        raise ParseFailureError(f"Malformed snapshot: {e.error_count()} validation error(s)") from e

    if envelope.version != SNAPSHOT_VERSION:
        raise ParseFailureError(f"Unsupported snapshot version: {envelope.version}")

    if envelope.data is None:
        raise ParseFailureError("Snapshot has no data")

    return envelope
