"""Immutable asset index: filename -> AssetEntry plus hash -> filename.

Every update returns a new AssetIndex; the maps are read-only views, so a
consistency check can run on the candidate before it is committed to storage.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from common.constants import ASSET_INDEX_VERSION
from common.exceptions import IndexCorruptionError
from common.types import AssetEntry

logger = logging.getLogger(__name__)


def _frozen(mapping: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class AssetIndex:
    """
    Read-only asset index.

    Attributes:
        version: On-disk format version
        assets: filename -> AssetEntry
        hash_map: content hash -> filename
    """
    version: int = ASSET_INDEX_VERSION
    assets: Mapping[str, AssetEntry] = field(default_factory=_frozen)
    hash_map: Mapping[str, str] = field(default_factory=_frozen)

    def __len__(self) -> int:
        return len(self.assets)

    def filenames(self) -> List[str]:
        return list(self.assets.keys())


def create_empty_index() -> AssetIndex:
    return AssetIndex()


def is_duplicate(index: AssetIndex, content_hash: str) -> bool:
    """
    Check whether content with this hash is already stored.
    """
    return content_hash in index.hash_map


def existing_filename_for(index: AssetIndex, content_hash: str) -> Optional[str]:
    return index.hash_map.get(content_hash)


def add_entry(index: AssetIndex, entry: AssetEntry) -> AssetIndex:
    """
    Return a new index with the entry merged into both maps.

    Replacing an existing filename drops the old entry's hash mapping.

    Args:
        index: Current index (left untouched)
        entry: Entry to add

    Returns:
        New AssetIndex
    """
    assets = dict(index.assets)
    hash_map = dict(index.hash_map)

    previous = assets.get(entry.filename)
    if previous is not None and hash_map.get(previous.hash) == entry.filename:
        del hash_map[previous.hash]

    assets[entry.filename] = entry
    hash_map[entry.hash] = entry.filename

    return AssetIndex(version=index.version, assets=_frozen(assets), hash_map=_frozen(hash_map))


def remove_entry(index: AssetIndex, filename: str) -> AssetIndex:
    """
    Return a new index without the given filename.

    Args:
        index: Current index (left untouched)
        filename: Filename to drop

    Returns:
        New AssetIndex, or the same index when filename is absent
    """
    entry = index.assets.get(filename)
    if entry is None:
        return index

    assets = dict(index.assets)
    hash_map = dict(index.hash_map)

    del assets[filename]
    if hash_map.get(entry.hash) == filename:
        del hash_map[entry.hash]

    return AssetIndex(version=index.version, assets=_frozen(assets), hash_map=_frozen(hash_map))


def check_consistency(index: AssetIndex) -> bool:
    """
    Verify that assets and hash_map mirror each other exactly.

    Every hash_map pair must point at an asset carrying that hash, and every
    asset must be the hash_map target for its own hash.

    Returns:
        True if the index is consistent
    """
    for content_hash, filename in index.hash_map.items():
        entry = index.assets.get(filename)
        if entry is None or entry.hash != content_hash:
            return False

    for filename, entry in index.assets.items():
        if entry.filename != filename:
            return False
        if index.hash_map.get(entry.hash) != filename:
            return False

    return True


def sort_by_uploaded_desc(entries: Sequence[AssetEntry]) -> List[AssetEntry]:
    """
    Sort entries newest first without mutating the input.

    sorted() is stable, so entries with equal timestamps keep their order.
    """
    return sorted(entries, key=lambda e: e.uploaded_at, reverse=True)


def index_to_dict(index: AssetIndex) -> Dict[str, Any]:
    """
    Serialize an index to its on-disk JSON shape.
    """
    return {
        "version": index.version,
        "assets": {name: entry.to_dict() for name, entry in index.assets.items()},
        "hashMap": dict(index.hash_map),
    }


def index_from_dict(data: Any) -> AssetIndex:
    """
    Parse an index from its on-disk JSON shape.

    Args:
        data: Decoded JSON document

    Returns:
        AssetIndex

    Raises:
        IndexCorruptionError: If the document is malformed or inconsistent
    """
    if not isinstance(data, dict):
        raise IndexCorruptionError("Asset index is not a JSON object")

    version = data.get("version")
    if version != ASSET_INDEX_VERSION:
        raise IndexCorruptionError(f"Unsupported asset index version: {version!r}")

    raw_assets = data.get("assets")
    raw_hash_map = data.get("hashMap")
    if not isinstance(raw_assets, dict) or not isinstance(raw_hash_map, dict):
        raise IndexCorruptionError("Asset index is missing 'assets' or 'hashMap'")

    for content_hash, filename in raw_hash_map.items():
        if not isinstance(filename, str):
            raise IndexCorruptionError(f"Malformed hashMap value for {content_hash!r}")

    try:
        assets = {name: AssetEntry.from_dict(entry) for name, entry in raw_assets.items()}
    except (KeyError, TypeError, ValueError) as e:
        raise IndexCorruptionError(f"Malformed asset entry: {e}") from e

    for name, entry in assets.items():
        fields = (entry.filename, entry.hash, entry.mime_type, entry.uploaded_at)
        if not all(isinstance(value, str) for value in fields):
            raise IndexCorruptionError(f"Malformed asset entry: {name!r}")

    index = AssetIndex(version=version, assets=_frozen(assets), hash_map=_frozen(raw_hash_map))
    if not check_consistency(index):
        raise IndexCorruptionError("Asset index failed consistency check")

    return index
