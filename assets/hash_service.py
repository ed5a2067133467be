"""Content-derived identifiers used for asset deduplication.

All functions are pure functions of the byte content.
"""

import hashlib

from common.constants import HASH_LENGTH, LARGE_FILE_THRESHOLD_BYTES, PRECHECK_SIZE_BYTES


def full_hash(data: bytes) -> str:
    """
    Compute the content hash of data.

    Args:
        data: Bytes to hash

    Returns:
        First 16 hex characters of the SHA-256 digest
    """
    return hashlib.sha256(data).hexdigest()[:HASH_LENGTH]


def quick_hash(data: bytes) -> str:
    """
    Compute a cheap discriminator for large content.

    Combines the size with a hash of the first 64 KiB, so two inputs with
    different quick hashes are certainly different.

    Args:
        data: Bytes to hash

    Returns:
        '<size as 16 hex digits>-<16 hex chars of SHA-256 of the prefix>'
    """
    size_hex = format(len(data), '016x')
    preview = hashlib.sha256(data[:PRECHECK_SIZE_BYTES]).hexdigest()[:HASH_LENGTH]
    return f"{size_hex}-{preview}"


def quick_hash_size(quick: str) -> int:
    """
    Extract the size encoded in a quick hash.
    """
    return int(quick.split('-', 1)[0], 16)


def is_large(size: int) -> bool:
    """
    Check whether content of this size should be quick-hashed first.
    """
    return size > LARGE_FILE_THRESHOLD_BYTES


def verify_hash(data: bytes, expected: str) -> bool:
    """
    Verify that data matches an expected content hash.

    Args:
        data: Bytes to verify
        expected: Hash produced by full_hash

    Returns:
        True if the hash matches, False otherwise
    """
    return full_hash(data) == expected


class IncrementalHasher:
    """
    Compute a content hash over data arriving in pieces.

    Usage:
        hasher = IncrementalHasher()
        hasher.update(piece1)
        hasher.update(piece2)
        content_hash = hasher.finalize()
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False
        self.size = 0

    def update(self, data: bytes) -> None:
        """
        Feed more data.

        Raises:
            ValueError: If called after finalize()
        """
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)
        self.size += len(data)

    def finalize(self) -> str:
        """
        Finish hashing.

        Returns:
            Same value full_hash would return for the concatenated pieces
        """
        self._finalized = True
        return self._hasher.hexdigest()[:HASH_LENGTH]
