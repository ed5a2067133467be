"""Custom exception classes for the storage engine."""


class StorageError(Exception):
    """
    Base exception class for all storage engine errors.
    """
    pass


class PathNotFoundError(StorageError):
    """
    Raised when a file or directory does not exist on read, stat-dependent
    operations, rename or copy.
    """

    def __init__(self, path: str, message: str = None):
        self.path = path
        super().__init__(message or f"Path not found: {path}")


class WriteFailureError(StorageError):
    """
    Raised when writing, renaming or deleting on a substrate fails.
    """

    def __init__(self, path: str, message: str = None):
        self.path = path
        super().__init__(message or f"Write failed: {path}")


class IndexCorruptionError(StorageError):
    """
    Raised when an asset index is malformed or fails its consistency check.
    """
    pass


class ParseFailureError(StorageError):
    """
    Raised when a snapshot file is malformed or carries an unknown version.
    """
    pass
