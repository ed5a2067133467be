"""Engine-wide constants (directory names, hash sizes, filename limits)."""

DEFAULT_APP_NAME: str = "nekotick"

ASSETS_DIR_NAME: str = "assets"
STORE_DIR_NAME: str = "store"
SNAPSHOT_FILENAME: str = "data.json"
DEFAULT_ASSET_FOLDER: str = "covers"

TEMP_EXTENSION: str = ".tmp"

HASH_LENGTH: int = 16  # first 16 hex chars of SHA-256
LARGE_FILE_THRESHOLD_BYTES: int = 5 * 1024 * 1024  # 5 MiB
PRECHECK_SIZE_BYTES: int = 64 * 1024  # 64 KiB window for the quick hash

MAX_FILENAME_LENGTH: int = 200
DEFAULT_FILENAME: str = "untitled"
DEFAULT_EXTENSION: str = ".png"

ASSET_INDEX_VERSION: int = 1
SNAPSHOT_VERSION: int = 2

DEFAULT_BLOB_CACHE_SIZE: int = 500
DEFAULT_SAVE_DELAY_SECONDS: float = 0.3
