"""Configuration settings for the storage engine."""

import os

from common.constants import DEFAULT_APP_NAME, DEFAULT_ASSET_FOLDER, DEFAULT_BLOB_CACHE_SIZE


APP_NAME = os.environ.get("NEKO_APP_NAME", DEFAULT_APP_NAME)

BASE_PATH = os.path.expanduser(os.environ.get("NEKO_BASE_PATH", "~/.local/share/NekoTick"))

BACKEND = os.environ.get("NEKO_BACKEND", "native")

STRUCTURED_DB_PATH = os.environ.get("NEKO_STRUCTURED_DB_PATH", os.path.join(BASE_PATH, "storage.db"))

BLOB_CACHE_SIZE = int(os.environ.get("NEKO_BLOB_CACHE_SIZE", str(DEFAULT_BLOB_CACHE_SIZE)))

SAVE_DELAY_SECONDS = int(os.environ.get("NEKO_SAVE_DELAY_MS", "300")) / 1000

FILENAME_FORMAT = os.environ.get("NEKO_FILENAME_FORMAT", "original")

WRITE_MIRROR = os.environ.get("NEKO_WRITE_MIRROR", "1").lower() not in ("0", "false", "no")

ASSET_FOLDERS = [
    folder.strip()
    for folder in os.environ.get("NEKO_ASSET_FOLDERS", DEFAULT_ASSET_FOLDER).split(",")
    if folder.strip()
]

ENGINE_HOST = os.environ.get("NEKO_HOST", "127.0.0.1")

ENGINE_PORT = int(os.environ.get("NEKO_PORT", "8765"))
