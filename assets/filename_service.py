"""Filename sanitization, truncation, and conflict resolution.

Every generated name goes through the same pipeline:
sanitize -> truncate -> resolve conflict.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Set, Tuple

from common.constants import DEFAULT_EXTENSION, DEFAULT_FILENAME, MAX_FILENAME_LENGTH, TEMP_EXTENSION

# Characters invalid in filenames on at least one major platform
DANGEROUS_CHARS = re.compile(r'[<>:"/\\|?*]')

MIME_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'svg': 'image/svg+xml',
    'bmp': 'image/bmp',
    'ico': 'image/x-icon',
    'avif': 'image/avif',
}

DEFAULT_MIME_TYPE = 'application/octet-stream'


class FilenameFormat(str, Enum):
    """Naming mode used when storing an upload."""
    ORIGINAL = "original"
    TIMESTAMP = "timestamp"
    SEQUENCE = "sequence"


def _split_extension(name: str) -> Tuple[str, str]:
    """
    Split a name into base and extension (extension keeps its dot).

    Dotfiles such as '.hidden' have no extension.
    """
    last_dot = name.rfind('.')
    if last_dot <= 0:
        return name, ''
    return name[:last_dot], name[last_dot:]


def _lowered(names: Iterable[str]) -> Set[str]:
    return {n.lower() for n in names}


def sanitize_filename(name: Optional[str]) -> str:
    """
    Remove characters that are unsafe across file systems.

    Unicode letters and spaces are kept. Leading dots are dropped and a
    trailing '.tmp' becomes '_tmp', since hidden and temp names are reserved
    inside asset folders. Falls back to 'untitled' when nothing usable remains.

    Args:
        name: Candidate filename

    Returns:
        Sanitized filename
    """
    if not name:
        return DEFAULT_FILENAME

    sanitized = DANGEROUS_CHARS.sub('', name).strip().lstrip('.').strip()
    if sanitized.lower().endswith(TEMP_EXTENSION):
        base, extension = _split_extension(sanitized)
        sanitized = f"{base}_{extension[1:]}"
    return sanitized or DEFAULT_FILENAME


def truncate_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """
    Shorten a filename to max_length characters, keeping its extension.

    If the extension alone reaches max_length, the whole name is cut without
    regard to the extension.

    Args:
        name: Filename
        max_length: Maximum length of the result

    Returns:
        Truncated filename
    """
    if len(name) <= max_length:
        return name

    base, extension = _split_extension(name)
    if not extension or len(extension) >= max_length:
        return name[:max_length]

    return base[:max_length - len(extension)] + extension


def resolve_filename_conflict(name: str, existing_names: Iterable[str]) -> str:
    """
    Pick a name that does not collide (case-insensitively) with existing ones.

    On collision '_1', '_2', ... is appended to the base name, trying numbers in
    ascending order, so the result is deterministic for a given existing set.

    Args:
        name: Desired filename
        existing_names: Names already taken

    Returns:
        A free filename
    """
    taken = _lowered(existing_names)
    if name.lower() not in taken:
        return name

    base, extension = _split_extension(name)
    counter = 1
    while True:
        candidate = f"{base}_{counter}{extension}"
        if candidate.lower() not in taken:
            return candidate
        counter += 1


def process_filename(original_name: Optional[str], existing_names: Iterable[str],
                     max_length: int = MAX_FILENAME_LENGTH) -> str:
    """
    Run a name through sanitize, truncate, and conflict resolution.
    """
    name = sanitize_filename(original_name)
    name = truncate_filename(name, max_length)
    return resolve_filename_conflict(name, existing_names)


def generate_filename(original_name: Optional[str], format: FilenameFormat,
                      existing_names: Iterable[str], max_length: int = MAX_FILENAME_LENGTH,
                      now: Optional[datetime] = None) -> str:
    """
    Generate a stored filename in the requested format.

    Args:
        original_name: Name the caller supplied
        format: 'original' keeps the name; 'timestamp' uses YYYY-MM-DD_HH-MM-SS;
            'sequence' uses the smallest unused positive integer
        existing_names: Names already taken
        max_length: Maximum filename length
        now: Clock override for the timestamp format

    Returns:
        A free filename
    """
    existing = list(existing_names)
    format = FilenameFormat(format)

    if format == FilenameFormat.ORIGINAL:
        return process_filename(original_name, existing, max_length)

    _, extension = _split_extension(sanitize_filename(original_name))
    extension = extension.lower() if extension else DEFAULT_EXTENSION

    if format == FilenameFormat.TIMESTAMP:
        stamp = (now or datetime.now()).strftime('%Y-%m-%d_%H-%M-%S')
        return process_filename(stamp + extension, existing, max_length)

    taken = _lowered(existing)
    counter = 1
    while f"{counter}{extension}".lower() in taken:
        counter += 1
    return process_filename(f"{counter}{extension}", existing, max_length)


def get_mime_type(filename: str) -> str:
    """
    Get the MIME type for a filename from its extension.
    """
    _, extension = _split_extension(filename.replace('\\', '/').rsplit('/', 1)[-1])
    return MIME_TYPES.get(extension[1:].lower(), DEFAULT_MIME_TYPE)


def is_image_filename(filename: str) -> bool:
    return get_mime_type(filename) != DEFAULT_MIME_TYPE
