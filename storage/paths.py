"""Pure path helpers converting between storage-canonical and OS-native forms.

Storage paths always use forward slashes. None of these functions touch the
filesystem.
"""

import re
from typing import Optional

from common.constants import ASSETS_DIR_NAME, DEFAULT_APP_NAME, DEFAULT_ASSET_FOLDER, TEMP_EXTENSION

_DRIVE_LETTER = re.compile(r'^[A-Za-z]:[\\/]')
_LEADING_SEPARATORS = re.compile(r'^[/\\]+')
_TRAILING_SEPARATORS = re.compile(r'[/\\]+$')


def to_storage_path(path: str) -> str:
    """
    Convert any path to storage form by replacing backslashes with forward slashes.

    Args:
        path: Path in any separator style

    Returns:
        Path containing no backslashes
    """
    return path.replace('\\', '/')


def to_os_path(path: str, separator: str = '/') -> str:
    """
    Convert a storage path to the given OS separator style.

    Args:
        path: Storage path (forward slashes)
        separator: Target separator, '/' or '\\'

    Returns:
        Path using the requested separator
    """
    if separator == '\\':
        return path.replace('/', '\\')
    return to_storage_path(path)


def is_relative_path(path: str) -> bool:
    """
    Check whether a path is relative.

    Windows drive-letter paths, UNC paths and POSIX absolute paths are absolute.
    """
    if _DRIVE_LETTER.match(path):
        return False
    if path.startswith('\\\\'):
        return False
    if path.startswith('/'):
        return False
    return True


def is_absolute_path(path: str) -> bool:
    return not is_relative_path(path)


def get_path_separator(path: Optional[str] = None) -> str:
    """
    Guess the separator style a path was written in.

    Args:
        path: Sample path, may be None

    Returns:
        '\\' for Windows-looking paths, '/' otherwise
    """
    if not path:
        return '/'
    if _DRIVE_LETTER.match(path) or '\\' in path:
        return '\\'
    return '/'


def join_path(*segments: str) -> str:
    """
    Join path segments in storage form, collapsing separators at the seams.

    Args:
        *segments: Path segments; empty segments are skipped

    Returns:
        Joined storage path
    """
    parts = [s for s in segments if s]
    if not parts:
        return ''

    cleaned = []
    last = len(parts) - 1
    for index, segment in enumerate(parts):
        if index > 0:
            segment = _LEADING_SEPARATORS.sub('', segment)
        if index < last:
            segment = _TRAILING_SEPARATORS.sub('', segment)
        cleaned.append(to_storage_path(segment))

    # an emptied first segment was a root separator and must be kept
    return '/'.join(cleaned[:1] + [part for part in cleaned[1:] if part])


def get_parent_path(path: str) -> Optional[str]:
    """
    Get the parent directory of a path in storage form.

    Returns:
        Parent path, '/' for top-level POSIX entries, None when there is no parent
    """
    normalized = to_storage_path(path)
    parts = [p for p in normalized.split('/') if p]
    if len(parts) <= 1:
        if normalized.startswith('/') and parts:
            return '/'
        return None

    parent = '/'.join(parts[:-1])
    if normalized.startswith('/'):
        return '/' + parent
    return parent


def get_base_name(path: str) -> str:
    parts = [p for p in to_storage_path(path).split('/') if p]
    return parts[-1] if parts else ''


def get_extension(path: str) -> str:
    """
    Get the file extension without the dot; dotfiles have no extension.
    """
    name = get_base_name(path)
    last_dot = name.rfind('.')
    if last_dot <= 0:
        return ''
    return name[last_dot + 1:]


def relative_path(base: str, target: str) -> str:
    """
    Express target relative to base when it lies below it.

    Args:
        base: Base directory
        target: Path to relativize

    Returns:
        Relative storage path, or target in storage form when outside base
    """
    base_norm = to_storage_path(base).rstrip('/')
    target_norm = to_storage_path(target)
    if target_norm.startswith(base_norm + '/'):
        return target_norm[len(base_norm) + 1:]
    return target_norm


def is_valid_asset_filename(name: str) -> bool:
    """
    Check that a name is a bare, visible filename that is not a temp file.
    """
    if not name or '/' in name or '\\' in name:
        return False
    return not name.startswith('.') and not name.lower().endswith(TEMP_EXTENSION)


def build_asset_path(filename: str, app_name: str = DEFAULT_APP_NAME,
                     folder: str = DEFAULT_ASSET_FOLDER) -> str:
    """
    Build the relative storage path of an asset.

    Args:
        filename: Asset filename
        app_name: Application name used for the hidden metadata directory
        folder: Asset folder under the assets directory

    Returns:
        Path shaped '.<app>/assets/<folder>/<filename>'
    """
    return f".{app_name}/{ASSETS_DIR_NAME}/{folder}/{filename}"
