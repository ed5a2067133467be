"""Unit tests for path normalization helpers."""

import pytest

from storage.paths import (
    build_asset_path,
    get_base_name,
    get_extension,
    get_parent_path,
    get_path_separator,
    is_absolute_path,
    is_relative_path,
    is_valid_asset_filename,
    join_path,
    relative_path,
    to_os_path,
    to_storage_path,
)


class TestStoragePath:
    """Test separator conversion."""

    def test_backslashes_replaced(self):
        assert to_storage_path('C:\\Users\\me\\notes') == 'C:/Users/me/notes'

    def test_idempotent(self):
        once = to_storage_path('a\\b/c\\d')
        assert to_storage_path(once) == once

    @pytest.mark.parametrize('text', ['', '\\', '\\\\server\\share', 'mixed\\and/forward', 'no-separators'])
    def test_no_backslash_survives(self, text):
        assert '\\' not in to_storage_path(text)

    @pytest.mark.parametrize('path', ['a/b/c.txt', '.nekotick/assets/covers/x.png', 'single', '/abs/path-1_2.md'])
    @pytest.mark.parametrize('separator', ['/', '\\'])
    def test_round_trip(self, path, separator):
        assert to_storage_path(to_os_path(path, separator)) == path

    def test_os_path_windows_style(self):
        assert to_os_path('a/b/c', '\\') == 'a\\b\\c'


class TestRelativePath:
    """Test relative/absolute classification."""

    @pytest.mark.parametrize('path', ['C:\\Users', 'd:/data', '\\\\server\\share', '/usr/local'])
    def test_absolute_paths(self, path):
        assert is_relative_path(path) is False
        assert is_absolute_path(path) is True

    @pytest.mark.parametrize('path', ['notes/today.md', '.nekotick/store', 'C:relative', 'file.txt'])
    def test_relative_paths(self, path):
        assert is_relative_path(path) is True

    def test_separator_guess(self):
        assert get_path_separator('C:\\Users') == '\\'
        assert get_path_separator('/home/me') == '/'
        assert get_path_separator(None) == '/'


class TestJoinAndSplit:
    """Test joining and splitting helpers."""

    def test_join_collapses_seams(self):
        assert join_path('a/', '/b/', 'c.txt') == 'a/b/c.txt'

    def test_join_keeps_root(self):
        assert join_path('/', 'nekotick', 'store') == '/nekotick/store'

    def test_join_skips_empty(self):
        assert join_path('', 'a', '', 'b') == 'a/b'

    def test_parent_path(self):
        assert get_parent_path('a/b/c.txt') == 'a/b'
        assert get_parent_path('/top') == '/'
        assert get_parent_path('file.txt') is None

    def test_base_name_and_extension(self):
        assert get_base_name('a\\b\\photo.JPG') == 'photo.JPG'
        assert get_extension('a/b/photo.JPG') == 'JPG'
        assert get_extension('.hidden') == ''
        assert get_extension('archive.tar.gz') == 'gz'

    def test_relative_to_base(self):
        assert relative_path('/base/dir', '/base/dir/.nekotick/x.png') == '.nekotick/x.png'
        assert relative_path('/base/dir', '/elsewhere/x.png') == '/elsewhere/x.png'


class TestAssetPaths:
    """Test asset path helpers."""

    def test_valid_asset_filename(self):
        assert is_valid_asset_filename('cover.png')
        assert not is_valid_asset_filename('')
        assert is_valid_asset_filename('README')
        assert not is_valid_asset_filename('.cover.png')
        assert not is_valid_asset_filename('notes.tmp')
        assert not is_valid_asset_filename('notes.TMP')
        assert not is_valid_asset_filename('dir/cover.png')
        assert not is_valid_asset_filename('dir\\cover.png')

    def test_build_asset_path(self):
        assert build_asset_path('x.png') == '.nekotick/assets/covers/x.png'
        assert build_asset_path('x.png', app_name='other', folder='icons') == '.other/assets/icons/x.png'
