"""Unit tests for filename sanitization, truncation and conflict resolution."""

from datetime import datetime

import pytest

from assets.filename_service import (
    FilenameFormat,
    generate_filename,
    get_mime_type,
    is_image_filename,
    process_filename,
    resolve_filename_conflict,
    sanitize_filename,
    truncate_filename,
)


class TestSanitize:
    """Test unsafe character removal."""

    def test_strips_dangerous_characters(self):
        assert sanitize_filename('a<b>c:d"e/f\\g|h?i*j.png') == 'abcdefghij.png'

    def test_trims_whitespace(self):
        assert sanitize_filename('  cover.png  ') == 'cover.png'

    def test_keeps_unicode_and_spaces(self):
        assert sanitize_filename('我的 封面.png') == '我的 封面.png'

    @pytest.mark.parametrize('name', ['', None, '   ', '<>:?*'])
    def test_falls_back_to_default(self, name):
        assert sanitize_filename(name) == 'untitled'

    @pytest.mark.parametrize('name,expected', [
        ('.cover.png', 'cover.png'),
        ('...hidden', 'hidden'),
        ('notes.tmp', 'notes_tmp'),
        ('Notes.TMP', 'Notes_TMP'),
        ('.tmp', 'tmp'),
    ])
    def test_reserved_names_rewritten(self, name, expected):
        assert sanitize_filename(name) == expected


class TestTruncate:
    """Test length limiting."""

    def test_short_name_unchanged(self):
        assert truncate_filename('a.png', 10) == 'a.png'

    def test_preserves_extension(self):
        result = truncate_filename('a' * 50 + '.jpeg', 20)
        assert result == 'a' * 15 + '.jpeg'
        assert len(result) == 20

    def test_extension_longer_than_limit(self):
        name = 'x.' + 'e' * 30
        assert truncate_filename(name, 10) == name[:10]

    def test_no_extension(self):
        assert truncate_filename('b' * 30, 8) == 'b' * 8


class TestResolveConflict:
    """Test conflict resolution."""

    def test_free_name_unchanged(self):
        assert resolve_filename_conflict('photo.jpg', ['other.jpg']) == 'photo.jpg'

    def test_skips_taken_suffixes(self):
        assert resolve_filename_conflict('photo.jpg', {'photo.jpg', 'photo_1.jpg'}) == 'photo_2.jpg'

    def test_case_insensitive_collision(self):
        result = resolve_filename_conflict('photo.jpg', {'Photo.JPG'})
        assert result == 'photo_1.jpg'

    def test_deterministic(self):
        existing = ['a.png', 'a_1.png', 'a_3.png']
        assert resolve_filename_conflict('a.png', existing) == resolve_filename_conflict('a.png', existing)
        assert resolve_filename_conflict('a.png', existing) == 'a_2.png'

    def test_result_is_unique(self):
        existing = {'x.png'}
        for _ in range(5):
            name = resolve_filename_conflict('x.png', existing)
            assert name.lower() not in {n.lower() for n in existing}
            existing.add(name)

    def test_name_without_extension(self):
        assert resolve_filename_conflict('README', ['readme']) == 'README_1'


class TestGenerate:
    """Test the three naming modes."""

    def test_original_mode_runs_pipeline(self):
        assert process_filename(' my:photo.png ', ['myphoto.png']) == 'myphoto_1.png'
        assert generate_filename(' my:photo.png ', FilenameFormat.ORIGINAL, ['myphoto.png']) == 'myphoto_1.png'

    def test_timestamp_mode(self):
        now = datetime(2024, 3, 9, 7, 5, 1)
        assert generate_filename('Shot.PNG', FilenameFormat.TIMESTAMP, [], now=now) == '2024-03-09_07-05-01.png'

    def test_timestamp_mode_deconflicts(self):
        now = datetime(2024, 3, 9, 7, 5, 1)
        result = generate_filename('a.jpg', 'timestamp', ['2024-03-09_07-05-01.jpg'], now=now)
        assert result == '2024-03-09_07-05-01_1.jpg'

    def test_sequence_mode_smallest_unused(self):
        assert generate_filename('x.png', FilenameFormat.SEQUENCE, ['1.png', '2.png', '4.png']) == '3.png'

    def test_sequence_mode_empty(self):
        assert generate_filename('x.webp', FilenameFormat.SEQUENCE, []) == '1.webp'

    def test_missing_extension_defaults_to_png(self):
        assert generate_filename('noext', FilenameFormat.SEQUENCE, []) == '1.png'

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            generate_filename('a.png', 'random', [])


class TestMimeTypes:
    """Test MIME detection from extensions."""

    @pytest.mark.parametrize('name,expected', [
        ('a.jpg', 'image/jpeg'),
        ('a.JPEG', 'image/jpeg'),
        ('dir/a.png', 'image/png'),
        ('a.svg', 'image/svg+xml'),
        ('a.webp', 'image/webp'),
        ('a.txt', 'application/octet-stream'),
        ('noext', 'application/octet-stream'),
    ])
    def test_get_mime_type(self, name, expected):
        assert get_mime_type(name) == expected

    def test_is_image_filename(self):
        assert is_image_filename('cover.gif')
        assert not is_image_filename('notes.md')


def test_generated_names_are_never_hidden_or_temp():
    for format in FilenameFormat:
        for name in ['.cover.png', 'notes.tmp']:
            result = generate_filename(name, format, [])
            assert not result.startswith('.')
            assert not result.lower().endswith('.tmp')
