"""Unit tests for the immutable asset index."""

import random

import pytest

from assets.asset_index import (
    AssetIndex,
    add_entry,
    check_consistency,
    create_empty_index,
    existing_filename_for,
    index_from_dict,
    index_to_dict,
    is_duplicate,
    remove_entry,
    sort_by_uploaded_desc,
)
from common.exceptions import IndexCorruptionError
from common.types import AssetEntry


def make_entry(filename, content_hash, uploaded_at='2024-01-01T00:00:00+00:00', size=10):
    return AssetEntry(
        filename=filename,
        hash=content_hash,
        size=size,
        mime_type='image/png',
        uploaded_at=uploaded_at,
    )


class TestIndexOperations:
    """Test copy-on-write updates."""

    def test_empty_index(self):
        index = create_empty_index()
        assert len(index) == 0
        assert check_consistency(index)

    def test_add_returns_new_index(self):
        empty = create_empty_index()
        index = add_entry(empty, make_entry('a.png', 'h1'))

        assert len(empty) == 0
        assert index.assets['a.png'].hash == 'h1'
        assert index.hash_map['h1'] == 'a.png'

    def test_lookup(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        assert is_duplicate(index, 'h1')
        assert not is_duplicate(index, 'h2')
        assert existing_filename_for(index, 'h1') == 'a.png'
        assert existing_filename_for(index, 'h2') is None

    def test_remove(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        removed = remove_entry(index, 'a.png')

        assert 'a.png' in index.assets
        assert 'a.png' not in removed.assets
        assert 'h1' not in removed.hash_map

    def test_remove_absent_is_noop(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        assert remove_entry(index, 'zzz.png') is index

    def test_replacing_filename_drops_old_hash(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        index = add_entry(index, make_entry('a.png', 'h2'))

        assert 'h1' not in index.hash_map
        assert index.hash_map['h2'] == 'a.png'
        assert check_consistency(index)

    def test_maps_are_read_only(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        with pytest.raises(TypeError):
            index.assets['b.png'] = make_entry('b.png', 'h2')
        with pytest.raises(TypeError):
            index.hash_map['h2'] = 'b.png'

    def test_consistency_after_every_step(self):
        rng = random.Random(7)
        index = create_empty_index()
        live = []

        for step in range(200):
            if live and rng.random() < 0.4:
                name = rng.choice(live)
                live.remove(name)
                index = remove_entry(index, name)
            else:
                name = f"file{step}.png"
                live.append(name)
                index = add_entry(index, make_entry(name, f"hash{step}"))
            assert check_consistency(index)

        assert sorted(index.assets) == sorted(live)


class TestConsistencyCheck:
    """Test detection of broken indices."""

    def test_dangling_hash_entry(self):
        index = AssetIndex(assets={}, hash_map={'h1': 'gone.png'})
        assert not check_consistency(index)

    def test_asset_missing_from_hash_map(self):
        index = AssetIndex(assets={'a.png': make_entry('a.png', 'h1')}, hash_map={})
        assert not check_consistency(index)

    def test_hash_mismatch(self):
        index = AssetIndex(assets={'a.png': make_entry('a.png', 'h1')}, hash_map={'h2': 'a.png'})
        assert not check_consistency(index)

    def test_filename_key_mismatch(self):
        index = AssetIndex(assets={'b.png': make_entry('a.png', 'h1')}, hash_map={'h1': 'b.png'})
        assert not check_consistency(index)


class TestSerialization:
    """Test the on-disk JSON shape."""

    def test_camel_case_shape(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        data = index_to_dict(index)

        assert data['version'] == 1
        assert data['hashMap'] == {'h1': 'a.png'}
        assert data['assets']['a.png']['mimeType'] == 'image/png'
        assert data['assets']['a.png']['uploadedAt'] == '2024-01-01T00:00:00+00:00'

    def test_parse_stored_index(self):
        index = add_entry(create_empty_index(), make_entry('a.png', 'h1'))
        parsed = index_from_dict(index_to_dict(index))
        assert parsed.assets['a.png'] == index.assets['a.png']

    @pytest.mark.parametrize('data', [
        [],
        {'version': 99, 'assets': {}, 'hashMap': {}},
        {'version': 1, 'assets': {}},
        {'version': 1, 'assets': {'a.png': {'filename': 'a.png'}}, 'hashMap': {}},
        {'version': 1, 'assets': {}, 'hashMap': {'h1': 'ghost.png'}},
        {'version': 1, 'assets': {}, 'hashMap': {'abc': ['x']}},
        {'version': 1, 'assets': {'a.png': {'filename': 'a.png', 'hash': ['h1'], 'size': 1, 'mimeType': 'image/png', 'uploadedAt': 'x'}}, 'hashMap': {}},
        {'version': 1, 'assets': {'a.png': {'filename': 7, 'hash': 'h1', 'size': 1, 'mimeType': 'image/png', 'uploadedAt': 'x'}}, 'hashMap': {'h1': 7}},
        {'version': 1, 'assets': {'a.png': 'a.png'}, 'hashMap': {}},
    ])
    def test_malformed_index_rejected(self, data):
        with pytest.raises(IndexCorruptionError):
            index_from_dict(data)


class TestSortByUploaded:
    """Test newest-first ordering."""

    def test_non_increasing_and_input_untouched(self):
        entries = [
            make_entry('a.png', 'h1', '2024-01-02T00:00:00+00:00'),
            make_entry('b.png', 'h2', '2024-01-05T00:00:00+00:00'),
            make_entry('c.png', 'h3', '2024-01-01T00:00:00+00:00'),
        ]
        original = list(entries)

        result = sort_by_uploaded_desc(entries)

        assert entries == original
        stamps = [e.uploaded_at for e in result]
        assert stamps == sorted(stamps, reverse=True)

    def test_stable_for_equal_timestamps(self):
        entries = [
            make_entry('first.png', 'h1', '2024-01-01T00:00:00+00:00'),
            make_entry('newer.png', 'h2', '2024-02-01T00:00:00+00:00'),
            make_entry('second.png', 'h3', '2024-01-01T00:00:00+00:00'),
        ]
        names = [e.filename for e in sort_by_uploaded_desc(entries)]
        assert names == ['newer.png', 'first.png', 'second.png']
