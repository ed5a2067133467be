"""Tests for the debounced snapshot writer."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from common.exceptions import WriteFailureError
from snapshot import snapshot_writer
from snapshot.models import default_unified_data
from snapshot.snapshot_writer import SnapshotWriter, WriterState

SNAPSHOT_PATH = '.nekotick/store/data.json'
DELAY = 0.05


@pytest.fixture
def writer(backend):
    return SnapshotWriter(backend, delay=DELAY)


async def stored_envelope(backend):
    return json.loads(await backend.read_file(SNAPSHOT_PATH))


class TestDebounce:
    """Test coalescing of scheduled saves."""

    @pytest.mark.asyncio
    async def test_last_payload_wins(self, backend, writer):
        writer.schedule_save({'v': 1})
        writer.schedule_save({'v': 2})
        assert writer.state == WriterState.PENDING

        await asyncio.sleep(DELAY * 4)

        assert writer.write_count == 1
        assert writer.state == WriterState.IDLE
        assert (await stored_envelope(backend))['data'] == {'v': 2}

    @pytest.mark.asyncio
    async def test_nothing_written_before_delay(self, backend, writer):
        writer.schedule_save({'v': 1})
        await asyncio.sleep(0)

        assert writer.write_count == 0
        assert not await backend.exists(SNAPSHOT_PATH)
        await writer.flush()

    @pytest.mark.asyncio
    async def test_save_immediate_cancels_pending(self, backend, writer):
        writer.schedule_save({'v': 'scheduled'})

        envelope = await writer.save_immediate({'v': 'now'})
        await asyncio.sleep(DELAY * 4)

        assert writer.write_count == 1
        assert envelope.data == {'v': 'now'}
        assert (await stored_envelope(backend))['data'] == {'v': 'now'}

    @pytest.mark.asyncio
    async def test_flush_writes_pending(self, backend):
        writer = SnapshotWriter(backend, delay=60)
        writer.schedule_save({'v': 1})

        assert await writer.flush() is True
        assert writer.state == WriterState.IDLE
        assert (await stored_envelope(backend))['data'] == {'v': 1}
        assert await writer.flush() is False

    @pytest.mark.asyncio
    async def test_failed_debounced_write_stays_pending(self, backend, writer):
        failing = AsyncMock(side_effect=WriteFailureError(SNAPSHOT_PATH, 'disk full'))
        with patch.object(backend, 'rename', failing):
            writer.schedule_save({'v': 1})
            await asyncio.sleep(DELAY * 4)

        assert writer.state == WriterState.PENDING
        assert writer.pending_data == {'v': 1}

        assert await writer.flush() is True
        assert (await stored_envelope(backend))['data'] == {'v': 1}


class TestEnvelope:
    """Test the stored file shape."""

    @pytest.mark.asyncio
    async def test_envelope_fields(self, backend, writer):
        envelope = await writer.save_immediate({'progressItems': []})
        stored = await stored_envelope(backend)

        assert stored['version'] == 2
        assert stored['lastModified'] == envelope.lastModified
        assert stored['lastModified'] > 1_600_000_000_000

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, backend, writer):
        await writer.save_immediate({'v': 1})
        names = [info.name for info in await backend.list_dir('.nekotick/store', include_hidden=True)]
        assert names == ['data.json']

    @pytest.mark.asyncio
    async def test_save_immediate_failure_propagates(self, backend, writer):
        await writer.save_immediate({'v': 'old'})

        failing = AsyncMock(side_effect=WriteFailureError(SNAPSHOT_PATH, 'disk full'))
        with patch.object(backend, 'rename', failing):
            with pytest.raises(WriteFailureError):
                await writer.save_immediate({'v': 'new'})

        assert (await stored_envelope(backend))['data'] == {'v': 'old'}


class TestMirror:
    """Test the markdown mirror side output."""

    @pytest.mark.asyncio
    async def test_mirror_written(self, backend, writer):
        await writer.save_immediate({'progressItems': [{'title': 'Read', 'current': 3, 'unit': 'pages'}]})

        mirror = await backend.read_file('nekotick.md')
        assert mirror.startswith('# Progress')
        assert '3 pages' in mirror

    @pytest.mark.asyncio
    async def test_mirror_disabled(self, backend):
        writer = SnapshotWriter(backend, write_mirror=False)
        await writer.save_immediate({'v': 1})
        assert not await backend.exists('nekotick.md')

    @pytest.mark.asyncio
    async def test_mirror_failure_does_not_fail_save(self, backend, writer):
        real_write_atomic = snapshot_writer.write_atomic

        async def fail_on_mirror(target_backend, path, data):
            if path.endswith('.md'):
                raise WriteFailureError(path, 'read-only')
            await real_write_atomic(target_backend, path, data)

        with patch.object(snapshot_writer, 'write_atomic', fail_on_mirror):
            await writer.save_immediate({'v': 1})

        assert (await stored_envelope(backend))['data'] == {'v': 1}
        assert not await backend.exists('nekotick.md')


class TestListeners:
    """Test save notifications."""

    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self, writer):
        seen = []
        async_listener = AsyncMock()
        writer.add_listener(lambda envelope: seen.append(envelope.data))
        writer.add_listener(async_listener)

        await writer.save_immediate({'v': 1})

        assert seen == [{'v': 1}]
        async_listener.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_save(self, backend, writer):
        writer.add_listener(MagicMock(side_effect=RuntimeError('boom')))
        await writer.save_immediate({'v': 1})
        assert writer.write_count == 1


class TestLoad:
    """Test loading with fallback to defaults."""

    @pytest.mark.asyncio
    async def test_missing_file_gives_default(self, writer):
        assert await writer.load_unified_data() == default_unified_data()

    @pytest.mark.asyncio
    async def test_load_after_save(self, writer):
        payload = {'progressItems': [{'id': 'p1'}], 'settings': {'timezone': 0}}
        await writer.save_immediate(payload)
        assert await writer.load_unified_data() == payload

    @pytest.mark.asyncio
    @pytest.mark.parametrize('content', [
        '{broken',
        '[]',
        json.dumps({'version': 1, 'lastModified': 0, 'data': {'v': 1}}),
        json.dumps({'version': 2, 'lastModified': 0}),
        json.dumps({'version': 2, 'lastModified': 0, 'data': None}),
        json.dumps({'version': '2', 'lastModified': 0, 'data': {'v': 1}}),
        json.dumps({'version': 2, 'lastModified': '0', 'data': {'v': 1}}),
    ])
    async def test_unusable_file_gives_default(self, backend, writer, content):
        await backend.write_file(SNAPSHOT_PATH, content, recursive=True)
        assert await writer.load_unified_data() == default_unified_data()

    @pytest.mark.asyncio
    async def test_empty_payload_is_valid(self, backend, writer):
        await backend.write_file(
            SNAPSHOT_PATH,
            json.dumps({'version': 2, 'lastModified': 0, 'data': {}}),
            recursive=True,
        )
        assert await writer.load_unified_data() == {}

    @pytest.mark.asyncio
    async def test_non_utf8_file_gives_default(self, backend, writer):
        await backend.write_binary_file(SNAPSHOT_PATH, b'\xff\xfe\x00garbage', recursive=True)
        assert await writer.load_unified_data() == default_unified_data()
