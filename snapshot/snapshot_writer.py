"""Debounced, versioned, atomic writer for the unified snapshot."""

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from common.constants import (
    DEFAULT_APP_NAME,
    DEFAULT_SAVE_DELAY_SECONDS,
    SNAPSHOT_FILENAME,
    SNAPSHOT_VERSION,
    STORE_DIR_NAME,
)
from common.exceptions import ParseFailureError, PathNotFoundError, StorageError
from snapshot.markdown_mirror import render_markdown
from snapshot.models import SnapshotEnvelope, default_unified_data, parse_envelope
from storage.atomic_write import write_atomic
from storage.backend import StorageBackend

logger = logging.getLogger(__name__)

SaveListener = Callable[[SnapshotEnvelope], Union[None, Awaitable[None]]]


class WriterState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class SnapshotWriter:
    """
    Coalesces snapshot saves into delayed writes of the latest payload.

    IDLE --schedule_save(d)--> PENDING(d) --schedule_save(d')--> PENDING(d')
    PENDING(d) --timer fires / flush()--> write(d) --> IDLE
    any state --save_immediate(d)--> write(d) --> IDLE

    Each write stores '{version, lastModified, data}' atomically at
    '.<app>/store/data.json' and, when enabled, a markdown mirror at
    '<app>.md' in the base directory.
    """

    def __init__(
        self,
        backend: StorageBackend,
        app_name: str = DEFAULT_APP_NAME,
        delay: float = DEFAULT_SAVE_DELAY_SECONDS,
        write_mirror: bool = True,
    ):
        """
        Initialize writer.

        Args:
            backend: Storage backend to write through
            app_name: Application name
            delay: Debounce delay in seconds
            write_mirror: Whether to also write the markdown mirror
        """
        self.backend = backend
        self.app_name = app_name
        self.delay = delay
        self.write_mirror = write_mirror
        self.write_count = 0

        self._pending: Optional[Dict[str, Any]] = None
        self._timer: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()
        self._listeners: List[SaveListener] = []

    @property
    def snapshot_path(self) -> str:
        return f".{self.app_name}/{STORE_DIR_NAME}/{SNAPSHOT_FILENAME}"

    @property
    def mirror_path(self) -> str:
        return f"{self.app_name}.md"

    @property
    def state(self) -> WriterState:
        return WriterState.PENDING if self._pending is not None else WriterState.IDLE

    @property
    def pending_data(self) -> Optional[Dict[str, Any]]:
        return self._pending

    def add_listener(self, listener: SaveListener) -> None:
        """
        Register a callback invoked with the envelope after every successful write.

        Listeners may be plain functions or coroutine functions.
        """
        self._listeners.append(listener)

    def schedule_save(self, data: Dict[str, Any]) -> None:
        """
        Record data as the pending snapshot and restart the delay timer.

        Must be called from a running event loop.

        Args:
            data: Full payload; replaces any earlier pending payload
        """
        self._pending = data
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._fire_after_delay())

    async def save_immediate(self, data: Dict[str, Any]) -> SnapshotEnvelope:
        """
        Drop any pending save and write data now.

        Returns:
            The envelope that was written

        Raises:
            StorageError: If the snapshot could not be written
        """
        self._cancel_timer()
        self._pending = None
        return await self._write(data)

    async def flush(self) -> bool:
        """
        Write the pending snapshot now, if there is one.

        Returns:
            True if a snapshot was written
        """
        self._cancel_timer()
        data = self._pending
        if data is None:
            return False

        self._pending = None
        await self._write(data)
        return True

    async def load_unified_data(self) -> Dict[str, Any]:
        """
        Load the stored payload.

        A missing, unreadable, unparseable or wrong-version snapshot yields the
        default payload instead of an error.
        """
        try:
            raw = await self.backend.read_binary_file(self.snapshot_path)
        except PathNotFoundError:
            logger.info("No snapshot found, using default data")
            return default_unified_data()
        except StorageError as e:
            logger.error(f"Failed to read snapshot: {e}")
            return default_unified_data()

        try:
            envelope = parse_envelope(raw)
        except ParseFailureError as e:
            logger.warning(f"Ignoring stored snapshot: {e}")
            return default_unified_data()

        logger.debug(f"Loaded snapshot (lastModified={envelope.lastModified})")
        return envelope.data

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _fire_after_delay(self) -> None:
        await asyncio.sleep(self.delay)

        # past this point a reschedule arms a new timer and leaves this write running
        self._timer = None
        data = self._pending
        if data is None:
            return
        self._pending = None

        try:
            await self._write(data)
        except Exception as e:
            logger.error(f"Debounced snapshot save failed: {e}", exc_info=True)
            if self._pending is None:
                self._pending = data

    async def _write(self, data: Dict[str, Any]) -> SnapshotEnvelope:
        async with self._write_lock:
            envelope = SnapshotEnvelope(
                version=SNAPSHOT_VERSION,
                lastModified=int(time.time() * 1000),
                data=data,
            )

            await self.backend.mkdir(f".{self.app_name}/{STORE_DIR_NAME}", recursive=True)
            await write_atomic(self.backend, self.snapshot_path, envelope.model_dump_json(indent=2))
            self.write_count += 1

            if self.write_mirror:
                try:
                    await write_atomic(self.backend, self.mirror_path, render_markdown(data))
                except Exception as e:
                    logger.warning(f"Failed to write markdown mirror: {e}")

        logger.info(f"Saved snapshot (lastModified={envelope.lastModified})")
        await self._notify(envelope)
        return envelope

    async def _notify(self, envelope: SnapshotEnvelope) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(envelope)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Snapshot listener failed: {e}", exc_info=True)
