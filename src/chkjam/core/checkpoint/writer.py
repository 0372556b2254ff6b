"""Reference writer honouring the dual-buffer alternation discipline.

Write-side contract:
- Each new checkpoint targets the slot NOT holding the last good checkpoint
- A write only counts once the full record is durably on disk
- The last good slot is never touched while a write is in flight

Deciding *when* to checkpoint stays with the runtime.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from chkjam.contracts import Checkpoint, ColdStateFactory, StateCodec
from chkjam.core.checkpoint.format import CURRENT_VERSION, JammedCheckpoint
from chkjam.core.checkpoint.recovery import JamPaths

logger = structlog.get_logger(__name__)


def atomic_write_bytes(path: Path, data: bytes, *, fsync: bool = True) -> None:
    """Replace path with data so readers see either the old or the new file.

    Writes a temp file in the same directory, flushes and fsyncs it, renames
    it over path, then fsyncs the directory so the rename itself is durable.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            if fsync:
                os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    if fsync:
        _fsync_directory(path.parent)


def _fsync_directory(directory: Path) -> None:
    # Directories cannot be opened for fsync on Windows
    if not hasattr(os, "O_DIRECTORY"):
        return
    dir_fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


class CheckpointWriter:
    """Writes checkpoints alternately to the two slots of a JamPaths.

    Seed it with the checkpoint recovery returned (or None on first boot) so
    the first write lands in the slot that does NOT hold that checkpoint.
    """

    def __init__(
        self,
        paths: JamPaths,
        codec: StateCodec,
        cold_factory: ColdStateFactory,
        *,
        kernel_hash: bytes,
        version: int = CURRENT_VERSION,
        last: Checkpoint | JammedCheckpoint | None = None,
        fsync: bool = True,
    ) -> None:
        self._paths = paths
        self._codec = codec
        self._cold_factory = cold_factory
        self._kernel_hash = kernel_hash
        self._version = version
        self._fsync = fsync
        self._next_index = 0 if last is None else 1 - last.buffer_index
        self._last_event: int | None = None if last is None else last.event_number

    @property
    def next_buffer_index(self) -> int:
        return self._next_index

    @property
    def last_event_number(self) -> int | None:
        return self._last_event

    def write(self, kernel_state: Any, cold_state: Any, event_number: int) -> JammedCheckpoint:
        """Durably write a checkpoint to the next slot.

        Args:
            kernel_state: Interpreter state to persist
            cold_state: Cold cache to persist alongside it
            event_number: Logical clock; must exceed the last written event

        Returns:
            The record that was written

        Raises:
            ValueError: If event_number does not strictly increase
            OSError: If the write fails (the previous good slot is untouched)
        """
        if self._last_event is not None and event_number <= self._last_event:
            raise ValueError(f"event_number must strictly increase: got {event_number} after {self._last_event}")

        payload = self._codec.serialize([kernel_state, self._cold_factory.decompose(cold_state)])
        record = JammedCheckpoint.new(
            version=self._version,
            buffer_index=self._next_index,
            kernel_hash=self._kernel_hash,
            event_number=event_number,
            payload=payload,
        )
        path = self._paths.slot(record.buffer_index)
        atomic_write_bytes(path, record.encode(), fsync=self._fsync)

        # Only toggle once the write is complete
        self._next_index = 1 - record.buffer_index
        self._last_event = event_number

        logger.debug(
            "Checkpoint written",
            path=str(path),
            event_number=event_number,
            payload_bytes=len(payload),
        )
        return record
