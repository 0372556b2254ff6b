"""Dual-buffer recovery of the most recent valid checkpoint.

Checkpoints alternate between two slot files. Recovery protocol:
1. Read, decode and checksum-validate each slot independently
2. Both valid: the strictly greater event number wins (slot 0 on a tie)
3. One valid: use it, log the other slot's failure as a warning
4. Neither valid: raise BothCheckpointsFailedError carrying both causes
5. Materialize the winner into the caller's arena

The writer keeps this correct by always targeting the slot opposite to the
last good checkpoint and never touching the good slot until the new write is
durable. Under that discipline step 3 always has a fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from chkjam.contracts import (
    Arena,
    BothCheckpointsFailedError,
    Checkpoint,
    CheckpointError,
    CheckpointIOError,
    ColdStateFactory,
    InvalidChecksumError,
    ResumeCheck,
    StateCodec,
)
from chkjam.core.checkpoint.compatibility import CheckpointCompatibilityValidator
from chkjam.core.checkpoint.format import JammedCheckpoint, decode_checkpoint
from chkjam.core.checkpoint.materializer import materialize

__all__ = [
    "DEFAULT_EXTENSION",
    "JamPaths",
    "RecoveryManager",
    "SlotResult",
    "SlotSelection",
    "read_slot",
    "recover",
    "select_checkpoint",
]

logger = structlog.get_logger(__name__)

DEFAULT_EXTENSION = "chkjam"

# Outcome of reading one slot: the record, or why the slot is unusable
SlotResult = JammedCheckpoint | CheckpointError


@dataclass(frozen=True)
class JamPaths:
    """The two buffer slot files of one persistence directory."""

    slot_0: Path
    slot_1: Path

    @classmethod
    def new(cls, directory: Path, extension: str = DEFAULT_EXTENSION) -> JamPaths:
        return cls(directory / f"0.{extension}", directory / f"1.{extension}")

    def slot(self, index: int) -> Path:
        """Path of slot 0 or 1."""
        if index == 0:
            return self.slot_0
        if index == 1:
            return self.slot_1
        raise ValueError(f"slot index must be 0 or 1, got {index}")

    def checkpoint_exists(self) -> bool:
        return self.slot_0.exists() or self.slot_1.exists()


@dataclass(frozen=True)
class SlotSelection:
    """Record chosen by select_checkpoint().

    Attributes:
        record: The winning record
        slot: Slot the record was read from
        discarded: Failure of the other slot, if it failed (non-fatal)
    """

    record: JammedCheckpoint
    slot: int
    discarded: CheckpointError | None = None


def read_slot(path: Path, *, expected_version: int | None = None) -> JammedCheckpoint:
    """Read, decode and checksum-validate one slot file.

    Raises:
        CheckpointIOError: If the file cannot be read
        CheckpointDecodeError: If the file is not a structurally valid record
        InvalidChecksumError: If the record's content does not match its checksum
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CheckpointIOError(f"Cannot read checkpoint {path}: {e}", path=path) from e

    record = decode_checkpoint(data, source=path, expected_version=expected_version)
    if not record.validate():
        raise InvalidChecksumError(f"Invalid checksum at {path}", path=path)
    return record


def select_checkpoint(slot_0: SlotResult, slot_1: SlotResult) -> SlotSelection:
    """Choose the freshest usable record from two slot outcomes.

    Pure: performs no I/O, so callers can inject pre-decoded records.

    Raises:
        BothCheckpointsFailedError: If both inputs are failures
    """
    if isinstance(slot_0, CheckpointError):
        if isinstance(slot_1, CheckpointError):
            raise BothCheckpointsFailedError(slot_0, slot_1)
        return SlotSelection(record=slot_1, slot=1, discarded=slot_0)

    if isinstance(slot_1, CheckpointError):
        return SlotSelection(record=slot_0, slot=0, discarded=slot_1)

    # Writers never reuse an event number, so a tie means something external
    # copied a slot. Slot 0 wins to keep the choice deterministic.
    if slot_1.event_number > slot_0.event_number:
        return SlotSelection(record=slot_1, slot=1)
    return SlotSelection(record=slot_0, slot=0)


class RecoveryManager:
    """Loads the freshest valid checkpoint from a pair of slot files.

    Usage:
        recovery = RecoveryManager(JamPaths.new(data_dir), codec, cold_factory)

        check = recovery.can_resume(kernel_hash)
        if check.can_resume:
            checkpoint = recovery.load_checkpoint(arena)
    """

    def __init__(
        self,
        paths: JamPaths,
        codec: StateCodec,
        cold_factory: ColdStateFactory,
        *,
        expected_version: int | None = None,
    ) -> None:
        """Initialize recovery for one persistence directory.

        Args:
            paths: The two slot files
            codec: Interpreter value codec used to materialize the winner
            cold_factory: Rebuilds cold state for the winner
            expected_version: If given, records of any other version count as failed slots
        """
        self._paths = paths
        self._codec = codec
        self._cold_factory = cold_factory
        self._expected_version = expected_version

    @property
    def paths(self) -> JamPaths:
        return self._paths

    def decode_slot(self, index: int) -> JammedCheckpoint:
        """Read and validate a single slot.

        Raises:
            CheckpointError: If the slot is unusable (I/O, decode or checksum failure)
        """
        return read_slot(self._paths.slot(index), expected_version=self._expected_version)

    def _attempt(self, index: int) -> SlotResult:
        try:
            return self.decode_slot(index)
        except CheckpointError as e:
            return e

    def select(self) -> SlotSelection:
        """Decode both slots and pick the record to resume from.

        Raises:
            BothCheckpointsFailedError: If neither slot is usable
        """
        outcomes = (self._attempt(0), self._attempt(1))

        try:
            selection = select_checkpoint(*outcomes)
        except BothCheckpointsFailedError as e:
            for index, cause in enumerate(e.causes):
                logger.error("Checkpoint slot unusable", slot=index, path=str(self._paths.slot(index)), error=str(cause))
            raise

        if selection.discarded is not None:
            # The writer will overwrite the bad slot on its next cycle
            logger.warning(
                "Checkpoint slot unusable, falling back to other slot",
                slot=1 - selection.slot,
                path=str(self._paths.slot(1 - selection.slot)),
                error=str(selection.discarded),
            )

        record = selection.record
        if record.buffer_index != selection.slot:
            logger.warning(
                "Checkpoint buffer index does not match its slot file",
                slot=selection.slot,
                buffer_index=record.buffer_index,
            )

        logger.debug(
            "Loading checkpoint",
            path=str(self._paths.slot(selection.slot)),
            event_number=record.event_number,
            checksum=record.checksum.hex(),
        )
        return selection

    def load_checkpoint(self, arena: Arena) -> Checkpoint:
        """Select the freshest valid slot and materialize it into arena.

        Raises:
            BothCheckpointsFailedError: If neither slot is usable
            MaterializationError: If the winning payload is not valid interpreter state
        """
        selection = self.select()
        return materialize(arena, selection.record, self._codec, self._cold_factory)

    def can_resume(self, kernel_hash: bytes, format_version: int | None = None) -> ResumeCheck:
        """Check whether a usable checkpoint exists for the running kernel.

        Args:
            kernel_hash: Hash of the kernel image currently running
            format_version: If given, the checkpoint must carry this version

        Returns:
            ResumeCheck with can_resume=True if resumable,
            or can_resume=False with reason explaining why not.
        """
        if not self._paths.checkpoint_exists():
            return ResumeCheck(can_resume=False, reason="No checkpoint found for recovery")

        try:
            selection = self.select()
        except BothCheckpointsFailedError as e:
            # Return ResumeCheck instead of propagating exception (API contract)
            return ResumeCheck(can_resume=False, reason=str(e))

        validator = CheckpointCompatibilityValidator()
        return validator.validate(selection.record, kernel_hash, format_version)


def recover(
    directory: Path,
    arena: Arena,
    codec: StateCodec,
    cold_factory: ColdStateFactory,
    *,
    extension: str = DEFAULT_EXTENSION,
    expected_version: int | None = None,
) -> Checkpoint:
    """Recover the freshest valid checkpoint stored in directory.

    Raises:
        BothCheckpointsFailedError: If neither slot is usable
        MaterializationError: If the winning payload is not valid interpreter state
    """
    manager = RecoveryManager(
        JamPaths.new(directory, extension),
        codec,
        cold_factory,
        expected_version=expected_version,
    )
    return manager.load_checkpoint(arena)
