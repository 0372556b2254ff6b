# src/chkjam/contracts/errors.py
"""Checkpoint error taxonomy.

Every failure a buffer slot can produce during recovery is a subclass of
CheckpointError, so recovery can classify a slot as "failed" without caring
which layer rejected it:

- CheckpointIOError: the file could not be read
- CheckpointDecodeError (and subclasses): bytes are structurally malformed
- InvalidChecksumError: bytes are well-formed but the content is corrupted or torn
- MaterializationError: checksum-valid payload that is not a valid interpreter value
- BothCheckpointsFailedError: neither slot is usable (the only fatal recovery path)
"""

from pathlib import Path


class CheckpointError(Exception):
    """Base class for all checkpoint failures.

    Attributes:
        path: File the failure relates to, or None for in-memory data
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class CheckpointIOError(CheckpointError):
    """Raised when a checkpoint file cannot be read (missing, permissions, short read)."""

    pass


# =============================================================================
# Structural decode failures
# =============================================================================


class CheckpointDecodeError(CheckpointError):
    """Raised when bytes do not form a structurally valid record.

    This is the only error class raised by the decoders. Decoding untrusted
    bytes never raises anything else.

    Attributes:
        offset: Byte offset at which decoding failed, if known
    """

    def __init__(self, message: str, *, path: Path | None = None, offset: int | None = None) -> None:
        super().__init__(message, path=path)
        self.offset = offset


class TruncatedRecordError(CheckpointDecodeError):
    """Raised when input ends before a field (or the declared payload) is complete."""

    pass


class MagicMismatchError(CheckpointDecodeError):
    """Raised when the magic tag does not identify the expected record kind."""

    pass


class VersionMismatchError(CheckpointDecodeError):
    """Raised when a record's version differs from the version the caller requires."""

    pass


class MalformedFieldError(CheckpointDecodeError):
    """Raised when a field holds a value outside its domain (bad bool byte, bad varint tag)."""

    pass


class TrailingBytesError(CheckpointDecodeError):
    """Raised when bytes remain after the payload of a complete record."""

    pass


# =============================================================================
# Content failures
# =============================================================================


class InvalidChecksumError(CheckpointError):
    """Raised when a decoded record's checksum does not match its content.

    Indicates disk corruption or a torn write. The record must never be
    partially trusted.
    """

    pass


class MaterializationError(CheckpointError):
    """Raised when a checksum-valid payload cannot become live interpreter state.

    Distinct from InvalidChecksumError: the bytes were intact at the framing
    level, so this points at a format or version incompatibility rather than
    disk corruption.
    """

    pass


class BothCheckpointsFailedError(CheckpointError):
    """Raised when neither buffer slot yields a usable checkpoint.

    Owns both underlying failures so the operator can see which failure mode
    hit which file.

    Attributes:
        first: Failure of slot 0
        second: Failure of slot 1
    """

    def __init__(self, first: CheckpointError, second: CheckpointError) -> None:
        super().__init__(f"Both checkpoints failed: {first}, {second}")
        self.first = first
        self.second = second

    @property
    def causes(self) -> tuple[CheckpointError, CheckpointError]:
        """Both failures in slot order."""
        return (self.first, self.second)


# =============================================================================
# Collaborator failures (raised by state codec / cold cache implementations)
# =============================================================================


class StateCodecError(Exception):
    """Raised by a state codec when bytes do not decode into an interpreter value."""

    pass


class ColdStateError(Exception):
    """Raised by a cold cache factory when a flattened form cannot be reconstructed."""

    pass
