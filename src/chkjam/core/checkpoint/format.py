# src/chkjam/core/checkpoint/format.py
"""On-disk binary formats for checkpoint and export records.

Checkpoint record layout (all integers little-endian):

    magic(8) | version(u32) | buffer_index(1) | kernel_hash(32) |
    checksum(32) | event_number(u64) | payload_len(varint) | payload

Export record layout:

    magic(8) | version(u32) | kernel_hash(32) | event_number(u64) |
    payload_len(varint) | payload

The payload length uses the bincode varint scheme: values below 251 are a
single byte, otherwise a tag byte (251/252/253) is followed by a u16/u32/u64.

Decoders are the only code that sees untrusted bytes. They raise
CheckpointDecodeError subclasses for every malformed input and never index
past the end of the buffer.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from chkjam.contracts.errors import (
    MagicMismatchError,
    MalformedFieldError,
    TrailingBytesError,
    TruncatedRecordError,
    VersionMismatchError,
)
from chkjam.core.checksum import DIGEST_SIZE, compute_checksum, validate_checksum

__all__ = [
    "CHECKPOINT_MAGIC",
    "CURRENT_VERSION",
    "EXPORT_MAGIC",
    "ExportedState",
    "JammedCheckpoint",
    "decode_checkpoint",
    "decode_export",
    "decode_varint",
    "encode_checkpoint",
    "encode_export",
    "encode_varint",
    "peek_record_kind",
]

# ASCII tags, zero-padded to 8 bytes. Distinct so neither record kind can be
# misread as the other.
CHECKPOINT_MAGIC = b"CHKJAM\x00\x00"
EXPORT_MAGIC = b"EXPJAM\x00\x00"
MAGIC_SIZE = 8

CURRENT_VERSION = 1

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")

# bincode varint tags
_SINGLE_BYTE_MAX = 250
_TAG_U16 = 251
_TAG_U32 = 252
_TAG_U64 = 253

RecordKind = Literal["checkpoint", "export"]


def _check_header(magic: bytes, expected_magic: bytes, version: int, kernel_hash: bytes, event_number: int, payload: bytes) -> None:
    """Range checks shared by both record kinds."""
    if magic != expected_magic:
        raise ValueError(f"magic must be {expected_magic!r}, got {magic!r}")
    if not 0 <= version < 2**32:
        raise ValueError(f"version must fit in u32, got {version}")
    if len(kernel_hash) != DIGEST_SIZE:
        raise ValueError(f"kernel_hash must be {DIGEST_SIZE} bytes, got {len(kernel_hash)}")
    if not 0 <= event_number < 2**64:
        raise ValueError(f"event_number must fit in u64, got {event_number}")
    if not isinstance(payload, bytes):
        raise TypeError(f"payload must be bytes, got {type(payload).__name__}")


@dataclass(frozen=True)
class JammedCheckpoint:
    """A checkpoint as stored in one buffer slot.

    The payload is a single serialized value holding both the kernel state
    and the flattened cold state. Use new() to build one; it computes the
    checksum. A record is only trustworthy if validate() returns True.
    """

    version: int
    buffer_index: int
    kernel_hash: bytes
    checksum: bytes
    event_number: int
    payload: bytes = field(repr=False)
    magic: bytes = CHECKPOINT_MAGIC

    def __post_init__(self) -> None:
        _check_header(self.magic, CHECKPOINT_MAGIC, self.version, self.kernel_hash, self.event_number, self.payload)
        if self.buffer_index not in (0, 1):
            raise ValueError(f"buffer_index must be 0 or 1, got {self.buffer_index}")
        if len(self.checksum) != DIGEST_SIZE:
            raise ValueError(f"checksum must be {DIGEST_SIZE} bytes, got {len(self.checksum)}")

    @classmethod
    def new(
        cls,
        version: int,
        buffer_index: int,
        kernel_hash: bytes,
        event_number: int,
        payload: bytes,
    ) -> JammedCheckpoint:
        """Build a record, computing its checksum from event_number and payload."""
        return cls(
            version=version,
            buffer_index=buffer_index,
            kernel_hash=kernel_hash,
            checksum=compute_checksum(event_number, payload),
            event_number=event_number,
            payload=payload,
        )

    def validate(self) -> bool:
        """True if the stored checksum matches the record's content."""
        return validate_checksum(self.checksum, self.event_number, self.payload)

    def encode(self) -> bytes:
        return encode_checkpoint(self)


@dataclass(frozen=True)
class ExportedState:
    """Portable kernel state without cold state or checksum.

    Exports are single-shot artifacts for moving state between machines.
    They are never read by the recovery path.
    """

    version: int
    kernel_hash: bytes
    event_number: int
    payload: bytes = field(repr=False)
    magic: bytes = EXPORT_MAGIC

    def __post_init__(self) -> None:
        _check_header(self.magic, EXPORT_MAGIC, self.version, self.kernel_hash, self.event_number, self.payload)

    def encode(self) -> bytes:
        return encode_export(self)


# =============================================================================
# Varint
# =============================================================================


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer with the bincode varint scheme."""
    if value < 0:
        raise ValueError(f"varint must be non-negative, got {value}")
    if value <= _SINGLE_BYTE_MAX:
        return bytes([value])
    if value < 2**16:
        return bytes([_TAG_U16]) + _U16.pack(value)
    if value < 2**32:
        return bytes([_TAG_U32]) + _U32.pack(value)
    if value < 2**64:
        return bytes([_TAG_U64]) + _U64.pack(value)
    raise ValueError(f"varint must fit in u64, got {value}")


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint starting at offset.

    Returns:
        (value, offset just past the varint)

    Raises:
        TruncatedRecordError: If data ends inside the varint
        MalformedFieldError: If the tag byte is not a valid varint tag
    """
    reader = _Reader(data)
    reader.seek(offset)
    value = reader.varint("varint")
    return value, reader.offset


# =============================================================================
# Reader
# =============================================================================


class _Reader:
    """Bounds-checked cursor over untrusted bytes."""

    def __init__(self, data: bytes, source: Path | None = None) -> None:
        self._data = bytes(data)
        self._pos = 0
        self._source = source

    @property
    def offset(self) -> int:
        return self._pos

    def seek(self, offset: int) -> None:
        if not 0 <= offset <= len(self._data):
            raise TruncatedRecordError(self.describe(f"offset {offset} is outside {len(self._data)} bytes of input"), path=self._source, offset=offset)
        self._pos = offset

    def describe(self, text: str) -> str:
        return f"{self._source}: {text}" if self._source is not None else text

    def take(self, size: int, what: str) -> bytes:
        remaining = len(self._data) - self._pos
        if size > remaining:
            raise TruncatedRecordError(
                self.describe(f"truncated {what}: need {size} bytes at offset {self._pos}, only {remaining} remain"),
                path=self._source,
                offset=self._pos,
            )
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def u8(self, what: str) -> int:
        return self.take(1, what)[0]

    def u32(self, what: str) -> int:
        value: int = _U32.unpack(self.take(4, what))[0]
        return value

    def u64(self, what: str) -> int:
        value: int = _U64.unpack(self.take(8, what))[0]
        return value

    def varint(self, what: str) -> int:
        start = self._pos
        tag = self.u8(what)
        if tag <= _SINGLE_BYTE_MAX:
            return tag
        if tag == _TAG_U16:
            value: int = _U16.unpack(self.take(2, what))[0]
            return value
        if tag == _TAG_U32:
            return self.u32(what)
        if tag == _TAG_U64:
            return self.u64(what)
        raise MalformedFieldError(self.describe(f"invalid varint tag {tag} for {what} at offset {start}"), path=self._source, offset=start)

    def magic(self, expected: bytes, kind: RecordKind) -> None:
        start = self._pos
        magic = self.take(MAGIC_SIZE, "magic")
        if magic == expected:
            return
        found = _KIND_BY_MAGIC.get(magic)
        detail = f"found {found} record" if found is not None else f"found {magic!r}"
        raise MagicMismatchError(self.describe(f"expected {kind} record, {detail}"), path=self._source, offset=start)

    def version(self, expected_version: int | None) -> int:
        start = self._pos
        version = self.u32("version")
        if expected_version is not None and version != expected_version:
            raise VersionMismatchError(
                self.describe(f"unsupported version {version} (expected {expected_version})"),
                path=self._source,
                offset=start,
            )
        return version

    def payload(self) -> bytes:
        length = self.varint("payload length")
        return self.take(length, "payload")

    def finish(self) -> None:
        remaining = len(self._data) - self._pos
        if remaining:
            raise TrailingBytesError(
                self.describe(f"{remaining} trailing bytes after payload at offset {self._pos}"),
                path=self._source,
                offset=self._pos,
            )


_KIND_BY_MAGIC: dict[bytes, RecordKind] = {
    CHECKPOINT_MAGIC: "checkpoint",
    EXPORT_MAGIC: "export",
}


# =============================================================================
# Encode / decode
# =============================================================================


def encode_checkpoint(record: JammedCheckpoint) -> bytes:
    """Serialize a checkpoint record to its on-disk bytes."""
    return b"".join(
        [
            record.magic,
            _U32.pack(record.version),
            bytes([record.buffer_index]),
            record.kernel_hash,
            record.checksum,
            _U64.pack(record.event_number),
            encode_varint(len(record.payload)),
            record.payload,
        ]
    )


def encode_export(record: ExportedState) -> bytes:
    """Serialize an export record to bytes."""
    return b"".join(
        [
            record.magic,
            _U32.pack(record.version),
            record.kernel_hash,
            _U64.pack(record.event_number),
            encode_varint(len(record.payload)),
            record.payload,
        ]
    )


def decode_checkpoint(
    data: bytes,
    *,
    source: Path | None = None,
    expected_version: int | None = None,
) -> JammedCheckpoint:
    """Decode a checkpoint record.

    Does NOT verify the checksum; callers decide how to treat a record
    whose validate() is False.

    Args:
        data: Raw record bytes (untrusted)
        source: File the bytes came from, used in error messages
        expected_version: If given, any other version is rejected

    Returns:
        Decoded JammedCheckpoint

    Raises:
        CheckpointDecodeError: If data is not a structurally valid checkpoint record
    """
    reader = _Reader(data, source)
    reader.magic(CHECKPOINT_MAGIC, "checkpoint")
    version = reader.version(expected_version)

    flag_offset = reader.offset
    buffer_index = reader.u8("buffer index")
    if buffer_index not in (0, 1):
        raise MalformedFieldError(
            reader.describe(f"invalid buffer index byte {buffer_index} at offset {flag_offset}"),
            path=source,
            offset=flag_offset,
        )

    kernel_hash = reader.take(DIGEST_SIZE, "kernel hash")
    checksum = reader.take(DIGEST_SIZE, "checksum")
    event_number = reader.u64("event number")
    payload = reader.payload()
    reader.finish()

    return JammedCheckpoint(
        version=version,
        buffer_index=buffer_index,
        kernel_hash=kernel_hash,
        checksum=checksum,
        event_number=event_number,
        payload=payload,
    )


def decode_export(
    data: bytes,
    *,
    source: Path | None = None,
    expected_version: int | None = None,
) -> ExportedState:
    """Decode an export record.

    Raises:
        CheckpointDecodeError: If data is not a structurally valid export record
    """
    reader = _Reader(data, source)
    reader.magic(EXPORT_MAGIC, "export")
    version = reader.version(expected_version)
    kernel_hash = reader.take(DIGEST_SIZE, "kernel hash")
    event_number = reader.u64("event number")
    payload = reader.payload()
    reader.finish()

    return ExportedState(
        version=version,
        kernel_hash=kernel_hash,
        event_number=event_number,
        payload=payload,
    )


def peek_record_kind(data: bytes) -> RecordKind | None:
    """Report which record kind the magic tag of data claims, if any."""
    return _KIND_BY_MAGIC.get(bytes(data[:MAGIC_SIZE]))
