"""Shared contracts for chkjam.

Types and protocols used across core modules. Nothing in here performs
I/O or depends on chkjam.core.
"""

from chkjam.contracts.checkpoint import Checkpoint, ResumeCheck
from chkjam.contracts.codec import Arena, ColdStateFactory, StateCodec
from chkjam.contracts.errors import (
    BothCheckpointsFailedError,
    CheckpointDecodeError,
    CheckpointError,
    CheckpointIOError,
    ColdStateError,
    InvalidChecksumError,
    MagicMismatchError,
    MalformedFieldError,
    MaterializationError,
    StateCodecError,
    TrailingBytesError,
    TruncatedRecordError,
    VersionMismatchError,
)

__all__ = [
    "Arena",
    "BothCheckpointsFailedError",
    "Checkpoint",
    "CheckpointDecodeError",
    "CheckpointError",
    "CheckpointIOError",
    "ColdStateError",
    "ColdStateFactory",
    "InvalidChecksumError",
    "MagicMismatchError",
    "MalformedFieldError",
    "MaterializationError",
    "ResumeCheck",
    "StateCodec",
    "StateCodecError",
    "TrailingBytesError",
    "TruncatedRecordError",
    "VersionMismatchError",
]
