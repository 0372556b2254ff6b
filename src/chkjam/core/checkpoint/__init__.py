"""Checkpoint subsystem for crash recovery.

Provides:
- JammedCheckpoint/ExportedState: On-disk record types and their binary codecs
- RecoveryManager: Select and load the freshest valid of two buffer slots
- JamPaths: The two slot files of a persistence directory
- CheckpointWriter: Alternating, atomic slot writer
- CheckpointCompatibilityValidator: Kernel hash / version checks before resume
- materialize: Turn a validated record into a live Checkpoint
- export_state/read_export/import_state: Portable kernel state records
"""

from chkjam.contracts import Checkpoint, ResumeCheck
from chkjam.core.checkpoint.compatibility import CheckpointCompatibilityValidator
from chkjam.core.checkpoint.export import build_export, export_state, import_state, read_export
from chkjam.core.checkpoint.format import (
    CHECKPOINT_MAGIC,
    CURRENT_VERSION,
    EXPORT_MAGIC,
    ExportedState,
    JammedCheckpoint,
    decode_checkpoint,
    decode_export,
    encode_checkpoint,
    encode_export,
    peek_record_kind,
)
from chkjam.core.checkpoint.materializer import materialize
from chkjam.core.checkpoint.recovery import (
    DEFAULT_EXTENSION,
    JamPaths,
    RecoveryManager,
    SlotSelection,
    read_slot,
    recover,
    select_checkpoint,
)
from chkjam.core.checkpoint.writer import CheckpointWriter, atomic_write_bytes

__all__ = [
    "CHECKPOINT_MAGIC",
    "CURRENT_VERSION",
    "DEFAULT_EXTENSION",
    "EXPORT_MAGIC",
    "Checkpoint",
    "CheckpointCompatibilityValidator",
    "CheckpointWriter",
    "ExportedState",
    "JamPaths",
    "JammedCheckpoint",
    "RecoveryManager",
    "ResumeCheck",
    "SlotSelection",
    "atomic_write_bytes",
    "build_export",
    "decode_checkpoint",
    "decode_export",
    "encode_checkpoint",
    "encode_export",
    "export_state",
    "import_state",
    "materialize",
    "peek_record_kind",
    "read_export",
    "read_slot",
    "recover",
    "select_checkpoint",
]
