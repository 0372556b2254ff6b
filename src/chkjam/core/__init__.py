# src/chkjam/core/__init__.py
"""Core infrastructure: Checksum, Checkpoint formats and recovery, Configuration, Logging."""

from chkjam.core.checkpoint import (
    CheckpointCompatibilityValidator,
    CheckpointWriter,
    ExportedState,
    JammedCheckpoint,
    JamPaths,
    RecoveryManager,
    export_state,
    recover,
)
from chkjam.core.checksum import compute_checksum, compute_kernel_hash, validate_checksum
from chkjam.core.config import ChkjamSettings, LoggingSettings, PersistenceSettings, load_settings
from chkjam.core.logging import configure_logging, get_logger
from chkjam.core.state_codec import ColdCache, ColdCacheFactory, JsonStateCodec, ValueArena

__all__ = [
    "CheckpointCompatibilityValidator",
    "CheckpointWriter",
    "ChkjamSettings",
    "ColdCache",
    "ColdCacheFactory",
    "ExportedState",
    "JamPaths",
    "JammedCheckpoint",
    "JsonStateCodec",
    "LoggingSettings",
    "PersistenceSettings",
    "RecoveryManager",
    "ValueArena",
    "compute_checksum",
    "compute_kernel_hash",
    "configure_logging",
    "export_state",
    "get_logger",
    "load_settings",
    "recover",
    "validate_checksum",
]
