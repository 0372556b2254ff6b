# tests/cli/conftest.py
"""Shared fixtures and helpers for CLI tests."""

from pathlib import Path

import pytest

from chkjam.core.checkpoint import CheckpointWriter, JamPaths
from chkjam.core.state_codec import ColdCacheFactory, JsonStateCodec
from tests.conftest import KERNEL_HASH, make_cold_cache


def populate_jam_dir(directory: Path, events: int) -> JamPaths:
    """Write `events` checkpoints through the reference writer.

    Event n holds kernel state {"event": n}; slots alternate starting at 0.
    """
    paths = JamPaths.new(directory)
    writer = CheckpointWriter(paths, JsonStateCodec(), ColdCacheFactory(), kernel_hash=KERNEL_HASH, fsync=False)
    for event in range(1, events + 1):
        writer.write({"event": event}, make_cold_cache(), event)
    return paths


@pytest.fixture
def jam_dir(tmp_path: Path) -> Path:
    """Checkpoint directory holding event 1 in slot 0 and event 2 in slot 1."""
    directory = tmp_path / "jam"
    populate_jam_dir(directory, 2)
    return directory
