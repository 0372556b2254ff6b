# tests/conftest.py
"""Shared test fixtures and helpers.

Provides the reference collaborators (codec, cold cache factory, arena) and
helpers for building valid checkpoint records and slot files.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from chkjam.core.checkpoint import CURRENT_VERSION, JammedCheckpoint, JamPaths
from chkjam.core.checksum import compute_kernel_hash
from chkjam.core.state_codec import ColdCache, ColdCacheFactory, JsonStateCodec, ValueArena

KERNEL_HASH = compute_kernel_hash(b"test kernel image")
OTHER_KERNEL_HASH = compute_kernel_hash(b"some other kernel image")


def make_cold_cache() -> ColdCache:
    cold = ColdCache()
    cold.register(battery="b1", root="r1", path="/jets/add")
    cold.register(battery="b2", root="r1", path="/jets/dec")
    return cold


def make_payload(kernel_state: Any, cold: ColdCache | None = None) -> bytes:
    """Serialize a [kernel_state, cold_flat] pair the way the writer does."""
    cold = cold if cold is not None else make_cold_cache()
    return JsonStateCodec().serialize([kernel_state, ColdCacheFactory().decompose(cold)])


def make_record(
    event_number: int,
    *,
    buffer_index: int = 0,
    kernel_state: Any = None,
    kernel_hash: bytes = KERNEL_HASH,
    version: int = CURRENT_VERSION,
) -> JammedCheckpoint:
    """Build a valid checkpoint record with a reference-codec payload."""
    state = kernel_state if kernel_state is not None else {"counter": event_number}
    return JammedCheckpoint.new(
        version=version,
        buffer_index=buffer_index,
        kernel_hash=kernel_hash,
        event_number=event_number,
        payload=make_payload(state),
    )


def write_slot(paths: JamPaths, index: int, data: bytes) -> Path:
    """Write raw bytes to a slot file."""
    path = paths.slot(index)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def corrupt_byte(data: bytes, offset: int) -> bytes:
    """Flip every bit of one byte."""
    buf = bytearray(data)
    buf[offset] ^= 0xFF
    return bytes(buf)


@pytest.fixture
def codec() -> JsonStateCodec:
    return JsonStateCodec()


@pytest.fixture
def cold_factory() -> ColdCacheFactory:
    return ColdCacheFactory()


@pytest.fixture
def arena() -> ValueArena:
    return ValueArena()


@pytest.fixture
def jam_paths(tmp_path: Path) -> JamPaths:
    return JamPaths.new(tmp_path / "checkpoints")


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers installed by configure_logging() so tests don't leak streams."""
    yield
    logging.getLogger().handlers = []
    structlog.reset_defaults()


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
