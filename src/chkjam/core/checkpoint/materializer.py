"""Turns a validated JammedCheckpoint into a live Checkpoint."""

from typing import Any

from chkjam.contracts import Arena, Checkpoint, ColdStateError, ColdStateFactory, MaterializationError, StateCodec, StateCodecError
from chkjam.core.checkpoint.format import JammedCheckpoint


def materialize(
    arena: Arena,
    record: JammedCheckpoint,
    codec: StateCodec,
    cold_factory: ColdStateFactory,
) -> Checkpoint:
    """Load a checkpoint's payload into arena.

    The payload decodes to one composite pair ``(kernel_state, cold_flat)``.
    The head becomes the kernel state; the tail is rebuilt into a cold state.

    Args:
        arena: Caller-owned arena that will own the decoded values
        record: A record whose checksum has already been validated
        codec: Interpreter value codec
        cold_factory: Rebuilds the cold state from its flattened form

    Returns:
        Materialized Checkpoint

    Raises:
        MaterializationError: If the payload is not a valid interpreter value,
            is not a pair, or its cold half cannot be reconstructed
    """
    try:
        composite = codec.deserialize(arena, record.payload)
    except StateCodecError as e:
        raise MaterializationError(f"Checkpoint payload rejected by state codec (event {record.event_number}): {e}") from e

    kernel_state, cold_flat = _split_pair(composite, record.event_number)

    try:
        cold_state = cold_factory.reconstruct(arena, cold_flat)
    except ColdStateError as e:
        raise MaterializationError(f"Checkpoint cold state is malformed (event {record.event_number}): {e}") from e

    return Checkpoint(
        magic=record.magic,
        version=record.version,
        buffer_index=record.buffer_index,
        kernel_hash=record.kernel_hash,
        event_number=record.event_number,
        kernel_state=kernel_state,
        cold_state=cold_state,
    )


def _split_pair(composite: Any, event_number: int) -> tuple[Any, Any]:
    if not isinstance(composite, list | tuple) or len(composite) != 2:
        raise MaterializationError(
            f"Checkpoint payload must be a [kernel_state, cold_state] pair (event {event_number}), got {type(composite).__name__}"
        )
    return composite[0], composite[1]
