"""Export records: bare kernel state without recovery metadata.

Exports move interpreter state between machines. They carry no cold state
and no checksum, and the recovery path never reads them.
"""

from pathlib import Path
from typing import Any

from chkjam.contracts import Arena, MaterializationError, StateCodec, StateCodecError
from chkjam.core.checkpoint.format import ExportedState, decode_export


def build_export(
    codec: StateCodec,
    state: Any,
    version: int,
    kernel_hash: bytes,
    event_number: int,
) -> ExportedState:
    """Serialize kernel state into an ExportedState record."""
    return ExportedState(
        version=version,
        kernel_hash=kernel_hash,
        event_number=event_number,
        payload=codec.serialize(state),
    )


def export_state(
    codec: StateCodec,
    state: Any,
    version: int,
    kernel_hash: bytes,
    event_number: int,
) -> bytes:
    """Serialize kernel state into export record bytes."""
    return build_export(codec, state, version, kernel_hash, event_number).encode()


def read_export(data: bytes, *, source: Path | None = None, expected_version: int | None = None) -> ExportedState:
    """Decode export record bytes.

    Structural decode is the only validation; exports have no checksum.

    Raises:
        CheckpointDecodeError: If data is not a structurally valid export record
    """
    return decode_export(data, source=source, expected_version=expected_version)


def import_state(arena: Arena, record: ExportedState, codec: StateCodec) -> Any:
    """Deserialize an export record's kernel state into arena.

    Raises:
        MaterializationError: If the payload is rejected by the state codec
    """
    try:
        return codec.deserialize(arena, record.payload)
    except StateCodecError as e:
        raise MaterializationError(f"Exported state rejected by state codec (event {record.event_number}): {e}") from e
