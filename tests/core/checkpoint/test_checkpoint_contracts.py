"""Tests for checkpoint domain contracts."""

import pytest

from chkjam.contracts import (
    BothCheckpointsFailedError,
    Checkpoint,
    CheckpointDecodeError,
    CheckpointError,
    CheckpointIOError,
    ColdStateFactory,
    InvalidChecksumError,
    MagicMismatchError,
    MalformedFieldError,
    MaterializationError,
    ResumeCheck,
    StateCodec,
    TrailingBytesError,
    TruncatedRecordError,
    VersionMismatchError,
)
from chkjam.core.state_codec import ColdCacheFactory, JsonStateCodec


class TestResumeCheck:
    """ResumeCheck enforces reason iff can_resume is False."""

    def test_resumable_without_reason(self) -> None:
        assert ResumeCheck(can_resume=True).reason is None

    def test_resumable_with_reason_rejected(self) -> None:
        with pytest.raises(ValueError, match="should not have a reason"):
            ResumeCheck(can_resume=True, reason="nope")

    def test_not_resumable_requires_reason(self) -> None:
        with pytest.raises(ValueError, match="must have a reason"):
            ResumeCheck(can_resume=False)


class TestCheckpoint:
    def test_next_buffer_index_toggles(self) -> None:
        base = {"magic": b"CHKJAM\x00\x00", "version": 1, "kernel_hash": b"\x00" * 32, "event_number": 1, "kernel_state": None, "cold_state": None}
        assert Checkpoint(buffer_index=0, **base).next_buffer_index == 1  # type: ignore[arg-type]
        assert Checkpoint(buffer_index=1, **base).next_buffer_index == 0  # type: ignore[arg-type]


class TestErrorTaxonomy:
    """Every slot failure is a CheckpointError so recovery can classify it uniformly."""

    @pytest.mark.parametrize(
        "error_type",
        [TruncatedRecordError, MagicMismatchError, VersionMismatchError, MalformedFieldError, TrailingBytesError],
    )
    def test_structural_errors_are_decode_errors(self, error_type: type[CheckpointDecodeError]) -> None:
        assert issubclass(error_type, CheckpointDecodeError)

    @pytest.mark.parametrize(
        "error_type",
        [CheckpointIOError, CheckpointDecodeError, InvalidChecksumError, MaterializationError, BothCheckpointsFailedError],
    )
    def test_all_are_checkpoint_errors(self, error_type: type[CheckpointError]) -> None:
        assert issubclass(error_type, CheckpointError)

    def test_checksum_and_materialization_are_distinct(self) -> None:
        assert not issubclass(MaterializationError, InvalidChecksumError)
        assert not issubclass(InvalidChecksumError, MaterializationError)
        assert not issubclass(MaterializationError, CheckpointDecodeError)

    def test_decode_error_carries_offset(self) -> None:
        error = TruncatedRecordError("short", offset=12)
        assert error.offset == 12
        assert error.path is None


class TestCollaboratorProtocols:
    def test_reference_codec_satisfies_protocol(self) -> None:
        assert isinstance(JsonStateCodec(), StateCodec)

    def test_reference_cold_factory_satisfies_protocol(self) -> None:
        assert isinstance(ColdCacheFactory(), ColdStateFactory)
