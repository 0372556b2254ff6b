# tests/property/checkpoint/test_selection_properties.py
"""Property-based tests for dual-buffer slot selection.

Properties tested:
- The selected record is never older than any usable slot
- A single failed slot always falls back to the other one
- Selection is symmetric apart from the slot-0 tie rule
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chkjam.contracts import BothCheckpointsFailedError, CheckpointError, InvalidChecksumError, TruncatedRecordError
from chkjam.core.checkpoint import JammedCheckpoint, select_checkpoint
from tests.conftest import KERNEL_HASH
from tests.strategies import STANDARD_SETTINGS, event_numbers
from tests.strategies.settings import QUICK_SETTINGS

slot_failures = st.sampled_from(
    [
        InvalidChecksumError("bad checksum"),
        TruncatedRecordError("short read"),
        CheckpointError("unreadable"),
    ]
)


def _record(event_number: int, buffer_index: int) -> JammedCheckpoint:
    return JammedCheckpoint.new(
        version=1,
        buffer_index=buffer_index,
        kernel_hash=KERNEL_HASH,
        event_number=event_number,
        payload=b"[null,[[],[],[]]]",
    )


class TestSelectionProperties:
    @given(first=event_numbers, second=event_numbers)
    @STANDARD_SETTINGS
    def test_selects_freshest(self, first: int, second: int) -> None:
        selection = select_checkpoint(_record(first, 0), _record(second, 1))

        assert selection.record.event_number == max(first, second)
        assert selection.discarded is None
        if first == second:
            assert selection.slot == 0
        else:
            assert selection.slot == (0 if first > second else 1)

    @given(event_number=event_numbers, failure=slot_failures, failed_slot=st.sampled_from([0, 1]))
    @STANDARD_SETTINGS
    def test_single_failure_falls_back(self, event_number: int, failure: CheckpointError, failed_slot: int) -> None:
        good_slot = 1 - failed_slot
        outcomes: list[JammedCheckpoint | CheckpointError] = [failure, failure]
        outcomes[good_slot] = _record(event_number, good_slot)

        selection = select_checkpoint(outcomes[0], outcomes[1])

        assert selection.slot == good_slot
        assert selection.record.event_number == event_number
        assert selection.discarded is failure

    @given(first=slot_failures, second=slot_failures)
    @QUICK_SETTINGS
    def test_double_failure_keeps_both_causes(self, first: CheckpointError, second: CheckpointError) -> None:
        with pytest.raises(BothCheckpointsFailedError) as exc_info:
            select_checkpoint(first, second)

        assert exc_info.value.causes == (first, second)
