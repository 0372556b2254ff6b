"""Checkpoint and recovery domain contracts.

These are the in-memory types handed to the runtime after recovery. The
on-disk record types live in chkjam.core.checkpoint.format.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ResumeCheck:
    """Result of checking if a checkpoint can be resumed.

    Used by RecoveryManager and CheckpointCompatibilityValidator to
    communicate whether resume is possible and why/why not.
    """

    can_resume: bool
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.can_resume and self.reason is not None:
            raise ValueError("can_resume=True should not have a reason")
        if not self.can_resume and self.reason is None:
            raise ValueError("can_resume=False must have a reason explaining why")


@dataclass
class Checkpoint:
    """Fully materialized checkpoint.

    kernel_state and cold_state are owned by the arena they were loaded into.
    cold_state is left out of repr since jet caches are large and unreadable.
    """

    magic: bytes
    version: int
    buffer_index: int
    kernel_hash: bytes
    event_number: int
    kernel_state: Any
    cold_state: Any = field(repr=False)

    @property
    def next_buffer_index(self) -> int:
        """Slot the next checkpoint must be written to."""
        return 1 - self.buffer_index
