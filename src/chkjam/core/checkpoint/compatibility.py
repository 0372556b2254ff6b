"""Checkpoint compatibility validation for resume operations.

A checkpoint is only trusted for resumption by the kernel image that
produced it. The recovery core never checks this itself; runtimes call the
validator before handing a checkpoint to the interpreter.
"""

import hmac

import structlog

from chkjam.contracts import Checkpoint, ResumeCheck
from chkjam.core.checkpoint.format import JammedCheckpoint


class CheckpointCompatibilityValidator:
    """Validates checkpoint compatibility with the running kernel.

    A checkpoint is compatible if:
    1. Its kernel hash matches the running kernel image
    2. Its format version matches, when a version is required

    Cross-version resume is unsupported: there is no migration logic, the
    version tag is carried for future dispatch only.
    """

    def __init__(self) -> None:
        """Initialize validator."""
        self._logger = structlog.get_logger(__name__)

    def validate(
        self,
        checkpoint: Checkpoint | JammedCheckpoint,
        kernel_hash: bytes,
        format_version: int | None = None,
    ) -> ResumeCheck:
        """Validate a checkpoint (materialized or raw record) against the running kernel.

        Args:
            checkpoint: The checkpoint to validate
            kernel_hash: Hash of the kernel image currently running
            format_version: Required format version, or None to accept any

        Returns:
            ResumeCheck with can_resume=True if compatible,
            or can_resume=False with specific reason if not.
        """
        if not hmac.compare_digest(checkpoint.kernel_hash, kernel_hash):
            self._logger.info(
                "Checkpoint kernel hash mismatch",
                event_number=checkpoint.event_number,
                checkpoint_kernel=checkpoint.kernel_hash.hex()[:16],
                running_kernel=kernel_hash.hex()[:16],
            )
            return ResumeCheck(
                can_resume=False,
                reason=f"Checkpoint at event {checkpoint.event_number} was produced by a different kernel. "
                f"(Checkpoint kernel hash: {checkpoint.kernel_hash.hex()[:16]}..., "
                f"Running: {kernel_hash.hex()[:16]}...)",
            )

        if format_version is not None and checkpoint.version != format_version:
            return ResumeCheck(
                can_resume=False,
                reason=f"Checkpoint has incompatible format version "
                f"(checkpoint: v{checkpoint.version}, current: v{format_version}). "
                "Resume requires exact format version match.",
            )

        return ResumeCheck(can_resume=True)
