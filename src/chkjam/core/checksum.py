# src/chkjam/core/checksum.py
"""
Integrity digests for checkpoint records.

The checksum covers, in this exact order:
1. Event number as little-endian u64
2. Payload length as little-endian u64
3. Payload bytes

Hashing the length separately means a payload cut short and padded back to
the same event number still produces a different digest. The order is part
of the on-disk format and must never change for a given format version.
"""

import hashlib
import hmac
import struct

__all__ = [
    "CHECKSUM_ALGORITHM",
    "DIGEST_SIZE",
    "compute_checksum",
    "compute_kernel_hash",
    "validate_checksum",
]

CHECKSUM_ALGORITHM = "sha256"

# Width in bytes of every digest stored in a record (checksum and kernel hash)
DIGEST_SIZE = 32

_U64 = struct.Struct("<Q")


def compute_checksum(event_number: int, payload: bytes) -> bytes:
    """Compute the record checksum for an event number and payload.

    Args:
        event_number: Logical clock of the checkpoint (0 <= n < 2**64)
        payload: Serialized interpreter + cold state

    Returns:
        32-byte SHA-256 digest

    Raises:
        ValueError: If event_number does not fit in a u64
    """
    if not 0 <= event_number < 2**64:
        raise ValueError(f"event_number must fit in u64, got {event_number}")

    hasher = hashlib.sha256()
    hasher.update(_U64.pack(event_number))
    hasher.update(_U64.pack(len(payload)))
    hasher.update(payload)
    return hasher.digest()


def validate_checksum(checksum: bytes, event_number: int, payload: bytes) -> bool:
    """Check a stored checksum against the digest recomputed from content."""
    if not 0 <= event_number < 2**64:
        return False
    # Timing-safe comparison, same as payload store integrity checks
    return hmac.compare_digest(checksum, compute_checksum(event_number, payload))


def compute_kernel_hash(kernel_image: bytes) -> bytes:
    """Identity digest of the kernel image that produced a checkpoint."""
    return hashlib.sha256(kernel_image).digest()
