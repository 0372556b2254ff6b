# src/chkjam/contracts/codec.py
"""Protocols for the collaborators that own interpreter values.

The checkpoint core never interprets payload bytes itself. It hands them to
a StateCodec and rebuilds the cold cache through a ColdStateFactory. Decoded
values live in an Arena supplied by the caller; the core only passes it
through and never creates one of its own.

Reference implementations live in chkjam.core.state_codec.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Arena(Protocol):
    """Memory region that owns values decoded during a load."""

    def adopt(self, value: Any) -> Any:
        """Take ownership of a decoded value and return it."""
        ...


@runtime_checkable
class StateCodec(Protocol):
    """Serializes opaque interpreter values to bytes and back."""

    def serialize(self, value: Any) -> bytes:
        """Serialize a value.

        Must be deterministic: equal values produce identical bytes.
        """
        ...

    def deserialize(self, arena: Arena, data: bytes) -> Any:
        """Decode bytes into a value owned by arena.

        Raises:
            StateCodecError: If data is not a valid encoded value
        """
        ...


@runtime_checkable
class ColdStateFactory(Protocol):
    """Flattens and rebuilds the cold (jet cache) state."""

    def decompose(self, cold: Any) -> Any:
        """Return the flattened form of a cold state, serializable by the state codec."""
        ...

    def reconstruct(self, arena: Arena, flat: Any) -> Any:
        """Rebuild a cold state from its flattened form.

        Raises:
            ColdStateError: If flat does not describe a valid cold state
        """
        ...
