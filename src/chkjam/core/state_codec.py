"""Reference state codec, cold cache and arena.

Real deployments plug in the interpreter's own value codec. These reference
implementations make the checkpoint core usable on its own and are what the
CLI uses.

JsonStateCodec produces deterministic, type-preserving JSON:
- Keys are sorted and separators are compact, so equal values give equal bytes
- datetime and bytes are carried in collision-safe type envelopes using
  ``__chkjam_type__`` / ``__chkjam_value__`` keys
- User dicts that happen to contain ``__chkjam_type__`` are escaped before
  encoding so they are never mistaken for an envelope
- NaN/Infinity are rejected in both directions; they have no stable JSON form
- Payloads nested too deeply to decode raise StateCodecError, not RecursionError

Tuples are encoded as JSON arrays and come back as lists.
"""

from __future__ import annotations

import base64
import json
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from chkjam.contracts.codec import Arena
from chkjam.contracts.errors import ColdStateError, StateCodecError

__all__ = [
    "ColdCache",
    "ColdCacheFactory",
    "JsonStateCodec",
    "StateEncoder",
    "ValueArena",
]

# Reserved key used for type envelopes. User dicts containing this key
# are escaped via _escape_reserved_keys() before encoding.
_ENVELOPE_TYPE_KEY = "__chkjam_type__"
_ENVELOPE_VALUE_KEY = "__chkjam_value__"


class ValueArena:
    """Arena that keeps every value adopted during a load alive.

    Dropping the arena drops the values it owns.
    """

    def __init__(self) -> None:
        self._values: list[Any] = []

    def adopt(self, value: Any) -> Any:
        self._values.append(value)
        return value

    def __len__(self) -> int:
        return len(self._values)

    def clear(self) -> None:
        self._values.clear()


class StateEncoder(json.JSONEncoder):
    """JSON encoder that preserves datetime and bytes with type envelopes."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                obj = obj.replace(tzinfo=UTC)
            return {
                _ENVELOPE_TYPE_KEY: "datetime",
                _ENVELOPE_VALUE_KEY: obj.isoformat(),
            }
        if isinstance(obj, bytes | bytearray):
            return {
                _ENVELOPE_TYPE_KEY: "bytes",
                _ENVELOPE_VALUE_KEY: base64.b64encode(bytes(obj)).decode("ascii"),
            }

        # Let default encoder handle or raise TypeError
        return super().default(obj)


def _reject_nan_infinity(obj: Any) -> Any:
    """Recursively check for NaN/Infinity in a value.

    Raises:
        ValueError: If NaN or Infinity found
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot serialize non-finite float: {obj}")
    elif isinstance(obj, dict):
        for v in obj.values():
            _reject_nan_infinity(v)
    elif isinstance(obj, list | tuple):
        for v in obj:
            _reject_nan_infinity(v)
    return obj


def _reject_constant(name: str) -> Any:
    """parse_constant hook: NaN/Infinity never come out of serialize()."""
    raise StateCodecError(f"Cannot deserialize non-finite float: {name}")


def _escape_reserved_keys(obj: Any) -> Any:
    """Recursively wrap user dicts that contain the reserved key in an escape envelope."""
    if isinstance(obj, dict):
        escaped = {k: _escape_reserved_keys(v) for k, v in obj.items()}
        if _ENVELOPE_TYPE_KEY in escaped:
            return {
                _ENVELOPE_TYPE_KEY: "escaped_dict",
                _ENVELOPE_VALUE_KEY: escaped,
            }
        return escaped
    if isinstance(obj, list | tuple):
        return [_escape_reserved_keys(v) for v in obj]
    return obj


def _restore_types(obj: Any) -> Any:
    """Recursively restore type-tagged values.

    Raises:
        StateCodecError: If an envelope carries an unknown type or a bad value
    """
    if isinstance(obj, dict):
        if _ENVELOPE_TYPE_KEY in obj and _ENVELOPE_VALUE_KEY in obj and len(obj) == 2:
            envelope_type = obj[_ENVELOPE_TYPE_KEY]
            envelope_value = obj[_ENVELOPE_VALUE_KEY]

            if envelope_type == "datetime" and isinstance(envelope_value, str):
                try:
                    return datetime.fromisoformat(envelope_value)
                except ValueError as e:
                    raise StateCodecError(f"Invalid datetime envelope: {envelope_value!r}") from e

            if envelope_type == "bytes" and isinstance(envelope_value, str):
                try:
                    return base64.b64decode(envelope_value, validate=True)
                except ValueError as e:
                    raise StateCodecError("Invalid bytes envelope") from e

            if envelope_type == "escaped_dict" and isinstance(envelope_value, dict):
                return {k: _restore_types(v) for k, v in envelope_value.items()}

            raise StateCodecError(f"Unknown type envelope: {envelope_type!r}")

        return {k: _restore_types(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_restore_types(v) for v in obj]
    return obj


class JsonStateCodec:
    """Deterministic JSON codec for interpreter values built from plain Python data."""

    def serialize(self, value: Any) -> bytes:
        """Serialize value to canonical JSON bytes.

        Raises:
            ValueError: If value contains NaN or Infinity
            TypeError: If value contains non-serializable types
        """
        _reject_nan_infinity(value)
        escaped = _escape_reserved_keys(value)
        text = json.dumps(
            escaped,
            cls=StateEncoder,
            allow_nan=False,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return text.encode("utf-8")

    def deserialize(self, arena: Arena, data: bytes) -> Any:
        """Decode bytes produced by serialize() into a value owned by arena.

        Raises:
            StateCodecError: If data is not valid UTF-8 JSON, nests too deeply,
                holds NaN/Infinity or holds a bad envelope
        """
        try:
            decoded = json.loads(data.decode("utf-8"), parse_constant=_reject_constant)
            restored = _restore_types(decoded)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StateCodecError(f"Payload is not valid state JSON: {e}") from e
        except RecursionError as e:
            raise StateCodecError("Payload nests too deeply to decode") from e
        return arena.adopt(restored)


# =============================================================================
# Cold cache
# =============================================================================


@dataclass
class ColdCache:
    """Jet registration cache that survives restarts.

    battery_to_paths: battery hash -> registered jet paths
    root_to_paths: root battery hash -> registered jet paths
    path_to_batteries: jet path -> batteries registered under it
    """

    battery_to_paths: dict[str, list[str]] = field(default_factory=dict)
    root_to_paths: dict[str, list[str]] = field(default_factory=dict)
    path_to_batteries: dict[str, list[str]] = field(default_factory=dict)

    def register(self, battery: str, root: str, path: str) -> None:
        """Record that path is a jet for battery under root."""
        _append_unique(self.battery_to_paths, battery, path)
        _append_unique(self.root_to_paths, root, path)
        _append_unique(self.path_to_batteries, path, battery)


def _append_unique(mapping: dict[str, list[str]], key: str, value: str) -> None:
    values = mapping.setdefault(key, [])
    if value not in values:
        values.append(value)


class ColdCacheFactory:
    """Flattens a ColdCache into three sorted pair lists and rebuilds it."""

    def decompose(self, cold: ColdCache) -> list[list[list[Any]]]:
        return [
            _flatten(cold.battery_to_paths),
            _flatten(cold.root_to_paths),
            _flatten(cold.path_to_batteries),
        ]

    def reconstruct(self, arena: Arena, flat: Any) -> ColdCache:
        """Rebuild a ColdCache.

        Raises:
            ColdStateError: If flat is not three lists of [key, [values...]] pairs
        """
        if not isinstance(flat, list) or len(flat) != 3:
            raise ColdStateError(f"Cold state must be a list of 3 tables, got {type(flat).__name__}")
        battery_to_paths, root_to_paths, path_to_batteries = (_unflatten(table, i) for i, table in enumerate(flat))
        return arena.adopt(ColdCache(battery_to_paths, root_to_paths, path_to_batteries))  # type: ignore[no-any-return]


def _flatten(mapping: dict[str, list[str]]) -> list[list[Any]]:
    return [[key, list(values)] for key, values in sorted(mapping.items())]


def _unflatten(table: Any, index: int) -> dict[str, list[str]]:
    if not isinstance(table, list):
        raise ColdStateError(f"Cold table {index} must be a list, got {type(table).__name__}")
    result: dict[str, list[str]] = {}
    for entry in table:
        if not (isinstance(entry, list) and len(entry) == 2 and isinstance(entry[0], str) and isinstance(entry[1], list)):
            raise ColdStateError(f"Cold table {index} has malformed entry: {entry!r}")
        if not all(isinstance(v, str) for v in entry[1]):
            raise ColdStateError(f"Cold table {index} entry {entry[0]!r} has non-string values")
        result[entry[0]] = list(entry[1])
    return result
