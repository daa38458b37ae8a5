"""
tribunalsettle/codec/borsh.py

Schema-driven binary decoder for the ledger program's account and event
payloads (Borsh encoding).

Wire rules:
    u8 u16 u32 u64 u128 i64   little-endian, fixed width
    bool                      one byte, 0 or 1 (anything else is invalid)
    pubkey                    32 raw bytes, rendered as base58
    string                    u32 LE length + UTF-8 bytes
    enum (unit variants)      u8 variant index
    vec<T>                    u32 LE length + items
    struct                    fields in declaration order, no padding

Two entry points:
    decode()         fails soft: returns None on any malformed input
    decode_strict()  raises DecodeError with the reason

The reconciler uses decode(); an unreadable payload is skipped, never
fatal. encode() exists for fixtures and tests.
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import base58

from tribunalsettle.core.constants import PUBKEY_SIZE
from tribunalsettle.core.exceptions import DecodeError


# ─────────────────────────────────────────────────────────────
# Layout types
# ─────────────────────────────────────────────────────────────

_FIXED = {
    "u8":   ("<B", 1),
    "u16":  ("<H", 2),
    "u32":  ("<I", 4),
    "u64":  ("<Q", 8),
    "i64":  ("<q", 8),
}

PRIMITIVES = frozenset(_FIXED) | {"u128", "bool", "pubkey", "string"}


@dataclass(frozen=True)
class EnumType:
    """Unit-variant enum. members[i] is what variant index i decodes to."""
    name:    str
    members: Tuple[Any, ...]

    def index_of(self, member: Any) -> int:
        for i, candidate in enumerate(self.members):
            if candidate == member:
                return i
        raise DecodeError("Value is not a member of enum", {"enum": self.name, "value": member})


@dataclass(frozen=True)
class VecType:
    item: "FieldType"


@dataclass(frozen=True)
class StructLayout:
    name:   str
    fields: Tuple[Tuple[str, "FieldType"], ...]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)


FieldType = Union[str, EnumType, VecType, StructLayout]


# ─────────────────────────────────────────────────────────────
# Reader
# ─────────────────────────────────────────────────────────────

class BorshReader:
    """Cursor over a byte buffer. Every read is bounds-checked."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data   = bytes(data)
        self.offset = offset

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def take(self, size: int) -> bytes:
        if size < 0 or self.offset + size > len(self.data):
            raise DecodeError(
                "Unexpected end of data",
                {"offset": self.offset, "wanted": size, "length": len(self.data)},
            )
        chunk = self.data[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def read(self, field_type: FieldType) -> Any:
        if isinstance(field_type, str):
            return self._read_primitive(field_type)
        if isinstance(field_type, EnumType):
            index = self.take(1)[0]
            if index >= len(field_type.members):
                raise DecodeError(
                    "Unknown enum variant",
                    {"enum": field_type.name, "index": index},
                )
            return field_type.members[index]
        if isinstance(field_type, VecType):
            count = struct.unpack("<I", self.take(4))[0]
            # Each item takes at least one byte; reject impossible lengths early.
            if count > self.remaining:
                raise DecodeError("Vector length exceeds data", {"count": count})
            return [self.read(field_type.item) for _ in range(count)]
        if isinstance(field_type, StructLayout):
            return self.read_struct(field_type)
        raise DecodeError("Unsupported field type", {"type": repr(field_type)})

    def read_struct(self, layout: StructLayout) -> Dict[str, Any]:
        return {name: self.read(field_type) for name, field_type in layout.fields}

    def _read_primitive(self, name: str) -> Any:
        if name in _FIXED:
            fmt, size = _FIXED[name]
            return struct.unpack(fmt, self.take(size))[0]
        if name == "u128":
            return int.from_bytes(self.take(16), "little")
        if name == "bool":
            value = self.take(1)[0]
            if value > 1:
                raise DecodeError("Invalid bool byte", {"value": value, "offset": self.offset - 1})
            return value == 1
        if name == "pubkey":
            return base58.b58encode(self.take(PUBKEY_SIZE)).decode("ascii")
        if name == "string":
            length = struct.unpack("<I", self.take(4))[0]
            raw = self.take(length)
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError("Invalid UTF-8 in string", {"error": str(e)})
        raise DecodeError("Unknown primitive", {"type": name})


# ─────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────

def decode_strict(
    layout:         StructLayout,
    data:           bytes,
    offset:         int = 0,
    allow_trailing: bool = True,
) -> Dict[str, Any]:
    """
    Decode a struct, raising DecodeError on malformed input.

    Accounts are allocated with spare space, so trailing bytes are
    accepted unless allow_trailing is False.
    """
    reader = BorshReader(data, offset)
    values = reader.read_struct(layout)
    if not allow_trailing and reader.remaining:
        raise DecodeError(
            "Trailing bytes after struct",
            {"layout": layout.name, "trailing": reader.remaining},
        )
    return values


def decode(
    layout:         StructLayout,
    data:           bytes,
    offset:         int = 0,
    allow_trailing: bool = True,
) -> Optional[Dict[str, Any]]:
    """Decode a struct, or None if the bytes do not fit the layout."""
    try:
        return decode_strict(layout, data, offset, allow_trailing)
    except DecodeError:
        return None


def encode(layout: StructLayout, values: Dict[str, Any]) -> bytes:
    """Encode a struct. Missing fields raise DecodeError."""
    return b"".join(_encode_value(field_type, _require(values, name, layout))
                    for name, field_type in layout.fields)


def _require(values: Dict[str, Any], name: str, layout: StructLayout) -> Any:
    if name not in values:
        raise DecodeError("Missing field for encoding", {"layout": layout.name, "field": name})
    return values[name]


def _encode_value(field_type: FieldType, value: Any) -> bytes:
    if isinstance(field_type, str):
        if field_type in _FIXED:
            try:
                return struct.pack(_FIXED[field_type][0], value)
            except struct.error as e:
                raise DecodeError("Value does not fit field", {"type": field_type, "error": str(e)})
        if field_type == "u128":
            return int(value).to_bytes(16, "little")
        if field_type == "bool":
            return b"\x01" if value else b"\x00"
        if field_type == "pubkey":
            raw = value if isinstance(value, (bytes, bytearray)) else base58.b58decode(value)
            if len(raw) != PUBKEY_SIZE:
                raise DecodeError("Address must be 32 bytes", {"length": len(raw)})
            return bytes(raw)
        if field_type == "string":
            raw = value.encode("utf-8")
            return struct.pack("<I", len(raw)) + raw
        raise DecodeError("Unknown primitive", {"type": field_type})
    if isinstance(field_type, EnumType):
        return bytes([field_type.index_of(value)])
    if isinstance(field_type, VecType):
        items: Sequence[Any] = value
        return struct.pack("<I", len(items)) + b"".join(
            _encode_value(field_type.item, item) for item in items
        )
    if isinstance(field_type, StructLayout):
        return encode(field_type, value)
    raise DecodeError("Unsupported field type", {"type": repr(field_type)})


def to_plain(value: Any) -> Any:
    """Decoded values with enum members replaced by their string values (JSON-safe)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    return value
