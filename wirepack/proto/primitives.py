"""Codecs for the built-in wire types.

Fixed-width numbers are big-endian. VarInt and VarLong use 7-bit groups,
least significant group first, with the top bit of each byte set when more
bytes follow. Strings, sequences and maps carry a VarInt length prefix.
"""

import struct
from collections.abc import Mapping
from typing import Any, BinaryIO

from .serialization import (
    Decoder,
    Encoder,
    InvalidStringLength,
    InvalidUtf8,
    InvalidValue,
    VarIntOverflow,
    read_exact,
)
from .types import FIXED_TYPES

MAX_STRING_LENGTH = 32767


class FixedCodec:
    """Fixed-width big-endian number."""

    __slots__ = ("name", "size", "_struct")

    def __init__(self, name: str) -> None:
        fmt, size = FIXED_TYPES[name]
        self.name = name
        self.size = size
        self._struct = struct.Struct(fmt)

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if isinstance(value, bool) or (self.name[0] != "f" and not isinstance(value, int)):
            raise InvalidValue(f"{self.name} requires an integer, got {value!r}")
        try:
            sink.write(self._struct.pack(value))
        except (struct.error, OverflowError) as e:
            raise InvalidValue(f"{value!r} cannot be encoded as {self.name}: {e}") from e

    def decode(self, source: BinaryIO) -> Any:
        return self._struct.unpack(read_exact(source, self.size))[0]


class BoolCodec:
    """Single byte, 1 for true and 0 for false. Any nonzero byte decodes as true."""

    __slots__ = ()

    name = "bool"

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if not isinstance(value, bool):
            raise InvalidValue(f"bool requires a boolean, got {value!r}")
        sink.write(b"\x01" if value else b"\x00")

    def decode(self, source: BinaryIO) -> bool:
        return read_exact(source, 1)[0] != 0


class VarIntCodec:
    """Unsigned variable-length integer bounded to `bits` bits."""

    __slots__ = ("name", "max_bytes", "max_value")

    def __init__(self, name: str, bits: int) -> None:
        self.name = name
        self.max_bytes = (bits + 6) // 7
        self.max_value = 2**bits - 1

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidValue(f"{self.name} requires an integer, got {value!r}")
        if not 0 <= value <= self.max_value:
            raise InvalidValue(f"{value} is outside the {self.name} range 0..{self.max_value}")
        sink.write(encode_varint(value))

    def decode(self, source: BinaryIO) -> int:
        result = 0
        for shift in range(0, 7 * self.max_bytes, 7):
            byte = read_exact(source, 1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if result > self.max_value:
                    raise VarIntOverflow(f"{self.name} value {result} exceeds {self.max_value}")
                return result
        raise VarIntOverflow(f"{self.name} exceeded maximum length of {self.max_bytes} bytes")


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as 7-bit groups with continuation bits."""
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


VARINT = VarIntCodec("varint", 32)
VARLONG = VarIntCodec("varlong", 64)
BOOL = BoolCodec()


class StringCodec:
    """VarInt byte length followed by UTF-8 bytes."""

    __slots__ = ("max_length",)

    name = "string"

    def __init__(self, max_length: int = MAX_STRING_LENGTH) -> None:
        self.max_length = max_length

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if not isinstance(value, str):
            raise InvalidValue(f"string requires a str, got {value!r}")
        data = value.encode("utf-8")
        if len(data) > self.max_length:
            raise InvalidValue(f"string of {len(data)} bytes exceeds {self.max_length} bytes")
        sink.write(encode_varint(len(data)))
        sink.write(data)

    def decode(self, source: BinaryIO) -> str:
        length = VARINT.decode(source)
        if length > self.max_length:
            raise InvalidStringLength(length, self.max_length)
        data = read_exact(source, length)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidUtf8(f"String contained invalid UTF-8: {e}") from e


STRING = StringCodec()


class SequenceDecoder:
    """VarInt element count followed by each element."""

    def __init__(self, element: Decoder) -> None:
        self.element = element

    def decode(self, source: BinaryIO) -> list[Any]:
        count = VARINT.decode(source)
        return [self.element.decode(source) for _ in range(count)]


class SequenceEncoder:
    def __init__(self, element: Encoder) -> None:
        self.element = element

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if isinstance(value, (str, bytes, Mapping)):
            raise InvalidValue(f"sequence requires a list or tuple, got {type(value).__name__}")
        try:
            items = list(value)
        except TypeError as e:
            raise InvalidValue(f"sequence requires a list or tuple, got {type(value).__name__}") from e
        VARINT.encode(len(items), sink)
        for item in items:
            self.element.encode(item, sink)


class SequenceCodec(SequenceDecoder, SequenceEncoder):
    def __init__(self, element: Any) -> None:
        self.element = element


class OptionalDecoder:
    """Boolean presence byte followed by the value when present."""

    def __init__(self, inner: Decoder) -> None:
        self.inner = inner

    def decode(self, source: BinaryIO) -> Any:
        if BOOL.decode(source):
            return self.inner.decode(source)
        return None


class OptionalEncoder:
    def __init__(self, inner: Encoder) -> None:
        self.inner = inner

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if value is None:
            BOOL.encode(False, sink)
            return
        BOOL.encode(True, sink)
        self.inner.encode(value, sink)


class OptionalCodec(OptionalDecoder, OptionalEncoder):
    def __init__(self, inner: Any) -> None:
        self.inner = inner


class MapDecoder:
    """VarInt entry count followed by key/value pairs."""

    def __init__(self, key: Decoder, value: Decoder) -> None:
        self.key = key
        self.value = value

    def decode(self, source: BinaryIO) -> dict[Any, Any]:
        count = VARINT.decode(source)
        out = {}
        for _ in range(count):
            k = self.key.decode(source)
            out[k] = self.value.decode(source)
        return out


class MapEncoder:
    def __init__(self, key: Encoder, value: Encoder) -> None:
        self.key = key
        self.value = value

    def encode(self, value: Any, sink: BinaryIO) -> None:
        if not isinstance(value, Mapping):
            raise InvalidValue(f"map requires a mapping, got {type(value).__name__}")
        VARINT.encode(len(value), sink)
        for k, v in value.items():
            self.key.encode(k, sink)
            self.value.encode(v, sink)


class MapCodec(MapDecoder, MapEncoder):
    def __init__(self, key: Any, value: Any) -> None:
        self.key = key
        self.value = value


def primitive_codec(name: str) -> FixedCodec | BoolCodec | VarIntCodec | StringCodec:
    """Return the shared codec for a primitive type name."""
    if name in FIXED_TYPES:
        return FixedCodec(name)
    if name == "bool":
        return BOOL
    if name == "varint":
        return VARINT
    if name == "varlong":
        return VARLONG
    if name == "string":
        return STRING
    raise ValueError(f"Unknown primitive type: {name}")
