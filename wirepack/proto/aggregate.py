"""Struct and tagged-union codecs.

Struct fields are written back to back in declaration order with no padding.
A tagged union writes its discriminant with the union's integer codec, then
the selected variant's fields.

Codecs are created empty and populated once every codec exists, so schema types
may refer to each other, or to themselves, through containers.
"""

import threading
from typing import Any, BinaryIO

from .serialization import Decoder, Encoder, NestingTooDeep, SerializationError, UnknownVariant

MAX_NESTING_DEPTH = 128

_nesting = threading.local()


class _StructBase:
    def __init__(self, name: str, cls: type) -> None:
        self.name = name
        self.cls = cls
        self.fields: tuple[tuple[str, Any], ...] = ()

    def bind(self, fields: tuple[tuple[str, Any], ...]) -> None:
        self.fields = fields

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class StructDecoder(_StructBase):
    def decode(self, source: BinaryIO) -> Any:
        depth = getattr(_nesting, "depth", 0)
        if depth >= MAX_NESTING_DEPTH:
            raise NestingTooDeep(MAX_NESTING_DEPTH)
        _nesting.depth = depth + 1
        try:
            values = {}
            for name, codec in self.fields:
                values[name] = codec.decode(source)
        finally:
            _nesting.depth = depth
        return self.cls(**values)


class StructEncoder(_StructBase):
    def encode(self, value: Any, sink: BinaryIO) -> None:
        if not isinstance(value, self.cls):
            raise SerializationError(f"Expected {self.name}, got {type(value).__name__}")
        for name, codec in self.fields:
            codec.encode(getattr(value, name), sink)


class StructCodec(StructDecoder, StructEncoder):
    pass


class _UnionBase:
    def __init__(self, name: str, discriminant: Any) -> None:
        self.name = name
        self.discriminant = discriminant
        self.decoders: dict[int, StructDecoder] = {}
        self.encoders: dict[type, VariantEncoder] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class UnionDecoder(_UnionBase):
    """Reads a discriminant and decodes the matching variant."""

    def bind_decoders(self, decoders: dict[int, StructDecoder]) -> None:
        self.decoders = decoders

    def decode(self, source: BinaryIO) -> Any:
        value = self.discriminant.decode(source)
        variant = self.decoders.get(value)
        if variant is None:
            raise UnknownVariant(value)
        return variant.decode(source)


class VariantEncoder:
    """Writes one variant's discriminant followed by its fields."""

    def __init__(self, value: int, discriminant: Encoder, payload: StructEncoder) -> None:
        self.value = value
        self.discriminant = discriminant
        self.payload = payload

    def encode(self, value: Any, sink: BinaryIO) -> None:
        self.discriminant.encode(self.value, sink)
        self.payload.encode(value, sink)


class UnionEncoder(_UnionBase):
    """Dispatches on the variant class of the value being encoded."""

    def bind_encoders(self, encoders: dict[type, VariantEncoder]) -> None:
        self.encoders = encoders

    def encode(self, value: Any, sink: BinaryIO) -> None:
        variant = self.encoders.get(type(value))
        if variant is None:
            raise SerializationError(f"{type(value).__name__} is not a variant of {self.name}")
        variant.encode(value, sink)


class UnionCodec(UnionDecoder, UnionEncoder):
    pass
