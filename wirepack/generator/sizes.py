"""Encoded size calculation for schema types and packets."""

from dataclasses import dataclass
from enum import StrEnum, auto

from wirepack.proto.primitives import MAX_STRING_LENGTH, encode_varint
from wirepack.proto.types import FIXED_TYPES

from .types import EnumDef, FieldDef, Schema, StructDef, TypeRef

# Primitive type sizes in bytes: (min, max)
PRIMITIVE_SIZES: dict[str, tuple[int, int]] = {
    **{name: (size, size) for name, (_, size) in FIXED_TYPES.items()},
    "bool": (1, 1),
    "varint": (1, 5),
    "varlong": (1, 10),
    "string": (1, len(encode_varint(MAX_STRING_LENGTH)) + MAX_STRING_LENGTH),
}


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Min == Max
    BOUNDED = auto()  # Variable but has a calculable max (e.g. varint)
    UNBOUNDED = auto()  # Sequences, maps, extern types


@dataclass(frozen=True)
class SizeInfo:
    """Size information for a type or struct."""

    min_size: int
    max_size: int | None  # None means unbounded
    kind: SizeKind

    @property
    def is_fixed(self) -> bool:
        return self.kind == SizeKind.FIXED

    @property
    def is_bounded(self) -> bool:
        return self.kind in (SizeKind.FIXED, SizeKind.BOUNDED)


UNBOUNDED = SizeInfo(0, None, SizeKind.UNBOUNDED)


@dataclass(frozen=True)
class StructSizeInfo:
    """Complete size information for a struct, enum or packet."""

    name: str
    size: SizeInfo


@dataclass(frozen=True)
class SchemaSizeInfo:
    """Size information for an entire schema."""

    types: dict[str, StructSizeInfo]
    packets: dict[str, dict[str, StructSizeInfo]]  # group -> packet -> size

    min_packet_size: int
    max_packet_size: int | None  # None if any packet is unbounded


def _sized(min_size: int, max_size: int | None) -> SizeInfo:
    if max_size is None:
        return SizeInfo(min_size, None, SizeKind.UNBOUNDED)
    if min_size == max_size:
        return SizeInfo(min_size, max_size, SizeKind.FIXED)
    return SizeInfo(min_size, max_size, SizeKind.BOUNDED)


def _concat(sizes: list[SizeInfo]) -> SizeInfo:
    total_min = sum(s.min_size for s in sizes)
    if any(s.max_size is None for s in sizes):
        return _sized(total_min, None)
    return _sized(total_min, sum(s.max_size or 0 for s in sizes))


class SizeCalculator:
    """Calculate sizes for schema types."""

    def __init__(self, schema: Schema):
        self.schema = schema
        self.structs: dict[str, StructDef] = {s.name: s for s in schema.structs}
        self.enums: dict[str, EnumDef] = {e.name: e for e in schema.enums}
        self._cache: dict[str, SizeInfo] = {}
        self._in_progress: set[str] = set()

    def calc_type_size(self, t: TypeRef) -> SizeInfo:
        """Calculate size for any type reference."""
        if t.is_primitive:
            return _sized(*PRIMITIVE_SIZES[t.name])

        if t.name in ("sequence", "map"):
            # VarInt count + any number of elements
            return SizeInfo(1, None, SizeKind.UNBOUNDED)

        if t.name == "optional":
            inner = self.calc_type_size(t.args[0])
            return _sized(1, None if inner.max_size is None else 1 + inner.max_size)

        if t.name in self.structs or t.name in self.enums:
            return self.calc_named_size(t.name).size

        # extern types have an application-defined size
        return UNBOUNDED

    def calc_fields_size(self, fields: list[FieldDef]) -> SizeInfo:
        return _concat([self.calc_type_size(f.type) for f in fields])

    def calc_named_size(self, name: str) -> StructSizeInfo:
        """Calculate size for a struct or enum (with caching)."""
        if name in self._cache:
            return StructSizeInfo(name, self._cache[name])
        if name in self._in_progress:
            # Recursive reference through an optional field
            return StructSizeInfo(name, UNBOUNDED)

        self._in_progress.add(name)
        try:
            if name in self.structs:
                size = self.calc_fields_size(self.structs[name].fields)
            else:
                size = self._calc_enum_size(self.enums[name])
        finally:
            self._in_progress.discard(name)

        self._cache[name] = size
        return StructSizeInfo(name, size)

    def _calc_enum_size(self, enum: EnumDef) -> SizeInfo:
        discriminant = self.calc_type_size(enum.type)
        if not enum.variants:
            return discriminant
        payloads = [self.calc_fields_size(v.fields) for v in enum.variants]
        min_size = discriminant.min_size + min(p.min_size for p in payloads)
        if discriminant.max_size is None or any(p.max_size is None for p in payloads):
            return _sized(min_size, None)
        return _sized(min_size, discriminant.max_size + max(p.max_size or 0 for p in payloads))

    def calc_schema_info(self) -> SchemaSizeInfo:
        """Calculate complete schema size information."""
        types = {name: self.calc_named_size(name) for name in [*self.structs, *self.enums]}

        packets: dict[str, dict[str, StructSizeInfo]] = {}
        all_packets: list[SizeInfo] = []
        for group in self.schema.groups:
            packets[group.name] = {}
            for packet in group.packets:
                packet_id = len(encode_varint(packet.id))
                size = _concat([_sized(packet_id, packet_id), self.calc_fields_size(packet.fields)])
                packets[group.name][packet.name] = StructSizeInfo(packet.name, size)
                all_packets.append(size)

        if all_packets:
            min_packet = min(s.min_size for s in all_packets)
            max_sizes = [s.max_size for s in all_packets]
            if all(m is not None for m in max_sizes):
                max_packet: int | None = max(m for m in max_sizes if m is not None)
            else:
                max_packet = None
        else:
            min_packet = 0
            max_packet = 0

        return SchemaSizeInfo(
            types=types,
            packets=packets,
            min_packet_size=min_packet,
            max_packet_size=max_packet,
        )


def calculate_sizes(schema: Schema) -> SchemaSizeInfo:
    """Calculate size information for a schema definition."""
    return SizeCalculator(schema).calc_schema_info()
