"""Schema definition parser using Lark."""

import keyword
import os
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from lark import Lark
from lark.visitors import Transformer

from wirepack.proto.types import CONTAINER_TYPES, INTEGER_RANGES, Direction, is_integer, is_primitive

from .types import (
    EnumDef,
    ExternDef,
    FieldDef,
    GroupDef,
    PacketDef,
    Schema,
    StructDef,
    TypeRef,
    VariantDef,
)

_g_parser: Lark | None = None


class ValidationError(RuntimeError):
    """Raised when schema validation fails."""


@dataclass
class _Name:
    value: str


@dataclass
class _Number:
    value: int


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[object]) -> Any:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")

    if isinstance(filtered[0], (_Name, _Number)):
        return filtered[0].value
    return filtered[0]


TMany = TypeVar("TMany")


def _find_many(args: list[Any], class_type: type[TMany]) -> list[TMany]:
    return _filter(args, class_type)


class TreeTransformer(Transformer):
    """Transform parse tree into schema types."""

    def start(self, args: list[Any]) -> Schema:
        return Schema(
            structs=_find_many(args, StructDef),
            enums=_find_many(args, EnumDef),
            groups=_find_many(args, GroupDef),
            externs=_find_many(args, ExternDef),
        )

    def direction(self, args: list[Any]) -> Direction:
        return Direction(str(args[0]))

    def enum(self, args: list[Any]) -> EnumDef:
        return EnumDef(
            name=_find_one(args, _Name),
            type=_find_one(args, TypeRef),
            variants=_find_many(args, VariantDef),
            direction=_find_one(args, Direction) or Direction.READ_WRITE,
        )

    def extern(self, args: list[Any]) -> ExternDef:
        return ExternDef(name=_find_one(args, _Name))

    def field(self, args: list[Any]) -> FieldDef:
        return FieldDef(name=_find_one(args, _Name), type=_find_one(args, TypeRef))

    def group(self, args: list[Any]) -> GroupDef:
        return GroupDef(
            name=_find_one(args, _Name),
            packets=_find_many(args, PacketDef),
            direction=_find_one(args, Direction) or Direction.READ_WRITE,
        )

    def map(self, args: list[Any]) -> TypeRef:
        return TypeRef(name="map", args=[args[0], args[1]])

    def name(self, args: list[Any]) -> _Name:
        return _Name(value=str(args[0]))

    def named(self, args: list[Any]) -> TypeRef:
        return TypeRef(name=str(args[0]))

    def number(self, args: list[Any]) -> _Number:
        text = str(args[0])
        return _Number(value=int(text, 16) if text[:2].lower() == "0x" else int(text))

    def optional(self, args: list[Any]) -> TypeRef:
        return TypeRef(name="optional", args=[args[0]])

    def packet(self, args: list[Any]) -> PacketDef:
        return PacketDef(
            name=_find_one(args, _Name),
            id=_find_one(args, _Number),
            fields=_find_many(args, FieldDef),
            direction=_find_one(args, Direction),
        )

    def sequence(self, args: list[Any]) -> TypeRef:
        return TypeRef(name="sequence", args=[args[0]])

    def struct(self, args: list[Any]) -> StructDef:
        return StructDef(
            name=_find_one(args, _Name),
            fields=_find_many(args, FieldDef),
            direction=_find_one(args, Direction) or Direction.READ_WRITE,
        )

    def variant(self, args: list[Any]) -> VariantDef:
        return VariantDef(
            name=_find_one(args, _Name),
            value=_find_one(args, _Number),
            fields=_find_many(args, FieldDef),
        )


RESERVED_FIELD_NAMES = frozenset(["read", "write", "pack", "unpack", "packet_id", "group_name"])
# Module-level names of generated Python modules
RESERVED_TYPE_NAMES = frozenset(["SCHEMA", "load_schema"])


def _check_fields(owner: str, fields: list[FieldDef]) -> None:
    seen: set[str] = set()
    for f in fields:
        if keyword.iskeyword(f.name) or f.name.startswith("_") or f.name in RESERVED_FIELD_NAMES:
            raise ValidationError(f"{owner}.{f.name} is not a valid field name")
        if f.name in seen:
            raise ValidationError(f"{owner}.{f.name} declared more than once")
        seen.add(f.name)


def _check_type(owner: str, ref: TypeRef, field_types: set[str]) -> None:
    if ref.is_container:
        expected = 2 if ref.name == "map" else 1
        if len(ref.args) != expected:
            raise ValidationError(f"{owner}: {ref.name} takes {expected} type argument(s)")
        for arg in ref.args:
            _check_type(owner, arg, field_types)
        return
    if ref.args:
        raise ValidationError(f"{owner}: {ref.name} takes no type arguments")
    if is_primitive(ref.name) or ref.name in field_types:
        return
    raise ValidationError(f"{owner} references unknown type {ref.name}")


class _KeyCheck:
    """Rejects map keys that decode to unhashable values."""

    def __init__(self, schema: Schema) -> None:
        self.members: dict[str, list[FieldDef]] = {s.name: s.fields for s in schema.structs}
        for enum in schema.enums:
            self.members[enum.name] = [f for v in enum.variants for f in v.fields]

    def hashable(self, ref: TypeRef, seen: frozenset[str] = frozenset()) -> bool:
        if ref.name in ("sequence", "map"):
            return False
        if ref.name == "optional":
            return self.hashable(ref.args[0], seen)
        if ref.name not in self.members or ref.name in seen:
            return True
        return all(self.hashable(f.type, seen | {ref.name}) for f in self.members[ref.name])

    def check(self, owner: str, ref: TypeRef) -> None:
        if ref.name == "map" and not self.hashable(ref.args[0]):
            raise ValidationError(f"{owner}: map key {ref.args[0]} is not hashable")
        for arg in ref.args:
            self.check(owner, arg)


def _all_fields(schema: Schema) -> Iterator[tuple[str, FieldDef]]:
    for struct in schema.structs:
        for f in struct.fields:
            yield struct.name, f
    for enum in schema.enums:
        for variant in enum.variants:
            for f in variant.fields:
                yield variant.name, f
    for group in schema.groups:
        for packet in group.packets:
            for f in packet.fields:
                yield packet.name, f


def validate(schema: Schema) -> None:
    """Validate a schema's names, type references and identifiers."""
    names: set[str] = set()

    def declare(name: str) -> None:
        if not name.isidentifier() or keyword.iskeyword(name):
            raise ValidationError(f"{name} is not a valid type name")
        if is_primitive(name) or name in CONTAINER_TYPES:
            raise ValidationError(f"{name} is a built-in type and cannot be redeclared")
        if name.startswith("_") or name in RESERVED_TYPE_NAMES:
            raise ValidationError(f"{name} is reserved and cannot be declared")
        if name in names:
            raise ValidationError(f"{name} declared more than once")
        names.add(name)

    for extern in schema.externs:
        declare(extern.name)
    for struct in schema.structs:
        declare(struct.name)
    for enum in schema.enums:
        declare(enum.name)
        for variant in enum.variants:
            declare(variant.name)
    for group in schema.groups:
        declare(group.name)
        for packet in group.packets:
            declare(packet.name)

    # Only these may appear as field types
    field_types = {e.name for e in schema.externs}
    field_types.update(s.name for s in schema.structs)
    field_types.update(e.name for e in schema.enums)

    for struct in schema.structs:
        _check_fields(struct.name, struct.fields)
        for f in struct.fields:
            _check_type(f"{struct.name}.{f.name}", f.type, field_types)

    for enum in schema.enums:
        if enum.type.args or not is_integer(enum.type.name):
            raise ValidationError(f"{enum.name} discriminant must be an integer type, not {enum.type}")
        low, high = INTEGER_RANGES[enum.type.name]
        values: set[int] = set()
        for variant in enum.variants:
            if not low <= variant.value <= high:
                raise ValidationError(
                    f"{enum.name}.{variant.name} = {variant.value} does not fit in {enum.type}"
                )
            if variant.value in values:
                raise ValidationError(f"{enum.name} discriminant {variant.value} assigned more than once")
            values.add(variant.value)
            _check_fields(variant.name, variant.fields)
            for f in variant.fields:
                _check_type(f"{variant.name}.{f.name}", f.type, field_types)

    low, high = INTEGER_RANGES["varint"]
    for group in schema.groups:
        ids: dict[int, str] = {}
        for packet in group.packets:
            if not low <= packet.id <= high:
                raise ValidationError(f"{packet.name} packet ID {packet.id} is outside the varint range")
            if packet.id in ids:
                raise ValidationError(
                    f"{packet.name} and {ids[packet.id]} share packet ID {packet.id} in group {group.name}"
                )
            ids[packet.id] = packet.name
            _check_fields(packet.name, packet.fields)
            for f in packet.fields:
                _check_type(f"{packet.name}.{f.name}", f.type, field_types)

    keys = _KeyCheck(schema)
    for owner, f in _all_fields(schema):
        keys.check(f"{owner}.{f.name}", f.type)


def parse(text: str) -> Schema:
    """Parse and validate a schema definition."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/protodef.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar)

    tree = _g_parser.parse(text)
    schema = TreeTransformer().transform(tree)

    validate(schema)

    return schema
