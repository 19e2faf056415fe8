"""Schema compiler: turns a schema description into capability-correct codecs.

Each struct, enum and packet supports exactly the capabilities implied by
its direction. Every type a node references must support those capabilities
too, otherwise compilation fails with CapabilityMismatch before any data is
processed. After compilation nothing is checked per message.

Example:
    schema = compile_schema(parse(text), custom={"Uuid": UuidCodec()})
    packet = schema.decode("Serverbound", stream)
"""

import dataclasses
from collections.abc import Mapping
from typing import Any, Optional

from wirepack.proto.aggregate import (
    StructCodec,
    StructDecoder,
    StructEncoder,
    UnionCodec,
    UnionDecoder,
    UnionEncoder,
    VariantEncoder,
)
from wirepack.proto.primitives import (
    MapCodec,
    MapDecoder,
    MapEncoder,
    OptionalCodec,
    OptionalDecoder,
    OptionalEncoder,
    SequenceCodec,
    SequenceDecoder,
    SequenceEncoder,
    primitive_codec,
)
from wirepack.proto.runtime import CompiledSchema, Packet, PacketDecoder, PacketEncoder, PacketGroup
from wirepack.proto.serialization import Decodable, Decoder, Encodable, Encoder
from wirepack.proto.types import FIXED_TYPES, Capability, Direction

from .parser import ValidationError, validate
from .types import FieldDef, Schema, TypeRef


class CapabilityMismatch(ValidationError):
    """Raised when a node references a type lacking a capability the node needs."""

    def __init__(self, node: str, capability: Capability, type_name: str) -> None:
        super().__init__(f"{node} requires {capability} but {type_name} does not support it")
        self.node = node
        self.capability = capability
        self.type_name = type_name


# Codec class per capability set, for each kind of node
_BY_CAPABILITIES: dict[str, dict[Direction, type]] = {
    "struct": {
        Direction.READ: StructDecoder,
        Direction.WRITE: StructEncoder,
        Direction.READ_WRITE: StructCodec,
    },
    "union": {
        Direction.READ: UnionDecoder,
        Direction.WRITE: UnionEncoder,
        Direction.READ_WRITE: UnionCodec,
    },
    "sequence": {
        Direction.READ: SequenceDecoder,
        Direction.WRITE: SequenceEncoder,
        Direction.READ_WRITE: SequenceCodec,
    },
    "optional": {
        Direction.READ: OptionalDecoder,
        Direction.WRITE: OptionalEncoder,
        Direction.READ_WRITE: OptionalCodec,
    },
    "map": {
        Direction.READ: MapDecoder,
        Direction.WRITE: MapEncoder,
        Direction.READ_WRITE: MapCodec,
    },
}

_PYTHON_TYPES: dict[str, Any] = {
    **{name: float if name.startswith("f") else int for name in FIXED_TYPES},
    "bool": bool,
    "varint": int,
    "varlong": int,
    "string": str,
}


def _interfaces(direction: Direction) -> tuple[type, ...]:
    bases: list[type] = []
    if direction.can_decode:
        bases.append(Decodable)
    if direction.can_encode:
        bases.append(Encodable)
    return tuple(bases)


def _codec_capabilities(codec: Any) -> frozenset[Capability]:
    caps = set()
    if isinstance(codec, Decoder):
        caps.add(Capability.DECODE)
    if isinstance(codec, Encoder):
        caps.add(Capability.ENCODE)
    return frozenset(caps)


def _check_bases(name: str, cls: type, bases: tuple[type, ...]) -> None:
    for base in bases:
        if not issubclass(cls, base):
            raise ValidationError(f"Class supplied for {name} must subclass {base.__name__}")
    for interface in (Decodable, Encodable):
        expected = any(issubclass(base, interface) for base in bases)
        if issubclass(cls, interface) != expected:
            verb = "must" if expected else "must not"
            raise ValidationError(f"Class supplied for {name} {verb} subclass {interface.__name__}")


class _Compiler:
    def __init__(self, schema: Schema, custom: dict[str, Any], classes: dict[str, type]) -> None:
        self.schema = schema
        self.custom = custom
        self.classes = classes
        self.capabilities: dict[str, frozenset[Capability]] = {}
        self.types: dict[str, type] = {}
        self.codecs: dict[str, Any] = {}

    def compile(self) -> CompiledSchema:
        self._check_externs()
        declared = set(self.schema.class_names())
        for name in self.classes:
            if name not in declared:
                raise ValidationError(f"Class supplied for {name}, but {name} is not declared")
        self._check_capabilities()
        self._create()
        groups = self._bind()
        return CompiledSchema(types=self.types, codecs=self.codecs, groups=groups)

    def _check_externs(self) -> None:
        declared = {e.name for e in self.schema.externs}
        for name in self.custom:
            if name not in declared:
                raise ValidationError(f"Codec supplied for {name}, but no extern {name} is declared")
        for name in declared:
            if name not in self.custom:
                raise ValidationError(f"extern {name} declared, but no codec was supplied")
            caps = _codec_capabilities(self.custom[name])
            if not caps:
                raise ValidationError(f"Codec for {name} has neither decode() nor encode()")
            self.capabilities[name] = caps

    def _check_capabilities(self) -> None:
        for struct in self.schema.structs:
            self.capabilities[struct.name] = struct.direction.capabilities
        for enum in self.schema.enums:
            self.capabilities[enum.name] = enum.direction.capabilities

        for struct in self.schema.structs:
            self._require_fields(struct.name, struct.fields, struct.direction)
        for enum in self.schema.enums:
            for variant in enum.variants:
                self._require_fields(f"{enum.name}.{variant.name}", variant.fields, enum.direction)
        for group in self.schema.groups:
            for packet in group.packets:
                direction = group.packet_direction(packet)
                self._require_fields(f"{group.name}.{packet.name}", packet.fields, direction)

    def _require_fields(self, node: str, fields: list[FieldDef], direction: Direction) -> None:
        for f in fields:
            self._require(node, f.type, direction.capabilities)

    def _require(self, node: str, ref: TypeRef, needed: frozenset[Capability]) -> None:
        if ref.is_container:
            for arg in ref.args:
                self._require(node, arg, needed)
            return
        if ref.is_primitive:
            return
        supported = self.capabilities[ref.name]
        for capability in sorted(needed):
            if capability not in supported:
                raise CapabilityMismatch(node, capability, ref.name)

    def _class(self, name: str, fields: list[FieldDef], bases: tuple[type, ...]) -> type:
        if name not in self.classes:
            return dataclasses.make_dataclass(
                name,
                [(f.name, self._annotation(f.type)) for f in fields],
                bases=bases,
                frozen=True,
            )

        cls = self.classes[name]
        if not dataclasses.is_dataclass(cls):
            raise ValidationError(f"Class supplied for {name} is not a dataclass")
        declared = [f.name for f in dataclasses.fields(cls)]
        if declared != [f.name for f in fields]:
            raise ValidationError(f"Class supplied for {name} has fields {declared}")
        _check_bases(name, cls, bases)
        return cls

    def _annotation(self, ref: TypeRef) -> Any:
        if ref.name == "sequence":
            return list[self._annotation(ref.args[0])]
        if ref.name == "optional":
            return Optional[self._annotation(ref.args[0])]
        if ref.name == "map":
            return dict[self._annotation(ref.args[0]), self._annotation(ref.args[1])]
        if ref.is_primitive:
            return _PYTHON_TYPES[ref.name]
        if ref.name in self.custom:
            return Any
        return ref.name

    def _base(self, name: str, bases: tuple[type, ...]) -> type:
        if name in self.classes:
            _check_bases(name, self.classes[name], bases)
            return self.classes[name]
        return type(name, bases, {"__doc__": f"Base class of the {name} variants."})

    def _create(self) -> None:
        """Create every class and an empty codec for every struct and enum."""
        self.codecs.update(self.custom)

        for struct in self.schema.structs:
            cls = self._class(struct.name, struct.fields, _interfaces(struct.direction))
            self.types[struct.name] = cls
            self.codecs[struct.name] = _BY_CAPABILITIES["struct"][struct.direction](struct.name, cls)

        for enum in self.schema.enums:
            base = self._base(enum.name, _interfaces(enum.direction))
            self.types[enum.name] = base
            for variant in enum.variants:
                self.types[variant.name] = self._class(variant.name, variant.fields, (base,))
            discriminant = primitive_codec(enum.type.name)
            self.codecs[enum.name] = _BY_CAPABILITIES["union"][enum.direction](enum.name, discriminant)

        for group in self.schema.groups:
            base = self._base(group.name, (Packet,))
            self.types[group.name] = base
            for packet in group.packets:
                bases = (base, *_interfaces(group.packet_direction(packet)))
                cls = self._class(packet.name, packet.fields, bases)
                cls.packet_id = packet.id
                cls.group_name = group.name
                self.types[packet.name] = cls

    def _field_codec(self, ref: TypeRef, direction: Direction) -> Any:
        if ref.is_container:
            args = [self._field_codec(arg, direction) for arg in ref.args]
            return _BY_CAPABILITIES[ref.name][direction](*args)
        if ref.is_primitive:
            return primitive_codec(ref.name)
        return self.codecs[ref.name]

    def _payload(self, name: str, fields: list[FieldDef], direction: Direction) -> Any:
        payload = _BY_CAPABILITIES["struct"][direction](name, self.types[name])
        payload.bind(tuple((f.name, self._field_codec(f.type, direction)) for f in fields))
        return payload

    def _bind(self) -> dict[str, PacketGroup]:
        """Populate the codecs and attach them to the classes."""
        for struct in self.schema.structs:
            codec = self.codecs[struct.name]
            codec.bind(
                tuple((f.name, self._field_codec(f.type, struct.direction)) for f in struct.fields)
            )
            cls = self.types[struct.name]
            if struct.direction.can_decode:
                cls._decoder = codec
            if struct.direction.can_encode:
                cls._encoder = codec

        for enum in self.schema.enums:
            union = self.codecs[enum.name]
            decoders = {}
            encoders = {}
            for variant in enum.variants:
                payload = self._payload(variant.name, variant.fields, enum.direction)
                cls = self.types[variant.name]
                if enum.direction.can_decode:
                    decoders[variant.value] = payload
                if enum.direction.can_encode:
                    encoders[cls] = VariantEncoder(variant.value, union.discriminant, payload)
                    cls._encoder = encoders[cls]
            if enum.direction.can_decode:
                union.bind_decoders(decoders)
                self.types[enum.name]._decoder = union
            if enum.direction.can_encode:
                union.bind_encoders(encoders)

        groups = {}
        for group in self.schema.groups:
            decoders = {}
            encoders = {}
            packets = {}
            for packet in group.packets:
                direction = group.packet_direction(packet)
                payload = self._payload(packet.name, packet.fields, direction)
                cls = self.types[packet.name]
                packets[packet.id] = cls
                if direction.can_decode:
                    decoders[packet.id] = payload
                    cls._decoder = PacketDecoder(packet.id, payload)
                if direction.can_encode:
                    encoders[cls] = PacketEncoder(packet.id, payload)
                    cls._encoder = encoders[cls]
            groups[group.name] = PacketGroup(
                group.name, self.types[group.name], packets, decoders, encoders
            )
        return groups


def compile_schema(
    schema: Schema,
    *,
    custom: Mapping[str, Any] | None = None,
    classes: Mapping[str, type] | None = None,
) -> CompiledSchema:
    """Validate a schema and build its classes and codecs.

    Args:
        schema: The schema description.
        custom: Manually written codecs for the schema's `extern` types. A codec
            exposes `decode(source)` and/or `encode(value, sink)`; the methods
            present are its capabilities.
        classes: Optional dataclasses to use instead of generated ones, keyed by
            struct, variant, enum, group or packet name.

    Raises:
        ValidationError: If the schema is inconsistent.
        CapabilityMismatch: If a node references a type lacking a capability.
    """
    validate(schema)
    return _Compiler(schema, dict(custom or {}), dict(classes or {})).compile()
