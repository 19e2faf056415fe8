"""Schema description types for parsing and compilation."""

from dataclasses import dataclass, field
from typing import Optional

from dataclasses_json import DataClassJsonMixin

from wirepack.proto.types import CONTAINER_TYPES, Direction, is_primitive


@dataclass
class TypeRef(DataClassJsonMixin):
    """Reference to a wire type.

    - primitive: name="u8", args=[]
    - container: name="sequence" | "optional" | "map", args=[element] or [key, value]
    - user-defined: name of a struct, enum or manual codec
    """

    name: str
    args: list["TypeRef"] = field(default_factory=list)

    @property
    def is_primitive(self) -> bool:
        return is_primitive(self.name) and not self.args

    @property
    def is_container(self) -> bool:
        return self.name in CONTAINER_TYPES

    def __str__(self) -> str:
        if self.name == "sequence":
            return f"{self.args[0]}[]"
        if self.name == "optional":
            return f"{self.args[0]}?"
        if self.name == "map":
            return f"map<{self.args[0]}, {self.args[1]}>"
        return self.name


@dataclass
class ExternDef(DataClassJsonMixin):
    """Declares a type whose codec is supplied by the application."""

    name: str


@dataclass
class FieldDef(DataClassJsonMixin):
    """Represents a member of a struct, variant or packet."""

    name: str
    type: TypeRef


@dataclass
class StructDef(DataClassJsonMixin):
    """Represents a struct type definition."""

    name: str
    fields: list[FieldDef]
    direction: Direction = Direction.READ_WRITE


@dataclass
class VariantDef(DataClassJsonMixin):
    """Represents a single tagged union variant."""

    name: str
    value: int
    fields: list[FieldDef] = field(default_factory=list)


@dataclass
class EnumDef(DataClassJsonMixin):
    """Represents a tagged union with an integer discriminant."""

    name: str
    type: TypeRef
    variants: list[VariantDef]
    direction: Direction = Direction.READ_WRITE


@dataclass
class PacketDef(DataClassJsonMixin):
    """Represents a packet and its identifier.

    direction=None inherits the direction of the enclosing group.
    """

    name: str
    id: int
    fields: list[FieldDef]
    direction: Optional[Direction] = None


@dataclass
class GroupDef(DataClassJsonMixin):
    """Represents a named set of packets sharing an identifier namespace."""

    name: str
    packets: list[PacketDef]
    direction: Direction = Direction.READ_WRITE

    def packet_direction(self, packet: PacketDef) -> Direction:
        return packet.direction or self.direction


@dataclass
class Schema(DataClassJsonMixin):
    """Represents a complete schema definition."""

    structs: list[StructDef] = field(default_factory=list)
    enums: list[EnumDef] = field(default_factory=list)
    groups: list[GroupDef] = field(default_factory=list)
    externs: list[ExternDef] = field(default_factory=list)

    def class_names(self) -> list[str]:
        """Names of every struct, enum, variant, group and packet, in declaration order."""
        names = [s.name for s in self.structs]
        for enum in self.enums:
            names.append(enum.name)
            names.extend(v.name for v in enum.variants)
        for group in self.groups:
            names.append(group.name)
            names.extend(p.name for p in group.packets)
        return names
