"""Runtime type descriptors for wirepack schemas.

These describe what a schema node can do (its direction) and which wire
types are built in. They are shared by the runtime codecs and the compiler.
"""

from enum import StrEnum


class Capability(StrEnum):
    """An operation a codec can perform."""

    DECODE = "decode"
    ENCODE = "encode"


class Direction(StrEnum):
    """Declares which capabilities a schema node supports."""

    READ = "read"
    WRITE = "write"
    READ_WRITE = "readwrite"

    @property
    def capabilities(self) -> frozenset[Capability]:
        if self is Direction.READ:
            return frozenset({Capability.DECODE})
        if self is Direction.WRITE:
            return frozenset({Capability.ENCODE})
        return frozenset({Capability.DECODE, Capability.ENCODE})

    @property
    def can_decode(self) -> bool:
        return Capability.DECODE in self.capabilities

    @property
    def can_encode(self) -> bool:
        return Capability.ENCODE in self.capabilities


# Fixed-width types: name -> (struct format, size in bytes)
FIXED_TYPES: dict[str, tuple[str, int]] = {
    "i8": (">b", 1),
    "i16": (">h", 2),
    "i32": (">i", 4),
    "i64": (">q", 8),
    "u8": (">B", 1),
    "u16": (">H", 2),
    "u32": (">I", 4),
    "u64": (">Q", 8),
    "f32": (">f", 4),
    "f64": (">d", 8),
}

# Inclusive ranges of the integer wire types
INTEGER_RANGES: dict[str, tuple[int, int]] = {
    "i8": (-(2**7), 2**7 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "i64": (-(2**63), 2**63 - 1),
    "u8": (0, 2**8 - 1),
    "u16": (0, 2**16 - 1),
    "u32": (0, 2**32 - 1),
    "u64": (0, 2**64 - 1),
    "varint": (0, 2**32 - 1),
    "varlong": (0, 2**64 - 1),
}

PRIMITIVE_TYPES = frozenset([*FIXED_TYPES, "bool", "varint", "varlong", "string"])

# Type constructors that wrap other type references
CONTAINER_TYPES = frozenset(["sequence", "optional", "map"])


def is_primitive(name: str) -> bool:
    """Check if a type name is a built-in primitive."""
    return name in PRIMITIVE_TYPES


def is_integer(name: str) -> bool:
    """Check if a type name is an integer type usable as a discriminant."""
    return name in INTEGER_RANGES
