"""Wire format runtime: primitive and aggregate codecs, packet dispatch."""

from .runtime import CompiledSchema as CompiledSchema
from .runtime import Packet as Packet
from .runtime import PacketGroup as PacketGroup
from .serialization import Decodable as Decodable
from .serialization import Decoder as Decoder
from .serialization import Encodable as Encodable
from .serialization import Encoder as Encoder
from .serialization import InvalidStringLength as InvalidStringLength
from .serialization import InvalidUtf8 as InvalidUtf8
from .serialization import InvalidValue as InvalidValue
from .serialization import NestingTooDeep as NestingTooDeep
from .serialization import SerializationError as SerializationError
from .serialization import UnexpectedEndOfInput as UnexpectedEndOfInput
from .serialization import UnknownPacketIdentifier as UnknownPacketIdentifier
from .serialization import UnknownVariant as UnknownVariant
from .serialization import VarIntOverflow as VarIntOverflow
from .types import Capability as Capability
from .types import Direction as Direction
