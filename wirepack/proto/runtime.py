"""Runtime support for packet groups and compiled schemas."""

import io
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, BinaryIO, ClassVar

from .aggregate import StructDecoder, StructEncoder
from .primitives import VARINT
from .serialization import SerializationError, UnknownPacketIdentifier


class Packet:
    """Base class for the packet classes of every group.

    The schema compiler assigns the identifier and the name of the group.
    """

    packet_id: ClassVar[int]
    group_name: ClassVar[str]


class PacketDecoder:
    """Decodes a single packet type, identifier included."""

    def __init__(self, packet_id: int, payload: StructDecoder) -> None:
        self.packet_id = packet_id
        self.payload = payload

    def decode(self, source: BinaryIO) -> Any:
        packet_id = VARINT.decode(source)
        if packet_id != self.packet_id:
            raise UnknownPacketIdentifier(packet_id)
        return self.payload.decode(source)


class PacketEncoder:
    """Writes the packet identifier followed by the packet's fields."""

    def __init__(self, packet_id: int, payload: StructEncoder) -> None:
        self.packet_id = packet_id
        self.payload = payload

    def encode(self, value: Any, sink: BinaryIO) -> None:
        VARINT.encode(self.packet_id, sink)
        self.payload.encode(value, sink)


class PacketGroup:
    """Dispatches packets of one group by their VarInt identifier.

    Only decode-capable packets appear in the decode table and only
    encode-capable packets in the encode table.

    Example:
        group = schema.groups["Serverbound"]
        packet = group.decode(stream)
        group.encode(Handshake(version=4, name="x"), sink)
    """

    def __init__(
        self,
        name: str,
        base: type[Packet],
        packets: Mapping[int, type[Packet]],
        decoders: Mapping[int, StructDecoder],
        encoders: Mapping[type, PacketEncoder],
    ) -> None:
        self.name = name
        self.base = base
        self.packets = MappingProxyType(dict(packets))
        self._decoders = dict(decoders)
        self._encoders = dict(encoders)

    def __repr__(self) -> str:
        return f"PacketGroup({self.name}, packets={len(self.packets)})"

    def packet_id(self, packet: Packet | type[Packet]) -> int:
        """Return the identifier of a packet instance or class of this group."""
        cls = packet if isinstance(packet, type) else type(packet)
        if not issubclass(cls, self.base) or cls.packet_id not in self.packets:
            raise SerializationError(f"{cls.__name__} is not a packet of group {self.name}")
        return cls.packet_id

    def can_decode(self, packet_id: int) -> bool:
        return packet_id in self._decoders

    def can_encode(self, packet: Packet | type[Packet]) -> bool:
        cls = packet if isinstance(packet, type) else type(packet)
        return cls in self._encoders

    def decode(self, source: BinaryIO) -> Packet:
        """Read one identifier-prefixed packet from a binary stream.

        Raises:
            UnknownPacketIdentifier: If no decodable packet has the identifier.
                Nothing past the identifier is consumed.
        """
        packet_id = VARINT.decode(source)
        decoder = self._decoders.get(packet_id)
        if decoder is None:
            raise UnknownPacketIdentifier(packet_id)
        return decoder.decode(source)

    def encode(self, value: Packet, sink: BinaryIO) -> None:
        """Write a packet's identifier and fields to a binary stream."""
        encoder = self._encoders.get(type(value))
        if encoder is None:
            raise SerializationError(f"{type(value).__name__} cannot be encoded in group {self.name}")
        encoder.encode(value, sink)

    def pack(self, value: Packet) -> bytes:
        buf = io.BytesIO()
        self.encode(value, buf)
        return buf.getvalue()

    def unpack(self, data: bytes | bytearray | memoryview) -> tuple[Packet, int]:
        """Unpack one packet from bytes.

        Returns:
            Tuple of (packet, bytes_consumed).
        """
        stream = io.BytesIO(data)
        packet = self.decode(stream)
        return packet, stream.tell()


class CompiledSchema:
    """Immutable handle to the classes, codecs and groups of a compiled schema.

    Built once by `wirepack.generator.compile_schema` and shared read-only
    by every call site.
    """

    def __init__(
        self,
        types: Mapping[str, type],
        codecs: Mapping[str, Any],
        groups: Mapping[str, PacketGroup],
    ) -> None:
        self.types = MappingProxyType(dict(types))
        self.codecs = MappingProxyType(dict(codecs))
        self.groups = MappingProxyType(dict(groups))

    def __getitem__(self, name: str) -> type:
        return self.types[name]

    def __contains__(self, name: object) -> bool:
        return name in self.types

    def __repr__(self) -> str:
        return f"CompiledSchema(types={list(self.types)}, groups={list(self.groups)})"

    def group_of(self, packet: Packet | type[Packet]) -> PacketGroup:
        cls = packet if isinstance(packet, type) else type(packet)
        group_name = getattr(cls, "group_name", None)
        if group_name not in self.groups:
            raise SerializationError(f"{cls.__name__} is not a packet of this schema")
        return self.groups[group_name]

    def decode(self, group: str, source: BinaryIO) -> Packet:
        return self.groups[group].decode(source)

    def encode(self, value: Packet, sink: BinaryIO) -> None:
        self.group_of(value).encode(value, sink)

    def pack(self, value: Packet) -> bytes:
        return self.group_of(value).pack(value)

    def unpack(self, group: str, data: bytes | bytearray | memoryview) -> tuple[Packet, int]:
        return self.groups[group].unpack(data)
