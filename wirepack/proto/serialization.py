"""Serialization errors and capability interfaces for wirepack types."""

import io
from typing import Any, BinaryIO, ClassVar, Protocol, Self, runtime_checkable


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class UnexpectedEndOfInput(SerializationError):
    """Raised when the input ends before a value is complete."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"Expected {expected} bytes but only {received} were available")
        self.expected = expected
        self.received = received


class VarIntOverflow(SerializationError):
    """Raised when a variable-length integer is too long or out of range."""


class InvalidUtf8(SerializationError):
    """Raised when string bytes are not valid UTF-8."""


class InvalidStringLength(SerializationError):
    """Raised when a string length prefix exceeds the maximum string length."""

    def __init__(self, length: int, max_length: int) -> None:
        super().__init__(f"String length {length} exceeds maximum of {max_length} bytes")
        self.length = length
        self.max_length = max_length


class InvalidValue(SerializationError):
    """Raised when a value cannot be represented by its wire type."""


class UnknownVariant(SerializationError):
    """Raised when a tagged union discriminant matches no variant."""

    def __init__(self, value: int) -> None:
        super().__init__(f"Unknown variant discriminant {value}")
        self.value = value


class NestingTooDeep(SerializationError):
    """Raised when nested structs exceed the decoding depth limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Nesting exceeds the limit of {limit} levels")
        self.limit = limit


class UnknownPacketIdentifier(SerializationError):
    """Raised when a packet identifier is not decodable in a group."""

    def __init__(self, packet_id: int) -> None:
        super().__init__(f"Received unknown packet id {packet_id}")
        self.packet_id = packet_id


@runtime_checkable
class Decoder(Protocol):
    """Reads one value from a binary source."""

    def decode(self, source: BinaryIO) -> Any: ...


@runtime_checkable
class Encoder(Protocol):
    """Writes one value to a binary sink."""

    def encode(self, value: Any, sink: BinaryIO) -> None: ...


def read_exact(source: BinaryIO, size: int) -> bytes:
    """Read exactly `size` bytes from source.

    Raises:
        UnexpectedEndOfInput: If the source is exhausted first.
    """
    data = source.read(size)
    if len(data) == size:
        return data
    chunks = [data]
    received = len(data)
    while data and received < size:
        data = source.read(size - received)
        chunks.append(data)
        received += len(data)
    if received < size:
        raise UnexpectedEndOfInput(size, received)
    return b"".join(chunks)


class Decodable:
    """Base class for generated types that can be read from the wire.

    The schema compiler assigns `_decoder`. Example:

        position = Position.read(stream)
        position, consumed = Position.unpack(b"...")
    """

    _decoder: ClassVar[Decoder | None] = None

    @classmethod
    def _require_decoder(cls) -> Decoder:
        if cls._decoder is None:
            raise SerializationError(f"{cls.__name__} has not been compiled for decoding")
        return cls._decoder

    @classmethod
    def _decode(cls, source: BinaryIO) -> Self:
        value = cls._require_decoder().decode(source)
        # Variant classes share their union's decoder
        if not isinstance(value, cls):
            raise SerializationError(f"Expected {cls.__name__}, got {type(value).__name__}")
        return value

    @classmethod
    def read(cls, source: BinaryIO) -> Self:
        """Read one instance from a binary stream."""
        return cls._decode(source)

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> tuple[Self, int]:
        """Unpack an instance from bytes.

        Returns:
            Tuple of (instance, bytes_consumed).
        """
        stream = io.BytesIO(data)
        instance = cls._decode(stream)
        return instance, stream.tell()


class Encodable:
    """Base class for generated types that can be written to the wire."""

    _encoder: ClassVar[Encoder | None] = None

    def write(self, sink: BinaryIO) -> None:
        """Write this instance to a binary stream."""
        encoder = type(self)._encoder
        if encoder is None:
            raise SerializationError(f"{type(self).__name__} has not been compiled for encoding")
        encoder.encode(self, sink)

    def pack(self) -> bytes:
        """Pack this instance to bytes."""
        buf = io.BytesIO()
        self.write(buf)
        return buf.getvalue()
