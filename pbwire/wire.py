"""Low-level Protobuf wire format: varints, field keys and field skipping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, TypeVar

from pbwire.errors import DecodeError

MIN_TAG = 1
MAX_TAG = (1 << 29) - 1
RECURSION_LIMIT = 100

_U64_MAX = (1 << 64) - 1
_U32_MAX = (1 << 32) - 1

T = TypeVar("T")


class Reader:
    """A cursor over an immutable byte sequence."""

    def __init__(self, data: bytes | bytearray | memoryview = b"") -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    @property
    def position(self) -> int:
        """Number of bytes consumed so far."""
        return self._pos

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self._data) - self._pos

    def has_remaining(self) -> bool:
        return self._pos < len(self._data)

    def read_byte(self) -> int:
        """Consume and return one byte."""
        if not self.has_remaining():
            raise DecodeError("buffer underflow")
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def read(self, count: int) -> bytes:
        """Consume and return exactly ``count`` bytes."""
        if count < 0 or count > self.remaining():
            raise DecodeError("buffer underflow")
        chunk = bytes(self._data[self._pos : self._pos + count])
        self._pos += count
        return chunk

    def advance(self, count: int) -> None:
        """Skip ``count`` bytes."""
        if count < 0 or count > self.remaining():
            raise DecodeError("buffer underflow")
        self._pos += count

    def __repr__(self) -> str:
        return f"Reader(position={self._pos}, remaining={self.remaining()})"


class WireType(IntEnum):
    VARINT = 0
    SIXTY_FOUR_BIT = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    THIRTY_TWO_BIT = 5

    @classmethod
    def from_value(cls, value: int) -> WireType:
        """Return the wire type for a raw key value, or raise DecodeError."""
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(f"invalid wire type value: {value}") from None


@dataclass(frozen=True)
class DecodeContext:
    """Decoding state passed down through nested decodes.

    ``recurse_count`` is how many more levels of nesting may be entered.
    """

    recurse_count: int = RECURSION_LIMIT

    def enter_recursion(self) -> DecodeContext:
        """Return the context for the next level of nesting."""
        return DecodeContext(self.recurse_count - 1)

    def check_limit(self) -> None:
        """Raise DecodeError if no further nesting is allowed."""
        if self.recurse_count <= 0:
            raise DecodeError("recursion limit reached")


def encode_varint(value: int, buf: bytearray) -> None:
    """Append ``value`` (an unsigned 64-bit integer) to ``buf`` as LEB128."""
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"varint value out of range: {value}")
    while value >= 0x80:
        buf.append((value & 0x7F) | 0x80)
        value >>= 7
    buf.append(value)


def decode_varint(reader: Reader) -> int:
    """Read a LEB128 varint of at most 10 bytes that fits in 64 bits."""
    value = 0
    for count in range(10):
        if not reader.has_remaining():
            break
        byte = reader.read_byte()
        value |= (byte & 0x7F) << (7 * count)
        if byte < 0x80:
            if count == 9 and byte >= 0x02:
                break
            return value
    raise DecodeError("invalid varint")


def encoded_len_varint(value: int) -> int:
    """Length in bytes of ``value`` as a varint, between 1 and 10."""
    bits = (value | 1).bit_length() - 1
    return (bits * 9 + 73) // 64


def encode_key(tag: int, wire_type: WireType, buf: bytearray) -> None:
    """Append the key for field ``tag`` with ``wire_type`` to ``buf``."""
    if not MIN_TAG <= tag <= MAX_TAG:
        raise ValueError(f"tag out of range: {tag}")
    encode_varint((tag << 3) | int(wire_type), buf)


def decode_key(reader: Reader) -> tuple[int, WireType]:
    """Read a field key, returning ``(tag, wire_type)``."""
    key = decode_varint(reader)
    if key > _U32_MAX:
        raise DecodeError(f"invalid key value: {key}")
    wire_type = WireType.from_value(key & 0x07)
    tag = key >> 3
    if tag < MIN_TAG:
        raise DecodeError("invalid tag value: 0")
    return tag, wire_type


def key_len(tag: int) -> int:
    """Length in bytes of the key for field ``tag``, between 1 and 5."""
    return encoded_len_varint((tag << 3) & _U32_MAX)


def check_wire_type(expected: WireType, actual: WireType) -> None:
    """Raise DecodeError unless ``actual`` is ``expected``."""
    if expected != actual:
        raise DecodeError(
            f"invalid wire type: {WireType(actual).name} "
            f"(expected {WireType(expected).name})"
        )


def merge_loop(
    target: T,
    reader: Reader,
    ctx: DecodeContext,
    merge: Callable[[T, Reader, DecodeContext], None],
) -> None:
    """Read a length prefix, then call ``merge`` until that many bytes are used."""
    length = decode_varint(reader)
    remaining = reader.remaining()
    if length > remaining:
        raise DecodeError("buffer underflow")
    limit = remaining - length
    while reader.remaining() > limit:
        merge(target, reader, ctx)
    if reader.remaining() != limit:
        raise DecodeError("delimited length exceeded")


def skip_field(
    wire_type: WireType, tag: int, reader: Reader, ctx: DecodeContext
) -> None:
    """Consume the value of a field whose key has already been read."""
    ctx.check_limit()
    if wire_type == WireType.VARINT:
        decode_varint(reader)
        length = 0
    elif wire_type == WireType.THIRTY_TWO_BIT:
        length = 4
    elif wire_type == WireType.SIXTY_FOUR_BIT:
        length = 8
    elif wire_type == WireType.LENGTH_DELIMITED:
        length = decode_varint(reader)
    elif wire_type == WireType.START_GROUP:
        while True:
            inner_tag, inner_wire_type = decode_key(reader)
            if inner_wire_type == WireType.END_GROUP:
                if inner_tag != tag:
                    raise DecodeError("unexpected end group tag")
                break
            skip_field(inner_wire_type, inner_tag, reader, ctx.enter_recursion())
        length = 0
    else:
        raise DecodeError("unexpected end group tag")

    if length > reader.remaining():
        raise DecodeError("buffer underflow")
    reader.advance(length)