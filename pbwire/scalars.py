"""Codecs for Protobuf scalar field types: varint-encoded and fixed-width numbers."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable

from pbwire.wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
)

_U32_MAX = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1


class ScalarCodec(ABC):
    """Encoding and decoding of one scalar Protobuf type.

    ``wire_type`` is the wire type of a single value; ``default`` is the
    value a field of this type holds when it is absent.
    """

    def __init__(self, name: str, wire_type: WireType, default: Any) -> None:
        self.name = name
        self.wire_type = wire_type
        self.default = default

    @abstractmethod
    def _put(self, value: Any, buf: bytearray) -> None:
        """Append the bare value (no key) to ``buf``."""

    @abstractmethod
    def _get(self, reader: Reader) -> Any:
        """Read one bare value from ``reader``."""

    @abstractmethod
    def _value_len(self, value: Any) -> int:
        """Length in bytes of the bare value."""

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        """Append field ``tag`` holding ``value`` to ``buf``."""
        encode_key(tag, self.wire_type, buf)
        self._put(value, buf)

    def decode(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        """Read one value whose key has already been read."""
        check_wire_type(self.wire_type, wire_type)
        return self._get(reader)

    def encode_repeated(self, tag: int, values: Iterable[Any], buf: bytearray) -> None:
        """Append each value as its own field ``tag``."""
        for value in values:
            self.encode(tag, value, buf)

    def encode_packed(self, tag: int, values: Iterable[Any], buf: bytearray) -> None:
        """Append all values as one length-delimited packed field; nothing if empty."""
        values = list(values)
        if not values:
            return
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(sum(self._value_len(value) for value in values), buf)
        for value in values:
            self._put(value, buf)

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[Any],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Append the value or, for a packed field, all values to ``values``."""
        if wire_type == WireType.LENGTH_DELIMITED:
            merge_loop(
                values,
                reader,
                ctx,
                lambda target, r, c: target.append(self.decode(self.wire_type, r, c)),
            )
        else:
            check_wire_type(self.wire_type, wire_type)
            values.append(self.decode(wire_type, reader, ctx))

    def encoded_len(self, tag: int, value: Any) -> int:
        """Length in bytes of field ``tag`` holding ``value``."""
        return key_len(tag) + self._value_len(value)

    def encoded_len_repeated(self, tag: int, values: Iterable[Any]) -> int:
        """Length in bytes of ``values`` encoded with :meth:`encode_repeated`."""
        return sum(self.encoded_len(tag, value) for value in values)

    def encoded_len_packed(self, tag: int, values: Iterable[Any]) -> int:
        """Length in bytes of ``values`` encoded with :meth:`encode_packed`."""
        values = list(values)
        if not values:
            return 0
        length = sum(self._value_len(value) for value in values)
        return key_len(tag) + encoded_len_varint(length) + length

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class VarintCodec(ScalarCodec):
    """A scalar carried as a varint, mapped to and from an unsigned 64-bit value."""

    def __init__(
        self,
        name: str,
        to_u64: Callable[[Any], int],
        from_u64: Callable[[int], Any],
        default: Any = 0,
    ) -> None:
        super().__init__(name, WireType.VARINT, default)
        self._to_u64 = to_u64
        self._from_u64 = from_u64

    def _put(self, value: Any, buf: bytearray) -> None:
        encode_varint(self._to_u64(value), buf)

    def _get(self, reader: Reader) -> Any:
        return self._from_u64(decode_varint(reader))

    def _value_len(self, value: Any) -> int:
        return encoded_len_varint(self._to_u64(value))


class FixedCodec(ScalarCodec):
    """A scalar carried as 4 or 8 little-endian bytes, described by a struct format."""

    def __init__(self, name: str, fmt: str, default: Any = 0) -> None:
        self._struct = struct.Struct(fmt)
        self.width = self._struct.size
        if self.width == 4:
            wire_type = WireType.THIRTY_TWO_BIT
        elif self.width == 8:
            wire_type = WireType.SIXTY_FOUR_BIT
        else:
            raise ValueError(f"unsupported fixed width: {self.width}")
        super().__init__(name, wire_type, default)

    def _put(self, value: Any, buf: bytearray) -> None:
        try:
            buf += self._struct.pack(value)
        except struct.error as error:
            raise ValueError(f"invalid {self.name} value: {value!r}") from error

    def _get(self, reader: Reader) -> Any:
        if reader.remaining() < self.width:
            from pbwire.errors import DecodeError

            raise DecodeError("buffer underflow")
        return self._struct.unpack(reader.read(self.width))[0]

    def _value_len(self, value: Any) -> int:
        return self.width


def _checked(value: int, low: int, high: int, name: str) -> int:
    if not low <= value <= high:
        raise ValueError(f"{name} value out of range: {value}")
    return value


def _signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def _int32_to_u64(value: int) -> int:
    return _checked(value, -(1 << 31), (1 << 31) - 1, "int32") & _U64_MAX


def _int64_to_u64(value: int) -> int:
    return _checked(value, -(1 << 63), (1 << 63) - 1, "int64") & _U64_MAX


def _sint32_to_u64(value: int) -> int:
    value = _checked(value, -(1 << 31), (1 << 31) - 1, "sint32")
    return ((value << 1) ^ (value >> 31)) & _U32_MAX


def _sint32_from_u64(value: int) -> int:
    value &= _U32_MAX
    return (value >> 1) ^ -(value & 1)


def _sint64_to_u64(value: int) -> int:
    value = _checked(value, -(1 << 63), (1 << 63) - 1, "sint64")
    return ((value << 1) ^ (value >> 63)) & _U64_MAX


def _sint64_from_u64(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


BOOL = VarintCodec("bool", lambda v: 1 if v else 0, lambda v: v != 0, default=False)
INT32 = VarintCodec("int32", _int32_to_u64, lambda v: _signed(v, 32))
INT64 = VarintCodec("int64", _int64_to_u64, lambda v: _signed(v, 64))
UINT32 = VarintCodec(
    "uint32", lambda v: _checked(v, 0, _U32_MAX, "uint32"), lambda v: v & _U32_MAX
)
UINT64 = VarintCodec("uint64", lambda v: _checked(v, 0, _U64_MAX, "uint64"), lambda v: v)
SINT32 = VarintCodec("sint32", _sint32_to_u64, _sint32_from_u64)
SINT64 = VarintCodec("sint64", _sint64_to_u64, _sint64_from_u64)

FLOAT = FixedCodec("float", "<f", default=0.0)
DOUBLE = FixedCodec("double", "<d", default=0.0)
FIXED32 = FixedCodec("fixed32", "<I")
FIXED64 = FixedCodec("fixed64", "<Q")
SFIXED32 = FixedCodec("sfixed32", "<i")
SFIXED64 = FixedCodec("sfixed64", "<q")