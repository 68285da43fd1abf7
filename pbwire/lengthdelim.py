"""Codecs for length-delimited Protobuf scalar types: strings and bytes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from pbwire.errors import DecodeError
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
)


class LengthDelimitedCodec(ABC):
    """Encoding and decoding of a type carried as a length-prefixed byte run."""

    wire_type = WireType.LENGTH_DELIMITED

    def __init__(self, name: str, default: Any) -> None:
        self.name = name
        self.default = default

    @abstractmethod
    def _to_bytes(self, value: Any) -> bytes:
        """Return the raw bytes written for ``value``."""

    @abstractmethod
    def _from_bytes(self, data: bytes) -> Any:
        """Build a value from the raw bytes read off the wire."""

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        """Append field ``tag`` holding ``value`` to ``buf``."""
        data = self._to_bytes(value)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(data), buf)
        buf += data

    def decode(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        """Read one value whose key has already been read."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        length = decode_varint(reader)
        if length > reader.remaining():
            raise DecodeError("buffer underflow")
        return self._from_bytes(reader.read(length))

    def encode_repeated(self, tag: int, values: Iterable[Any], buf: bytearray) -> None:
        """Append each value as its own field ``tag``."""
        for value in values:
            self.encode(tag, value, buf)

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[Any],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Read one value and append it to ``values``."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        values.append(self.decode(wire_type, reader, ctx))

    def encoded_len(self, tag: int, value: Any) -> int:
        """Length in bytes of field ``tag`` holding ``value``."""
        length = len(self._to_bytes(value))
        return key_len(tag) + encoded_len_varint(length) + length

    def encoded_len_repeated(self, tag: int, values: Iterable[Any]) -> int:
        """Length in bytes of ``values`` encoded with :meth:`encode_repeated`."""
        return sum(self.encoded_len(tag, value) for value in values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class StringCodec(LengthDelimitedCodec):
    """A UTF-8 encoded text field."""

    def __init__(self) -> None:
        super().__init__("string", "")

    def _to_bytes(self, value: Any) -> bytes:
        if not isinstance(value, str):
            raise TypeError(f"string value must be str, not {type(value).__name__}")
        return value.encode("utf-8")

    def _from_bytes(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError(
                "invalid string value: data is not UTF-8 encoded"
            ) from None


class BytesCodec(LengthDelimitedCodec):
    """An opaque byte string field."""

    def __init__(self) -> None:
        super().__init__("bytes", b"")

    def _to_bytes(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"bytes value must be bytes-like, not {type(value).__name__}"
            )
        return bytes(value)

    def _from_bytes(self, data: bytes) -> bytes:
        return data


STRING = StringCodec()
BYTES = BytesCodec()