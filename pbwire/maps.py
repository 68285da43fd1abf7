"""Encoding and decoding of Protobuf map fields.

A map field is a repeated length-delimited entry whose key is field 1 and
whose value is field 2. Entries equal to the type defaults leave that field
out. Codecs are objects with ``default``, ``encode``, ``decode`` and
``encoded_len``, such as those in :mod:`pbwire.scalars` and
:mod:`pbwire.lengthdelim`.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping

from pbwire.wire import (
    DecodeContext,
    Reader,
    WireType,
    decode_key,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
    skip_field,
)

_CODEC_DEFAULT: Any = object()


def _resolve_default(value_codec: Any, value_default: Any) -> Any:
    return value_codec.default if value_default is _CODEC_DEFAULT else value_default


def _entry_len(key_codec: Any, value_codec: Any, key: Any, value: Any, value_default: Any) -> int:
    length = 0
    if key != key_codec.default:
        length += key_codec.encoded_len(1, key)
    if value != value_default:
        length += value_codec.encoded_len(2, value)
    return length


def encode_map(
    key_codec: Any,
    value_codec: Any,
    tag: int,
    values: Mapping[Any, Any],
    buf: bytearray,
    value_default: Any = _CODEC_DEFAULT,
) -> None:
    """Append one entry per item of ``values`` as field ``tag``.

    ``value_default`` overrides the value codec's default, as enumerations
    may have a non-zero default.
    """
    value_default = _resolve_default(value_codec, value_default)
    for key, value in values.items():
        skip_key = key == key_codec.default
        skip_value = value == value_default
        length = _entry_len(key_codec, value_codec, key, value, value_default)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(length, buf)
        if not skip_key:
            key_codec.encode(1, key, buf)
        if not skip_value:
            value_codec.encode(2, value, buf)


def merge_map(
    key_codec: Any,
    value_codec: Any,
    values: MutableMapping[Any, Any],
    reader: Reader,
    ctx: DecodeContext,
    value_default: Any = _CODEC_DEFAULT,
) -> None:
    """Read one map entry, whose key has already been read, into ``values``."""
    entry = [key_codec.default, _resolve_default(value_codec, value_default)]

    def merge_entry(target: list[Any], r: Reader, c: DecodeContext) -> None:
        field_tag, wire_type = decode_key(r)
        if field_tag == 1:
            target[0] = key_codec.decode(wire_type, r, c)
        elif field_tag == 2:
            target[1] = value_codec.decode(wire_type, r, c)
        else:
            skip_field(wire_type, field_tag, r, c)

    ctx.check_limit()
    merge_loop(entry, reader, ctx.enter_recursion(), merge_entry)
    key, value = entry
    values[key] = value


def encoded_len_map(
    key_codec: Any,
    value_codec: Any,
    tag: int,
    values: Mapping[Any, Any],
    value_default: Any = _CODEC_DEFAULT,
) -> int:
    """Length in bytes of ``values`` encoded with :func:`encode_map`."""
    value_default = _resolve_default(value_codec, value_default)
    total = key_len(tag) * len(values)
    for key, value in values.items():
        length = _entry_len(key_codec, value_codec, key, value, value_default)
        total += encoded_len_varint(length) + length
    return total