# pbwire

Building blocks for reading and writing the Protocol Buffers binary wire
format: varints, field keys, skipping unknown fields, codecs for every
scalar type, strings and bytes, and map fields.

It has no runtime dependencies and needs Python 3.10 or newer.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `pbwire.errors` – `DecodeError` and `EncodeError`.
- `pbwire.wire` – `Reader`, `WireType`, `DecodeContext`, `encode_varint`,
  `decode_varint`, `encoded_len_varint`, `encode_key`, `decode_key`,
  `key_len`, `check_wire_type`, `merge_loop`, `skip_field`, and the
  constants `MIN_TAG`, `MAX_TAG` and `RECURSION_LIMIT`.
- `pbwire.scalars` – the codec classes `ScalarCodec`, `VarintCodec` and
  `FixedCodec`, and ready-made codecs `BOOL`, `INT32`, `INT64`, `UINT32`,
  `UINT64`, `SINT32`, `SINT64`, `FLOAT`, `DOUBLE`, `FIXED32`, `FIXED64`,
  `SFIXED32` and `SFIXED64`.
- `pbwire.lengthdelim` – `LengthDelimitedCodec`, `StringCodec`,
  `BytesCodec`, and the codecs `STRING` and `BYTES`.
- `pbwire.maps` – `encode_map`, `merge_map` and `encoded_len_map`.

## Varints and keys

Encoding functions append to a `bytearray`; decoding functions read from a
`Reader`.

```python
from pbwire.wire import Reader, WireType, encode_varint, decode_varint, encode_key, decode_key

buf = bytearray()
encode_key(1, WireType.VARINT, buf)
encode_varint(300, buf)
assert bytes(buf) == b"\x08\xac\x02"

reader = Reader(bytes(buf))
assert decode_key(reader) == (1, WireType.VARINT)
assert decode_varint(reader) == 300
```

`decode_varint` accepts at most 10 bytes and values that fit in 64 bits.
`decode_key` rejects keys above 32 bits, unknown wire types and tag 0.

## Scalar fields

Each codec has `encode`, `decode`, `encode_repeated`, `encode_packed`,
`merge_repeated`, `encoded_len`, `encoded_len_repeated` and
`encoded_len_packed`. `decode` and `merge_repeated` expect the field key to
have been read already.

```python
from pbwire.scalars import SINT32, UINT32
from pbwire.wire import DecodeContext, Reader, decode_key

buf = bytearray()
SINT32.encode(1, -1, buf)
assert bytes(buf) == b"\x08\x01"

reader = Reader(bytes(buf))
_, wire_type = decode_key(reader)
assert SINT32.decode(wire_type, reader, DecodeContext()) == -1

packed = bytearray()
UINT32.encode_packed(4, [1, 2, 3], packed)
assert bytes(packed) == b"\x22\x03\x01\x02\x03"

reader = Reader(bytes(packed))
_, wire_type = decode_key(reader)
values = []
UINT32.merge_repeated(wire_type, values, reader, DecodeContext())
assert values == [1, 2, 3]
```

`merge_repeated` accepts both packed and unpacked input. Values outside a
type's range raise `ValueError` on encoding.

## Strings and bytes

```python
from pbwire.lengthdelim import STRING

buf = bytearray()
STRING.encode(2, "hi", buf)
assert bytes(buf) == b"\x12\x02hi"
```

Decoding a string that is not valid UTF-8 raises `DecodeError`.

## Map fields

Map functions take a key codec and a value codec. Keys and values equal to
the codec default are left out of each entry; pass `value_default` to use
a different default for the value.

```python
from pbwire.lengthdelim import STRING
from pbwire.maps import encode_map, encoded_len_map, merge_map
from pbwire.scalars import INT32
from pbwire.wire import DecodeContext, Reader, decode_key

buf = bytearray()
encode_map(STRING, INT32, 5, {"a": 1}, buf)
assert bytes(buf) == b"\x2a\x05\x0a\x01a\x10\x01"
assert encoded_len_map(STRING, INT32, 5, {"a": 1}) == len(buf)

reader = Reader(bytes(buf))
decode_key(reader)
result = {}
merge_map(STRING, INT32, result, reader, DecodeContext())
assert result == {"a": 1}
```

## Unknown fields and nesting

`skip_field(wire_type, tag, reader, ctx)` passes over a field you do not
know, including whole groups. A `DecodeContext` allows 100 levels of
nesting; `ctx.enter_recursion()` gives the context for the next level and
`ctx.check_limit()` raises `DecodeError("recursion limit reached")` when
none are left. `merge_loop` reads a length prefix and calls a merge
function until exactly that many bytes have been used.

## Errors

Malformed input raises `pbwire.errors.DecodeError`, a `ValueError`. Its
`description` holds the cause and `push(message, field)` records where in a
nested structure decoding failed; `str()` gives
`failed to decode Protobuf message: Msg.field: <description>`.

`pbwire.errors.EncodeError` carries `required` (also
`required_capacity`) and `remaining`, for code that encodes into a
fixed-size buffer.

## What pbwire does not do

pbwire works field by field. It has no message base class, no whole-message
`encode`/`decode`, no helpers for embedded messages or groups, no framing
of length-delimited message streams, and no well-known wrapper types. Those
are built from the pieces above.