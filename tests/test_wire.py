import pytest
from hypothesis import given
from hypothesis import strategies as st

from pbwire.errors import DecodeError
from pbwire.wire import (
    MAX_TAG,
    MIN_TAG,
    RECURSION_LIMIT,
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_key,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
    skip_field,
)

U64_MAX = (1 << 64) - 1

VARINT_CASES = [
    (2**0 - 1, [0x00]),
    (2**0, [0x01]),
    (2**7 - 1, [0x7F]),
    (2**7, [0x80, 0x01]),
    (300, [0xAC, 0x02]),
    (2**14 - 1, [0xFF, 0x7F]),
    (2**14, [0x80, 0x80, 0x01]),
    (2**21 - 1, [0xFF, 0xFF, 0x7F]),
    (2**21, [0x80, 0x80, 0x80, 0x01]),
    (2**28 - 1, [0xFF, 0xFF, 0xFF, 0x7F]),
    (2**28, [0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**35 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**35, [0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**42 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**42, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**49 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**49, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**56 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**56, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**63 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**63, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (U64_MAX, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x01]),
]


@pytest.mark.parametrize("value, encoded", VARINT_CASES)
def test_varint(value, encoded):
    buf = bytearray()
    encode_varint(value, buf)
    assert bytes(buf) == bytes(encoded)
    assert encoded_len_varint(value) == len(encoded)
    reader = Reader(bytes(encoded))
    assert decode_varint(reader) == value
    assert not reader.has_remaining()


@pytest.mark.parametrize("value, encoded", VARINT_CASES)
def test_varint_with_trailing_data(value, encoded):
    reader = Reader(bytes(encoded) + b"\x05\x06")
    assert decode_varint(reader) == value
    assert reader.remaining() == 2


def test_varint_overflow():
    u64_max_plus_one = bytes([0xFF] * 9 + [0x02])
    with pytest.raises(DecodeError, match="invalid varint"):
        decode_varint(Reader(u64_max_plus_one))


def test_varint_too_long():
    with pytest.raises(DecodeError, match="invalid varint"):
        decode_varint(Reader(bytes([0x80] * 11)))


def test_varint_truncated_and_empty():
    with pytest.raises(DecodeError, match="invalid varint"):
        decode_varint(Reader(b""))
    with pytest.raises(DecodeError, match="invalid varint"):
        decode_varint(Reader(b"\x80\x80"))


def test_encode_varint_rejects_out_of_range():
    with pytest.raises(ValueError):
        encode_varint(-1, bytearray())
    with pytest.raises(ValueError):
        encode_varint(U64_MAX + 1, bytearray())


@given(st.integers(min_value=0, max_value=U64_MAX))
def test_varint_roundtrip(value):
    buf = bytearray()
    encode_varint(value, buf)
    assert len(buf) == encoded_len_varint(value)
    assert 1 <= len(buf) <= 10
    assert decode_varint(Reader(buf)) == value


def test_reader_operations():
    reader = Reader(b"\x01\x02\x03\x04")
    assert reader.remaining() == 4
    assert reader.read_byte() == 1
    assert reader.read(2) == b"\x02\x03"
    reader.advance(1)
    assert reader.remaining() == 0
    assert reader.position == 4
    assert not reader.has_remaining()
    with pytest.raises(DecodeError, match="buffer underflow"):
        reader.read_byte()


def test_reader_underflow():
    reader = Reader(b"\x01")
    with pytest.raises(DecodeError, match="buffer underflow"):
        reader.read(2)
    with pytest.raises(DecodeError, match="buffer underflow"):
        reader.advance(2)
    assert reader.remaining() == 1


def test_wire_type_from_value():
    assert WireType.from_value(0) is WireType.VARINT
    assert WireType.from_value(5) is WireType.THIRTY_TWO_BIT
    with pytest.raises(DecodeError) as info:
        WireType.from_value(6)
    assert info.value.description == "invalid wire type value: 6"


@given(
    st.integers(min_value=MIN_TAG, max_value=MAX_TAG),
    st.sampled_from(list(WireType)),
)
def test_key_roundtrip(tag, wire_type):
    buf = bytearray()
    encode_key(tag, wire_type, buf)
    assert len(buf) == key_len(tag)
    assert 1 <= len(buf) <= 5
    reader = Reader(buf)
    assert decode_key(reader) == (tag, wire_type)
    assert not reader.has_remaining()


def test_encode_key_bytes():
    buf = bytearray()
    encode_key(1, WireType.START_GROUP, buf)
    encode_key(1, WireType.END_GROUP, buf)
    assert bytes(buf) == b"\x0B\x0C"


def test_encode_key_rejects_bad_tag():
    with pytest.raises(ValueError):
        encode_key(0, WireType.VARINT, bytearray())
    with pytest.raises(ValueError):
        encode_key(MAX_TAG + 1, WireType.VARINT, bytearray())


def test_decode_key_errors():
    with pytest.raises(DecodeError) as info:
        decode_key(Reader(b"\x00"))
    assert info.value.description == "invalid tag value: 0"

    buf = bytearray()
    encode_varint(1 << 32, buf)
    with pytest.raises(DecodeError) as info:
        decode_key(Reader(buf))
    assert info.value.description == f"invalid key value: {1 << 32}"

    with pytest.raises(DecodeError, match="invalid wire type value: 7"):
        decode_key(Reader(b"\x0F"))


def test_check_wire_type():
    check_wire_type(WireType.VARINT, WireType.VARINT)
    with pytest.raises(DecodeError) as info:
        check_wire_type(WireType.VARINT, WireType.LENGTH_DELIMITED)
    assert "LENGTH_DELIMITED" in info.value.description
    assert "expected VARINT" in info.value.description


def test_decode_context_limit():
    ctx = DecodeContext()
    assert ctx.recurse_count == RECURSION_LIMIT
    for _ in range(RECURSION_LIMIT):
        ctx.check_limit()
        ctx = ctx.enter_recursion()
    assert ctx.recurse_count == 0
    with pytest.raises(DecodeError, match="recursion limit reached"):
        ctx.check_limit()


def _append_varint(values, reader, ctx):
    values.append(decode_varint(reader))


def test_merge_loop_reads_delimited_values():
    values = []
    reader = Reader(b"\x03\x01\x96\x01\x09")
    merge_loop(values, reader, DecodeContext(), _append_varint)
    assert values == [1, 150]
    assert reader.remaining() == 1


def test_merge_loop_underflow():
    with pytest.raises(DecodeError, match="buffer underflow"):
        merge_loop([], Reader(b"\x05\x01"), DecodeContext(), _append_varint)


def test_merge_loop_length_exceeded():
    with pytest.raises(DecodeError, match="delimited length exceeded"):
        merge_loop([], Reader(b"\x01\x96\x01"), DecodeContext(), _append_varint)


@pytest.mark.parametrize(
    "wire_type, data, left",
    [
        (WireType.VARINT, b"\xAC\x02\xFF", 1),
        (WireType.THIRTY_TWO_BIT, b"\x01\x02\x03\x04\xFF", 1),
        (WireType.SIXTY_FOUR_BIT, b"\x01\x02\x03\x04\x05\x06\x07\x08", 0),
        (WireType.LENGTH_DELIMITED, b"\x02ab\xFF\xFF", 2),
    ],
)
def test_skip_field(wire_type, data, left):
    reader = Reader(data)
    skip_field(wire_type, 1, reader, DecodeContext())
    assert reader.remaining() == left


def test_skip_group():
    data = bytes(
        [0x30, 0x01, 0x2B, 0x30, 0xFF, 0x01, 0x2C, 0x10, 0x20, 0x0C]
    )
    reader = Reader(data)
    skip_field(WireType.START_GROUP, 1, reader, DecodeContext())
    assert not reader.has_remaining()


def test_skip_group_mismatched_end():
    with pytest.raises(DecodeError, match="unexpected end group tag"):
        skip_field(WireType.START_GROUP, 1, Reader(b"\x14"), DecodeContext())


def test_skip_end_group_is_error():
    with pytest.raises(DecodeError, match="unexpected end group tag"):
        skip_field(WireType.END_GROUP, 1, Reader(b""), DecodeContext())


def test_skip_underflow():
    with pytest.raises(DecodeError, match="buffer underflow"):
        skip_field(WireType.THIRTY_TWO_BIT, 1, Reader(b"\x01\x02"), DecodeContext())
    with pytest.raises(DecodeError, match="buffer underflow"):
        skip_field(WireType.LENGTH_DELIMITED, 1, Reader(b"\x05ab"), DecodeContext())


def test_skip_deep_start_groups_hits_recursion_limit():
    reader = Reader(b"C" * (1 << 20))
    tag, wire_type = decode_key(reader)
    assert (tag, wire_type) == (8, WireType.START_GROUP)
    with pytest.raises(DecodeError, match="recursion limit reached"):
        skip_field(wire_type, tag, reader, DecodeContext())