import struct

import numpy as np
import pytest

from imageto_ico.core.errors import EncodeInvariantViolation, IcoFormatError
from imageto_ico.core.ico_encoder import (
    ENTRY_FORMAT,
    HEADER_FORMAT,
    IcoWriter,
    ImagePayload,
    decode_dimension,
    encode,
    encode_dimension,
    encoded_length,
    extract_payloads,
    parse_ico,
)


def dummy(length, fill=0xAB):
    return bytes([fill]) * length


def read_entry(data, index):
    return struct.unpack_from(ENTRY_FORMAT, data, 6 + 16 * index)


def test_single_payload_layout():
    data = encode([(16, dummy(100))])

    assert len(data) == 122
    assert struct.unpack_from(HEADER_FORMAT, data, 0) == (0, 1, 1)
    assert read_entry(data, 0) == (16, 16, 0, 0, 1, 32, 100, 22)
    assert data[22:] == dummy(100)


def test_three_payload_offsets():
    payloads = [(16, dummy(50, 1)), (32, dummy(80, 2)), (256, dummy(120, 3))]
    data = encode(payloads)

    assert struct.unpack_from(HEADER_FORMAT, data, 0) == (0, 1, 3)
    offsets = [read_entry(data, i)[7] for i in range(3)]
    assert offsets == [54, 104, 184]
    lengths = [read_entry(data, i)[6] for i in range(3)]
    assert lengths == [50, 80, 120]
    assert len(data) == 304


def test_empty_sequence_is_rejected():
    with pytest.raises(EncodeInvariantViolation):
        encode([])


@pytest.mark.parametrize('size, expected', [(256, 0), (255, 255), (1, 1), (48, 48)])
def test_dimension_bytes(size, expected):
    data = encode([(size, dummy(10))])
    assert data[6] == expected
    assert data[7] == expected


@pytest.mark.parametrize('size', [0, -1, 257, 1024, 16.0, True, None])
def test_unencodable_size_is_rejected(size):
    with pytest.raises(EncodeInvariantViolation):
        encode([(size, dummy(10))])


def test_numpy_integer_sizes():
    data = encode([(np.int64(32), dummy(10)), (np.uint16(256), dummy(10))])

    assert read_entry(data, 0)[:2] == (32, 32)
    assert read_entry(data, 1)[:2] == (0, 0)
    assert encode_dimension(np.int32(48)) == 48
    assert type(encode_dimension(np.int32(48))) is int


def test_empty_payload_is_rejected():
    with pytest.raises(EncodeInvariantViolation):
        encode([(16, dummy(10)), (32, b'')])


def test_order_is_preserved():
    payloads = [(16, dummy(30, 1)), (256, dummy(20, 2)), (48, dummy(10, 3))]
    data = encode(payloads)

    widths = [data[6 + 16 * i] for i in range(3)]
    assert widths == [16, 0, 48]
    assert data[6 + 48:] == dummy(30, 1) + dummy(20, 2) + dummy(10, 3)


def test_offsets_point_at_payloads():
    payloads = [
        (16, b'\x89PNG first'),
        (32, bytes(range(256)) * 3),
        (64, b'x'),
        (256, b'last payload' * 50),
    ]
    data = encode(payloads)

    for index, (size, payload) in enumerate(payloads):
        width, height, _, _, _, _, length, offset = read_entry(data, index)
        assert data[offset:offset + length] == payload


@pytest.mark.parametrize('lengths', [[1], [5, 7], [100, 1, 4096, 33]])
def test_total_length(lengths):
    payloads = [(16 * (i + 1), dummy(n)) for i, n in enumerate(lengths)]
    data = encode(payloads)

    assert len(data) == 6 + 16 * len(lengths) + sum(lengths)
    assert len(data) == encoded_length(lengths)


def test_encoding_is_deterministic():
    payloads = [(16, dummy(40)), (32, dummy(60, 7))]
    assert encode(payloads) == encode(list(payloads))


def test_accepts_image_payloads_and_generators():
    payloads = [ImagePayload(16, dummy(8)), ImagePayload(32, dummy(9))]
    assert encode(p for p in payloads) == encode(payloads)


def test_dimension_helpers():
    assert encode_dimension(256) == 0
    assert encode_dimension(128) == 128
    assert decode_dimension(0) == 256
    assert decode_dimension(17) == 17


def test_writer_rejects_extra_and_missing_images():
    writer = IcoWriter(1)
    assert writer.data_offset == 22
    writer.add_image(16, dummy(4))
    assert writer.data_offset == 26
    with pytest.raises(EncodeInvariantViolation):
        writer.add_image(32, dummy(4))

    incomplete = IcoWriter(2)
    incomplete.add_image(16, dummy(4))
    with pytest.raises(EncodeInvariantViolation):
        incomplete.getvalue()


def test_parse_round_trip():
    payloads = [(16, dummy(12, 1)), (256, dummy(34, 2))]
    data = encode(payloads)

    entries = parse_ico(data)
    assert [(e.width, e.height) for e in entries] == [(16, 16), (256, 256)]
    assert all(e.planes == 1 and e.bit_count == 32 for e in entries)

    extracted = extract_payloads(data)
    assert [payload for _, payload in extracted] == [p for _, p in payloads]


@pytest.mark.parametrize('data', [
    b'',
    b'\x00\x00\x01',
    struct.pack('<HHH', 0, 2, 1) + bytes(16),    # cursor type
    struct.pack('<HHH', 0, 1, 0),                # no images
    struct.pack('<HHH', 0, 1, 2) + bytes(16),    # truncated directory
])
def test_parse_rejects_malformed_headers(data):
    with pytest.raises(IcoFormatError):
        parse_ico(data)


def test_parse_rejects_payload_outside_file():
    data = bytearray(encode([(16, dummy(10))]))
    struct.pack_into('<I', data, 6 + 8, 500)
    with pytest.raises(IcoFormatError):
        parse_ico(bytes(data))
