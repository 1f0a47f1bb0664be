import struct

import pytest

from winencode.etw.metadata import EventMetadata, InType, OutType


def _tag_bytes(tags):
    em = EventMetadata()
    em.write_tags(tags)
    em.write_event_header("", 0)
    raw = em.to_bytes()
    # write_tags output comes first, then the header appended afterwards.
    header_len = 2 + 1 + 1
    return raw[: len(raw) - header_len]


def _decode_tags(data):
    value = 0
    shift = 21
    for i, b in enumerate(data):
        value |= (b & 0x7F) << shift
        shift -= 7
        if not b & 0x80:
            return value, i + 1
    raise AssertionError("unterminated tags")


def test_array_flag_values_in_written_metadata():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_array("a", InType.INT8, OutType.DEFAULT, 0)
    assert em.to_bytes()[-1] == 3 | 64

    counted = EventMetadata()
    counted.write_event_header("E", 0)
    counted.write_counted_array("c", 2, InType.INT8, OutType.DEFAULT, 0)
    assert counted.to_bytes()[-3] == 3 | 32


def test_utf8_out_type_value_in_written_metadata():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_field("s", InType.ANSI_STRING, OutType.UTF8, 0)
    assert em.to_bytes()[-1] == 35


def test_event_header_length_prefix_and_name():
    em = EventMetadata()
    em.write_event_header("Ev", 0)
    raw = em.to_bytes()
    (length,) = struct.unpack_from("<H", raw, 0)
    assert length == len(raw)
    assert raw.endswith(b"Ev\x00")
    assert raw[2] == 0


def test_tags_only_use_28_bits():
    assert _tag_bytes(0xF0000000 | 0x123456) == _tag_bytes(0x123456)


def test_simple_field_default_out_type():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_field("f", InType.INT32, OutType.DEFAULT, 0)
    raw = em.to_bytes()
    assert raw.endswith(b"f\x00" + bytes([InType.INT32]))


def test_field_with_out_type_sets_high_bit():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_field("f", InType.ANSI_STRING, OutType.UTF8, 0)
    raw = em.to_bytes()
    assert raw.endswith(b"f\x00" + bytes([InType.ANSI_STRING | 0x80, OutType.UTF8]))


def test_array_marks_in_type():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_array("a", InType.UINT16, OutType.DEFAULT, 0)
    raw = em.to_bytes()
    assert raw[-1] == InType.UINT16 | InType.ARRAY


def test_counted_array_writes_count():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_counted_array("c", 7, InType.INT64, OutType.DEFAULT, 0)
    raw = em.to_bytes()
    (count,) = struct.unpack("<H", raw[-2:])
    assert count == 7
    assert raw[-3] == InType.INT64 | InType.COUNTED_ARRAY


def test_struct_uses_field_count_as_out_type():
    em = EventMetadata()
    em.write_event_header("E", 0)
    em.write_struct("s", 3, 0)
    raw = em.to_bytes()
    assert raw.endswith(b"s\x00" + bytes([InType.STRUCT | 0x80, 3]))


def test_struct_field_count_out_of_range():
    em = EventMetadata()
    with pytest.raises(ValueError):
        em.write_struct("s", 256, 0)


def test_to_bytes_without_header_raises():
    with pytest.raises(ValueError):
        EventMetadata().to_bytes()