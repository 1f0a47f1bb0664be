"""Field options that add typed fields to a TraceLogging event."""

from __future__ import annotations

import dataclasses
import math
import struct as _struct
from datetime import datetime
from typing import Any, Callable, Iterable

from winencode.etw.data import EventData
from winencode.etw.metadata import EventMetadata, InType, OutType

__all__ = [
    "FieldOpt",
    "with_fields",
    "bool_field",
    "bool_array",
    "string_field",
    "json_string_field",
    "string_array",
    "int_field",
    "int_array",
    "int8_field",
    "int8_array",
    "int16_field",
    "int16_array",
    "int32_field",
    "int32_array",
    "int64_field",
    "int64_array",
    "uint_field",
    "uint_array",
    "uint8_field",
    "uint8_array",
    "uint16_field",
    "uint16_array",
    "uint32_field",
    "uint32_array",
    "uint64_field",
    "uint64_array",
    "uintptr_field",
    "uintptr_array",
    "float32_field",
    "float32_array",
    "float64_field",
    "float64_array",
    "struct",
    "time_field",
    "smart_field",
]

FieldOpt = Callable[[EventMetadata, EventData], None]

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1


def with_fields(*args: FieldOpt) -> list[FieldOpt]:
    """Collect the given field options into a list."""
    return list(args)


def _float32_bits(value: float) -> int:
    try:
        packed = _struct.pack("<f", value)
    except OverflowError:
        packed = _struct.pack("<f", math.copysign(math.inf, value))
    return _struct.unpack("<I", packed)[0]


def _float64_bits(value: float) -> int:
    return _struct.unpack("<Q", _struct.pack("<d", value))[0]


def _scalar(
    name: str,
    value: Any,
    in_type: int,
    out_type: int,
    write: Callable[[EventData, Any], None],
) -> FieldOpt:
    def apply(em: EventMetadata, ed: EventData) -> None:
        em.write_field(name, in_type, out_type, 0)
        write(ed, value)

    return apply


def _array(
    name: str,
    values: Iterable[Any],
    in_type: int,
    out_type: int,
    write: Callable[[EventData, Any], None],
) -> FieldOpt:
    items = list(values)

    def apply(em: EventMetadata, ed: EventData) -> None:
        em.write_array(name, in_type, out_type, 0)
        ed.write_uint16(len(items))
        for item in items:
            write(ed, item)

    return apply


def _write_bool(ed: EventData, value: bool) -> None:
    ed.write_uint8(1 if value else 0)


def bool_field(name: str, value: bool) -> FieldOpt:
    """Add a single bool field."""
    return _scalar(name, value, InType.UINT8, OutType.BOOLEAN, _write_bool)


def bool_array(name: str, values: Iterable[bool]) -> FieldOpt:
    """Add an array of bools."""
    return _array(name, values, InType.UINT8, OutType.BOOLEAN, _write_bool)


def string_field(name: str, value: str) -> FieldOpt:
    """Add a single UTF-8 string field."""
    return _scalar(name, value, InType.ANSI_STRING, OutType.UTF8, EventData.write_string)


def json_string_field(name: str, value: str) -> FieldOpt:
    """Add a JSON-encoded string field."""
    return _scalar(name, value, InType.ANSI_STRING, OutType.JSON, EventData.write_string)


def string_array(name: str, values: Iterable[str]) -> FieldOpt:
    """Add an array of UTF-8 strings."""
    return _array(name, values, InType.ANSI_STRING, OutType.UTF8, EventData.write_string)


def int_field(name: str, value: int) -> FieldOpt:
    """Add a native-width (64-bit) signed integer field."""
    return int64_field(name, value)


def int_array(name: str, values: Iterable[int]) -> FieldOpt:
    """Add an array of native-width (64-bit) signed integers."""
    return int64_array(name, values)


def int8_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.INT8, OutType.DEFAULT, EventData.write_int8)


def int8_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.INT8, OutType.DEFAULT, EventData.write_int8)


def int16_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.INT16, OutType.DEFAULT, EventData.write_int16)


def int16_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.INT16, OutType.DEFAULT, EventData.write_int16)


def int32_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.INT32, OutType.DEFAULT, EventData.write_int32)


def int32_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.INT32, OutType.DEFAULT, EventData.write_int32)


def int64_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.INT64, OutType.DEFAULT, EventData.write_int64)


def int64_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.INT64, OutType.DEFAULT, EventData.write_int64)


def uint_field(name: str, value: int) -> FieldOpt:
    """Add a native-width (64-bit) unsigned integer field."""
    return uint64_field(name, value)


def uint_array(name: str, values: Iterable[int]) -> FieldOpt:
    """Add an array of native-width (64-bit) unsigned integers."""
    return uint64_array(name, values)


def uint8_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.UINT8, OutType.DEFAULT, EventData.write_uint8)


def uint8_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.UINT8, OutType.DEFAULT, EventData.write_uint8)


def uint16_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.UINT16, OutType.DEFAULT, EventData.write_uint16)


def uint16_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.UINT16, OutType.DEFAULT, EventData.write_uint16)


def uint32_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.UINT32, OutType.DEFAULT, EventData.write_uint32)


def uint32_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.UINT32, OutType.DEFAULT, EventData.write_uint32)


def uint64_field(name: str, value: int) -> FieldOpt:
    return _scalar(name, value, InType.UINT64, OutType.DEFAULT, EventData.write_uint64)


def uint64_array(name: str, values: Iterable[int]) -> FieldOpt:
    return _array(name, values, InType.UINT64, OutType.DEFAULT, EventData.write_uint64)


def uintptr_field(name: str, value: int) -> FieldOpt:
    """Add a pointer-sized (64-bit) value, shown as hex."""
    return _scalar(name, value, InType.HEX_INT64, OutType.DEFAULT, EventData.write_uint64)


def uintptr_array(name: str, values: Iterable[int]) -> FieldOpt:
    """Add an array of pointer-sized (64-bit) values, shown as hex."""
    return _array(name, values, InType.HEX_INT64, OutType.DEFAULT, EventData.write_uint64)


def _write_float32(ed: EventData, value: float) -> None:
    ed.write_uint32(_float32_bits(value))


def _write_float64(ed: EventData, value: float) -> None:
    ed.write_uint64(_float64_bits(value))


def float32_field(name: str, value: float) -> FieldOpt:
    return _scalar(name, value, InType.FLOAT, OutType.DEFAULT, _write_float32)


def float32_array(name: str, values: Iterable[float]) -> FieldOpt:
    return _array(name, values, InType.FLOAT, OutType.DEFAULT, _write_float32)


def float64_field(name: str, value: float) -> FieldOpt:
    return _scalar(name, value, InType.DOUBLE, OutType.DEFAULT, _write_float64)


def float64_array(name: str, values: Iterable[float]) -> FieldOpt:
    return _array(name, values, InType.DOUBLE, OutType.DEFAULT, _write_float64)


def struct(name: str, *args: FieldOpt) -> FieldOpt:
    """Add a nested struct whose members are the given field options."""
    opts = list(args)

    def apply(em: EventMetadata, ed: EventData) -> None:
        em.write_struct(name, len(opts), 0)
        for opt in opts:
            opt(em, ed)

    return apply


def time_field(name: str, value: datetime) -> FieldOpt:
    """Add a timestamp, recorded as a UTC FILETIME."""

    def apply(em: EventMetadata, ed: EventData) -> None:
        em.write_field(name, InType.FILE_TIME, OutType.DATE_TIME_UTC, 0)
        ed.write_filetime(value)

    return apply


def _unsupported(name: str, value: Any) -> FieldOpt:
    return string_field(name, f"(Unsupported: {type(value).__name__}) {value}")


def _smart_int(name: str, value: int) -> FieldOpt | None:
    if _INT64_MIN <= value <= _INT64_MAX:
        return int_field(name, value)
    if 0 <= value <= _UINT64_MAX:
        return uint64_field(name, value)
    return None


def _smart_sequence(name: str, values: list[Any]) -> FieldOpt | None:
    if not values:
        return string_array(name, values)
    if all(isinstance(v, bool) for v in values):
        return bool_array(name, values)
    if all(isinstance(v, str) for v in values):
        return string_array(name, values)
    if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        if all(_INT64_MIN <= v <= _INT64_MAX for v in values):
            return int_array(name, values)
        if all(0 <= v <= _UINT64_MAX for v in values):
            return uint64_array(name, values)
        return None
    if all(isinstance(v, float) for v in values):
        return float64_array(name, values)
    return None


def smart_field(name: str, value: Any) -> FieldOpt:
    """Choose a field encoding from the Python type of ``value``.

    Supported are bools, strings, integers, floats, exceptions, datetimes,
    bytes, homogeneous lists or tuples of the scalar types (an empty one is an
    empty string array) and dataclass instances, whose public fields become a
    nested struct. Anything else is recorded as a descriptive string.
    """
    opt: FieldOpt | None = None
    if isinstance(value, bool):
        opt = bool_field(name, value)
    elif isinstance(value, str):
        opt = string_field(name, value)
    elif isinstance(value, int):
        opt = _smart_int(name, value)
    elif isinstance(value, float):
        opt = float64_field(name, value)
    elif isinstance(value, BaseException):
        opt = string_field(name, str(value))
    elif isinstance(value, datetime):
        opt = time_field(name, value)
    elif isinstance(value, (bytes, bytearray)):
        opt = uint8_array(name, value)
    elif isinstance(value, (list, tuple)):
        opt = _smart_sequence(name, list(value))
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        members = [
            smart_field(name, getattr(value, f.name))
            for f in dataclasses.fields(value)
            if not f.name.startswith("_")
        ]
        opt = struct(name, *members)
    return opt if opt is not None else _unsupported(name, value)