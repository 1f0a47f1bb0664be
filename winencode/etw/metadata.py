"""Builder for TraceLogging event metadata (the event's self-describing schema)."""

from __future__ import annotations

import enum
import struct

__all__ = ["InType", "OutType", "EventMetadata"]


class InType(enum.IntEnum):
    """Type of data held in an event field, as defined for TraceLogging."""

    NULL = 0
    UNICODE_STRING = 1
    ANSI_STRING = 2
    INT8 = 3
    UINT8 = 4
    INT16 = 5
    UINT16 = 6
    INT32 = 7
    UINT32 = 8
    INT64 = 9
    UINT64 = 10
    FLOAT = 11
    DOUBLE = 12
    BOOL32 = 13
    BINARY = 14
    GUID = 15
    POINTER_UNSUPPORTED = 16
    FILE_TIME = 17
    SYSTEM_TIME = 18
    SID = 19
    HEX_INT32 = 20
    HEX_INT64 = 21
    COUNTED_STRING = 22
    COUNTED_ANSI_STRING = 23
    STRUCT = 24
    COUNTED_BINARY = 25
    COUNTED_ARRAY = 32
    ARRAY = 64


class OutType(enum.IntEnum):
    """Formatting hint for the event decoder."""

    DEFAULT = 0
    NO_PRINT = 1
    STRING = 2
    BOOLEAN = 3
    HEX = 4
    PID = 5
    TID = 6
    PORT = 7
    IPV4 = 8
    IPV6 = 9
    SOCKET_ADDRESS = 10
    XML = 11
    JSON = 12
    WIN32_ERROR = 13
    NT_STATUS = 14
    HRESULT = 15
    FILE_TIME = 16
    SIGNED = 17
    UNSIGNED = 18
    UTF8 = 35
    PKCS7_WITH_TYPE_INFO = 36
    CODE_POINTER = 37
    DATE_TIME_UTC = 38


class EventMetadata:
    """Accumulates the metadata blob describing one event and its fields."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def to_bytes(self) -> bytes:
        """Fill in the leading length field and return the metadata blob."""
        if len(self._buffer) < 2:
            raise ValueError("event header has not been written")
        struct.pack_into("<H", self._buffer, 0, len(self._buffer) & 0xFFFF)
        return bytes(self._buffer)

    def _write_name(self, name: str) -> None:
        self._buffer += name.encode("utf-8")
        self._buffer.append(0)

    def write_event_header(self, name: str, tags: int = 0) -> None:
        """Write the start of the event: length placeholder, tags and name."""
        self._buffer += struct.pack("<H", 0)
        self.write_tags(tags)
        self._write_name(name)

    def _write_field_inner(
        self, name: str, in_type: int, out_type: int, tags: int, arr_size: int
    ) -> None:
        self._write_name(name)
        if out_type == OutType.DEFAULT and tags == 0:
            self._buffer.append(in_type & 0xFF)
        else:
            self._buffer.append((in_type | 0x80) & 0xFF)
            if tags == 0:
                self._buffer.append(out_type & 0xFF)
            else:
                self._buffer.append((out_type | 0x80) & 0xFF)
                self.write_tags(tags)
        if arr_size:
            if not 0 <= arr_size <= 0xFFFF:
                raise ValueError(f"array size out of range: {arr_size}")
            self._buffer += struct.pack("<H", arr_size)

    def write_tags(self, tags: int) -> None:
        """Write a 28-bit tags value, 7 bits per byte, most significant first.

        Every byte except the last has its high bit set.
        """
        tags &= 0xFFFFFFF
        while True:
            val = tags >> 21
            if tags & 0x1FFFFF == 0:
                self._buffer.append(val & 0x7F)
                return
            self._buffer.append((val | 0x80) & 0xFF)
            tags = (tags << 7) & 0xFFFFFFFF

    def write_field(
        self, name: str, in_type: int, out_type: int = OutType.DEFAULT, tags: int = 0
    ) -> None:
        """Write the metadata for a simple field."""
        self._write_field_inner(name, in_type, out_type, tags, 0)

    def write_array(
        self, name: str, in_type: int, out_type: int = OutType.DEFAULT, tags: int = 0
    ) -> None:
        """Write the metadata for a variable-length array field.

        The element count goes into the event data as a uint16 before the items.
        """
        self._write_field_inner(name, in_type | InType.ARRAY, out_type, tags, 0)

    def write_counted_array(
        self,
        name: str,
        count: int,
        in_type: int,
        out_type: int = OutType.DEFAULT,
        tags: int = 0,
    ) -> None:
        """Write the metadata for a fixed-size array; the count goes in the metadata."""
        self._write_field_inner(
            name, in_type | InType.COUNTED_ARRAY, out_type, tags, count
        )

    def write_struct(self, name: str, field_count: int, tags: int = 0) -> None:
        """Write the metadata for a struct made of the next ``field_count`` fields."""
        if not 0 <= field_count <= 0xFF:
            raise ValueError(f"struct field count out of range: {field_count}")
        self._write_field_inner(name, InType.STRUCT, field_count, tags, 0)