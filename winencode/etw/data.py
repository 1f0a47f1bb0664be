"""Builder for the payload of a TraceLogging event."""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone

__all__ = ["EventData"]

# 100-nanosecond intervals between 1601-01-01 and 1970-01-01.
_FILETIME_UNIX_EPOCH = 116444736000000000
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _filetime_from_datetime(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.astimezone(timezone.utc)
    micros = (value - _UNIX_EPOCH) // timedelta(microseconds=1)
    return micros * 10 + _FILETIME_UNIX_EPOCH


class EventData:
    """Accumulates event field values; paired with ``EventMetadata``."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def to_bytes(self) -> bytes:
        """Return the raw event data."""
        return bytes(self._buffer)

    def _pack(self, fmt: str, value: int | float) -> None:
        try:
            self._buffer += struct.pack(fmt, value)
        except struct.error as err:
            raise ValueError(f"value {value!r} does not fit: {err}") from err

    def write_string(self, data: str) -> None:
        """Append a UTF-8 string with its NUL terminator."""
        self._buffer += data.encode("utf-8")
        self._buffer.append(0)

    def write_int8(self, value: int) -> None:
        self._pack("<b", value)

    def write_int16(self, value: int) -> None:
        self._pack("<h", value)

    def write_int32(self, value: int) -> None:
        self._pack("<i", value)

    def write_int64(self, value: int) -> None:
        self._pack("<q", value)

    def write_uint8(self, value: int) -> None:
        self._pack("<B", value)

    def write_uint16(self, value: int) -> None:
        self._pack("<H", value)

    def write_uint32(self, value: int) -> None:
        self._pack("<I", value)

    def write_uint64(self, value: int) -> None:
        self._pack("<Q", value)

    def write_filetime(self, value: int | datetime) -> None:
        """Append a FILETIME, given as a tick count or a datetime.

        Naive datetimes are taken as local time.
        """
        if isinstance(value, datetime):
            value = _filetime_from_datetime(value)
        self._pack("<Q", value)