"""GUID type with big-endian and Windows (mixed-endian) binary encodings."""

from __future__ import annotations

import enum
import hashlib
import os
import re
import struct
from dataclasses import dataclass

__all__ = [
    "Variant",
    "GUID",
    "new_v4",
    "new_v5",
    "from_array",
    "from_windows_array",
    "from_string",
]

_GUID_PATTERN = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


class Variant(enum.IntEnum):
    """GUID variant, as specified by RFC 4122 section 4.1.1."""

    UNKNOWN = 0
    NCS = 1
    RFC4122 = 2
    MICROSOFT = 3
    FUTURE = 4

    def __str__(self) -> str:
        return _VARIANT_NAMES[self]


_VARIANT_NAMES = {
    Variant.UNKNOWN: "Unknown",
    Variant.NCS: "NCS",
    Variant.RFC4122: "RFC 4122",
    Variant.MICROSOFT: "Microsoft",
    Variant.FUTURE: "Future",
}


@dataclass(frozen=True)
class GUID:
    """A GUID laid out like the native Windows structure."""

    data1: int = 0
    data2: int = 0
    data3: int = 0
    data4: bytes = bytes(8)

    def __post_init__(self) -> None:
        if not 0 <= self.data1 <= 0xFFFFFFFF:
            raise ValueError(f"data1 out of range: {self.data1}")
        if not 0 <= self.data2 <= 0xFFFF:
            raise ValueError(f"data2 out of range: {self.data2}")
        if not 0 <= self.data3 <= 0xFFFF:
            raise ValueError(f"data3 out of range: {self.data3}")
        data4 = bytes(self.data4)
        if len(data4) != 8:
            raise ValueError(f"data4 must be 8 bytes, got {len(data4)}")
        object.__setattr__(self, "data4", data4)

    def _to_array(self, order: str) -> bytes:
        return struct.pack(f"{order}IHH", self.data1, self.data2, self.data3) + self.data4

    def to_array(self) -> bytes:
        """Return the 16-byte big-endian encoding."""
        return self._to_array(">")

    def to_windows_array(self) -> bytes:
        """Return the 16-byte Windows (mixed-endian) encoding."""
        return self._to_array("<")

    def variant(self) -> Variant:
        """Return the RFC 4122 variant."""
        b = self.data4[0]
        if b & 0x80 == 0:
            return Variant.NCS
        if b & 0xC0 == 0x80:
            return Variant.RFC4122
        if b & 0xE0 == 0xC0:
            return Variant.MICROSOFT
        if b & 0xE0 == 0xE0:
            return Variant.FUTURE
        return Variant.UNKNOWN

    def version(self) -> int:
        """Return the RFC 4122 version."""
        return (self.data3 & 0xF000) >> 12

    def with_variant(self, variant: Variant) -> GUID:
        """Return a copy with the variant bits set to ``variant``."""
        d = self.data4[0]
        if variant == Variant.NCS:
            d &= 0x7F
        elif variant == Variant.RFC4122:
            d = (d & 0x3F) | 0x80
        elif variant == Variant.MICROSOFT:
            d = (d & 0x1F) | 0xC0
        elif variant == Variant.FUTURE:
            d = (d & 0x0F) | 0xE0
        else:
            raise ValueError(f"invalid variant: {int(variant)}")
        return GUID(self.data1, self.data2, self.data3, bytes([d]) + self.data4[1:])

    def with_version(self, version: int) -> GUID:
        """Return a copy with the version bits set to ``version`` (0-15)."""
        if not 0 <= version <= 15:
            raise ValueError(f"invalid version: {version}")
        data3 = (self.data3 & 0x0FFF) | (version << 12)
        return GUID(self.data1, self.data2, data3, self.data4)

    def __str__(self) -> str:
        return (
            f"{self.data1:08x}-{self.data2:04x}-{self.data3:04x}-"
            f"{self.data4[:2].hex()}-{self.data4[2:].hex()}"
        )


def _from_array(b: bytes, order: str) -> GUID:
    b = bytes(b)
    if len(b) != 16:
        raise ValueError(f"GUID array must be 16 bytes, got {len(b)}")
    data1, data2, data3 = struct.unpack(f"{order}IHH", b[:8])
    return GUID(data1, data2, data3, b[8:])


def from_array(b: bytes) -> GUID:
    """Build a GUID from its 16-byte big-endian encoding."""
    return _from_array(b, ">")


def from_windows_array(b: bytes) -> GUID:
    """Build a GUID from its 16-byte Windows encoding."""
    return _from_array(b, "<")


def new_v4() -> GUID:
    """Return a new random (version 4) GUID."""
    g = from_array(os.urandom(16))
    return g.with_version(4).with_variant(Variant.RFC4122)


def new_v5(namespace: GUID, name: bytes) -> GUID:
    """Return a version 5 GUID from the SHA-1 of ``namespace`` and ``name``."""
    digest = hashlib.sha1(namespace.to_array() + bytes(name)).digest()  # noqa: S324
    g = from_array(digest[:16])
    return g.with_version(5).with_variant(Variant.RFC4122)


def from_string(s: str) -> GUID:
    """Parse ``xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx`` into a GUID."""
    if len(s) != 36 or not _GUID_PATTERN.fullmatch(s):
        raise ValueError(f'invalid GUID "{s}"')
    return GUID(
        int(s[0:8], 16),
        int(s[9:13], 16),
        int(s[14:18], 16),
        bytes.fromhex(s[19:23] + s[24:36]),
    )