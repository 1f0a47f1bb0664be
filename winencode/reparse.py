"""Encoding and decoding of Win32 REPARSE_DATA_BUFFER structures."""

from __future__ import annotations

import struct
from dataclasses import dataclass

__all__ = [
    "REPARSE_TAG_MOUNT_POINT",
    "REPARSE_TAG_SYMLINK",
    "ReparsePoint",
    "UnsupportedReparsePointError",
    "decode_reparse_point",
    "decode_reparse_point_data",
    "encode_reparse_point",
]

REPARSE_TAG_MOUNT_POINT = 0xA0000003
REPARSE_TAG_SYMLINK = 0xA000000C

_HEADER = struct.Struct("<IHHHHHH")


@dataclass
class ReparsePoint:
    """A Win32 symlink or mount point."""

    target: str
    is_mount_point: bool = False


class UnsupportedReparsePointError(ValueError):
    """Raised when decoding a reparse point that is neither a symlink nor a mount point."""

    def __init__(self, tag: int) -> None:
        self.tag = tag
        super().__init__(f"unsupported reparse point {tag:x}")


def decode_reparse_point(b: bytes) -> ReparsePoint:
    """Decode a whole REPARSE_DATA_BUFFER holding a symlink or mount point."""
    if len(b) < 8:
        raise ValueError("reparse buffer too short")
    (tag,) = struct.unpack_from("<I", b, 0)
    return decode_reparse_point_data(tag, b[8:])


def decode_reparse_point_data(tag: int, b: bytes) -> ReparsePoint:
    """Decode the data part of a reparse buffer that follows its 8-byte header."""
    if tag == REPARSE_TAG_MOUNT_POINT:
        is_mount_point = True
    elif tag == REPARSE_TAG_SYMLINK:
        is_mount_point = False
    else:
        raise UnsupportedReparsePointError(tag)
    if len(b) < 8:
        raise ValueError("reparse data too short")
    print_offset, name_length = struct.unpack_from("<HH", b, 4)
    name_offset = (8 + print_offset) & 0xFFFF
    if not is_mount_point:
        name_offset = (name_offset + 4) & 0xFFFF
    end = name_offset + name_length
    if end > len(b):
        raise ValueError("reparse name extends past end of buffer")
    raw = b[name_offset : name_offset + (name_length // 2) * 2]
    return ReparsePoint(raw.decode("utf-16-le", errors="replace"), is_mount_point)


def _is_drive_letter(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def _nt_target(target: str) -> tuple[str, bool]:
    """Return the NT form of ``target`` and whether it is relative."""
    if target.startswith("\\\\?\\"):
        return "\\??\\" + target[4:], False
    if target.startswith("\\\\"):
        return "\\??\\UNC\\" + target[2:], False
    if len(target) >= 2 and _is_drive_letter(target[0]) and target[1] == ":":
        return "\\??\\" + target, False
    return target, True


def encode_reparse_point(rp: ReparsePoint) -> bytes:
    """Encode ``rp`` as a REPARSE_DATA_BUFFER."""
    nt_target, relative = _nt_target(rp.target)

    # Both names are NUL-terminated even though they are counted strings.
    target16 = (rp.target + "\x00").encode("utf-16-le", errors="surrogatepass")
    nt_target16 = (nt_target + "\x00").encode("utf-16-le", errors="surrogatepass")

    size = _HEADER.size - 8 + len(nt_target16) + len(target16)
    tag = REPARSE_TAG_MOUNT_POINT
    if not rp.is_mount_point:
        tag = REPARSE_TAG_SYMLINK
        size += 4  # symlink flags

    header = _HEADER.pack(
        tag,
        size & 0xFFFF,
        0,
        0,
        (len(nt_target16) - 2) & 0xFFFF,
        len(nt_target16) & 0xFFFF,
        (len(target16) - 2) & 0xFFFF,
    )
    parts = [header]
    if not rp.is_mount_point:
        parts.append(struct.pack("<I", 1 if relative else 0))
    parts.append(nt_target16)
    parts.append(target16)
    return b"".join(parts)