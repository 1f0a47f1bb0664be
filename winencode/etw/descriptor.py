"""Event descriptor metadata for TraceLogging-based ETW events.

TraceLogging events are self-describing: each event carries its own schema,
so it can be decoded without a separate manifest.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

__all__ = ["Channel", "Level", "Opcode", "EventDescriptor"]


class Channel(enum.IntEnum):
    """ETW logging channel; consumers may give an event special treatment by it."""

    # Default channel for TraceLogging events. Using it avoids decoding
    # problems for these events on older systems.
    TRACE_LOGGING = 11


class Level(enum.IntEnum):
    """Predefined ETW log levels. Lower levels are more important."""

    ALWAYS = 0
    CRITICAL = 1
    ERROR = 2
    WARNING = 3
    INFO = 4
    VERBOSE = 5

    def __str__(self) -> str:
        return self.name.capitalize()


_OPCODE_NAMES = {
    "INFO": "Info",
    "START": "Start",
    "STOP": "Stop",
    "DC_START": "DCStart",
    "DC_STOP": "DCStop",
}


class Opcode(enum.IntEnum):
    """The operation an event indicates is being performed."""

    INFO = 0
    START = 1
    STOP = 2
    DC_START = 3
    DC_STOP = 4

    def __str__(self) -> str:
        return _OPCODE_NAMES[self.name]


@dataclass
class EventDescriptor:
    """Per-event metadata; defaults suit TraceLogging events."""

    id: int = 0
    version: int = 0
    channel: int = Channel.TRACE_LOGGING
    level: int = Level.VERBOSE
    opcode: int = Opcode.INFO
    task: int = 0
    keyword: int = 0

    def identity(self) -> int:
        """Return the event identity; only the lower 24 bits are relevant."""
        return ((self.version & 0xFF) << 16) | (self.id & 0xFFFF)

    def set_identity(self, identity: int) -> None:
        """Set id and version from the lower 24 bits of ``identity``."""
        self.id = identity & 0xFFFF
        self.version = (identity >> 16) & 0xFF