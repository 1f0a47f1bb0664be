"""Options that set general properties of an event being written."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from winencode.etw.descriptor import EventDescriptor
from winencode.guid import GUID

__all__ = [
    "EventOptions",
    "EventOpt",
    "with_event_opts",
    "with_level",
    "with_keyword",
    "with_channel",
    "with_opcode",
    "with_tags",
    "with_activity_id",
    "with_related_activity_id",
]


@dataclass
class EventOptions:
    """General properties of one event."""

    descriptor: EventDescriptor = field(default_factory=EventDescriptor)
    activity_id: GUID = field(default_factory=GUID)
    related_activity_id: GUID = field(default_factory=GUID)
    tags: int = 0


EventOpt = Callable[[EventOptions], None]


def with_event_opts(*args: EventOpt) -> list[EventOpt]:
    """Collect the given options into a list."""
    return list(args)


def with_level(level: int) -> EventOpt:
    """Set the event level."""

    def apply(options: EventOptions) -> None:
        options.descriptor.level = level

    return apply


def with_keyword(keyword: int) -> EventOpt:
    """Add keywords to the event; repeated uses are OR'd together."""

    def apply(options: EventOptions) -> None:
        options.descriptor.keyword |= keyword

    return apply


def with_channel(channel: int) -> EventOpt:
    """Set the event channel."""

    def apply(options: EventOptions) -> None:
        options.descriptor.channel = channel

    return apply


def with_opcode(opcode: int) -> EventOpt:
    """Set the event opcode."""

    def apply(options: EventOptions) -> None:
        options.descriptor.opcode = opcode

    return apply


def with_tags(new_tags: int) -> EventOpt:
    """Add 28-bit event tags; repeated uses are OR'd together."""

    def apply(options: EventOptions) -> None:
        options.tags |= new_tags

    return apply


def with_activity_id(activity_id: GUID) -> EventOpt:
    """Set the activity ID of the event."""

    def apply(options: EventOptions) -> None:
        options.activity_id = activity_id

    return apply


def with_related_activity_id(activity_id: GUID) -> EventOpt:
    """Set the parent activity ID of the event."""

    def apply(options: EventOptions) -> None:
        options.related_activity_id = activity_id

    return apply