"""TraceLogging event providers: identity, enablement state and event writing."""

from __future__ import annotations

import enum
import hashlib
import struct
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from winencode.etw.data import EventData
from winencode.etw.descriptor import EventDescriptor, Level
from winencode.etw.metadata import EventMetadata
from winencode.etw.options import EventOpt, EventOptions
from winencode.guid import GUID, from_windows_array

__all__ = [
    "ProviderState",
    "EventRecord",
    "ProviderOptions",
    "ProviderRegistry",
    "Provider",
    "providers",
    "provider_id_from_name",
    "with_callback",
    "with_id",
    "with_group",
    "with_writer",
    "new_provider_with_options",
    "new_provider_with_id",
    "new_provider",
]

_ALL_KEYWORDS = (1 << 64) - 1
_TRAIT_TYPE_GROUP = 1

# Namespace used to derive provider IDs from names (same as EventSource).
_PROVIDER_NAMESPACE = GUID(
    0x482C2DB2, 0xC390, 0x47C8, bytes([0x87, 0xF8, 0x1A, 0x15, 0xBF, 0xC1, 0x30, 0xFB])
)


class ProviderState(enum.IntEnum):
    """The action being performed on a provider, as told to its callback."""

    DISABLE = 0
    ENABLE = 1
    CAPTURE_STATE = 2


EnableCallback = Callable[[GUID, ProviderState, int, int, int, int], None]


@dataclass(frozen=True)
class EventRecord:
    """A fully built event, as handed to a provider's writer."""

    provider_metadata: bytes
    descriptor: EventDescriptor
    activity_id: GUID
    related_activity_id: GUID
    metadata: tuple[bytes, ...]
    data: tuple[bytes, ...]


EventWriter = Callable[[EventRecord], None]


@dataclass
class ProviderOptions:
    """Settings collected from provider options."""

    callback: Optional[EnableCallback] = None
    id: GUID = field(default_factory=GUID)
    group: GUID = field(default_factory=GUID)
    writer: Optional[EventWriter] = None


ProviderOpt = Callable[[ProviderOptions], None]


class ProviderRegistry:
    """Index-keyed table of live providers, used to route state callbacks."""

    def __init__(self) -> None:
        self._providers: dict[int, Provider] = {}
        self._next = 0
        self._lock = threading.Lock()

    def new_provider(self) -> Provider:
        """Create, register and return a provider with a fresh index."""
        with self._lock:
            index = self._next
            self._next += 1
            provider = Provider(index=index, registry=self)
            self._providers[index] = provider
            return provider

    def remove_provider(self, provider: Provider) -> None:
        """Forget ``provider``; removing an unknown provider does nothing."""
        with self._lock:
            self._providers.pop(provider.index, None)

    def get_provider(self, index: int) -> Optional[Provider]:
        """Return the provider registered under ``index``, or None."""
        with self._lock:
            return self._providers.get(index)

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def __contains__(self, provider: object) -> bool:
        if not isinstance(provider, Provider):
            return False
        with self._lock:
            return self._providers.get(provider.index) is provider


providers = ProviderRegistry()


@dataclass(eq=False)
class Provider:
    """An event provider, identified by a name and a GUID in 1:1 mapping."""

    index: int
    registry: Optional[ProviderRegistry] = None
    id: GUID = field(default_factory=GUID)
    metadata: bytes = b""
    callback: Optional[EnableCallback] = None
    writer: Optional[EventWriter] = None
    enabled: bool = False
    level: int = 0
    keyword_any: int = 0
    keyword_all: int = 0

    def __str__(self) -> str:
        return str(self.id)

    def __enter__(self) -> Provider:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        """Unregister the provider."""
        if self.registry is not None:
            self.registry.remove_provider(self)

    def handle_state_change(
        self,
        source_id: GUID,
        state: ProviderState,
        level: int,
        match_any_keyword: int,
        match_all_keyword: int,
        filter_data: int,
    ) -> None:
        """Apply an enable/disable notification and pass it to the callback."""
        state = ProviderState(state)
        if state == ProviderState.DISABLE:
            self.enabled = False
        elif state == ProviderState.ENABLE:
            self.enabled = True
            self.level = level
            self.keyword_any = match_any_keyword
            self.keyword_all = match_all_keyword
        if self.callback is not None:
            self.callback(
                source_id, state, level, match_any_keyword, match_all_keyword, filter_data
            )

    def is_enabled(self) -> bool:
        """Whether any session wants events of any level and keyword."""
        return self.is_enabled_for_level_and_keywords(Level.ALWAYS, _ALL_KEYWORDS)

    def is_enabled_for_level(self, level: int) -> bool:
        """Whether any session wants events of ``level`` with any keyword."""
        return self.is_enabled_for_level_and_keywords(level, _ALL_KEYWORDS)

    def is_enabled_for_level_and_keywords(self, level: int, keywords: int) -> bool:
        """Whether any session wants events with this level and these keywords."""
        if not self.enabled:
            return False
        if level > self.level:
            return False
        if keywords != 0 and (
            keywords & self.keyword_any == 0
            or keywords & self.keyword_all != self.keyword_all
        ):
            return False
        return True

    def write_event(
        self,
        name: str,
        event_opts: Optional[Iterable[EventOpt]] = None,
        field_opts: Optional[Iterable[Callable[[EventMetadata, EventData], None]]] = None,
    ) -> None:
        """Build an event from the options and hand it to the writer if enabled."""
        options = EventOptions()
        # Event options first: they may change tags, which go into the header.
        for opt in event_opts or ():
            opt(options)

        if not self.is_enabled_for_level_and_keywords(
            options.descriptor.level, options.descriptor.keyword
        ):
            return

        em = EventMetadata()
        ed = EventData()
        em.write_event_header(name, options.tags)
        for opt in field_opts or ():
            opt(em, ed)

        data = ed.to_bytes()
        record = EventRecord(
            provider_metadata=self.metadata,
            descriptor=options.descriptor,
            activity_id=options.activity_id,
            related_activity_id=options.related_activity_id,
            metadata=(em.to_bytes(),),
            data=(data,) if data else (),
        )
        if self.writer is not None:
            self.writer(record)


def provider_id_from_name(name: str) -> GUID:
    """Derive a provider GUID from its name, as EventSource does.

    A SHA-1 over the namespace and the upper-cased big-endian UTF-16 name,
    with version 5 set, no variant, read in Windows byte order.
    """
    digest = bytearray(
        hashlib.sha1(  # noqa: S324
            _PROVIDER_NAMESPACE.to_array() + name.upper().encode("utf-16-be")
        ).digest()
    )
    digest[7] = (digest[7] & 0x0F) | 0x50
    return from_windows_array(bytes(digest[:16]))


def with_callback(callback: Optional[EnableCallback]) -> ProviderOpt:
    """Set the callback receiving enable/disable notifications."""

    def apply(opts: ProviderOptions) -> None:
        opts.callback = callback

    return apply


def with_id(provider_id: GUID) -> ProviderOpt:
    """Use ``provider_id`` instead of deriving the ID from the name."""

    def apply(opts: ProviderOptions) -> None:
        opts.id = provider_id

    return apply


def with_group(group: GUID) -> ProviderOpt:
    """Put the provider in the provider group ``group``."""

    def apply(opts: ProviderOptions) -> None:
        opts.group = group

    return apply


def with_writer(writer: Optional[EventWriter]) -> ProviderOpt:
    """Set the sink that receives every event the provider writes."""

    def apply(opts: ProviderOptions) -> None:
        opts.writer = writer

    return apply


def _provider_metadata(name: str, group: GUID) -> bytes:
    traits = b""
    if group != GUID():
        body = struct.pack("<B", _TRAIT_TYPE_GROUP) + group.to_windows_array()
        traits = struct.pack("<H", len(body) + 2) + body
    body = name.encode("utf-8") + b"\x00" + traits
    return struct.pack("<H", (len(body) + 2) & 0xFFFF) + body


def new_provider_with_options(name: str, *args: ProviderOpt) -> Provider:
    """Create and register a provider configured by the given options."""
    opts = ProviderOptions()
    for opt in args:
        opt(opts)
    if opts.id == GUID():
        opts.id = provider_id_from_name(name)

    provider = providers.new_provider()
    try:
        provider.id = opts.id
        provider.callback = opts.callback
        provider.writer = opts.writer
        provider.metadata = _provider_metadata(name, opts.group)
    except BaseException:
        providers.remove_provider(provider)
        raise
    return provider


def new_provider_with_id(
    name: str, provider_id: GUID, callback: Optional[EnableCallback] = None
) -> Provider:
    """Create and register a provider with an explicit ID."""
    return new_provider_with_options(name, with_id(provider_id), with_callback(callback))


def new_provider(name: str, callback: Optional[EnableCallback] = None) -> Provider:
    """Create and register a provider whose ID is derived from its name."""
    return new_provider_with_options(name, with_callback(callback))