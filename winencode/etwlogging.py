"""A logging handler that writes each log record as a TraceLogging event."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from winencode.etw.descriptor import Level
from winencode.etw.fields import FieldOpt, smart_field, string_field, time_field
from winencode.etw.options import EventOpt, with_level
from winencode.etw.provider import Provider, new_provider

__all__ = [
    "DEFAULT_EVENT_NAME",
    "ERROR_KEY",
    "NoProviderError",
    "EtwHandler",
    "HandlerOpt",
    "new_handler",
    "new_handler_from_provider",
    "new_handler_from_opts",
    "with_new_etw_provider",
    "with_existing_etw_provider",
    "with_get_name",
    "with_event_opts",
]

DEFAULT_EVENT_NAME = "LogrusEntry"
ERROR_KEY = "error"

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class NoProviderError(ValueError):
    """Raised when a handler is created without a provider configured."""

    def __init__(self) -> None:
        super().__init__("no ETW registered provider")


def _etw_level(levelno: int) -> Level:
    if levelno > logging.CRITICAL:
        return Level.ALWAYS
    if levelno >= logging.CRITICAL:
        return Level.CRITICAL
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARNING
    if levelno >= logging.INFO:
        return Level.INFO
    return Level.VERBOSE


def _record_data(record: logging.LogRecord) -> dict[str, Any]:
    data = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
    if record.exc_info and ERROR_KEY not in data:
        exc = record.exc_info[1]
        if exc is not None:
            data[ERROR_KEY] = exc
    return data


class EtwHandler(logging.Handler):
    """Logs every record it receives as an event of an ETW provider."""

    def __init__(
        self,
        provider: Optional[Provider] = None,
        *,
        close_provider: bool = False,
        get_name: Optional[Callable[[logging.LogRecord], str]] = None,
        get_event_opts: Optional[Callable[[logging.LogRecord], list[EventOpt]]] = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self.provider = provider
        self.close_provider = close_provider
        self.get_name = get_name
        self.get_event_opts = get_event_opts

    def _validate(self) -> None:
        if self.provider is None:
            raise NoProviderError()

    def emit(self, record: logging.LogRecord) -> None:
        """Write ``record`` to the provider if a session wants its level."""
        provider = self.provider
        if provider is None:
            return
        level = _etw_level(record.levelno)
        if not provider.is_enabled_for_level(level):
            return

        name = DEFAULT_EVENT_NAME
        if self.get_name is not None:
            custom = self.get_name(record)
            if custom:
                name = custom

        opts: list[EventOpt] = [with_level(level)]
        if self.get_event_opts is not None:
            opts.extend(self.get_event_opts(record))

        # Sorted names keep fields lined up between events; the error goes
        # last because it is optional in some events.
        data = _record_data(record)
        fields: list[FieldOpt] = [
            string_field("Message", record.getMessage()),
            time_field("Time", datetime.fromtimestamp(record.created, timezone.utc)),
        ]
        fields.extend(smart_field(k, data[k]) for k in sorted(data) if k != ERROR_KEY)
        if ERROR_KEY in data:
            fields.append(smart_field(ERROR_KEY, data[ERROR_KEY]))

        # Writing an event is best effort; failures are not reported.
        try:
            provider.write_event(name, opts, fields)
        except Exception:  # noqa: BLE001
            pass

    def close(self) -> None:
        """Close the handler, and the provider too if the handler created it."""
        try:
            if self.close_provider and self.provider is not None:
                self.provider.close()
        finally:
            super().close()


HandlerOpt = Callable[[EtwHandler], None]


def new_handler_from_opts(*args: HandlerOpt) -> EtwHandler:
    """Create a handler configured by the options; a provider is required."""
    handler = EtwHandler()
    for opt in args:
        opt(handler)
    handler._validate()
    return handler


def new_handler(provider_name: str, *args: HandlerOpt) -> EtwHandler:
    """Register a new provider and return a handler that owns it."""
    return new_handler_from_opts(*args, with_new_etw_provider(provider_name))


def new_handler_from_provider(provider: Provider, *args: HandlerOpt) -> EtwHandler:
    """Return a handler using an existing provider, which it will not close."""
    return new_handler_from_opts(*args, with_existing_etw_provider(provider))


def with_new_etw_provider(name: str) -> HandlerOpt:
    """Register a new provider; it is closed when the handler is closed."""

    def apply(handler: EtwHandler) -> None:
        handler.provider = new_provider(name, None)
        handler.close_provider = True

    return apply


def with_existing_etw_provider(provider: Provider) -> HandlerOpt:
    """Use an existing provider; it is not closed with the handler."""

    def apply(handler: EtwHandler) -> None:
        handler.provider = provider
        handler.close_provider = False

    return apply


def with_get_name(func: Callable[[logging.LogRecord], str]) -> HandlerOpt:
    """Name events by ``func``; an empty result keeps the default name."""

    def apply(handler: EtwHandler) -> None:
        handler.get_name = func

    return apply


def with_event_opts(func: Callable[[logging.LogRecord], list[EventOpt]]) -> HandlerOpt:
    """Add event options (keywords, tags, ...) computed per record."""

    def apply(handler: EtwHandler) -> None:
        handler.get_event_opts = func

    return apply