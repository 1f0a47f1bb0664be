import itertools
import logging
from dataclasses import dataclass, field

import pytest

from winencode.etw.descriptor import Level
from winencode.etw.options import with_keyword
from winencode.etw.provider import (
    ProviderState,
    new_provider_with_options,
    provider_id_from_name,
    providers,
    with_writer,
)
from winencode.etwlogging import (
    DEFAULT_EVENT_NAME,
    EtwHandler,
    NoProviderError,
    new_handler,
    new_handler_from_opts,
    new_handler_from_provider,
    with_event_opts,
    with_existing_etw_provider,
    with_get_name,
)
from winencode.guid import GUID

_counter = itertools.count()
ALL = (1 << 64) - 1


def make_provider(level=Level.VERBOSE, enabled=True):
    records = []
    provider = new_provider_with_options("HookTest", with_writer(records.append))
    if enabled:
        provider.handle_state_change(GUID(), ProviderState.ENABLE, level, ALL, 0, 0)
    return provider, records


def make_logger(handler):
    logger = logging.getLogger(f"etwtest.{next(_counter)}")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    return logger


def test_no_provider_raises():
    with pytest.raises(NoProviderError):
        new_handler_from_opts()


def test_new_handler_owns_provider():
    handler = new_handler("HookTest")
    provider = handler.provider
    assert provider.id == provider_id_from_name("HookTest")
    assert provider in providers
    handler.close()
    assert provider not in providers


def test_existing_provider_not_closed():
    provider, _ = make_provider()
    handler = new_handler_from_provider(provider)
    assert handler.provider is provider
    handler.close()
    assert provider in providers
    provider.close()


def test_with_existing_opt():
    provider, _ = make_provider()
    handler = new_handler_from_opts(with_existing_etw_provider(provider))
    assert handler.provider is provider
    assert handler.close_provider is False


def test_disabled_provider_writes_nothing():
    provider, records = make_provider(enabled=False)
    make_logger(new_handler_from_provider(provider)).info("hello")
    assert records == []


def test_level_filtered():
    provider, records = make_provider(level=Level.WARNING)
    logger = make_logger(new_handler_from_provider(provider))
    logger.info("skip")
    logger.warning("keep")
    assert len(records) == 1
    assert records[0].descriptor.level == Level.WARNING


def test_basic_event_layout():
    provider, records = make_provider()
    make_logger(new_handler_from_provider(provider)).info("hello")
    assert len(records) == 1
    rec = records[0]
    meta = rec.metadata[0]
    assert meta[2:3] == b"\x00"
    assert meta[3 : 3 + len(DEFAULT_EVENT_NAME) + 1] == DEFAULT_EVENT_NAME.encode() + b"\x00"
    assert b"Message\x00" in meta and b"Time\x00" in meta
    data = rec.data[0]
    assert data[:6] == b"hello\x00"
    assert len(data) == 14
    assert rec.descriptor.level == Level.INFO


@pytest.mark.parametrize(
    "levelno, expected",
    [
        (logging.DEBUG, Level.VERBOSE),
        (5, Level.VERBOSE),
        (logging.INFO, Level.INFO),
        (logging.WARNING, Level.WARNING),
        (logging.ERROR, Level.ERROR),
        (logging.CRITICAL, Level.CRITICAL),
        (60, Level.ALWAYS),
    ],
)
def test_level_mapping(levelno, expected):
    provider, records = make_provider()
    logger = make_logger(new_handler_from_provider(provider))
    logger.setLevel(1)
    logger.log(levelno, "msg")
    assert records[0].descriptor.level == expected


def test_fields_sorted_error_last():
    provider, records = make_provider()
    logger = make_logger(new_handler_from_provider(provider))
    logger.info("m", extra={"zeta": 1, "error": ValueError("bad"), "alpha": "a"})
    meta = records[0].metadata[0]
    assert meta.index(b"alpha\x00") < meta.index(b"zeta\x00") < meta.index(b"error\x00")
    assert b"bad\x00" in records[0].data[0]


def test_exception_becomes_error_field():
    provider, records = make_provider()
    logger = make_logger(new_handler_from_provider(provider))
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("failed")
    assert b"error\x00" in records[0].metadata[0]
    assert b"boom\x00" in records[0].data[0]


def test_get_name_override_and_fallback():
    provider, records = make_provider()
    handler = new_handler_from_provider(
        provider, with_get_name(lambda r: "Custom" if r.getMessage() == "a" else "")
    )
    logger = make_logger(handler)
    logger.info("a")
    logger.info("b")
    assert records[0].metadata[0][3:10] == b"Custom\x00"
    assert records[1].metadata[0][3:15] == b"LogrusEntry\x00"


def test_event_opts_applied():
    provider, records = make_provider()
    handler = new_handler_from_provider(
        provider, with_event_opts(lambda r: [with_keyword(0x140)])
    )
    make_logger(handler).info("k")
    assert records[0].descriptor.keyword == 0x140
    assert records[0].descriptor.level == Level.INFO


@dataclass
class Struct1:
    a: float
    _priv: int
    b: list = field(default_factory=list)


@dataclass
class Struct3:
    a: int
    b: str
    _priv: str
    c: Struct1
    d: int


FIELD_VALUES = [
    ("Bool", True),
    ("BoolSlice", [True, False, True]),
    ("EmptyBoolSlice", []),
    ("String", "teststring"),
    ("StringSlice", ["sstr1", "sstr2", "sstr3"]),
    ("Int", 1),
    ("IntSlice", [2, 3, 4]),
    ("Uint64", 37),
    ("Float64", 53.54),
    ("Float64Slice", [55.56, 57.58, 59.60]),
    ("Bytes", bytes([26, 27, 28])),
    ("Struct", Struct3(1, "2s", "-3s", Struct1(3.4, -4, [5, 6, 7]), 8)),
]


@pytest.mark.parametrize("event_name, value", FIELD_VALUES)
def test_field_logging(event_name, value):
    provider, records = make_provider()
    make_logger(new_handler_from_provider(provider)).info(
        event_name, extra={"Field": value}
    )
    assert len(records) == 1
    meta = records[0].metadata[0]
    assert b"Field\x00" in meta
    assert records[0].data[0].startswith(event_name.encode() + b"\x00")


def test_struct_skips_private_fields():
    provider, records = make_provider()
    make_logger(new_handler_from_provider(provider)).info(
        "Struct", extra={"Field": Struct3(1, "2s", "-3s", Struct1(3.4, -4, [5]), 8)}
    )
    data = records[0].data[0]
    assert b"2s\x00" in data
    assert b"-3s" not in data


def test_handler_without_provider_emit_is_noop():
    handler = EtwHandler()
    record = logging.makeLogRecord({"msg": "x", "levelno": logging.INFO})
    handler.emit(record)
    assert handler.provider is None
    with pytest.raises(NoProviderError):
        handler._validate()