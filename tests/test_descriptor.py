from winencode.etw.descriptor import Channel, EventDescriptor, Level, Opcode


def test_defaults_use_tracelogging_channel_and_verbose_level():
    d = EventDescriptor()
    assert d.channel == Channel.TRACE_LOGGING
    assert int(d.channel) == 11
    assert d.level == Level.VERBOSE
    assert d.keyword == 0


def test_identity_round_trip():
    d = EventDescriptor()
    d.set_identity(0x7F0003)
    assert d.identity() == 0x7F0003
    assert d.version == 0x7F
    assert d.id == 3


def test_set_identity_ignores_bits_above_24():
    a = EventDescriptor()
    b = EventDescriptor()
    a.set_identity(0x120456)
    b.set_identity(0xAB120456)
    assert a.identity() == b.identity()
    assert (a.id, a.version) == (b.id, b.version)


def test_default_level_is_least_important():
    d = EventDescriptor()
    assert d.level == max(Level)
    assert int(d.level) == 5
    assert Level.ALWAYS < Level.CRITICAL < Level.ERROR < Level.WARNING < d.level


def test_level_string_trims_prefix():
    assert str(EventDescriptor().level) == "Verbose"


def test_default_opcode_is_info():
    d = EventDescriptor()
    assert d.opcode == Opcode.INFO
    assert int(d.opcode) == 0
    assert list(Opcode).index(d.opcode) == 0