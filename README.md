# winencode

Pure-Python building blocks for Windows binary formats. They run on any
platform and use only the standard library.

- **`winencode.guid`**: a GUID type with big-endian and Windows
  (mixed-endian) byte encodings, RFC 4122 variant and version handling, and
  random (v4) and name-based (v5) generation.
- **`winencode.reparse`**: encodes and decodes Win32 `REPARSE_DATA_BUFFER`
  structures for symbolic links and mount points.
- **`winencode.etw`**: builds self-describing TraceLogging events. It covers
  event descriptors, field metadata, field data, event options, and providers
  whose IDs are derived from their names in the same way as .NET
  `EventSource`.
- **`winencode.etwlogging`**: a `logging.Handler` that turns standard
  library log records into TraceLogging events.

## Installation

```
pip install winencode
```

To run the test suite:

```
pip install "winencode[test]"
pytest
```

## GUIDs

```python
from winencode.guid import from_string, new_v4, new_v5

g = from_string("73c39589-192e-4c64-9acf-6c5d0aa18528")
g.to_array()          # 16 bytes, big-endian
g.to_windows_array()  # 16 bytes, Windows layout: 89 95 c3 73 2e 19 64 4c ...
str(g)                # "73c39589-192e-4c64-9acf-6c5d0aa18528"

random_id = new_v4()
random_id.version()   # 4
random_id.variant()   # Variant.RFC4122

ns = from_string("6ba7b810-9dad-11d1-80b4-00c04fd430c8")
str(new_v5(ns, b"www.sample.com"))  # "4e4463eb-b0e8-54fa-8c28-12d1ab1d45b3"
```

`GUID` is a frozen dataclass with the fields `data1`, `data2`, `data3` and
`data4`. Values out of range raise `ValueError`.

- `from_array` and `from_windows_array` build a GUID from either 16-byte
  encoding.
- `from_string` accepts only the `xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx` form
  and raises `ValueError` for anything else.
- `with_variant` and `with_version` return a new GUID. Setting
  `Variant.UNKNOWN` or a version outside 0–15 raises `ValueError`.

## Reparse points

```python
from winencode.reparse import ReparsePoint, decode_reparse_point, encode_reparse_point

raw = encode_reparse_point(ReparsePoint(target="C:\\data", is_mount_point=False))
point = decode_reparse_point(raw)
point.target          # "C:\\data"  (the print name)
point.is_mount_point  # False
```

Encoding writes two names into the buffer.

- **Substitute name:** the NT form of the target. `\\?\` paths, UNC paths and
  drive-letter paths become `\??\` paths. Any other target is kept as it is,
  and for a symbolic link the relative flag is set.
- **Print name:** the target as given.

Decoding returns the print name.

Errors:

- A tag other than symlink (`REPARSE_TAG_SYMLINK`) or mount point
  (`REPARSE_TAG_MOUNT_POINT`) raises `UnsupportedReparsePointError`, which
  has a `tag` attribute.
- A buffer that is too short raises `ValueError`.

`decode_reparse_point_data(tag, data)` takes the tag and the payload that
follows the 8-byte header as separate arguments.

## TraceLogging events

```python
from winencode.etw.provider import provider_id_from_name

str(provider_id_from_name("Moby"))  # "6996f090-c5de-5082-a81e-5841acc3a635"
```

### Creating a provider

Use one of `new_provider(name, callback)`,
`new_provider_with_id(name, provider_id, callback)` or
`new_provider_with_options(name, *opts)`. The options are:

- `with_id`: sets the provider ID. Without it, the ID is derived from the name.
- `with_group`: adds a provider-group trait to the provider metadata.
- `with_callback`: sets the enable callback.
- `with_writer`: sets the sink that receives each event.

New providers are registered in the module-level `providers` registry, a
`ProviderRegistry`. `Provider.close()` removes the provider from the
registry. A provider can also be used as a context manager.

### Enabling a provider

A provider starts out disabled. Call `handle_state_change(source_id, state,
level, match_any_keyword, match_all_keyword, filter_data)` to change that:

- `ProviderState.ENABLE` turns it on and records the level and keywords.
- `ProviderState.DISABLE` turns it off.

Any enable callback is then called with the same arguments.

`is_enabled`, `is_enabled_for_level` and `is_enabled_for_level_and_keywords`
report whether an event would be wanted.

### Writing events

`Provider.write_event(name, event_opts, field_opts)` builds the event only
if the provider is enabled for the event's level and keywords. It hands the
writer an `EventRecord` with these fields:

- `provider_metadata`
- `descriptor`
- `activity_id` and `related_activity_id`
- `metadata`: the metadata blobs
- `data`: the data blobs, left empty when the event has no fields

```python
from winencode.etw.descriptor import Level
from winencode.etw.fields import string_array, string_field, struct, with_fields
from winencode.etw.options import with_event_opts, with_keyword, with_level
from winencode.etw.provider import ProviderState, new_provider_with_options, with_writer

records = []
provider = new_provider_with_options("TestProvider", with_writer(records.append))
provider.handle_state_change(provider.id, ProviderState.ENABLE, Level.VERBOSE,
                             0xFFFF, 0, 0)

provider.write_event(
    "TestEvent",
    with_event_opts(with_level(Level.INFO), with_keyword(0x140)),
    with_fields(
        string_field("TestField", "Foo"),
        struct("TestStruct",
               string_field("Field1", "Value1"),
               string_field("Field2", "Value2")),
        string_array("TestArray", ["Item1", "Item2", "Item3"]),
    ),
)
```

Event options live in `winencode.etw.options`:

- `with_level`
- `with_keyword`: values are OR'd together.
- `with_channel`
- `with_opcode`
- `with_tags`: values are OR'd together.
- `with_activity_id`
- `with_related_activity_id`

Field builders live in `winencode.etw.fields`. There is a scalar and an
array form for each type:

- bool and string
- int8 through int64, and uint8 through uint64
- `int`/`uint`, written as 64-bit values
- `uintptr`, written as 64-bit hex
- float32 and float64

The module also has `json_string_field`, `time_field` and `struct`.

`smart_field(name, value)` picks an encoding from the Python type. It
supports:

- bools, strings, integers and floats
- exceptions, written as their message
- datetimes
- bytes
- homogeneous lists or tuples of these types
- dataclass instances, whose public fields become a nested struct

Anything else is written as a string that names its type.

The lower-level classes build the pieces directly:

- `EventMetadata` (`winencode.etw.metadata`, with `InType` and `OutType`)
  builds the raw metadata blob.
- `EventData` (`winencode.etw.data`) builds the raw data blob.
- `EventDescriptor` (`winencode.etw.descriptor`, with `Channel`, `Level` and
  `Opcode`) holds the id, version, channel, level, opcode, task and keyword.

## Logging handler

```python
import logging
from winencode.etwlogging import new_handler

handler = new_handler("MyProvider")
logging.getLogger().addHandler(handler)
logging.getLogger().warning("disk almost full", extra={"disk": "C:"})
```

Each record that the provider wants becomes an event, named `LogrusEntry`
unless `with_get_name` supplies a name. The event has these fields, in
order:

1. `Message`
2. `Time`, in UTC
3. one field for each extra attribute, in sorted order
4. `error`, last; it holds the exception when the record has `exc_info`

Log levels are mapped onto ETW levels:

| Log level | ETW level |
|---|---|
| above `CRITICAL` | `ALWAYS` |
| `CRITICAL` | `CRITICAL` |
| `ERROR` | `ERROR` |
| `WARNING` | `WARNING` |
| `INFO` | `INFO` |
| lower | `VERBOSE` |

Errors raised while writing are ignored.

You can also build a handler in these ways:

- `new_handler_from_provider(provider)` uses an existing provider, which
  closing the handler leaves open.
- `new_handler_from_opts(*opts)` builds a handler from options. The options
  are `with_new_etw_provider`, `with_existing_etw_provider`, `with_get_name`
  and `with_event_opts`.

Building a handler without a provider raises `NoProviderError`.

## What this package does not do

This package does not register providers with an operating-system event
tracing service, and it does not deliver events to trace sessions. Enablement
changes only when you call `Provider.handle_state_change`. An encoded event
reaches only the writer set with `with_writer`. A provider without a writer,
such as the one that `new_handler` creates, builds events and then discards
them.