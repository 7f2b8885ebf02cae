# serialkit

serialkit holds the building blocks of a type-driven CBOR/JSON serializer:

- the type identifiers, enums and errors shared by every part;
- the `TypeConverter` base class for pluggable converters;
- a priority-ordered converter lookup with caches;
- strict validation and plain conversion of basic values read from CBOR or JSON.

Values in CBOR form are the Python objects produced and accepted by `cbor2`.

## Installation

```
pip install serialkit
```

Run the tests with the `test` extra:

```
pip install serialkit[test]
pytest
```

## Modules

### `serialkit.converters`

- `MetaType`: integer identifiers of the built-in value types (`BOOL`, `INT`,
  `DOUBLE`, `STRING`, `BYTE_ARRAY`, `URL`, `UUID`, `REGULAR_EXPRESSION`,
  `NULLPTR`, …). Custom types use ids from `MetaType.USER` upwards.
- `ValidationFlag` (`STANDARD_VALIDATION`, `NO_EXTRA_PROPERTIES`,
  `ALL_PROPERTIES`, `STRICT_BASIC_TYPES`, `FULL_PROPERTY_VALIDATION`,
  `FULL_VALIDATION`), `Polymorphing` and `MultiMapMode`: option values.
- `CborType` and `cbor_type_of(value)`: the CBOR kind of a decoded value.
- `DeserializationCapability`: `POSITIVE`, `GUESSED`, `NEGATIVE`, `WRONG_TAG`.
- `SerializerError`, with subclasses `SerializationError` and
  `DeserializationError`. Each error keeps a `property_trace` list of
  `(name, type_name)` pairs. `push_trace(name, type_name)` puts an enclosing
  property at its front. `str()` of the error lists the trace below the message.
- `TypeConverter`: abstract base class with a `priority` (see
  `TypeConverter.Priority`). A subclass implements:
  - `can_convert(type_id)`
  - `allowed_cbor_types(type_id, tag)`
  - `serialize(type_id, value)`
  - `deserialize_cbor(type_id, value, parent)`

  It may override `allowed_cbor_tags(type_id)`, or set the `cbor_tags` class
  attribute. It may also override `deserialize_json`, which defaults to
  `deserialize_cbor`.

  `set_helper(helper)` attaches the object the converter works for. That object
  follows the `SerializationHelper` protocol. `can_deserialize(type_id, tag,
  cbor_type)` consults the helper:
  - In CBOR mode it checks the tag against the allowed tags.
  - When the helper's `get_property("validation_flags")` includes
    `STRICT_BASIC_TYPES`, untagged data is refused for converters that require
    a tag.
- `TypeConverterFactory(converter_class, priority=None)`: `create_converter()`
  returns a fresh converter, with the given priority if one was set.

### `serialkit.registry`

- `add_type_converter_factory(factory)` registers a factory globally.
  `type_converter_factories()` returns a snapshot of them.
- `register_extractor(type_id, extractor)` and `get_extractor(type_id)` keep a
  global, thread-safe table of extractor objects.
- `ConverterRegistry`: the converters of one user, sorted by descending
  priority.
  - `add_converter(converter)` adds one.
  - `update_from_factories(helper)` picks up factories registered since the last
    call.
  - `find_ser_converter(type_id, helper)` returns the first converter that can
    convert the type, or `None`.
  - `find_deser_converter(type_id, tag, cbor_type, helper)` returns
    `(converter, type_id)`. When the type is `MetaType.UNKNOWN` and a tag is
    given, it tries the `helper.types_for_tag(tag)` candidates first. A positive
    match wins. Otherwise the first guessing converter is used, together with
    its guessed type. If a converter refused only because of the tag,
    `DeserializationError` is raised. If nothing matches, the converter is
    `None`.

  Both lookups are cached per type id. Adding a converter clears the caches.

### `serialkit.validation`

- `validate_cbor_value(type_id, value, tag=None, type_tag=None)` and
  `validate_json_value(type_id, value)` check a value strictly against a basic
  type. They return the value or raise `DeserializationError`. For example, an
  `INT` needs an integer; in JSON a whole-valued float also passes.
- `cbor_to_python(type_id, value, tag=None)` resolves known tags:
  - date/time string and epoch → `datetime`;
  - regular expression → compiled pattern;
  - UUID → `uuid.UUID`.

  Encoding hint tags and the URL tag are dropped. Other tags stay wrapped in a
  `CBORTag`.
- `json_to_python(type_id, value)` compiles strings read as
  `REGULAR_EXPRESSION`.
- `convert_to_type(type_id, value)` converts a value to the Python form of a
  type, with range checks for integer types. It raises `DeserializationError`
  when no conversion exists. A null never becomes a string or bytes.
- `DEFAULT_VALUES`: the default value of each basic type.

## Example

```python
from serialkit.converters import CborType, MetaType, TypeConverter
from serialkit.registry import ConverterRegistry
from serialkit.validation import convert_to_type

SWITCH = MetaType.USER + 1
NAMES = {0: "Off", 1: "On"}


class SwitchConverter(TypeConverter):
    def can_convert(self, type_id):
        return type_id == SWITCH

    def allowed_cbor_types(self, type_id, tag):
        return [CborType.STRING]

    def serialize(self, type_id, value):
        return NAMES[value]

    def deserialize_cbor(self, type_id, value, parent):
        return {name: number for number, name in NAMES.items()}[value]


registry = ConverterRegistry()
registry.add_converter(SwitchConverter())

converter = registry.find_ser_converter(SWITCH, None)
converter.serialize(SWITCH, 1)                      # "On"

converter, type_id = registry.find_deser_converter(SWITCH, None, CborType.STRING, None)
converter.deserialize_cbor(type_id, "On", None)     # 1

convert_to_type(MetaType.INT, "42")                 # 42
```

## What it does not do

serialkit has no ready-made serializer. The following are left to the code
that uses these parts:

- encoding a whole value to CBOR or JSON bytes;
- walking objects;
- mapping CBOR tags to types;
- holding serializer options.

The package also ships no converters for concrete types such as lists, maps,
dates or enums.