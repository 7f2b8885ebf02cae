import datetime
import re
import uuid

import pytest
from cbor2 import CBORSimpleValue, CBORTag, undefined

from serialkit.converters import (
    NO_TAG,
    CborType,
    DeserializationCapability,
    DeserializationError,
    MetaType,
    SerializationError,
    SerializerError,
    TypeConverter,
    TypeConverterFactory,
    ValidationFlag,
    cbor_type_of,
)

TUPLE_TAG = 1000
OTHER_TAG = 2000


class DummyHelper:
    def __init__(self, json=False, properties=None):
        self.json = json
        self.properties = properties or {}

    def json_mode(self):
        return self.json

    def get_property(self, name):
        return self.properties.get(name)


class TupleLike(TypeConverter):
    def can_convert(self, type_id):
        return type_id == MetaType.USER + 1

    def allowed_cbor_tags(self, type_id):
        return [NO_TAG, TUPLE_TAG]

    def allowed_cbor_types(self, type_id, tag):
        return [CborType.ARRAY]

    def serialize(self, type_id, value):
        return list(value)

    def deserialize_cbor(self, type_id, value, parent):
        return tuple(value)


class StrictTagged(TupleLike):
    def allowed_cbor_tags(self, type_id):
        return [TUPLE_TAG]


TUPLE_TYPE = MetaType.USER + 1


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, CborType.NULL),
        (undefined, CborType.UNDEFINED),
        (True, CborType.TRUE),
        (False, CborType.FALSE),
        (42, CborType.INTEGER),
        (4.2, CborType.DOUBLE),
        (b"test123", CborType.BYTE_ARRAY),
        ("baum", CborType.STRING),
        ([1, 2, 3], CborType.ARRAY),
        ({"0": "Normal1"}, CborType.MAP),
        (CBORTag(TUPLE_TAG, [1]), CborType.TAG),
        (CBORSimpleValue(5), CborType.SIMPLE_TYPE),
        (datetime.datetime(2020, 1, 1), CborType.DATE_TIME),
        (uuid.UUID(int=0), CborType.UUID),
        (re.compile(r"^[Hh]ello\s+world!?$"), CborType.REGULAR_EXPRESSION),
        (object(), CborType.INVALID),
    ],
)
def test_cbor_type_of(value, expected):
    assert cbor_type_of(value) is expected


def test_validation_flag_composition():
    assert ValidationFlag(0x03) == ValidationFlag.FULL_PROPERTY_VALIDATION
    assert ValidationFlag(0x03) == (
        ValidationFlag.NO_EXTRA_PROPERTIES | ValidationFlag.ALL_PROPERTIES
    )
    assert ValidationFlag(0x07) == ValidationFlag.FULL_VALIDATION
    assert ValidationFlag.FULL_VALIDATION == (
        ValidationFlag.FULL_PROPERTY_VALIDATION | ValidationFlag.STRICT_BASIC_TYPES
    )
    assert ValidationFlag(0x04) in ValidationFlag.FULL_VALIDATION


def test_error_trace_outermost_first():
    err = DeserializationError("boom")
    err.push_trace("test", "EnumContainer")
    err.push_trace("outer", "Wrapper")
    assert err.property_trace == [("outer", "Wrapper"), ("test", "EnumContainer")]
    text = str(err)
    assert text.startswith("boom")
    assert text.index("outer") < text.index("test")


def test_error_single_trace_entry():
    err = DeserializationError("fail")
    err.push_trace("test", "EnumContainer")
    assert len(err.property_trace) == 1
    assert err.property_trace[0][1] == "EnumContainer"
    assert err.property_trace[0][0] == "test"


def test_error_hierarchy():
    with pytest.raises(SerializerError):
        raise SerializationError("x")
    assert str(SerializationError("plain")) == "plain"


def test_can_deserialize_basic_tagged():
    conv = TypeConverterFactory(TupleLike).create_converter()
    conv.set_helper(DummyHelper(json=False))
    result = conv.can_deserialize(TUPLE_TYPE, TUPLE_TAG, cbor_type_of([1, 2]))
    assert result is DeserializationCapability.POSITIVE


def test_can_deserialize_untagged_json():
    conv = TypeConverterFactory(TupleLike).create_converter()
    conv.set_helper(DummyHelper(json=True))
    result = conv.can_deserialize(TUPLE_TYPE, NO_TAG, cbor_type_of([1, 2]))
    assert result is DeserializationCapability.POSITIVE


def test_can_deserialize_unknown_type():
    conv = TypeConverterFactory(TupleLike).create_converter()
    conv.set_helper(DummyHelper(json=True))
    assert conv.can_convert(MetaType.VARIANT) is False
    result = conv.can_deserialize(MetaType.VARIANT, NO_TAG, cbor_type_of(None))
    assert result is DeserializationCapability.NEGATIVE


def test_can_deserialize_wrong_tag():
    conv = TypeConverterFactory(TupleLike).create_converter()
    conv.set_helper(DummyHelper(json=False))
    assert conv.can_convert(TUPLE_TYPE) is True
    result = conv.can_deserialize(TUPLE_TYPE, OTHER_TAG, cbor_type_of([1]))
    assert result is DeserializationCapability.WRONG_TAG


def test_can_deserialize_wrong_cbor_type():
    conv = TypeConverterFactory(TupleLike).create_converter()
    conv.set_helper(DummyHelper(json=False))
    result = conv.can_deserialize(TUPLE_TYPE, NO_TAG, cbor_type_of({}))
    assert result is DeserializationCapability.NEGATIVE


def test_missing_tag_only_rejected_when_strict():
    conv = TypeConverterFactory(StrictTagged).create_converter()
    conv.set_helper(DummyHelper(json=False))
    array_type = cbor_type_of([1])
    assert conv.can_deserialize(TUPLE_TYPE, NO_TAG, array_type) is DeserializationCapability.POSITIVE
    conv.set_helper(DummyHelper(json=False, properties={"validation_flags": ValidationFlag.STRICT_BASIC_TYPES}))
    assert conv.can_deserialize(TUPLE_TYPE, NO_TAG, array_type) is DeserializationCapability.WRONG_TAG


def test_json_mode_ignores_tags():
    conv = TypeConverterFactory(StrictTagged).create_converter()
    conv.set_helper(DummyHelper(json=True, properties={"validation_flags": ValidationFlag.FULL_VALIDATION}))
    result = conv.can_deserialize(TUPLE_TYPE, OTHER_TAG, cbor_type_of([1]))
    assert result is DeserializationCapability.POSITIVE


def test_deserialize_json_defaults_to_cbor():
    conv = TypeConverterFactory(TupleLike).create_converter()
    assert conv.deserialize_json(TUPLE_TYPE, [1, 2, 3], None) == (1, 2, 3)
    assert conv.deserialize_json(TUPLE_TYPE, [1, 2, 3], None) == conv.deserialize_cbor(TUPLE_TYPE, [1, 2, 3], None)
    assert conv.serialize(TUPLE_TYPE, (5, True, 5.5)) == [5, True, 5.5]


def test_default_name_priority_and_tags():
    conv = TypeConverterFactory(TupleLike).create_converter()
    assert conv.name == "TupleLike"
    assert conv.priority == TypeConverter.Priority.STANDARD
    assert conv.helper is None
    helper = DummyHelper()
    conv.set_helper(helper)
    assert conv.helper is helper


def test_priority_order():
    p = TypeConverter.Priority
    ordered = [p.EXTREMELY_LOW, p.VERY_LOW, p.LOW, p.STANDARD, p.HIGH, p.VERY_HIGH, p.EXTREMELY_HIGH]
    created = [TypeConverterFactory(TupleLike, prio).create_converter().priority for prio in ordered]
    assert created == ordered
    assert all(low < high for low, high in zip(created, created[1:]))


def test_factory_creates_fresh_converters():
    factory = TypeConverterFactory(TupleLike, TypeConverter.Priority.VERY_HIGH)
    first = factory.create_converter()
    second = factory.create_converter()
    assert isinstance(first, TupleLike)
    assert first is not second
    assert first.priority == TypeConverter.Priority.VERY_HIGH


def test_factory_without_priority_keeps_default():
    conv = TypeConverterFactory(TupleLike).create_converter()
    assert conv.priority == TypeConverter.Priority.STANDARD


def test_factory_rejects_non_converter():
    with pytest.raises(TypeError):
        TypeConverterFactory(dict)


def test_deserialization_capability_sign():
    conv = TypeConverterFactory(TupleLike).create_converter()
    conv.set_helper(DummyHelper(json=False))
    positive = conv.can_deserialize(TUPLE_TYPE, TUPLE_TAG, cbor_type_of([1]))
    wrong_tag = conv.can_deserialize(TUPLE_TYPE, OTHER_TAG, cbor_type_of([1]))
    negative = conv.can_deserialize(TUPLE_TYPE, NO_TAG, cbor_type_of({}))
    assert positive > 0
    assert wrong_tag < 0
    assert negative < 0
    assert DeserializationCapability.GUESSED > 0