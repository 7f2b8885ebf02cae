"""Core types shared by the serializers and their type converters."""

from __future__ import annotations

import datetime
import re
import uuid
from abc import ABC, abstractmethod
from enum import Enum, IntEnum, IntFlag
from typing import Any, ClassVar, Iterable, Protocol

from cbor2 import CBORSimpleValue, CBORTag, undefined

NO_TAG = None
"""Marker for values that carry no CBOR tag."""


class MetaType(IntEnum):
    """Identifiers of the built-in value types known to the serializers."""

    UNKNOWN = 0
    BOOL = 1
    INT = 2
    UINT = 3
    LONG_LONG = 4
    ULONG_LONG = 5
    DOUBLE = 6
    CHAR16 = 7
    VARIANT_MAP = 8
    VARIANT_LIST = 9
    STRING = 10
    STRING_LIST = 11
    BYTE_ARRAY = 12
    BIT_ARRAY = 13
    DATE = 14
    TIME = 15
    DATE_TIME = 16
    URL = 17
    LOCALE = 18
    VARIANT_HASH = 28
    UUID = 30
    LONG = 32
    SHORT = 33
    CHAR = 34
    ULONG = 35
    USHORT = 36
    UCHAR = 37
    FLOAT = 38
    SCHAR = 40
    VARIANT = 41
    REGULAR_EXPRESSION = 44
    NULLPTR = 51
    FONT = 64
    COLOR = 67
    USER = 1024


class ValidationFlag(IntFlag):
    """How strictly data is validated when deserializing."""

    STANDARD_VALIDATION = 0x00
    NO_EXTRA_PROPERTIES = 0x01
    ALL_PROPERTIES = 0x02
    STRICT_BASIC_TYPES = 0x04
    FULL_PROPERTY_VALIDATION = NO_EXTRA_PROPERTIES | ALL_PROPERTIES
    FULL_VALIDATION = FULL_PROPERTY_VALIDATION | STRICT_BASIC_TYPES


class Polymorphing(Enum):
    """How polymorphic objects are handled."""

    DISABLED = "disabled"
    ENABLED = "enabled"
    FORCED = "forced"


class MultiMapMode(Enum):
    """How multi maps and sets are written."""

    MAP = "map"
    LIST = "list"
    DENSE_MAP = "dense_map"


class DeserializationCapability(IntEnum):
    """Answer of a converter asked whether it can deserialize some data."""

    POSITIVE = 1
    GUESSED = 2
    NEGATIVE = -1
    WRONG_TAG = -2


class CborType(IntEnum):
    """Kinds of CBOR values."""

    INTEGER = 0x00
    BYTE_ARRAY = 0x40
    STRING = 0x60
    ARRAY = 0x80
    MAP = 0xA0
    TAG = 0xC0
    SIMPLE_TYPE = 0x100
    FALSE = 0x114
    TRUE = 0x115
    NULL = 0x116
    UNDEFINED = 0x117
    DOUBLE = 0x202
    DATE_TIME = 0x10000
    URL = 0x10020
    REGULAR_EXPRESSION = 0x10023
    UUID = 0x10025
    INVALID = -1


def cbor_type_of(value: Any) -> CborType:
    """Return the CBOR kind of a decoded Python value."""
    if value is None:
        return CborType.NULL
    if value is undefined:
        return CborType.UNDEFINED
    if isinstance(value, bool):
        return CborType.TRUE if value else CborType.FALSE
    if isinstance(value, int):
        return CborType.INTEGER
    if isinstance(value, float):
        return CborType.DOUBLE
    if isinstance(value, (bytes, bytearray)):
        return CborType.BYTE_ARRAY
    if isinstance(value, str):
        return CborType.STRING
    if isinstance(value, (list, tuple)):
        return CborType.ARRAY
    if isinstance(value, dict):
        return CborType.MAP
    if isinstance(value, CBORTag):
        return CborType.TAG
    if isinstance(value, CBORSimpleValue):
        return CborType.SIMPLE_TYPE
    if isinstance(value, datetime.datetime):
        return CborType.DATE_TIME
    if isinstance(value, uuid.UUID):
        return CborType.UUID
    if isinstance(value, re.Pattern):
        return CborType.REGULAR_EXPRESSION
    return CborType.INVALID


class SerializerError(Exception):
    """Base error of the serializers, carrying a trace of the properties involved."""

    def __init__(self, message: str, trace: Iterable[tuple[str, str]] = ()):
        super().__init__(message)
        self.message = message
        self.property_trace: list[tuple[str, str]] = list(trace)

    def push_trace(self, name: str, type_name: str) -> None:
        """Record an enclosing property; the outermost property ends up first."""
        self.property_trace.insert(0, (name, type_name))

    def __str__(self) -> str:
        if not self.property_trace:
            return self.message
        lines = [self.message, "Property Trace:"]
        lines.extend(f"\t{name} (Type: {type_name})" for name, type_name in self.property_trace)
        return "\n".join(lines)


class SerializationError(SerializerError):
    """Raised when a value cannot be serialized."""


class DeserializationError(SerializerError):
    """Raised when data cannot be deserialized."""


class SerializationHelper(Protocol):
    """What a converter may ask of the serializer that owns it."""

    def json_mode(self) -> bool: ...

    def get_property(self, name: str) -> Any: ...

    def type_tag(self, type_id: int) -> int | None: ...

    def extractor(self, type_id: int) -> Any: ...

    def serialize_subtype(self, type_id: int, value: Any, trace_hint: str) -> Any: ...

    def deserialize_subtype(self, type_id: int, value: Any, parent: Any, trace_hint: str) -> Any: ...


class TypeConverter(ABC):
    """Converts values of certain types to CBOR data and back."""

    class Priority(IntEnum):
        EXTREMELY_LOW = -0x00FFFFFF
        VERY_LOW = -0x0000FFFF
        LOW = -0x000000FF
        STANDARD = 0
        HIGH = 0x000000FF
        VERY_HIGH = 0x0000FFFF
        EXTREMELY_HIGH = 0x00FFFFFF

    cbor_tags: ClassVar[tuple[int | None, ...]] = ()
    """Tags a subclass accepts for every type it handles; empty accepts any."""

    def __init__(self, priority: int = Priority.STANDARD):
        self.priority = int(priority)
        self.helper: SerializationHelper | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def set_helper(self, helper: SerializationHelper | None) -> None:
        """Attach the serializer this converter works for."""
        self.helper = helper

    @abstractmethod
    def can_convert(self, type_id: int) -> bool:
        """Whether values of ``type_id`` are handled by this converter."""

    @abstractmethod
    def allowed_cbor_types(self, type_id: int, tag: int | None) -> list[CborType]:
        """CBOR kinds this converter accepts for ``type_id`` under ``tag``."""

    def allowed_cbor_tags(self, type_id: int) -> list[int | None]:
        """CBOR tags accepted for ``type_id``; an empty list accepts any."""
        return list(self.cbor_tags)

    def _mode(self) -> tuple[bool, bool]:
        if self.helper is None:
            return False, False
        flags = self.helper.get_property("validation_flags") or ValidationFlag.STANDARD_VALIDATION
        strict = bool(ValidationFlag(flags) & ValidationFlag.STRICT_BASIC_TYPES)
        return bool(self.helper.json_mode()), strict

    def can_deserialize(self, type_id: int, tag: int | None, cbor_type: CborType) -> DeserializationCapability:
        """Decide whether data of ``cbor_type`` tagged ``tag`` can become ``type_id``."""
        if not self.can_convert(type_id):
            return DeserializationCapability.NEGATIVE

        as_json, strict = self._mode()
        if not as_json:
            tags = self.allowed_cbor_tags(type_id)
            if tag is not NO_TAG:
                if tags and tag not in tags:
                    return DeserializationCapability.WRONG_TAG
            elif strict and tags and NO_TAG not in tags:
                return DeserializationCapability.WRONG_TAG

        if cbor_type in self.allowed_cbor_types(type_id, tag):
            return DeserializationCapability.POSITIVE
        return DeserializationCapability.NEGATIVE

    @abstractmethod
    def serialize(self, type_id: int, value: Any) -> Any:
        """Turn ``value`` of ``type_id`` into CBOR data."""

    @abstractmethod
    def deserialize_cbor(self, type_id: int, value: Any, parent: Any) -> Any:
        """Turn CBOR data into a value of ``type_id``."""

    def deserialize_json(self, type_id: int, value: Any, parent: Any) -> Any:
        """Turn JSON-derived data into a value of ``type_id``."""
        return self.deserialize_cbor(type_id, value, parent)


class TypeConverterFactory:
    """Creates converter instances for every serializer that asks."""

    def __init__(self, converter_class: type[TypeConverter], priority: int | None = None):
        if not (isinstance(converter_class, type) and issubclass(converter_class, TypeConverter)):
            raise TypeError("converter_class must be a TypeConverter subclass")
        self.converter_class = converter_class
        self.priority = priority

    def create_converter(self) -> TypeConverter:
        """Return a fresh converter, with the configured priority if any."""
        converter = self.converter_class()
        if self.priority is not None:
            converter.priority = int(self.priority)
        return converter