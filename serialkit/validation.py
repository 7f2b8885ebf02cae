"""Strict validation and plain conversion of basic values read from CBOR or JSON."""

from __future__ import annotations

import datetime
import math
import re
import uuid
from types import MappingProxyType
from typing import Any

from cbor2 import CBORTag

from .converters import NO_TAG, DeserializationError, MetaType

TAG_DATETIME_STRING = 0
TAG_UNIX_TIME = 1
TAG_EXPECTED_BASE64URL = 21
TAG_EXPECTED_BASE64 = 22
TAG_EXPECTED_BASE16 = 23
TAG_URL = 32
TAG_BASE64URL = 33
TAG_BASE64 = 34
TAG_REGULAR_EXPRESSION = 35
TAG_UUID = 37

_INT_RANGES = {
    MetaType.INT: (-(2**31), 2**31 - 1),
    MetaType.UINT: (0, 2**32 - 1),
    MetaType.LONG: (-(2**63), 2**63 - 1),
    MetaType.LONG_LONG: (-(2**63), 2**63 - 1),
    MetaType.SHORT: (-(2**15), 2**15 - 1),
    MetaType.ULONG: (0, 2**64 - 1),
    MetaType.ULONG_LONG: (0, 2**64 - 1),
    MetaType.USHORT: (0, 2**16 - 1),
    MetaType.SCHAR: (-(2**7), 2**7 - 1),
    MetaType.UCHAR: (0, 2**8 - 1),
}
_INTEGER_TYPES = frozenset(_INT_RANGES)
_FLOAT_TYPES = frozenset({MetaType.FLOAT, MetaType.DOUBLE})
_CHAR_TYPES = frozenset({MetaType.CHAR, MetaType.CHAR16})
_STRING_TYPES = frozenset({MetaType.STRING}) | _CHAR_TYPES
_PASSTHROUGH_TAGS = frozenset(
    {TAG_EXPECTED_BASE64URL, TAG_EXPECTED_BASE64, TAG_EXPECTED_BASE16, TAG_URL, TAG_BASE64URL, TAG_BASE64}
)

DEFAULT_VALUES = MappingProxyType(
    {
        MetaType.BOOL: False,
        **{type_id: 0 for type_id in _INTEGER_TYPES},
        MetaType.FLOAT: 0.0,
        MetaType.DOUBLE: 0.0,
        MetaType.STRING: "",
        MetaType.CHAR: "\x00",
        MetaType.CHAR16: "\x00",
        MetaType.BYTE_ARRAY: b"",
        MetaType.URL: "",
        MetaType.UUID: uuid.UUID(int=0),
        MetaType.REGULAR_EXPRESSION: re.compile(""),
        MetaType.NULLPTR: None,
    }
)
"""Values used for value types when null data is allowed in their place."""


def _type_name(type_id: int) -> str:
    try:
        return MetaType(type_id).name
    except ValueError:
        return f"<type {type_id}>"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_bytes(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray))


def validate_cbor_value(type_id: int, value: Any, tag: int | None = NO_TAG, type_tag: int | None = NO_TAG) -> Any:
    """Check untagged ``value`` (read under ``tag``) strictly against ``type_id``; return it.

    ``type_tag`` is the tag the serializer demands for this type, if any.
    """
    expected_tags: set[int | None] | None = None
    failed = False

    if type_id == MetaType.BOOL:
        failed = not isinstance(value, bool)
    elif type_id in _INTEGER_TYPES:
        failed = not _is_int(value)
    elif type_id in _FLOAT_TYPES:
        failed = not isinstance(value, float)
    elif type_id in _STRING_TYPES:
        expected_tags = {NO_TAG, TAG_BASE64, TAG_BASE64URL}
        failed = not isinstance(value, str)
    elif type_id in (MetaType.COLOR, MetaType.FONT):
        failed = not isinstance(value, str)
    elif type_id == MetaType.BYTE_ARRAY:
        expected_tags = {NO_TAG, TAG_EXPECTED_BASE64, TAG_EXPECTED_BASE64URL, TAG_EXPECTED_BASE16}
        failed = not _is_bytes(value)
    elif type_id == MetaType.NULLPTR:
        failed = value is not None
    elif type_id == MetaType.URL:
        if not (tag == TAG_URL and isinstance(value, str)):
            if isinstance(value, str):
                expected_tags = {TAG_URL}
            else:
                failed = True
    elif type_id == MetaType.UUID:
        if not (isinstance(value, uuid.UUID) or (tag == TAG_UUID and _is_bytes(value))):
            if _is_bytes(value):
                expected_tags = {TAG_UUID}
            else:
                failed = True
    elif type_id == MetaType.REGULAR_EXPRESSION:
        if not (isinstance(value, re.Pattern) or (tag == TAG_REGULAR_EXPRESSION and isinstance(value, str))):
            if isinstance(value, str):
                expected_tags = {TAG_REGULAR_EXPRESSION}
            else:
                failed = True

    if type_tag is not NO_TAG and type_tag != tag:
        failed = True
    elif expected_tags is not None and tag not in expected_tags:
        failed = True

    if failed:
        raise DeserializationError(
            f"Failed to deserialize CBOR-value to type {_type_name(type_id)} "
            "because the given CBOR-value failed strict validation"
        )
    return value


def validate_json_value(type_id: int, value: Any) -> Any:
    """Check a JSON-derived ``value`` strictly against ``type_id``; return it."""
    failed = False
    if type_id == MetaType.BOOL:
        failed = not isinstance(value, bool)
    elif type_id in _INTEGER_TYPES:
        if isinstance(value, float):
            failed = not value.is_integer()
        else:
            failed = not _is_int(value)
    elif type_id in _STRING_TYPES or type_id in (MetaType.COLOR, MetaType.URL, MetaType.FONT, MetaType.UUID):
        failed = not isinstance(value, str)
    elif type_id == MetaType.NULLPTR:
        failed = value is not None
    elif type_id in _FLOAT_TYPES:
        failed = not isinstance(value, float)

    if failed:
        raise DeserializationError(
            f"Failed to deserialize JSON-value to type {_type_name(type_id)} "
            "because the given JSON-value failed strict validation"
        )
    return value


def _parse_datetime(text: str) -> datetime.datetime:
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.datetime.fromisoformat(text)


def cbor_to_python(type_id: int, value: Any, tag: int | None = NO_TAG) -> Any:
    """Turn a CBOR value read under ``tag`` into its plain Python form.

    Tags with a known meaning are resolved; others stay wrapped in a CBORTag.
    ``type_id`` is the expected type and does not change the result.
    """
    if tag is NO_TAG and isinstance(value, CBORTag):
        tag, value = value.tag, value.value
    if tag is NO_TAG:
        return value
    try:
        if tag == TAG_DATETIME_STRING and isinstance(value, str):
            return _parse_datetime(value)
        if tag == TAG_UNIX_TIME and (_is_int(value) or isinstance(value, float)):
            return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
        if tag == TAG_REGULAR_EXPRESSION and isinstance(value, str):
            return re.compile(value)
        if tag == TAG_UUID and _is_bytes(value) and len(value) == 16:
            return uuid.UUID(bytes=bytes(value))
    except (ValueError, OverflowError, OSError, re.error) as error:
        raise DeserializationError(f"Invalid data for CBOR tag {tag} while reading {_type_name(type_id)}") from error
    if tag in _PASSTHROUGH_TAGS:
        return value
    return CBORTag(tag, value)


def json_to_python(type_id: int, value: Any) -> Any:
    """Turn a JSON value into its plain Python form; regular expressions are compiled."""
    if type_id == MetaType.REGULAR_EXPRESSION and isinstance(value, str):
        return re.compile(value)
    return value


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("not a finite number")
        return math.floor(value + 0.5) if value >= 0 else math.ceil(value - 0.5)
    if isinstance(value, str):
        return int(value.strip())
    if _is_bytes(value):
        return int(bytes(value).decode("ascii").strip())
    raise TypeError("not convertible to an integer")


def _to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    if _is_bytes(value):
        return float(bytes(value).decode("ascii").strip())
    raise TypeError("not convertible to a number")


def _to_bool(value: Any) -> bool:
    if isinstance(value, (bool, int, float)):
        return bool(value)
    if _is_bytes(value):
        value = bytes(value).decode("utf-8")
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false")
    raise TypeError("not convertible to a boolean")


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if _is_bytes(value):
        return bytes(value).decode("utf-8")
    if isinstance(value, uuid.UUID):
        return f"{{{value}}}"
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    raise TypeError("not convertible to a string")


def _to_char(value: Any) -> str:
    if _is_int(value):
        return chr(value)
    text = _to_string(value)
    if len(text) != 1:
        raise ValueError("not a single character")
    return text


def _to_bytes(value: Any) -> bytes:
    if _is_bytes(value):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return repr(value).encode("ascii")
    raise TypeError("not convertible to bytes")


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        return uuid.UUID(value)
    if _is_bytes(value) and len(value) == 16:
        return uuid.UUID(bytes=bytes(value))
    raise TypeError("not convertible to a uuid")


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str):
        return _parse_datetime(value)
    raise TypeError("not convertible to a datetime")


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return datetime.date.fromisoformat(value)
    raise TypeError("not convertible to a date")


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, str):
        return datetime.time.fromisoformat(value)
    raise TypeError("not convertible to a time")


def _convert(type_id: int, value: Any) -> Any:
    if type_id in _INTEGER_TYPES:
        result = _to_int(value)
        low, high = _INT_RANGES[MetaType(type_id)]
        if not low <= result <= high:
            raise OverflowError("value out of range")
        return result
    if type_id == MetaType.NULLPTR:
        if value is not None:
            raise TypeError("only null converts to nullptr")
        return None
    if value is None:
        raise TypeError("null cannot be converted")
    if type_id == MetaType.BOOL:
        return _to_bool(value)
    if type_id in _FLOAT_TYPES:
        return _to_float(value)
    if type_id == MetaType.STRING:
        return _to_string(value)
    if type_id in _CHAR_TYPES:
        return _to_char(value)
    if type_id == MetaType.BYTE_ARRAY:
        return _to_bytes(value)
    if type_id == MetaType.URL:
        if not isinstance(value, str):
            raise TypeError("not convertible to a url")
        return value
    if type_id == MetaType.UUID:
        return _to_uuid(value)
    if type_id == MetaType.REGULAR_EXPRESSION:
        if isinstance(value, re.Pattern):
            return value
        if isinstance(value, str):
            return re.compile(value)
        raise TypeError("not convertible to a regular expression")
    if type_id == MetaType.VARIANT_LIST:
        if isinstance(value, (list, tuple)):
            return list(value)
        raise TypeError("not convertible to a list")
    if type_id == MetaType.STRING_LIST:
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [_to_string(item) for item in value]
        raise TypeError("not convertible to a string list")
    if type_id in (MetaType.VARIANT_MAP, MetaType.VARIANT_HASH):
        if isinstance(value, dict):
            return {_to_string(key): item for key, item in value.items()}
        raise TypeError("not convertible to a map")
    if type_id == MetaType.DATE_TIME:
        return _to_datetime(value)
    if type_id == MetaType.DATE:
        return _to_date(value)
    if type_id == MetaType.TIME:
        return _to_time(value)
    return value


def convert_to_type(type_id: int, value: Any) -> Any:
    """Convert a deserialized value to the Python form of ``type_id``.

    Raises DeserializationError when no conversion exists; null never converts
    to a string or byte array.
    """
    if type_id in (MetaType.UNKNOWN, MetaType.VARIANT):
        return value
    try:
        return _convert(type_id, value)
    except (TypeError, ValueError, OverflowError, re.error) as error:
        value_type = "<unknown>" if value is None else type(value).__name__
        raise DeserializationError(
            f"Failed to convert deserialized value of type {value_type} to property type "
            f"{_type_name(type_id)}. Make sure to register converters for it"
        ) from error