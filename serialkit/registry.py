"""Converter lookup: global converter factories, extractors and per-serializer stores."""

from __future__ import annotations

import threading
from typing import Any, Protocol

from .converters import (
    NO_TAG,
    CborType,
    DeserializationCapability,
    DeserializationError,
    MetaType,
    TypeConverter,
    TypeConverterFactory,
)

_factory_lock = threading.Lock()
_factories: list[TypeConverterFactory] = []

_extractor_lock = threading.Lock()
_extractors: dict[int, Any] = {}


class _LookupHelper(Protocol):
    def types_for_tag(self, tag: int) -> list[int]: ...


def _type_name(type_id: int) -> str:
    try:
        return MetaType(type_id).name
    except ValueError:
        return f"<type {type_id}>"


def add_type_converter_factory(factory: TypeConverterFactory) -> None:
    """Register a factory whose converters every serializer will use."""
    if not callable(getattr(factory, "create_converter", None)):
        raise TypeError("factory must provide create_converter()")
    with _factory_lock:
        _factories.append(factory)


def type_converter_factories() -> list[TypeConverterFactory]:
    """Return a snapshot of the globally registered converter factories."""
    with _factory_lock:
        return list(_factories)


def register_extractor(type_id: int, extractor: Any) -> None:
    """Register the extractor used for values of ``type_id``."""
    with _extractor_lock:
        _extractors[type_id] = extractor


def get_extractor(type_id: int) -> Any:
    """Return the extractor registered for ``type_id``, or None."""
    with _extractor_lock:
        return _extractors.get(type_id)


def _capability(
    converter: TypeConverter, type_id: int, tag: int | None, cbor_type: CborType
) -> tuple[DeserializationCapability, int]:
    """Ask a converter; a guessing converter may answer with ``(capability, type_id)``."""
    result = converter.can_deserialize(type_id, tag, cbor_type)
    if isinstance(result, tuple):
        capability, guessed_type = result
        return DeserializationCapability(capability), guessed_type
    return DeserializationCapability(result), type_id


class ConverterRegistry:
    """The converters of one serializer, ordered by priority, with lookup caches."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._converters: list[TypeConverter] = []
        self._factory_offset = 0
        self._ser_cache: dict[int, TypeConverter] = {}
        self._deser_cache: dict[int, TypeConverter] = {}

    def _insert_sorted(self, converter: TypeConverter) -> None:
        index = next(
            (i for i, existing in enumerate(self._converters) if existing.priority < converter.priority),
            len(self._converters),
        )
        self._converters.insert(index, converter)
        self._ser_cache.clear()
        self._deser_cache.clear()

    def add_converter(self, converter: TypeConverter) -> None:
        """Add a converter; higher priorities are consulted first."""
        if converter is None:
            raise ValueError("converter must not be None")
        with self._lock:
            self._insert_sorted(converter)

    def update_from_factories(self, helper: Any) -> None:
        """Create converters from any global factories added since the last update."""
        factories = type_converter_factories()
        with self._lock:
            for factory in factories[self._factory_offset:]:
                converter = factory.create_converter()
                if converter is not None:
                    converter.set_helper(helper)
                    self._insert_sorted(converter)
            self._factory_offset = len(factories)

    def find_ser_converter(self, type_id: int, helper: Any) -> TypeConverter | None:
        """Return the converter serializing ``type_id``, or None for the default conversion."""
        self.update_from_factories(helper)
        with self._lock:
            cached = self._ser_cache.get(type_id)
            if cached is not None:
                return cached
            for converter in self._converters:
                if converter.can_convert(type_id):
                    self._ser_cache[type_id] = converter
                    return converter
        return None

    def find_deser_converter(
        self, type_id: int, tag: int | None, cbor_type: CborType, helper: Any
    ) -> tuple[TypeConverter | None, int]:
        """Return ``(converter, type_id)`` for deserializing; the type may be resolved or guessed.

        The converter is None when the default conversion applies.
        """
        self.update_from_factories(helper)

        if type_id == MetaType.UNKNOWN and tag is not NO_TAG and helper is not None:
            for candidate in helper.types_for_tag(tag):
                if candidate == MetaType.UNKNOWN:
                    continue
                converter, found_type = self.find_deser_converter(candidate, tag, cbor_type, helper)
                if converter is not None:
                    return converter, found_type

        wrong_tag = False
        with self._lock:
            cached = self._deser_cache.get(type_id)
            if cached is not None and _capability(cached, type_id, tag, cbor_type)[0] > 0:
                return cached, type_id

            guess: tuple[TypeConverter, int] | None = None
            for converter in self._converters:
                capability, test_type = _capability(converter, type_id, tag, cbor_type)
                if capability == DeserializationCapability.POSITIVE:
                    self._deser_cache[type_id] = converter
                    return converter, type_id
                if capability == DeserializationCapability.WRONG_TAG:
                    wrong_tag = True
                elif capability == DeserializationCapability.GUESSED and guess is None:
                    guess = (converter, test_type)

            if guess is not None:
                converter, guessed_type = guess
                self._deser_cache[guessed_type] = converter
                return converter, guessed_type

        if wrong_tag:
            raise DeserializationError(
                f"Found converter able to handle data of type {_type_name(type_id)}, "
                f"but the given CBOR tag {tag} is not convertible to that type."
            )
        return None, type_id