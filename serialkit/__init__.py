"""Type converters, converter lookup and strict value validation for CBOR/JSON serialization."""

__version__ = "0.1.0"

__all__ = ["converters", "registry", "validation"]